"""Tests for convention based discovery."""
import logging

import pytest

from errors import DiscoveryIOError
from resource_locator import FilesystemSource, PackageSource, ResourceLocator, normalize_root

from conftest import RESOURCES_DIR, InMemorySource


@pytest.mark.parametrize("root, expected", [("/es", "es"), ("es", "es"), ("es/", "es"), (None, "es"), ("/conf/es", "conf/es")])
def test_normalize_root(root, expected):
    assert normalize_root(root) == expected


def test_discover_index_names_ignores_reserved_entries(source):
    locator = ResourceLocator(source, "/es")

    assert set(locator.discover_index_names()) == {"twitter", "rss"}


def test_discover_index_names_is_order_independent():
    files = {"es/rss/feed.json": "{}", "es/twitter/tweet.json": "{}"}
    forward = ResourceLocator(InMemorySource(files), "es").discover_index_names()
    backward = ResourceLocator(InMemorySource(dict(reversed(list(files.items())))), "es").discover_index_names()

    assert set(forward) == set(backward) == {"twitter", "rss"}


def test_discover_types_skips_settings_files(source):
    locator = ResourceLocator(source, "es")

    assert locator.discover_types("twitter") == ["tweet"]
    assert locator.discover_types("rss") == ["feed"]


def test_discover_template_names(source):
    assert ResourceLocator(source, "es").discover_template_names() == ["twitter_template"]


def test_unreadable_root_raises_discovery_error():
    locator = ResourceLocator(InMemorySource({}), "es")

    with pytest.raises(DiscoveryIOError):
        locator.discover_index_names()


def test_resolve_prefers_configured_names(source):
    locator = ResourceLocator(source, "es")

    assert locator.resolve(["manual"], True, locator.discover_index_names, "indices") == ["manual"]
    assert source.listed == []


def test_resolve_without_autoscan_never_scans(source):
    locator = ResourceLocator(source, "es")

    assert locator.resolve([], False, locator.discover_index_names, "indices") == []
    assert source.listed == []


def test_resolve_falls_back_to_configured_when_scan_fails(caplog):
    locator = ResourceLocator(InMemorySource({}), "missing")

    with caplog.at_level(logging.DEBUG, logger="resource_locator"):
        names = locator.resolve([], True, locator.discover_index_names, "indices")

    assert names == []
    assert "Automatic discovery does not succeed" in caplog.text


def test_filesystem_source_lists_directories_and_files():
    locator = ResourceLocator(FilesystemSource(RESOURCES_DIR), "/es")

    assert set(locator.discover_index_names()) == {"twitter", "rss"}
    assert locator.discover_types("twitter") == ["tweet"]
    assert locator.discover_template_names() == ["twitter_template"]


def test_filesystem_empty_root_is_empty(tmp_path):
    (tmp_path / "es").mkdir()

    assert ResourceLocator(FilesystemSource(tmp_path), "es").discover_index_names() == []


def test_filesystem_missing_root_is_a_discovery_error(tmp_path):
    with pytest.raises(DiscoveryIOError):
        ResourceLocator(FilesystemSource(tmp_path), "es").discover_index_names()


def test_package_source_reads_packaged_resources(tmp_path, monkeypatch):
    package = tmp_path / "myapp_resources"
    (package / "es" / "twitter").mkdir(parents=True)
    (package / "__init__.py").write_text("")
    (package / "es" / "twitter" / "tweet.json").write_text('{"properties": {}}', encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))

    source = PackageSource("myapp_resources")
    locator = ResourceLocator(source, "es")

    assert locator.discover_index_names() == ["twitter"]
    assert locator.discover_types("twitter") == ["tweet"]
    assert source.read_text("es/twitter/tweet.json") == '{"properties": {}}'


def test_unknown_package_is_a_discovery_error():
    source = PackageSource("no_such_pkg_xyz")

    with pytest.raises(DiscoveryIOError, match="no_such_pkg_xyz"):
        ResourceLocator(source, "es").discover_index_names()
    with pytest.raises(FileNotFoundError):
        source.read_text("es/twitter/tweet.json")
