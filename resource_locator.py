"""Convention based discovery of the resources to provision.

A resource root (``es`` by default) is laid out as::

    es/_template/<template>.json
    es/_index_templates/<template>.json
    es/_component_templates/<template>.json
    es/_pipelines/<pipeline>.json
    es/_index_lifecycles/<policy>.json
    es/_aliases.json
    es/<index>/_settings.json
    es/<index>/_update_settings.json
    es/<index>/<type>.json

Names starting with ``_`` are reserved and never taken as index names.
"""
from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from errors import DiscoveryIOError

logger = logging.getLogger(__name__)

JSON_EXTENSION = ".json"
INDEX_SETTINGS_FILE = "_settings"
UPDATE_INDEX_SETTINGS_FILE = "_update_settings"
TEMPLATE_DIR = "_template"
INDEX_TEMPLATES_DIR = "_index_templates"
COMPONENT_TEMPLATES_DIR = "_component_templates"
PIPELINES_DIR = "_pipelines"
INDEX_LIFECYCLES_DIR = "_index_lifecycles"
ALIASES_FILE = "_aliases"

_RESERVED_TYPE_FILES = {
    INDEX_SETTINGS_FILE + JSON_EXTENSION,
    UPDATE_INDEX_SETTINGS_FILE + JSON_EXTENSION,
}


class ResourceSource(Protocol):
    """Where definition files live.

    ``list_resources`` returns the immediate children of ``path``; directory
    names carry a trailing ``/``. Both methods raise ``OSError`` on failure.
    """

    def list_resources(self, path: str) -> List[str]: ...

    def read_text(self, path: str) -> str: ...


class FilesystemSource:
    """Resources read from a directory on disk."""

    def __init__(self, base_dir: str | Path = ".") -> None:
        self.base_dir = Path(base_dir)

    def list_resources(self, path: str) -> List[str]:
        return [
            entry.name + "/" if entry.is_dir() else entry.name
            for entry in (self.base_dir / path).iterdir()
        ]

    def read_text(self, path: str) -> str:
        return (self.base_dir / path).read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"FilesystemSource({str(self.base_dir)!r})"


class PackageSource:
    """Resources shipped inside an importable package."""

    def __init__(self, package: str) -> None:
        self.package = package

    def _traversable(self, path: str):
        try:
            node = resources.files(self.package)
        except (ImportError, TypeError) as exc:
            raise FileNotFoundError(f"Package [{self.package}] can not be loaded: {exc}") from exc
        for part in filter(None, path.split("/")):
            node = node.joinpath(part)
        return node

    def list_resources(self, path: str) -> List[str]:
        node = self._traversable(path)
        if not node.is_dir():
            raise NotADirectoryError(f"{self.package}:{path}")
        return [entry.name + "/" if entry.is_dir() else entry.name for entry in node.iterdir()]

    def read_text(self, path: str) -> str:
        return self._traversable(path).read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"PackageSource({self.package!r})"


def normalize_root(root: Optional[str]) -> str:
    """``/es`` and ``es`` designate the same root."""
    root = (root or "es").strip()
    return root.strip("/") or "es"


def _unique(names: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(names))


class ResourceLocator:
    """Discovers index, type and template names under a resource root.

    Results follow the source's listing order, which is platform dependent and
    not sorted.
    """

    def __init__(self, source: ResourceSource, root: Optional[str] = None) -> None:
        self.source = source
        self.root = normalize_root(root)

    def _list(self, path: str) -> List[str]:
        try:
            return self.source.list_resources(path)
        except (OSError, ValueError) as exc:
            raise DiscoveryIOError(f"Can not list resources under [{path}]: {exc}") from exc

    def discover_index_names(self) -> List[str]:
        logger.debug("Looking for indices in resources under [%s].", self.root)
        names = [
            entry.rstrip("/")
            for entry in self._list(self.root)
            if entry.endswith("/") and not entry.startswith("_")
        ]
        return _unique(names)

    def discover_types(self, index: str) -> List[str]:
        logger.debug("Looking for types in resources under [%s/%s].", self.root, index)
        names = []
        for entry in self._list(f"{self.root}/{index}"):
            if entry.endswith("/") or not entry.endswith(JSON_EXTENSION):
                continue
            if entry in _RESERVED_TYPE_FILES:
                logger.debug(" - ignoring: [%s]", entry)
                continue
            names.append(entry[: -len(JSON_EXTENSION)])
        return _unique(names)

    def discover_names(self, subdir: str) -> List[str]:
        """Base names of the json files found in ``<root>/<subdir>``."""
        logger.debug("Looking for resource files under [%s/%s].", self.root, subdir)
        names = [
            entry[: -len(JSON_EXTENSION)]
            for entry in self._list(f"{self.root}/{subdir}")
            if not entry.endswith("/") and entry.endswith(JSON_EXTENSION)
        ]
        return _unique(names)

    def discover_template_names(self) -> List[str]:
        return self.discover_names(TEMPLATE_DIR)

    def resolve(
        self,
        configured: Sequence[str],
        autoscan: bool,
        discover: Callable[[], List[str]],
        what: str,
    ) -> List[str]:
        """Return configured names, or discovered ones when none were configured.

        A discovery failure falls back to the configured list.
        """
        if not autoscan:
            logger.debug("Automatic discovery is disabled. Only static %s are used: %s", what, list(configured))
            return list(configured)
        if configured:
            logger.debug("%s are manually provided so we won't do any automatic discovery.", what.capitalize())
            return list(configured)

        logger.debug("Automatic discovery is activated. Looking for %s under [%s].", what, self.root)
        try:
            return discover()
        except DiscoveryIOError as exc:
            # TODO: report a failed scan separately from an empty root once the plan carries diagnostics
            logger.debug("Automatic discovery does not succeed for finding %s under [%s]: %s", what, self.root, exc)
            return list(configured)
