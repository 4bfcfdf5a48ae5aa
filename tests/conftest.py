"""Shared fixtures: an in-memory resource source and a fake cluster."""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from definition_reader import DefinitionReader

RESOURCES_DIR = Path(__file__).parent / "resources"


class InMemorySource:
    """Resource source backed by a ``{path: content}`` dict."""

    def __init__(self, files: Dict[str, Any]):
        self.files = {
            path: content if isinstance(content, str) else json.dumps(content)
            for path, content in files.items()
        }
        self.listed: List[str] = []

    def list_resources(self, path: str) -> List[str]:
        self.listed.append(path)
        prefix = path.rstrip("/") + "/"
        children: List[str] = []
        for name in self.files:
            if not name.startswith(prefix):
                continue
            head, sep, _ = name[len(prefix):].partition("/")
            entry = head + "/" if sep else head
            if entry not in children:
                children.append(entry)
        if not children:
            raise FileNotFoundError(path)
        return children

    def read_text(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None


class FakeCluster:
    """In-memory stand-in for the cluster port, recording every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.templates: Dict[str, Dict[str, Any]] = {}
        self.named: Dict[str, Dict[str, Any]] = {}
        self.aliases: Dict[str, set] = {}
        self.acknowledge = True
        self.rejections: Dict[str, Exception] = {}

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation,) + args)
        if operation in self.rejections:
            raise self.rejections[operation]

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]

    def add_index(self, name: str, settings: Optional[dict] = None, properties: Optional[dict] = None) -> None:
        mappings = {"properties": dict(properties)} if properties else {}
        self.indices[name] = {"settings": dict(settings or {}), "mappings": mappings}

    def index_exists(self, name):
        self._record("index_exists", name)
        return name in self.indices

    def create_index(self, name, body):
        self._record("create_index", name, body)
        if self.acknowledge:
            body = body or {}
            self.indices[name] = {
                "settings": dict(body.get("settings", {})),
                "mappings": dict(body.get("mappings", {})),
            }
        return self.acknowledge

    def delete_index(self, name):
        self._record("delete_index", name)
        self.indices.pop(name, None)
        return True

    def update_index_settings(self, name, settings):
        self._record("update_index_settings", name, settings)
        self.indices[name]["settings"].update(settings)
        return self.acknowledge

    def get_mapping(self, name, type_name):
        self._record("get_mapping", name, type_name)
        mappings = self.indices.get(name, {}).get("mappings") or {}
        return mappings if mappings.get("properties") else None

    def put_mapping(self, name, type_name, body):
        self._record("put_mapping", name, type_name, body)
        mappings = self.indices[name].setdefault("mappings", {})
        mappings.setdefault("properties", {}).update(body.get("properties", {}))
        return self.acknowledge

    def template_exists(self, name):
        self._record("template_exists", name)
        return name in self.templates

    def put_template(self, name, body):
        self._record("put_template", name, body)
        self.templates[name] = body
        return self.acknowledge

    def delete_template(self, name):
        self._record("delete_template", name)
        self.templates.pop(name, None)
        return True

    def _put_named(self, operation, name, body):
        self._record(operation, name, body)
        self.named[f"{operation}:{name}"] = body
        return self.acknowledge

    def put_index_template(self, name, body):
        return self._put_named("put_index_template", name, body)

    def put_component_template(self, name, body):
        return self._put_named("put_component_template", name, body)

    def put_pipeline(self, name, body):
        return self._put_named("put_pipeline", name, body)

    def put_lifecycle(self, name, body):
        return self._put_named("put_lifecycle", name, body)

    def add_alias(self, index, alias):
        self._record("add_alias", index, alias)
        self.aliases.setdefault(alias, set()).add(index)
        return self.acknowledge

    def update_aliases(self, body):
        self._record("update_aliases", body)
        for action in body["actions"]:
            (kind, target), = action.items()
            if kind == "add":
                self.aliases.setdefault(target["alias"], set()).add(target["index"])
            elif kind == "remove":
                self.aliases.get(target["alias"], set()).discard(target["index"])
        return self.acknowledge

    def wait_for_yellow(self, indices):
        self._record("wait_for_yellow", list(indices))


TWITTER_RSS_FILES = {
    "es/twitter/_settings.json": {"settings": {"number_of_shards": 1}},
    "es/twitter/_update_settings.json": {"index": {"number_of_replicas": 1}},
    "es/twitter/tweet.json": {
        "tweet": {"properties": {"message": {"type": "text"}, "user": {"type": "keyword"}}}
    },
    "es/rss/feed.json": {"properties": {"title": {"type": "text"}, "link": {"type": "keyword"}}},
    "es/_template/twitter_template.json": {"index_patterns": ["twitter_*"], "settings": {"number_of_shards": 1}},
}


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def source():
    return InMemorySource(TWITTER_RSS_FILES)


@pytest.fixture
def reader(source):
    return DefinitionReader(source, "/es")
