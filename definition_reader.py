"""Read JSON definition files from a resource source.

A missing or unreadable file is not an error: it means "use the cluster
defaults" and is reported as ``None``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from errors import ConfigurationError
from resource_locator import (
    ALIASES_FILE,
    INDEX_SETTINGS_FILE,
    JSON_EXTENSION,
    TEMPLATE_DIR,
    UPDATE_INDEX_SETTINGS_FILE,
    ResourceSource,
    normalize_root,
)

logger = logging.getLogger(__name__)


def index_resource_path(root: str, index: str, suffix: str) -> str:
    return f"{root}/{index}/{suffix}{JSON_EXTENSION}"


def named_resource_path(root: str, subdir: str, name: str) -> str:
    return f"{root}/{subdir}/{name}{JSON_EXTENSION}"


def parse_definition(text: str, path: str) -> Dict[str, Any]:
    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Definition file [{path}] is not valid JSON: {exc}") from exc
    if not isinstance(body, dict):
        raise ConfigurationError(f"Definition file [{path}] must contain a JSON object")
    return body


def unwrap_type(body: Dict[str, Any], type_name: str) -> Dict[str, Any]:
    """Strip the legacy ``{"<type>": {...}}`` envelope from a mapping body."""
    if len(body) == 1 and isinstance(body.get(type_name), dict):
        return body[type_name]
    return body


class DefinitionReader:
    def __init__(self, source: ResourceSource, root: Optional[str] = None) -> None:
        self.source = source
        self.root = normalize_root(root)

    def read(self, path: str) -> Optional[str]:
        try:
            return self.source.read_text(path)
        except FileNotFoundError:
            logger.debug("No definition found at [%s]", path)
            return None
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.debug("Can not read definition [%s]: %s", path, exc)
            return None

    def read_json(self, path: str) -> Optional[Dict[str, Any]]:
        text = self.read(path)
        if text is None or not text.strip():
            return None
        return parse_definition(text, path)

    def index_settings(self, index: str) -> Optional[Dict[str, Any]]:
        """Body used when creating ``index``: settings, mappings and aliases."""
        return self.read_json(index_resource_path(self.root, index, INDEX_SETTINGS_FILE))

    def update_settings(self, index: str) -> Optional[Dict[str, Any]]:
        """Settings pushed on an existing ``index`` when merging is enabled."""
        return self.read_json(index_resource_path(self.root, index, UPDATE_INDEX_SETTINGS_FILE))

    def mapping(self, index: str, type_name: str) -> Optional[Dict[str, Any]]:
        body = self.read_json(index_resource_path(self.root, index, type_name))
        return unwrap_type(body, type_name) if body is not None else None

    def template(self, name: str) -> Optional[Dict[str, Any]]:
        return self.named(TEMPLATE_DIR, name)

    def named(self, subdir: str, name: str) -> Optional[Dict[str, Any]]:
        return self.read_json(named_resource_path(self.root, subdir, name))

    def aliases(self) -> Optional[Dict[str, Any]]:
        return self.read_json(f"{self.root}/{ALIASES_FILE}{JSON_EXTENSION}")
