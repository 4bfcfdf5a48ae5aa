"""Local settings loader and lightweight logging helpers.

Settings are stored in JSON (see local_settings.example.json) so they can be
edited without touching code. Values fall back to documented defaults when the
JSON file is missing.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from declarations import ReconciliationPolicy
from errors import ConfigurationError

_DEFAULT_SETTINGS_FILE = Path(__file__).with_name("local_settings.example.json")


@dataclass(frozen=True)
class TLSSettings:
    ca_certs: Optional[str] = None
    verify_certs: bool = True
    ssl_assert_fingerprint: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None

    def client_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"verify_certs": self.verify_certs}
        if self.ca_certs:
            options["ca_certs"] = self.ca_certs
        if self.ssl_assert_fingerprint:
            options["ssl_assert_fingerprint"] = self.ssl_assert_fingerprint
        if self.client_cert:
            options["client_cert"] = self.client_cert
        if self.client_key:
            options["client_key"] = self.client_key
        if not self.verify_certs:
            options["ssl_show_warn"] = False
        return options


@dataclass(frozen=True)
class ResourceSettings:
    indices: Tuple[str, ...] = ()
    mappings: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    templates: Tuple[str, ...] = ()
    index_templates: Tuple[str, ...] = ()
    component_templates: Tuple[str, ...] = ()
    pipelines: Tuple[str, ...] = ()
    lifecycles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Settings:
    es_nodes: Tuple[str, ...]
    es_username: Optional[str] = None
    es_password: Optional[str] = None
    es_api_key: Optional[str] = None
    tls: TLSSettings = field(default_factory=TLSSettings)
    request_timeout: Optional[float] = None
    classpath_root: str = "/es"
    resource_dir: str = "."
    resource_package: Optional[str] = None
    resources: ResourceSettings = field(default_factory=ResourceSettings)
    policy: ReconciliationPolicy = field(default_factory=ReconciliationPolicy)
    async_init: bool = False
    log_level: str = "INFO"

    @property
    def es_basic_auth(self) -> Optional[tuple[str, str]]:
        if self.es_username and self.es_password:
            return self.es_username, self.es_password
        return None


def _read_json(path: Path) -> Dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def _default_payload() -> Dict[str, Any]:
    if _DEFAULT_SETTINGS_FILE.exists():
        return _read_json(_DEFAULT_SETTINGS_FILE)
    # Fallback to hardcoded defaults if the example file was removed.
    return {
        "es_nodes": ["https://localhost:9200"],
        "es_username": None,
        "es_password": None,
        "es_api_key": None,
        "xpack_security_user": None,
        "tls": {"ca_certs": None, "verify_certs": True, "ssl_assert_fingerprint": None},
        "request_timeout": None,
        "classpath_root": "/es",
        "resource_dir": ".",
        "resource_package": None,
        "indices": [],
        "mappings": [],
        "aliases": [],
        "templates": [],
        "index_templates": [],
        "component_templates": [],
        "pipelines": [],
        "lifecycles": [],
        "force_index": False,
        "force_template": False,
        "merge_settings": True,
        "merge_mapping": False,
        "autoscan": True,
        "async": False,
        "wait_for_yellow": True,
        "log_level": "INFO",
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _names(payload: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = payload.get(key) or []
    if isinstance(value, str):
        value = [item for item in value.split(",") if item.strip()]
    if not isinstance(value, list):
        raise ConfigurationError(f"Setting '{key}' must be a list of names")
    return tuple(str(item).strip() for item in value)


def _flag(payload: Dict[str, Any], key: str, default: bool, name: Optional[str] = None) -> bool:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"Setting '{name or key}' must be true or false, got {value!r}")
    return value


def _credentials(payload: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    username = payload.get("es_username")
    password = payload.get("es_password")
    legacy = payload.get("xpack_security_user")
    if legacy:
        logging.getLogger(__name__).warning(
            "Usage of xpack_security_user has been deprecated. Use es_username and es_password instead."
        )
        user, _, secret = str(legacy).partition(":")
        if not user or not secret:
            raise ConfigurationError("xpack_security_user must have the form username:password")
        username, password = user, secret
    if bool(username) != bool(password):
        raise ConfigurationError("es_username and es_password must be set together")
    return username, password


def settings_from_payload(payload: Dict[str, Any]) -> Settings:
    nodes = payload.get("es_nodes") or []
    if isinstance(nodes, str):
        nodes = [nodes]
    if not nodes:
        raise ConfigurationError("es_nodes must list at least one Elasticsearch node")

    username, password = _credentials(payload)
    tls = payload.get("tls") or {}
    return Settings(
        es_nodes=tuple(nodes),
        es_username=username,
        es_password=password,
        es_api_key=payload.get("es_api_key"),
        tls=TLSSettings(
            ca_certs=tls.get("ca_certs"),
            verify_certs=_flag(tls, "verify_certs", True, "tls.verify_certs"),
            ssl_assert_fingerprint=tls.get("ssl_assert_fingerprint"),
            client_cert=tls.get("client_cert"),
            client_key=tls.get("client_key"),
        ),
        request_timeout=payload.get("request_timeout"),
        classpath_root=payload.get("classpath_root") or "/es",
        resource_dir=payload.get("resource_dir") or ".",
        resource_package=payload.get("resource_package"),
        resources=ResourceSettings(
            indices=_names(payload, "indices"),
            mappings=_names(payload, "mappings"),
            aliases=_names(payload, "aliases"),
            templates=_names(payload, "templates"),
            index_templates=_names(payload, "index_templates"),
            component_templates=_names(payload, "component_templates"),
            pipelines=_names(payload, "pipelines"),
            lifecycles=_names(payload, "lifecycles"),
        ),
        policy=ReconciliationPolicy(
            force_index=_flag(payload, "force_index", False),
            force_template=_flag(payload, "force_template", False),
            merge_settings=_flag(payload, "merge_settings", True),
            merge_mapping=_flag(payload, "merge_mapping", False),
            autoscan=_flag(payload, "autoscan", True),
            wait_for_yellow=_flag(payload, "wait_for_yellow", True),
        ),
        async_init=_flag(payload, "async", False),
        log_level=payload.get("log_level", "INFO"),
    )


def load_settings(path: str | Path | None = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    candidate = Path(path or os.getenv("LOCAL_SETTINGS_PATH", "local_settings.json"))
    payload = _default_payload()
    if candidate.exists():
        user_payload = _read_json(candidate)
        payload = _merge(payload, user_payload)
    else:
        logging.getLogger(__name__).info(
            "Local settings file %s not found, falling back to defaults", candidate
        )
    if overrides:
        payload = _merge(payload, overrides)
    return settings_from_payload(payload)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging once using the desired log level.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to settings value.
        log_file: Optional file path for log output. If provided, logs to both console and file.
    """
    log_level = (level or get_settings().log_level or "INFO").upper()

    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    )
    handlers.append(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )

    # The transport logs every request at INFO.
    transport_level = logging.NOTSET if log_level == "DEBUG" else logging.WARNING
    logging.getLogger("elastic_transport").setLevel(transport_level)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured: level=%s, file=%s", log_level, log_file or "console-only")
