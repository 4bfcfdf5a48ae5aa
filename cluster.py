"""Cluster operations used by the reconciler, backed by the elasticsearch client."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from elastic_transport import ApiResponse
from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError, NotFoundError

from errors import ClusterRejectionError

logger = logging.getLogger(__name__)


class ClusterPort(Protocol):
    def index_exists(self, name: str) -> bool: ...

    def create_index(self, name: str, body: Optional[Dict[str, Any]]) -> bool: ...

    def delete_index(self, name: str) -> bool: ...

    def update_index_settings(self, name: str, settings: Dict[str, Any]) -> bool: ...

    def get_mapping(self, name: str, type_name: str) -> Optional[Dict[str, Any]]: ...

    def put_mapping(self, name: str, type_name: str, body: Dict[str, Any]) -> bool: ...

    def template_exists(self, name: str) -> bool: ...

    def put_template(self, name: str, body: Dict[str, Any]) -> bool: ...

    def delete_template(self, name: str) -> bool: ...

    def put_index_template(self, name: str, body: Dict[str, Any]) -> bool: ...

    def put_component_template(self, name: str, body: Dict[str, Any]) -> bool: ...

    def put_pipeline(self, name: str, body: Dict[str, Any]) -> bool: ...

    def put_lifecycle(self, name: str, body: Dict[str, Any]) -> bool: ...

    def add_alias(self, index: str, alias: str) -> bool: ...

    def update_aliases(self, body: Dict[str, Any]) -> bool: ...

    def wait_for_yellow(self, indices: List[str]) -> None: ...


def _body(response: Any) -> Dict[str, Any]:
    if isinstance(response, ApiResponse):
        return response.body
    return response or {}


def _acknowledged(response: Any) -> bool:
    return bool(_body(response).get("acknowledged", False))


def rejection_reason(exc: ApiError) -> str:
    """The cluster's own error text, e.g. ``Can't update non dynamic settings [...]``."""
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            reason = error.get("reason")
            if not reason and error.get("root_cause"):
                reason = error["root_cause"][0].get("reason")
            if reason:
                return str(reason)
        elif error:
            return str(error)
    return str(exc)


class ElasticsearchCluster:
    """Adapter translating client responses into booleans and client errors
    into :class:`ClusterRejectionError`.

    Transport errors (connection refused, timeouts) propagate unchanged.
    """

    def __init__(self, client: Elasticsearch) -> None:
        self.client = client

    def _call(self, kind: str, name: str, method, /, **kwargs) -> Any:
        try:
            return method(**kwargs)
        except ApiError as exc:
            logger.warning("Elasticsearch rejected %s [%s]: %s", kind, name, exc)
            raise ClusterRejectionError(kind, name, exc.status_code, rejection_reason(exc)) from exc

    def index_exists(self, name: str) -> bool:
        return bool(self.client.indices.exists(index=name))

    def create_index(self, name: str, body: Optional[Dict[str, Any]]) -> bool:
        kwargs: Dict[str, Any] = {"index": name}
        if body:
            kwargs["body"] = body
        return _acknowledged(self._call("index", name, self.client.indices.create, **kwargs))

    def delete_index(self, name: str) -> bool:
        return _acknowledged(self._call("index", name, self.client.indices.delete, index=name))

    def update_index_settings(self, name: str, settings: Dict[str, Any]) -> bool:
        response = self._call("settings", name, self.client.indices.put_settings, index=name, body=settings)
        return _acknowledged(response)

    def get_mapping(self, name: str, type_name: str) -> Optional[Dict[str, Any]]:
        # Typeless clusters hold a single mapping per index, whatever the type name.
        try:
            response = _body(self.client.indices.get_mapping(index=name))
        except NotFoundError:
            return None
        mappings = response.get(name, {}).get("mappings") or {}
        if not mappings.get("properties"):
            return None
        return mappings

    def put_mapping(self, name: str, type_name: str, body: Dict[str, Any]) -> bool:
        response = self._call(
            "mapping", f"{name}/{type_name}", self.client.indices.put_mapping, index=name, body=body
        )
        return _acknowledged(response)

    def template_exists(self, name: str) -> bool:
        return bool(self.client.indices.exists_template(name=name))

    def put_template(self, name: str, body: Dict[str, Any]) -> bool:
        return _acknowledged(self._call("template", name, self.client.indices.put_template, name=name, body=body))

    def delete_template(self, name: str) -> bool:
        return _acknowledged(self._call("template", name, self.client.indices.delete_template, name=name))

    def put_index_template(self, name: str, body: Dict[str, Any]) -> bool:
        response = self._call("index template", name, self.client.indices.put_index_template, name=name, body=body)
        return _acknowledged(response)

    def put_component_template(self, name: str, body: Dict[str, Any]) -> bool:
        response = self._call(
            "component template", name, self.client.cluster.put_component_template, name=name, body=body
        )
        return _acknowledged(response)

    def put_pipeline(self, name: str, body: Dict[str, Any]) -> bool:
        return _acknowledged(self._call("pipeline", name, self.client.ingest.put_pipeline, id=name, body=body))

    def put_lifecycle(self, name: str, body: Dict[str, Any]) -> bool:
        return _acknowledged(self._call("lifecycle", name, self.client.ilm.put_lifecycle, name=name, body=body))

    def add_alias(self, index: str, alias: str) -> bool:
        response = self._call("alias", f"{alias}:{index}", self.client.indices.put_alias, index=index, name=alias)
        return _acknowledged(response)

    def update_aliases(self, body: Dict[str, Any]) -> bool:
        return _acknowledged(self._call("aliases", "_aliases", self.client.indices.update_aliases, body=body))

    def wait_for_yellow(self, indices: List[str]) -> None:
        self._call("health", ",".join(indices), self.client.cluster.health, index=indices, wait_for_status="yellow")
