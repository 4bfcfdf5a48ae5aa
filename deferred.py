"""Handle returned in async mode.

The client is built and the cluster provisioned on a background thread. The
first attribute access on the handle blocks until that work is done and
re-raises its failure at the call site.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Optional

from elasticsearch import Elasticsearch

logger = logging.getLogger(__name__)


class DeferredClient:
    """Forwards every attribute to the client produced by ``future``.

    There is no cancellation: once submitted, provisioning runs to completion.
    """

    def __init__(self, future: "Future[Elasticsearch]") -> None:
        self._future = future
        self._client: Optional[Elasticsearch] = None

    def _resolve(self) -> Elasticsearch:
        if self._client is None:
            logger.debug("Waiting for the Elasticsearch client to be provisioned")
            self._client = self._future.result()
        return self._client

    @property
    def ready(self) -> bool:
        return self._future.done()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._resolve(), name)

    def __repr__(self) -> str:
        state = "ready" if self._future.done() else "pending"
        return f"<DeferredClient {state}>"
