"""Client setup for applications relying on provisioned Elasticsearch resources.

``open_client`` builds the Elasticsearch client, makes sure every declared
lifecycle policy, pipeline, template, index and alias exists, then hands the
client over. ``ProvisionedClient.close`` releases it. Designed to be idempotent
so startup can be rerun safely.
"""
from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Optional, Union

from elasticsearch import Elasticsearch

from cluster import ElasticsearchCluster
from declarations import ProvisioningPlan
from deferred import DeferredClient
from definition_reader import DefinitionReader
from planning import build_plan, source_for
from reconciler import ReconciliationReport, Reconciler
from resource_locator import ResourceSource
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def client_options(settings: Settings) -> Dict[str, Any]:
    options: Dict[str, Any] = dict(settings.tls.client_options())
    if settings.es_api_key:
        options["api_key"] = settings.es_api_key
    elif settings.es_basic_auth:
        options["basic_auth"] = settings.es_basic_auth
    if settings.request_timeout is not None:
        options["request_timeout"] = settings.request_timeout
    return options


def get_client(settings: Optional[Settings] = None) -> Elasticsearch:
    """Initialise the Elasticsearch client and verify the connection."""

    settings = settings or get_settings()
    logger.debug("Creating Elasticsearch client for %s", list(settings.es_nodes))
    client = Elasticsearch(list(settings.es_nodes), **client_options(settings))

    try:
        info = client.info()
        logger.info("Connected to Elasticsearch %s (cluster: %s)",
                    info["version"]["number"], info["cluster_name"])
    except Exception as e:
        logger.error("Failed to connect to Elasticsearch at %s: %s", list(settings.es_nodes), e)
        client.close()
        raise

    return client


def provision(
    client: Elasticsearch,
    plan: ProvisioningPlan,
    settings: Settings,
    source: Optional[ResourceSource] = None,
) -> ReconciliationReport:
    """Run one reconciliation pass against an existing client."""
    reader = DefinitionReader(source or source_for(settings), settings.classpath_root)
    reconciler = Reconciler(ElasticsearchCluster(client), reader, settings.policy)
    return reconciler.reconcile(plan)


class ProvisionedClient:
    """Owns the client for the application's lifetime.

    In async mode ``client`` is a :class:`DeferredClient`; provisioning errors
    surface on its first use instead of at startup.
    """

    def __init__(self, settings: Settings, plan: ProvisioningPlan, source: Optional[ResourceSource] = None) -> None:
        self.settings = settings
        self.plan = plan
        self.source = source
        self._client: Optional[Elasticsearch] = None
        self._future: Optional[Future] = None
        self._deferred: Optional[DeferredClient] = None
        self._report: Optional[ReconciliationReport] = None

    def _initialize(self) -> Elasticsearch:
        client = get_client(self.settings)
        try:
            self._report = provision(client, self.plan, self.settings, self.source)
        except Exception:
            logger.error("Provisioning failed, closing Elasticsearch client")
            client.close()
            raise
        self._client = client
        return client

    def start(self, executor: Optional[Executor] = None) -> "ProvisionedClient":
        logger.info("Starting Elasticsearch client")
        if not self.settings.async_init:
            self._initialize()
            return self

        if executor is not None:
            self._future = executor.submit(self._initialize)
        else:
            pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="es-provisioner")
            self._future = pool.submit(self._initialize)
            pool.shutdown(wait=False)
        self._deferred = DeferredClient(self._future)
        return self

    @property
    def client(self) -> Union[Elasticsearch, DeferredClient]:
        if self._deferred is not None:
            return self._deferred
        if self._client is None:
            raise RuntimeError("Elasticsearch client doesn't exist. Call start() first.")
        return self._client

    @property
    def report(self) -> Optional[ReconciliationReport]:
        if self._future is not None:
            self._future.result()
        return self._report

    def close(self) -> None:
        if self._future is not None:
            # Background provisioning can not be aborted; wait for it to settle.
            wait([self._future])
        if self._client is None:
            return
        logger.info("Closing Elasticsearch client")
        try:
            self._client.close()
        except Exception as e:
            logger.error("Error closing Elasticsearch client: %s", e)
            raise
        finally:
            self._client = None

    def __enter__(self) -> Union[Elasticsearch, DeferredClient]:
        return self.client

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_client(
    settings: Optional[Settings] = None,
    source: Optional[ResourceSource] = None,
    executor: Optional[Executor] = None,
) -> ProvisionedClient:
    """Build the client and provision the cluster.

    Configuration errors are raised before any connection is attempted.
    """
    settings = settings or get_settings()
    plan = build_plan(settings, source)
    return ProvisionedClient(settings, plan, source).start(executor)
