"""Errors raised while provisioning Elasticsearch resources.

Everything except :class:`DiscoveryIOError` aborts startup. Discovery failures
are recovered inside the resource locator and only ever logged.
"""
from __future__ import annotations

from typing import Optional


class ProvisioningError(Exception):
    """Base class for every provisioning failure."""


class ConfigurationError(ProvisioningError):
    """Malformed or missing configuration, detected before any cluster call."""


class ResourceAcknowledgementError(ProvisioningError):
    """The cluster answered but did not acknowledge a create/put call."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Could not create {kind} [{name}]: request was not acknowledged")


class ClusterRejectionError(ProvisioningError):
    """The cluster refused a call, e.g. a non dynamic setting update.

    ``reason`` keeps the cluster's own message untouched.
    """

    def __init__(self, kind: str, name: str, status: Optional[int], reason: str) -> None:
        self.kind = kind
        self.name = name
        self.status = status
        self.reason = reason
        super().__init__(f"Elasticsearch rejected {kind} [{name}] ({status}): {reason}")


class DiscoveryIOError(ProvisioningError):
    """The resource root could not be listed."""
