"""Reconcile declared Elasticsearch resources against a live cluster.

Each resource goes through one decision per pass::

    UNKNOWN -> exists? -> ABSENT  -> CREATE -> ACTIVE
                       -> PRESENT -> SKIP | MERGE | FORCE (DELETE, CREATE) -> ACTIVE

Every call is a blocking round trip; nothing is retried. Any failure aborts the
whole pass so the application never receives a half provisioned cluster.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from cluster import ClusterPort
from declarations import (
    AliasDeclaration,
    IndexDeclaration,
    ProvisioningPlan,
    ReconciliationPolicy,
    TemplateDeclaration,
)
from definition_reader import DefinitionReader
from errors import ConfigurationError, ResourceAcknowledgementError
from resource_locator import COMPONENT_TEMPLATES_DIR, INDEX_LIFECYCLES_DIR, INDEX_TEMPLATES_DIR, PIPELINES_DIR

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATED = "created"
    RECREATED = "recreated"
    MERGED = "merged"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class ReconciliationReport:
    entries: List[Tuple[str, str, Action]] = field(default_factory=list)

    def record(self, kind: str, name: str, action: Action) -> None:
        self.entries.append((kind, name, action))

    def actions_for(self, kind: str, name: str) -> List[Action]:
        return [action for k, n, action in self.entries if k == kind and n == name]

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for _, _, action in self.entries:
            counts[action.value] = counts.get(action.value, 0) + 1
        return counts


def _ensure_acknowledged(acknowledged: bool, kind: str, name: str) -> None:
    if not acknowledged:
        logger.warning("Could not create %s [%s]", kind, name)
        raise ResourceAcknowledgementError(kind, name)


def _missing_properties(body: Dict[str, Any], current: Optional[Dict[str, Any]]) -> List[str]:
    """Top-level fields declared in ``body`` that the index does not map yet.

    Several type files can share one index, so an index holding some
    properties does not mean this type was applied.
    """
    declared = list((body.get("properties") or {}).keys())
    if current is None:
        return declared or ["<mapping>"]
    existing = current.get("properties") or {}
    return [field_name for field_name in declared if field_name not in existing]


class Reconciler:
    """Applies a :class:`ProvisioningPlan` through a :class:`ClusterPort`.

    The cluster handle is borrowed, never closed here.
    """

    def __init__(
        self,
        cluster: ClusterPort,
        reader: DefinitionReader,
        policy: Optional[ReconciliationPolicy] = None,
    ) -> None:
        self.cluster = cluster
        self.reader = reader
        self.policy = policy or ReconciliationPolicy()
        self.report = ReconciliationReport()

    def reconcile(self, plan: ProvisioningPlan) -> ReconciliationReport:
        """Run a full pass: lifecycle policies, pipelines and templates first,
        then indices, then aliases."""
        self.reconcile_lifecycles(plan.lifecycles)
        self.reconcile_pipelines(plan.pipelines)
        self.reconcile_component_templates(plan.component_templates)
        self.reconcile_index_templates(plan.index_templates)
        self.reconcile_templates(plan.templates)
        self.reconcile_indices(plan.indices)
        if plan.aliases:
            self.reconcile_aliases(plan.aliases)
        elif plan.aliases_file:
            self.apply_aliases_file(plan.aliases_file)
        logger.info("Provisioning pass finished: %s", self.report.summary())
        return self.report

    # Resources without a partial merge mode are pushed on every pass.

    def _put_named(self, kind: str, subdir: str, names: List[str], put: Callable[[str, Dict[str, Any]], bool]) -> None:
        for name in names:
            body = self.reader.named(subdir, name)
            if body is None:
                raise ConfigurationError(f"No definition found for {kind} [{name}] under [{self.reader.root}/{subdir}]")
            logger.debug("Creating or updating %s [%s]", kind, name)
            _ensure_acknowledged(put(name, body), kind, name)
            self.report.record(kind, name, Action.UPDATED)

    def reconcile_lifecycles(self, names: List[str]) -> None:
        self._put_named("lifecycle", INDEX_LIFECYCLES_DIR, names, self.cluster.put_lifecycle)

    def reconcile_pipelines(self, names: List[str]) -> None:
        self._put_named("pipeline", PIPELINES_DIR, names, self.cluster.put_pipeline)

    def reconcile_component_templates(self, names: List[str]) -> None:
        self._put_named("component template", COMPONENT_TEMPLATES_DIR, names, self.cluster.put_component_template)

    def reconcile_index_templates(self, names: List[str]) -> None:
        self._put_named("index template", INDEX_TEMPLATES_DIR, names, self.cluster.put_index_template)

    def reconcile_templates(self, templates: List[TemplateDeclaration]) -> None:
        for declaration in templates:
            self.reconcile_template(declaration)

    def reconcile_template(self, declaration: TemplateDeclaration) -> Action:
        name = declaration.name
        body = self.reader.template(name)
        if body is None:
            raise ConfigurationError(f"No definition found for template [{name}] under [{self.reader.root}]")

        action = Action.CREATED
        if self.cluster.template_exists(name):
            if not self.policy.force_template:
                logger.debug("Template [%s] already exists. Skipping.", name)
                self.report.record("template", name, Action.SKIPPED)
                return Action.SKIPPED
            logger.debug("Template [%s] already exists. Force is set. Removing it.", name)
            self.cluster.delete_template(name)
            action = Action.RECREATED

        logger.debug("Creating template [%s]", name)
        _ensure_acknowledged(self.cluster.put_template(name, body), "template", name)
        self.report.record("template", name, action)
        return action

    def reconcile_indices(self, indices: List[IndexDeclaration]) -> None:
        for declaration in indices:
            self.reconcile_index(declaration)
            for type_name in declaration.types:
                self.reconcile_mapping(declaration.name, type_name)
        if indices and self.policy.wait_for_yellow:
            names = [declaration.name for declaration in indices]
            logger.debug("Waiting for yellow health on %s", names)
            self.cluster.wait_for_yellow(names)

    def reconcile_index(self, declaration: IndexDeclaration) -> Action:
        name = declaration.name
        if not self.cluster.index_exists(name):
            logger.debug("Index [%s] doesn't exist. Creating it.", name)
            self._create_index(name)
            self.report.record("index", name, Action.CREATED)
            return Action.CREATED

        if self.policy.force_index:
            logger.info("Index [%s] already exists. Force is set. Removing it.", name)
            self.cluster.delete_index(name)
            self._create_index(name)
            self.report.record("index", name, Action.RECREATED)
            return Action.RECREATED

        if self.policy.merge_settings:
            settings = self.reader.update_settings(name)
            if settings is not None:
                logger.debug("Updating settings for index [%s]", name)
                # A non dynamic setting raises ClusterRejectionError with the cluster's message.
                _ensure_acknowledged(self.cluster.update_index_settings(name, settings), "settings", name)
                self.report.record("index", name, Action.MERGED)
                return Action.MERGED

        logger.debug("Index [%s] already exists. Skipping.", name)
        self.report.record("index", name, Action.SKIPPED)
        return Action.SKIPPED

    def _create_index(self, name: str) -> None:
        body = self.reader.index_settings(name)
        _ensure_acknowledged(self.cluster.create_index(name, body), "index", name)
        logger.info("Index [%s] created", name)

    def reconcile_mapping(self, index: str, type_name: str) -> Action:
        key = f"{index}/{type_name}"
        body = self.reader.mapping(index, type_name)
        if body is None:
            logger.debug("No content given for mapping. Ignoring type [%s] creation.", key)
            self.report.record("mapping", key, Action.SKIPPED)
            return Action.SKIPPED

        current = self.cluster.get_mapping(index, type_name)
        missing = _missing_properties(body, current)
        if missing:
            logger.debug("Type [%s] doesn't exist or lacks %s. Creating it.", key, missing)
            action = Action.CREATED
        elif self.policy.merge_mapping:
            logger.debug("Updating type [%s].", key)
            action = Action.MERGED
        else:
            logger.debug("Type [%s] already exists and merge is not set.", key)
            self.report.record("mapping", key, Action.SKIPPED)
            return Action.SKIPPED

        _ensure_acknowledged(self.cluster.put_mapping(index, type_name, body), "type", key)
        self.report.record("mapping", key, action)
        return action

    def reconcile_aliases(self, aliases: List[AliasDeclaration]) -> None:
        for declaration in aliases:
            logger.debug("Adding alias [%s] on index [%s]", declaration.alias, declaration.index)
            key = f"{declaration.alias}:{declaration.index}"
            _ensure_acknowledged(self.cluster.add_alias(declaration.index, declaration.alias), "alias", key)
            self.report.record("alias", key, Action.UPDATED)

    def apply_aliases_file(self, path: str) -> None:
        body = self.reader.read_json(path)
        if body is None:
            logger.debug("No aliases definition found at [%s]", path)
            return
        if not isinstance(body.get("actions"), list):
            raise ConfigurationError(f"Aliases definition [{path}] must contain an actions list")
        logger.debug("Applying %d alias actions from [%s]", len(body["actions"]), path)
        _ensure_acknowledged(self.cluster.update_aliases(body), "aliases", path)
        self.report.record("alias", path, Action.UPDATED)
