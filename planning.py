"""Turn settings plus discovered resources into a provisioning plan.

The plan is built before the client exists, so configuration errors surface
without any cluster call.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from declarations import (
    IndexDeclaration,
    ProvisioningPlan,
    TemplateDeclaration,
    group_mappings,
    parse_alias,
    require_name,
)
from resource_locator import (
    ALIASES_FILE,
    COMPONENT_TEMPLATES_DIR,
    INDEX_LIFECYCLES_DIR,
    INDEX_TEMPLATES_DIR,
    JSON_EXTENSION,
    PIPELINES_DIR,
    TEMPLATE_DIR,
    FilesystemSource,
    PackageSource,
    ResourceLocator,
    ResourceSource,
)
from settings import Settings

logger = logging.getLogger(__name__)


def source_for(settings: Settings) -> ResourceSource:
    if settings.resource_package:
        return PackageSource(settings.resource_package)
    return FilesystemSource(settings.resource_dir)


def _discover_indices(locator: ResourceLocator) -> List[str]:
    tokens: List[str] = []
    for index in locator.discover_index_names():
        types = locator.discover_types(index)
        if types:
            tokens.extend(f"{index}/{type_name}" for type_name in types)
        else:
            tokens.append(index)
    return tokens


def _index_declarations(settings: Settings, locator: ResourceLocator) -> List[IndexDeclaration]:
    configured = list(settings.resources.indices) + list(settings.resources.mappings)
    tokens = locator.resolve(
        configured,
        settings.policy.autoscan,
        lambda: _discover_indices(locator),
        "indices",
    )
    declarations = group_mappings([require_name(token, "index") for token in tokens])
    logger.debug("Indices to provision: %s", [declaration.name for declaration in declarations])
    return declarations


def _names(locator: ResourceLocator, configured, autoscan: bool, subdir: str, what: str) -> List[str]:
    names = locator.resolve(list(configured), autoscan, lambda: locator.discover_names(subdir), what)
    return list(dict.fromkeys(require_name(name, what) for name in names))


def build_plan(settings: Settings, source: Optional[ResourceSource] = None) -> ProvisioningPlan:
    source = source or source_for(settings)
    locator = ResourceLocator(source, settings.classpath_root)
    autoscan = settings.policy.autoscan
    resources = settings.resources

    # Alias tokens are validated first: a malformed one must fail before anything else.
    aliases = [parse_alias(token) for token in resources.aliases]

    plan = ProvisioningPlan(
        lifecycles=_names(locator, resources.lifecycles, autoscan, INDEX_LIFECYCLES_DIR, "lifecycle"),
        pipelines=_names(locator, resources.pipelines, autoscan, PIPELINES_DIR, "pipeline"),
        component_templates=_names(
            locator, resources.component_templates, autoscan, COMPONENT_TEMPLATES_DIR, "component template"
        ),
        index_templates=_names(locator, resources.index_templates, autoscan, INDEX_TEMPLATES_DIR, "index template"),
        templates=[
            TemplateDeclaration(name=name)
            for name in _names(locator, resources.templates, autoscan, TEMPLATE_DIR, "template")
        ],
        indices=_index_declarations(settings, locator),
        aliases=aliases,
    )
    if not aliases and autoscan:
        plan.aliases_file = f"{locator.root}/{ALIASES_FILE}{JSON_EXTENSION}"
    return plan
