"""Value objects describing what a provisioning pass must ensure on the cluster."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from errors import ConfigurationError


@dataclass(frozen=True)
class ReconciliationPolicy:
    force_index: bool = False
    force_template: bool = False
    merge_settings: bool = True
    merge_mapping: bool = False
    autoscan: bool = True
    wait_for_yellow: bool = True


@dataclass(frozen=True)
class IndexDeclaration:
    name: str
    types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AliasDeclaration:
    alias: str
    index: str


@dataclass(frozen=True)
class TemplateDeclaration:
    name: str


@dataclass
class ProvisioningPlan:
    """Every declaration of one pass, in the order they will be reconciled."""

    lifecycles: List[str] = field(default_factory=list)
    pipelines: List[str] = field(default_factory=list)
    component_templates: List[str] = field(default_factory=list)
    index_templates: List[str] = field(default_factory=list)
    templates: List[TemplateDeclaration] = field(default_factory=list)
    indices: List[IndexDeclaration] = field(default_factory=list)
    aliases: List[AliasDeclaration] = field(default_factory=list)
    aliases_file: Optional[str] = None

    @property
    def index_names(self) -> List[str]:
        return [declaration.name for declaration in self.indices]


def require_name(value: Optional[str], what: str) -> str:
    if value is None or not str(value).strip():
        raise ConfigurationError(f"Can not read {what} in [{value}]. Check that {what} is not empty.")
    return str(value).strip()


def parse_alias(token: str) -> AliasDeclaration:
    """Parse an ``aliasname:indexname`` token."""
    parts = (token or "").split(":")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise ConfigurationError(
            f"Can not read alias in [{token}]. "
            "Check that aliases contains only aliasname:indexname elements."
        )
    return AliasDeclaration(alias=parts[0].strip(), index=parts[1].strip())


def parse_mapping(token: str) -> Tuple[str, Optional[str]]:
    """Parse an ``indexname`` or ``indexname/typename`` token."""
    parts = (token or "").split("/")
    if len(parts) > 2 or not parts[0].strip() or (len(parts) == 2 and not parts[1].strip()):
        raise ConfigurationError(
            f"Can not read index in [{token}]. "
            "Check that mappings contains only indexname/mappingname elements."
        )
    index = parts[0].strip()
    return index, (parts[1].strip() if len(parts) == 2 else None)


def group_mappings(tokens: List[str]) -> List[IndexDeclaration]:
    """Group index names and ``index/type`` tokens into one declaration per index.

    Indices keep the order in which they first appear; duplicates collapse.
    """
    grouped: dict[str, List[str]] = {}
    for token in tokens:
        index, type_name = parse_mapping(token)
        types = grouped.setdefault(index, [])
        if type_name and type_name not in types:
            types.append(type_name)
    return [IndexDeclaration(name=index, types=tuple(types)) for index, types in grouped.items()]
