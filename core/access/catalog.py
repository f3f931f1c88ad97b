"""
Catalog index: permission registry, implication graph and membership registry.

The index is built in one pass from a validated catalog and is immutable
afterwards, so a single instance can be shared by every request and thread.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.metrics import record_catalog_build

from .keys import (
    normalise_membership_key,
    normalise_permission_key,
    unique_membership_keys,
    unique_permission_keys,
)
from .schema import validate_catalog

logger = logging.getLogger(__name__)


# ============================================================================
# Definitions
# ============================================================================

@dataclass(frozen=True)
class PermissionDefinition:
    """A permission as registered in the catalog."""
    key: str
    label: str
    description: str = ""
    category: str = "general"
    surfaces: Tuple[str, ...] = ()
    escalation_path: Tuple[str, ...] = ()
    implies: Tuple[str, ...] = ()

    @classmethod
    def stub(cls, key: str) -> "PermissionDefinition":
        """Metadata for a permission that has no catalog entry."""
        return cls(key=key, label=key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "surfaces": list(self.surfaces),
            "escalation_path": list(self.escalation_path),
            "implies": list(self.implies),
        }


@dataclass(frozen=True)
class MembershipDefinition:
    """
    A membership (role, plan or tier) as registered in the catalog.

    Instances are values: every collection field is a tuple, so handing one
    to a caller gives them a copy they cannot use to alter the catalog.
    """
    key: str
    label: str
    description: str = ""
    tier: Optional[str] = None
    escalation_path: Tuple[str, ...] = ()
    grant_all: bool = False
    permissions: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()

    def grants(self, permission_key: str) -> bool:
        """Whether this membership directly holds a canonical permission key."""
        return self.grant_all or permission_key in self.permissions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "description": self.description,
            "tier": self.tier,
            "escalation_path": list(self.escalation_path),
            "grant_all": self.grant_all,
            "permissions": list(self.permissions),
            "aliases": list(self.aliases),
        }


@dataclass(frozen=True)
class AliasCollision:
    """An alias claimed by two different memberships; ``winner`` is the one it resolves to."""
    alias: str
    previous: str
    winner: str

    def describe(self) -> str:
        return (
            f"alias '{self.alias}' is claimed by '{self.previous}' and '{self.winner}'; "
            f"it resolves to '{self.winner}'"
        )


# ============================================================================
# Index
# ============================================================================

@dataclass(frozen=True)
class CatalogIndex:
    """Read-only lookup structures built from one catalog version."""
    permissions: Mapping[str, PermissionDefinition]
    implications: Mapping[str, Tuple[str, ...]]
    memberships: Mapping[str, MembershipDefinition]
    aliases: Mapping[str, MembershipDefinition]
    membership_order: Tuple[str, ...]
    version: Optional[str] = None
    alias_collisions: Tuple[AliasCollision, ...] = field(default=())

    @property
    def permission_keys(self) -> Tuple[str, ...]:
        """Every registered permission key, in authoring order."""
        return tuple(self.permissions)

    def implied_by(self, permission_key: str) -> Tuple[str, ...]:
        return self.implications.get(permission_key, ())

    def resolve_membership(self, raw: Any) -> Optional[MembershipDefinition]:
        """Resolve a raw membership token through the alias index."""
        key = normalise_membership_key(raw)
        if key is None:
            return None
        return self.aliases.get(key)

    def permission(self, raw: Any) -> Optional[PermissionDefinition]:
        key = normalise_permission_key(raw)
        if key is None:
            return None
        return self.permissions.get(key)

    def iter_memberships(self):
        """Yield membership definitions in authoring order."""
        for key in self.membership_order:
            yield self.memberships[key]


# ============================================================================
# Builder
# ============================================================================

def _clean_tokens(values) -> Tuple[str, ...]:
    cleaned = []
    for value in values:
        if value is None:
            continue
        token = str(value).strip()
        if token and token not in cleaned:
            cleaned.append(token)
    return tuple(cleaned)


def build_catalog_index(catalog: Any) -> CatalogIndex:
    """
    Build the catalog index from authored catalog data.

    Permissions and memberships with an empty key are skipped. For a repeated
    canonical key the first definition is kept and later ones are ignored.
    An alias claimed by two different memberships resolves to whichever is
    authored later; each such collision is logged and recorded on the index.

    Args:
        catalog: CatalogDocument or mapping with ``permissions`` and ``memberships``

    Returns:
        Immutable CatalogIndex

    Raises:
        CatalogValidationError: If the catalog does not have catalog shape
    """
    document = validate_catalog(catalog)

    permissions: Dict[str, PermissionDefinition] = {}
    implications: Dict[str, Tuple[str, ...]] = {}

    for entry in document.permissions:
        key = normalise_permission_key(entry.key)
        if key is None or key in permissions:
            continue

        implies = tuple(k for k in unique_permission_keys(entry.implies) if k != key)
        permissions[key] = PermissionDefinition(
            key=key,
            label=entry.label or key,
            description=entry.description,
            category=entry.category,
            surfaces=_clean_tokens(entry.surfaces),
            escalation_path=tuple(unique_membership_keys(entry.escalation_path)),
            implies=implies,
        )
        if implies:
            implications[key] = implies

    memberships: Dict[str, MembershipDefinition] = {}
    aliases: Dict[str, MembershipDefinition] = {}
    order: List[str] = []
    collisions: List[AliasCollision] = []

    for entry in document.memberships:
        key = normalise_membership_key(entry.key)
        if key is None:
            continue
        if key in memberships:
            logger.warning(f"Duplicate membership '{key}' ignored; first definition wins")
            continue

        definition = MembershipDefinition(
            key=key,
            label=entry.label or key,
            description=entry.description,
            tier=entry.tier,
            escalation_path=tuple(unique_membership_keys(entry.escalation_path)),
            grant_all=bool(entry.grant_all),
            permissions=tuple(unique_permission_keys(entry.permissions)),
            aliases=tuple(unique_membership_keys([key, *entry.aliases])),
        )
        memberships[key] = definition
        order.append(key)

        for alias in definition.aliases:
            previous = aliases.get(alias)
            if previous is not None and previous.key != key:
                collision = AliasCollision(alias=alias, previous=previous.key, winner=key)
                collisions.append(collision)
                logger.warning(f"Membership {collision.describe()}")
            aliases[alias] = definition

    index = CatalogIndex(
        permissions=MappingProxyType(permissions),
        implications=MappingProxyType(implications),
        memberships=MappingProxyType(memberships),
        aliases=MappingProxyType(aliases),
        membership_order=tuple(order),
        version=document.version,
        alias_collisions=tuple(collisions),
    )

    logger.info(
        f"Built access catalog index: version={index.version}, "
        f"permissions={len(permissions)}, memberships={len(memberships)}, "
        f"implication_edges={sum(len(v) for v in implications.values())}"
    )
    record_catalog_build(index.version, len(permissions), len(memberships))
    return index


def find_alias_collisions(catalog: Any) -> List[AliasCollision]:
    """
    List aliases claimed by more than one distinct membership.

    Accepts either raw catalog data or an already built CatalogIndex.
    """
    if isinstance(catalog, CatalogIndex):
        return list(catalog.alias_collisions)
    return list(build_catalog_index(catalog).alias_collisions)
