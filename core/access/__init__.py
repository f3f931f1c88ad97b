"""
Membership and permission authorization engine.

Builds an immutable index from an authored catalog, resolves a caller's
memberships and explicit grants into a closed, provenance-tracked permission
set, and answers permission checks and reverse lookups against it.
"""

from .keys import (
    normalise_membership_key,
    normalise_permission_key,
    unique_membership_keys,
    unique_permission_keys,
)

from .errors import CatalogValidationError

from .schema import (
    CatalogDocument,
    PermissionEntry,
    MembershipEntry,
    validate_catalog,
)

from .catalog import (
    # Data classes
    PermissionDefinition,
    MembershipDefinition,
    AliasCollision,
    CatalogIndex,
    # Functions
    build_catalog_index,
    find_alias_collisions,
)

from .resolve import (
    EXPLICIT_GRANT,
    PermissionDetail,
    AuthorizationState,
    resolve_authorization_state,
)

from .decisions import (
    GENERIC_DENIAL_MESSAGE,
    PermissionRequirement,
    has_permission,
    list_memberships_for_permission,
    get_membership_metadata,
    describe_permission_requirement,
)

__all__ = [
    # Keys
    "normalise_membership_key",
    "normalise_permission_key",
    "unique_membership_keys",
    "unique_permission_keys",
    # Errors
    "CatalogValidationError",
    # Schema
    "CatalogDocument",
    "PermissionEntry",
    "MembershipEntry",
    "validate_catalog",
    # Catalog
    "PermissionDefinition",
    "MembershipDefinition",
    "AliasCollision",
    "CatalogIndex",
    "build_catalog_index",
    "find_alias_collisions",
    # Resolution
    "EXPLICIT_GRANT",
    "PermissionDetail",
    "AuthorizationState",
    "resolve_authorization_state",
    # Decisions
    "GENERIC_DENIAL_MESSAGE",
    "PermissionRequirement",
    "has_permission",
    "list_memberships_for_permission",
    "get_membership_metadata",
    "describe_permission_requirement",
]
