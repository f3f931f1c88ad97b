"""
Decision queries over the catalog index and resolved authorization states.

All functions are total: unknown or empty keys produce ``False``, ``None`` or
an empty list rather than an exception.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from core.metrics import UNKNOWN_PERMISSION_LABEL, record_permission_check

from .catalog import CatalogIndex, MembershipDefinition, PermissionDefinition
from .keys import normalise_permission_key, unique_membership_keys, unique_permission_keys
from .resolve import AuthorizationState, resolve_authorization_state

logger = logging.getLogger(__name__)

GENERIC_DENIAL_MESSAGE = "You do not have permission to access this feature."


# ============================================================================
# Permission checks
# ============================================================================

def _lookup(mapping: Mapping, *names: str) -> Any:
    for name in names:
        if name in mapping:
            return mapping[name]
    return None


def _is_precomputed(value: Any) -> bool:
    if isinstance(value, AuthorizationState):
        return True
    return isinstance(value, Mapping) and (
        "permission_keys" in value or "permissionKeys" in value
    )


def _precomputed_grant_all(index: CatalogIndex, state: Mapping) -> bool:
    details = _lookup(state, "membership_details", "membershipDetails")
    if isinstance(details, Mapping):
        details = [details]
    elif isinstance(details, str) or not isinstance(details, Iterable):
        details = []

    for detail in details:
        if isinstance(detail, Mapping):
            if _lookup(detail, "grant_all", "grantAll") is True:
                return True
        elif getattr(detail, "grant_all", False) is True:
            return True

    for token in unique_membership_keys(_lookup(state, "membership_keys", "membershipKeys")):
        definition = index.aliases.get(token)
        if definition is not None and definition.grant_all:
            return True
    return False


def _permission_view(index: CatalogIndex, state_or_input: Any) -> Tuple[List[str], Any]:
    """Return the held permission keys and a callable answering the grant-all question."""
    if isinstance(state_or_input, AuthorizationState):
        return state_or_input.permission_keys, lambda: state_or_input.has_grant_all

    if _is_precomputed(state_or_input):
        keys = unique_permission_keys(_lookup(state_or_input, "permission_keys", "permissionKeys"))
        return keys, lambda: _precomputed_grant_all(index, state_or_input)

    raw = state_or_input if isinstance(state_or_input, Mapping) else {}
    state = resolve_authorization_state(
        index,
        memberships=raw.get("memberships"),
        permissions=raw.get("permissions"),
    )
    return state.permission_keys, lambda: state.has_grant_all


def has_permission(
    index: CatalogIndex,
    state_or_input: Any,
    permission_key: Any,
    allow_admin_override: bool = True,
) -> bool:
    """
    Check whether a caller holds a permission.

    Args:
        index: Catalog index
        state_or_input: An AuthorizationState, a mapping carrying
            ``permission_keys`` (treated as an already resolved state), or raw
            ``{"memberships": [...], "permissions": [...]}`` input
        permission_key: Permission to check (normalised internally)
        allow_admin_override: When True, any matched grant-all membership
            allows the permission even if it is not in the resolved set

    Returns:
        True if the permission is held, False otherwise

    Examples:
        >>> has_permission(index, {"memberships": ["Agency Admin"]}, "clients.list")
        True
        >>> has_permission(index, {"permission_keys": ["x"]}, "y", allow_admin_override=False)
        False
    """
    key = normalise_permission_key(permission_key)
    if key is None:
        return False

    held, grant_all = _permission_view(index, state_or_input)
    # Only catalog keys become metric labels; anything else shares one series.
    label = key if key in index.permissions else UNKNOWN_PERMISSION_LABEL

    if key in held:
        record_permission_check(True, label)
        return True

    if allow_admin_override and grant_all():
        logger.debug(f"Permission '{key}' allowed through grant-all membership")
        record_permission_check(True, label, via_override=True)
        return True

    record_permission_check(False, label)
    return False


# ============================================================================
# Reverse lookups
# ============================================================================

def list_memberships_for_permission(
    index: CatalogIndex,
    permission_key: Any,
) -> List[MembershipDefinition]:
    """
    List memberships that grant a permission, in catalog authoring order.

    A membership qualifies when it is grant-all or lists the permission
    directly. Implications are not walked in reverse, so a membership that
    only reaches the permission through another permission is not listed.
    """
    key = normalise_permission_key(permission_key)
    if key is None:
        return []
    return [definition for definition in index.iter_memberships() if definition.grants(key)]


def get_membership_metadata(index: CatalogIndex, raw_key: Any) -> Optional[MembershipDefinition]:
    """Alias-resolve a membership token; None when unknown."""
    return index.resolve_membership(raw_key)


# ============================================================================
# Denial explanations
# ============================================================================

@dataclass
class PermissionRequirement:
    """What a caller needs in order to hold a permission."""
    permission_key: Optional[str]
    permission: Optional[PermissionDefinition]
    allowed_memberships: List[MembershipDefinition] = field(default_factory=list)
    escalation_memberships: List[MembershipDefinition] = field(default_factory=list)
    message: str = GENERIC_DENIAL_MESSAGE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "permission_key": self.permission_key,
            "permission": self.permission.to_dict() if self.permission else None,
            "allowed_memberships": [m.to_dict() for m in self.allowed_memberships],
            "escalation_memberships": [m.to_dict() for m in self.escalation_memberships],
            "message": self.message,
        }


def describe_permission_requirement(index: CatalogIndex, permission_key: Any) -> PermissionRequirement:
    """
    Build a human-readable explanation of what grants a permission.

    Unknown permissions get a generic message.
    """
    key = normalise_permission_key(permission_key)
    if key is None:
        return PermissionRequirement(permission_key=None, permission=None)

    allowed = list_memberships_for_permission(index, key)
    permission = index.permissions.get(key)

    if permission is None:
        return PermissionRequirement(
            permission_key=key,
            permission=None,
            allowed_memberships=allowed,
        )

    escalation = [
        index.memberships[m] for m in permission.escalation_path if m in index.memberships
    ]

    if allowed:
        labels = ", ".join(m.label for m in allowed)
        message = f"Access to {permission.label} requires one of the following memberships: {labels}."
    else:
        message = (
            f"Access to {permission.label} is not granted by any membership. "
            f"Contact an administrator to request access."
        )

    return PermissionRequirement(
        permission_key=key,
        permission=permission,
        allowed_memberships=allowed,
        escalation_memberships=escalation,
        message=message,
    )
