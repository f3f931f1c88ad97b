"""
Authorization state resolution.

Expands a caller's raw membership tokens and explicit permission grants into
the closed set of permissions they hold, recording for each permission which
memberships (or the ``"explicit"`` marker) are responsible for it.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from core.metrics import record_resolution

from .catalog import CatalogIndex, MembershipDefinition, PermissionDefinition
from .keys import unique_membership_keys, unique_permission_keys

logger = logging.getLogger(__name__)

EXPLICIT_GRANT = "explicit"
"""Provenance marker for permissions granted directly rather than through a membership."""


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class PermissionDetail:
    """Catalog metadata for a held permission plus what granted it."""
    metadata: PermissionDefinition
    granted_by: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.metadata.key

    def to_dict(self) -> Dict[str, Any]:
        return {**self.metadata.to_dict(), "granted_by": list(self.granted_by)}


@dataclass
class AuthorizationState:
    """Resolved authorization for one caller. Built per call and owned by the caller."""
    membership_keys: List[str] = field(default_factory=list)
    membership_details: List[MembershipDefinition] = field(default_factory=list)
    permission_keys: List[str] = field(default_factory=list)
    permission_details: List[PermissionDetail] = field(default_factory=list)
    breakdown: Dict[str, PermissionDetail] = field(default_factory=dict)

    @property
    def has_grant_all(self) -> bool:
        return any(m.grant_all for m in self.membership_details)

    def granted_by(self, permission_key: str) -> List[str]:
        detail = self.breakdown.get(permission_key)
        return list(detail.granted_by) if detail else []

    def as_raw_input(self) -> Dict[str, List[str]]:
        """Resolved keys in the shape accepted by resolve_authorization_state."""
        return {
            "memberships": list(self.membership_keys),
            "permissions": list(self.permission_keys),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "membership_keys": list(self.membership_keys),
            "memberships": [m.to_dict() for m in self.membership_details],
            "permission_keys": list(self.permission_keys),
            "permissions": [d.to_dict() for d in self.permission_details],
        }


# ============================================================================
# Resolution
# ============================================================================

def _grant(
    provenance: Dict[str, Dict[str, None]],
    permission_key: str,
    source: str,
) -> None:
    sources = provenance.setdefault(permission_key, {})
    sources.setdefault(source, None)


def resolve_authorization_state(
    index: CatalogIndex,
    memberships: Optional[Iterable[Any]] = None,
    permissions: Optional[Iterable[Any]] = None,
) -> AuthorizationState:
    """
    Resolve raw membership and permission tokens against the catalog.

    Unknown membership tokens are dropped. Grant-all memberships receive every
    catalog permission instead of their own list. Implications are then
    followed breadth first until no new permission appears; each implied
    permission inherits the provenance of the permission that implies it.

    Args:
        index: Catalog index to resolve against
        memberships: Raw membership/role tokens from the caller's session
        permissions: Raw explicit permission grants

    Returns:
        A new AuthorizationState
    """
    start_time = time.time()

    matched: Dict[str, MembershipDefinition] = {}
    for token in unique_membership_keys(memberships):
        definition = index.aliases.get(token)
        if definition is None:
            logger.debug(f"Dropping unknown membership token '{token}'")
            continue
        matched.setdefault(definition.key, definition)

    # Insertion order of this dict is the order of permission_keys.
    provenance: Dict[str, Dict[str, None]] = {}

    for key, definition in matched.items():
        granted = index.permission_keys if definition.grant_all else definition.permissions
        for permission_key in granted:
            _grant(provenance, permission_key, key)

    for permission_key in unique_permission_keys(permissions):
        _grant(provenance, permission_key, EXPLICIT_GRANT)

    # A permission is re-queued whenever its sources grow, so late sources
    # still reach everything it implies.
    queue = deque(provenance)
    queued = set(provenance)
    while queue:
        current = queue.popleft()
        queued.discard(current)
        for implied in index.implied_by(current):
            sources = provenance.setdefault(implied, {})
            before = len(sources)
            for source in provenance[current]:
                sources.setdefault(source, None)
            if len(sources) > before and implied not in queued:
                queue.append(implied)
                queued.add(implied)

    details: List[PermissionDetail] = []
    breakdown: Dict[str, PermissionDetail] = {}
    for permission_key, sources in provenance.items():
        metadata = index.permissions.get(permission_key) or PermissionDefinition.stub(permission_key)
        detail = PermissionDetail(metadata=metadata, granted_by=list(sources))
        details.append(detail)
        breakdown[permission_key] = detail

    state = AuthorizationState(
        membership_keys=list(matched),
        membership_details=list(matched.values()),
        permission_keys=list(provenance),
        permission_details=details,
        breakdown=breakdown,
    )

    elapsed_ms = (time.time() - start_time) * 1000
    record_resolution(len(state.membership_keys), len(state.permission_keys), elapsed_ms)
    logger.debug(
        f"Resolved authorization state: memberships={state.membership_keys}, "
        f"permissions={len(state.permission_keys)}, elapsed_ms={elapsed_ms:.2f}"
    )
    return state
