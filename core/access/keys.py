"""
Key normalisation for membership and permission identifiers.

Membership keys are collapsed to ``lower_snake`` form so that labels such as
"Agency Admin" and "agency-admin" meet on the same canonical key. Permission
keys are only trimmed and lower-cased; their punctuation (``clients.read``,
``notifications:read``) is meaningful and kept verbatim.
"""

import re
from collections.abc import Iterable
from typing import Any, List, Optional

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def _clean(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    value = raw if isinstance(raw, str) else str(raw)
    value = value.strip().lower()
    return value or None


def normalise_membership_key(raw: Any) -> Optional[str]:
    """
    Canonicalise a membership identifier.

    Args:
        raw: Any value; strings are expected but anything is accepted

    Returns:
        Canonical key, or None when the input is empty

    Examples:
        >>> normalise_membership_key("Agency Admin")
        'agency_admin'
        >>> normalise_membership_key("Project_Manager")
        'project_manager'
        >>> normalise_membership_key("   ") is None
        True
    """
    value = _clean(raw)
    if value is None:
        return None
    return _NON_ALPHANUMERIC.sub("_", value)


def normalise_permission_key(raw: Any) -> Optional[str]:
    """
    Canonicalise a permission identifier.

    Examples:
        >>> normalise_permission_key(" Notifications:Read ")
        'notifications:read'
        >>> normalise_permission_key(None) is None
        True
    """
    return _clean(raw)


def _unique(values: Any, normalise) -> List[str]:
    if isinstance(values, str):
        values = [values]
    elif not isinstance(values, Iterable):
        return []
    seen = {}
    for value in values:
        key = normalise(value)
        if key is not None and key not in seen:
            seen[key] = None
    return list(seen)


def unique_membership_keys(values: Iterable[Any]) -> List[str]:
    """Normalise membership tokens, dropping empties and duplicates (first seen wins)."""
    return _unique(values, normalise_membership_key)


def unique_permission_keys(values: Iterable[Any]) -> List[str]:
    """Normalise permission tokens, dropping empties and duplicates (first seen wins)."""
    return _unique(values, normalise_permission_key)
