"""
Schema for authored access catalogs.

A catalog is validated once, when it is loaded, so that the index builder and
the resolver can rely on its shape. Field names are accepted in either the
authored camelCase form (``escalationPath``, ``grantAll``) or snake_case.
"""

from collections.abc import Mapping
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import CatalogValidationError


def _coerce_text(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _coerce_token_list(value: Any) -> Any:
    """Accept a bare string as a one-item list and stringify scalar items."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [_coerce_text(item) for item in value]
    return value


class PermissionEntry(BaseModel):
    """One authored permission."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key: Optional[str] = None
    label: Optional[str] = None
    description: str = ""
    category: str = "general"
    surfaces: List[Optional[str]] = Field(default_factory=list)
    escalation_path: List[Optional[str]] = Field(default_factory=list, alias="escalationPath")
    implies: List[Optional[str]] = Field(default_factory=list)

    @field_validator("key", "label", mode="before")
    @classmethod
    def _text(cls, v):
        return _coerce_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return "" if v is None else _coerce_text(v)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return "general" if v is None or v == "" else _coerce_text(v)

    @field_validator("surfaces", "escalation_path", "implies", mode="before")
    @classmethod
    def _tokens(cls, v):
        return _coerce_token_list(v)


class MembershipEntry(BaseModel):
    """One authored membership (role, tier or plan)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key: Optional[str] = None
    label: Optional[str] = None
    description: str = ""
    tier: Optional[str] = None
    escalation_path: List[Optional[str]] = Field(default_factory=list, alias="escalationPath")
    grant_all: bool = Field(False, alias="grantAll")
    permissions: List[Optional[str]] = Field(default_factory=list)
    aliases: List[Optional[str]] = Field(default_factory=list)

    @field_validator("key", "label", "tier", mode="before")
    @classmethod
    def _text(cls, v):
        return _coerce_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return "" if v is None else _coerce_text(v)

    @field_validator("grant_all", mode="before")
    @classmethod
    def _grant_all(cls, v):
        return False if v is None else v

    @field_validator("escalation_path", "permissions", "aliases", mode="before")
    @classmethod
    def _tokens(cls, v):
        return _coerce_token_list(v)


class CatalogDocument(BaseModel):
    """The parsed form of an authored catalog file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: Optional[str] = None
    permissions: List[PermissionEntry] = Field(default_factory=list)
    memberships: List[MembershipEntry] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _version(cls, v):
        return _coerce_text(v)

    @field_validator("permissions", "memberships", mode="before")
    @classmethod
    def _entries(cls, v):
        return [] if v is None else v


def validate_catalog(data: Any) -> CatalogDocument:
    """
    Validate raw catalog data.

    Args:
        data: A CatalogDocument, or a mapping with ``permissions`` and
            ``memberships`` lists

    Returns:
        Validated CatalogDocument

    Raises:
        CatalogValidationError: If the data does not have catalog shape
    """
    if isinstance(data, CatalogDocument):
        return data

    if not isinstance(data, Mapping):
        raise CatalogValidationError(
            f"Catalog must be a mapping, got {type(data).__name__}"
        )

    try:
        return CatalogDocument.model_validate(dict(data))
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise CatalogValidationError("Invalid access catalog", errors=problems) from e
