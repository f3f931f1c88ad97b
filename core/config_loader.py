"""
Access catalog loader.

Reads an authored catalog file (YAML or JSON), validates its shape once and
builds the immutable catalog index. A malformed catalog is a startup error:
unlike the resolver, the loader raises.
"""

import json
import yaml
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from core.access.catalog import CatalogIndex, build_catalog_index
from core.access.errors import CatalogValidationError
from core.access.schema import CatalogDocument, validate_catalog

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


# ============================================================================
# File Reading
# ============================================================================

def read_catalog_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read raw catalog data from disk.

    Args:
        path: Path to a .yaml/.yml or .json catalog

    Returns:
        Parsed mapping

    Raises:
        CatalogValidationError: If the file is missing, unreadable, of an
            unsupported type, or does not contain a mapping
    """
    catalog_path = Path(path)

    if not catalog_path.exists():
        raise CatalogValidationError(f"Catalog file not found at {catalog_path}")

    suffix = catalog_path.suffix.lower()
    if suffix not in YAML_SUFFIXES + JSON_SUFFIXES:
        raise CatalogValidationError(
            f"Unsupported catalog file type '{suffix}' for {catalog_path}; "
            f"expected one of {', '.join(YAML_SUFFIXES + JSON_SUFFIXES)}"
        )

    try:
        with open(catalog_path, 'r', encoding='utf-8') as f:
            if suffix in JSON_SUFFIXES:
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except json.JSONDecodeError as e:
        raise CatalogValidationError(f"Failed to parse catalog JSON at {catalog_path}: {e}") from e
    except yaml.YAMLError as e:
        raise CatalogValidationError(f"Failed to parse catalog YAML at {catalog_path}: {e}") from e
    except OSError as e:
        raise CatalogValidationError(f"Failed to read catalog at {catalog_path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogValidationError(
            f"Catalog at {catalog_path} must be a mapping, got {type(data).__name__}"
        )

    return data


def _check_aliases(index: CatalogIndex, strict_aliases: bool) -> None:
    if not index.alias_collisions:
        return
    problems = [c.describe() for c in index.alias_collisions]
    if strict_aliases:
        raise CatalogValidationError("Catalog has membership alias collisions", errors=problems)
    logger.warning(
        f"Catalog version={index.version} has {len(problems)} membership alias collision(s); "
        f"set ACCESS_STRICT_ALIASES=true to reject such catalogs"
    )


def resolve_strict_aliases(strict_aliases: Optional[bool] = None) -> bool:
    """Alias policy: the explicit value, else ACCESS_STRICT_ALIASES."""
    if strict_aliases is not None:
        return bool(strict_aliases)
    from config import load_config
    return load_config()["ACCESS_STRICT_ALIASES"]


def load_catalog(path: Union[str, Path], strict_aliases: Optional[bool] = None) -> CatalogIndex:
    """
    Load, validate and index a catalog file.

    Args:
        path: Catalog file path
        strict_aliases: Reject catalogs where two memberships claim one alias;
            read from ACCESS_STRICT_ALIASES when None

    Returns:
        CatalogIndex

    Raises:
        CatalogValidationError: On any catalog problem
    """
    data = read_catalog_file(path)
    index = build_catalog_index(data)
    _check_aliases(index, resolve_strict_aliases(strict_aliases))
    logger.info(f"Loaded access catalog from {path} (version={index.version})")
    return index


# ============================================================================
# Versioned Index Store
# ============================================================================

class CatalogIndexStore:
    """
    Holds the catalog index for the current catalog version.

    The index is rebuilt only when a catalog with a different version (or,
    for unversioned catalogs, different content) is supplied. Readers receive
    the immutable index and pass it to the resolver and decision functions.
    The alias policy follows ACCESS_STRICT_ALIASES unless given explicitly.
    """

    def __init__(self, strict_aliases: Optional[bool] = None):
        self.strict_aliases = resolve_strict_aliases(strict_aliases)
        self._lock = threading.Lock()
        self._index: Optional[CatalogIndex] = None
        self._document: Optional[CatalogDocument] = None

    @property
    def index(self) -> CatalogIndex:
        """
        Current index.

        Raises:
            RuntimeError: If no catalog has been loaded yet
        """
        index = self._index
        if index is None:
            raise RuntimeError("Access catalog has not been loaded")
        return index

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    def _is_current(self, document: CatalogDocument) -> bool:
        if self._index is None or self._document is None:
            return False
        if document.version is not None or self._document.version is not None:
            return document.version == self._document.version
        return document == self._document

    def update(self, catalog: Any) -> CatalogIndex:
        """
        Make ``catalog`` the current catalog, rebuilding only on a version change.

        Args:
            catalog: CatalogDocument or raw catalog mapping

        Returns:
            The index for the supplied catalog
        """
        document = validate_catalog(catalog)

        with self._lock:
            if self._is_current(document):
                logger.debug(f"Catalog version={document.version} unchanged; keeping index")
                return self._index

            index = build_catalog_index(document)
            _check_aliases(index, self.strict_aliases)

            previous = self._document.version if self._document else None
            self._index = index
            self._document = document
            logger.info(f"Access catalog index replaced: {previous} -> {index.version}")
            return index

    def load(self, path: Union[str, Path]) -> CatalogIndex:
        """Read a catalog file and update the store from it."""
        return self.update(read_catalog_file(path))

    def clear(self) -> None:
        with self._lock:
            self._index = None
            self._document = None


# ============================================================================
# Global Store Instance
# ============================================================================

_store: Optional[CatalogIndexStore] = None


def get_store(strict_aliases: Optional[bool] = None) -> CatalogIndexStore:
    """
    Get the process-wide CatalogIndexStore.

    Args:
        strict_aliases: Alias policy; read from ACCESS_STRICT_ALIASES when None
            (only used on first call)

    Returns:
        CatalogIndexStore instance
    """
    global _store

    if _store is None:
        _store = CatalogIndexStore(strict_aliases=strict_aliases)

    return _store


def reset_store() -> None:
    """Reset the global store (useful for testing)."""
    global _store
    _store = None
