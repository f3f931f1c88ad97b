"""Exceptions raised while loading an access catalog."""

from typing import List, Optional


class CatalogValidationError(ValueError):
    """
    Raised when an authored catalog is malformed.

    Only the load boundary raises this; resolution and queries never do.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors: List[str] = list(errors or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        details = "; ".join(self.errors)
        return f"{base}: {details}"
