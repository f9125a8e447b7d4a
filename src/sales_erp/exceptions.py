"""Error taxonomy shared by the entity, store and business logic layers."""

from __future__ import annotations

from typing import Any


class SalesErpError(Exception):
    """Base class for every domain error raised by the package."""


class ValidationError(SalesErpError, ValueError):
    """Raised when a field value violates an entity invariant."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class RecordNotFoundError(SalesErpError, LookupError):
    """Raised when an update targets a key that is not in its store."""

    def __init__(self, entity_name: str, entity_id: Any):
        """
        Initialize the exception.

        Args:
            entity_name: Name of the entity that was not found
            entity_id: Key of the entity that was not found
        """
        super().__init__(f"{entity_name} with ID {entity_id} not found")
        self.entity_name = entity_name
        self.entity_id = entity_id


__all__ = [
    "SalesErpError",
    "ValidationError",
    "RecordNotFoundError",
]
