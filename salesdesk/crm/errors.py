from __future__ import annotations


class CRMError(Exception):
    """Base error for the CRM data layer."""


class NotFoundError(CRMError):
    """Raised when a lookup by id finds no record."""

    def __init__(self, entity_type: str, entity_id: int) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")
