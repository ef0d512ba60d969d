"""Error taxonomy shared by the matching and presence services."""

from typing import Any, Dict, Optional


class MockMatchError(Exception):
    """Base exception for all core errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class NotFoundError(MockMatchError):
    """A referenced entity does not exist (or no longer exists)."""

    def __init__(self, entity: str, entity_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or f"{entity} not found",
            "NOT_FOUND",
            {"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(MockMatchError):
    """Malformed input, or a state transition that is not allowed."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        merged = dict(details or {})
        if field:
            merged["field"] = field
        super().__init__(message, "VALIDATION_ERROR", merged)
        self.field = field


class ConflictError(MockMatchError):
    """The write would violate a uniqueness or non-overlap invariant."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFLICT", details)
