# src/ensemble/errors.py
"""Error taxonomy raised by the store and rule layers.

The calling layer translates these into transport status codes; callers should
branch on the exception class (or ``code``), never on the message text.
"""

from __future__ import annotations

from typing import Any


class EnsembleError(Exception):
    """Base class for every error the rule engine raises."""

    code = "ENSEMBLE_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(EnsembleError):
    """A referenced group, character, label or relationship does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(EnsembleError):
    """The operation would violate a uniqueness invariant."""

    code = "CONFLICT"


class InvalidOperationError(EnsembleError):
    """The operation is structurally disallowed regardless of store state."""

    code = "INVALID_OPERATION"


class LimitExceededError(EnsembleError):
    """A bounded-cardinality invariant would be exceeded."""

    code = "LIMIT_EXCEEDED"

    def __init__(self, message: str, *, limit: int) -> None:
        super().__init__(message, details={"limit": limit})
        self.limit = limit


class StoreFailureError(EnsembleError):
    """The underlying store call failed; the original exception is kept."""

    code = "STORE_FAILURE"

    def __init__(self, context: str, cause: BaseException) -> None:
        super().__init__(f"store failure during {context}: {cause}")
        self.context = context
        self.cause = cause


__all__ = [
    "EnsembleError",
    "NotFoundError",
    "ConflictError",
    "InvalidOperationError",
    "LimitExceededError",
    "StoreFailureError",
]
