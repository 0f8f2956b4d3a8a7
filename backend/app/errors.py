"""Domain error taxonomy.

Services raise these; the HTTP layer (app.main) maps them to status codes.
None of them is fatal to the process.
"""
from typing import Any, Optional


class DomainError(Exception):
    """Base class for typed outcomes returned to the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message}


class ValidationError(DomainError):
    """One or more field-level invariants were violated.

    ``errors`` enumerates every violation found, not just the first one.
    """

    status_code = 400

    def __init__(self, errors: list[dict[str, str]], message: Optional[str] = None):
        if message is None:
            fields = sorted({e["field"] for e in errors})
            message = "Invalid value for: " + ", ".join(fields)
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message)

    @property
    def fields(self) -> set[str]:
        return {e["field"] for e in self.errors}

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "errors": self.errors}


class UnauthorizedError(DomainError):
    """No actor identity was supplied at all."""

    status_code = 401


class Forbidden(DomainError):
    """The actor is known but its role does not allow the operation."""

    status_code = 403

    def __init__(self, message: str, denied: Optional[list[dict[str, str]]] = None):
        super().__init__(message)
        self.denied = denied or []

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.denied:
            body["denied"] = self.denied
        return body


class NotFound(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """A concurrent write won the race. Safe to re-fetch and retry."""

    status_code = 409

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "retryable": self.retryable}


class StorageError(Exception):
    """Unexpected failure in the persistence layer (not a domain outcome)."""


class CodeGenerationError(StorageError):
    """No unused share code could be found within the attempt budget."""
