"""
Exception hierarchy for lexicard.

Every error class declares a machine-readable code and the HTTP status the
API layer responds with. The response body is built by ``to_dict``.
"""

from typing import Any


class LexicardError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def details(self) -> dict[str, Any]:
        """Extra context for API clients; empty unless a subclass adds some."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(LexicardError):
    """A word, book or session id does not resolve."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")

    @property
    def details(self) -> dict[str, Any]:
        return {"resource": self.resource, "id": self.resource_id}


class InvalidStateError(LexicardError):
    """Operation is not allowed in the entity's current state."""

    code = "INVALID_STATE"
    status_code = 409


class ValidationError(LexicardError):
    """Input validation failed."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)

    @property
    def details(self) -> dict[str, Any]:
        return {"errors": self.errors} if self.errors else {}
