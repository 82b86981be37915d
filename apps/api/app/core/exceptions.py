"""Service error taxonomy.

Services raise these; the API layer converts them to
{"success": false, "error": ..., "code": ...} responses.
"""


class ServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_code = "UNEXPECTED"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


class Forbidden(ServiceError):
    """Role or demo-tenant gate failure."""

    status_code = 403
    default_code = "FORBIDDEN"


class NotFound(ServiceError):
    """Entity not resolvable under the caller's tenant."""

    status_code = 404
    default_code = "NOT_FOUND"


class Conflict(ServiceError):
    """State conflict (non-draft publish, last OWNER removal, duplicates)."""

    status_code = 409
    default_code = "CONFLICT"


class ValidationFailed(ServiceError):
    """Malformed input or template body."""

    status_code = 400
    default_code = "VALIDATION_FAILED"


class Unexpected(ServiceError):
    """Store-level failure."""

    status_code = 500
    default_code = "UNEXPECTED"
