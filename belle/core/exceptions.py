"""
Domain errors raised by the service layer.

Every error carries the HTTP status it maps to; the application installs a
single handler that renders them, so routers never translate errors by hand.
"""

from typing import Any, Dict


class ClinicError(Exception):
    """Base class for all domain errors."""

    status_code = 400
    code = "clinic_error"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.code, "status_code": self.status_code}
        body.update({key: str(value) if value is not None else None for key, value in self.extra.items()})
        return body


class ConflictError(ClinicError):
    """The appointment slot is already booked."""

    status_code = 409
    code = "slot_conflict"


class DuplicateClosingError(ClinicError):
    """A closing already exists for the professional and date."""

    status_code = 409
    code = "duplicate_closing"


class ClosingFinalizedError(ClinicError):
    """A finalized closing cannot be changed."""

    status_code = 409
    code = "closing_finalized"


class InvalidStatusTransitionError(ClinicError):
    status_code = 400
    code = "invalid_status_transition"


class ConstraintError(ClinicError):
    """Any other storage constraint violation."""

    status_code = 400
    code = "constraint_violation"


class AuthError(ClinicError):
    status_code = 401
    code = "auth_error"


class PermissionDeniedError(ClinicError):
    status_code = 403
    code = "permission_denied"


class NotFoundError(ClinicError):
    status_code = 404
    code = "not_found"
