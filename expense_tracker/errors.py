"""
Error taxonomy.

Service functions raise these; the handlers in ``main`` turn them into
``{"success": false, "message": ...}`` responses with the matching status.
"""

from typing import Optional


class ExpenseTrackerError(Exception):
    """Base class for errors that are safe to show to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(ExpenseTrackerError):
    """Malformed or out-of-range input, with per-field detail."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailure":
        return cls("Validation error", [{"field": field, "message": message}])


class NotFound(ExpenseTrackerError):
    """Absent, or owned by somebody else (the two are not distinguished)."""

    status_code = 404


class DuplicateKey(ExpenseTrackerError):
    status_code = 409


class AuthFailure(ExpenseTrackerError):
    status_code = 401


class PermissionDenied(ExpenseTrackerError):
    status_code = 403
