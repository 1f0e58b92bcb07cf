"""Typed outcomes raised by the enrollment core.

Most kinds also derive from the builtin exception the rest of the codebase
already catches for that situation (ValueError for bad input, LookupError for
missing rows, RuntimeError for faults), so callers may use either.
"""

from __future__ import annotations


class EnrollmentError(Exception):
    """Base class; `code` is stable and machine-readable, `message` is for humans."""

    code = "error"
    default_message = "Something is wrong, please try again"

    def __init__(self, code: str | None = None, message: str | None = None):
        self.code = code or self.code
        self.message = message or self.default_message
        super().__init__(self.code)


class ValidationError(EnrollmentError, ValueError):
    code = "bad_request"
    default_message = "Validation failed"

    def __init__(self, code: str | None = None, message: str | None = None, violations: list[str] | None = None):
        super().__init__(code, message)
        self.violations = list(violations or [])

    @property
    def first_violation(self) -> str | None:
        return self.violations[0] if self.violations else None


class Forbidden(EnrollmentError):
    code = "forbidden"
    default_message = "Forbidden access"


class NotFound(EnrollmentError, LookupError):
    code = "not_found"
    default_message = "Not found"


class Conflict(EnrollmentError):
    code = "conflict"
    default_message = "studentId && courseId is already exists"


class InternalError(EnrollmentError, RuntimeError):
    code = "internal_error"


__all__ = [
    "Conflict",
    "EnrollmentError",
    "Forbidden",
    "InternalError",
    "NotFound",
    "ValidationError",
]
