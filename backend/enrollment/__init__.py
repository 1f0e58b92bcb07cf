"""Enrollment bounded context: policy, schema checks, store and service."""

from .errors import Conflict, EnrollmentError, Forbidden, InternalError, NotFound, ValidationError
from .service import EnrollmentService
from .store import Enrollment, InMemoryEnrollmentStore, Student

__all__ = [
    "Conflict",
    "Enrollment",
    "EnrollmentError",
    "EnrollmentService",
    "Forbidden",
    "InMemoryEnrollmentStore",
    "InternalError",
    "NotFound",
    "Student",
    "ValidationError",
]
