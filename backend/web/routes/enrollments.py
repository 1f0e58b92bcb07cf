"""
Enrollment API routes.

Why:
    Expose the enrollment use cases over HTTP. The adapter reads the verified
    caller from `request.state.user` (set by the auth middleware), parses the
    JSON body, delegates to `EnrollmentService` and maps its typed errors to
    one stable status each.

Notes:
    - Status mapping: 400 validation, 403 forbidden, 404 not found,
      409 conflict, 500 internal. Only true successes return 200.
    - Responses are user-scoped: every response is "private, no-store".
    - Tests can call `set_service` to swap the service (and its store).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from backend.enrollment.errors import (
    Conflict,
    EnrollmentError,
    Forbidden,
    InternalError,
    NotFound,
    ValidationError,
)
from backend.enrollment.schema import validate_withdrawal_body
from backend.enrollment.service import EnrollmentService
from backend.enrollment.store import Enrollment, InMemoryEnrollmentStore, Student
from backend.identity_access.domain import IdentityClaim

enrollments_router = APIRouter(tags=["Enrollments"])  # explicit paths below
logger = logging.getLogger("roster.web.enrollments")

BASE_PATH = "/api/v2/enrollments"


# --- Service wiring --------------------------------------------------------------

_SERVICE: EnrollmentService | None = None


def _get_service() -> EnrollmentService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = EnrollmentService(InMemoryEnrollmentStore())
    return _SERVICE


def set_service(service: EnrollmentService) -> None:
    """Install the process-wide service (startup wiring and tests)."""
    global _SERVICE
    _SERVICE = service


# --- Helpers ---------------------------------------------------------------------

_STATUS_BY_ERROR: tuple[tuple[type[EnrollmentError], int], ...] = (
    (ValidationError, 400),
    (Forbidden, 403),
    (NotFound, 404),
    (Conflict, 409),
    (InternalError, 500),
)


def _json_private(payload: dict, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _error_response(exc: EnrollmentError) -> JSONResponse:
    status_code = 500
    for kind, code in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            status_code = code
            break
    body: dict[str, Any] = {"success": False, "error": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError) and exc.first_violation:
        body["errors"] = exc.first_violation
    return _json_private(body, status_code=status_code)


def _unexpected(exc: Exception, operation: str) -> JSONResponse:
    logger.exception("%s failed unexpectedly: %s", operation, exc.__class__.__name__)
    return _error_response(InternalError())


def _current_actor(request: Request) -> Optional[IdentityClaim]:
    user = getattr(request.state, "user", None)
    return user if isinstance(user, IdentityClaim) else None


async def _read_json(request: Request) -> Any:
    """Return the parsed body, or None when it is missing or not JSON."""
    try:
        return await request.json()
    except ValueError:
        return None


def _serialize_enrollment(e: Enrollment) -> dict:
    return {"studentId": e.student_id, "courseId": e.course_id}


def _serialize_student(s: Student) -> dict:
    return {"studentId": s.student_id, "courses": list(s.courses)}


# --- Routes ----------------------------------------------------------------------

@enrollments_router.get(BASE_PATH)
async def list_enrollments(request: Request):
    """List every enrollment (admins only)."""
    try:
        items = _get_service().list_enrollments(_current_actor(request))
    except EnrollmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        return _unexpected(exc, "list_enrollments")
    return _json_private({"success": True, "data": [_serialize_enrollment(e) for e in items]})


@enrollments_router.post(f"{BASE_PATH}/reset")
async def reset_enrollments(request: Request):
    """Clear all enrollments and every student's course list (admins only)."""
    try:
        _get_service().reset(_current_actor(request))
    except EnrollmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        return _unexpected(exc, "reset_enrollments")
    return _json_private({"success": True, "message": "enrollment database has been reset"})


@enrollments_router.get(BASE_PATH + "/{student_id}")
async def get_student_enrollments(request: Request, student_id: str):
    """Return a student with their course list.

    Behavior:
        - 200 with `Student`
        - 400 malformed id; 404 unknown student; 403 when a student reads
          someone else's record

    Permissions:
        Admins, or the student themself.
    """
    try:
        student = _get_service().get_for_student(student_id, _current_actor(request))
    except EnrollmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        return _unexpected(exc, "get_student_enrollments")
    return _json_private({"success": True, "message": "Student Information", "data": _serialize_student(student)})


@enrollments_router.post(BASE_PATH + "/{student_id}")
async def create_enrollment(request: Request, student_id: str):
    """Enroll the calling student in a course.

    Behavior:
        - 200 with the created `Enrollment`
        - 403 unless the caller is the student in the path (checked first)
        - 400 malformed body; 409 already enrolled; 404 unknown student

    Permissions:
        Self-service only; admins are rejected.
    """
    body = await _read_json(request)
    try:
        enrollment = _get_service().create(student_id, body, _current_actor(request))
    except EnrollmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        return _unexpected(exc, "create_enrollment")
    return _json_private(
        {
            "success": True,
            "message": f"Student {enrollment.student_id} && course {enrollment.course_id} has been added successfully",
            "data": _serialize_enrollment(enrollment),
        }
    )


@enrollments_router.delete(BASE_PATH + "/{student_id}")
async def delete_enrollment(request: Request, student_id: str):
    """Withdraw the calling student from a course; returns the remaining ledger.

    Behavior:
        - 200 with `Enrollment[]`
        - 400 malformed id/body; 403 unless self; 404 when not enrolled

    Permissions:
        Self-service only; admins are rejected.
    """
    body = await _read_json(request)
    try:
        remaining = _get_service().delete(student_id, body, _current_actor(request))
    except EnrollmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        return _unexpected(exc, "delete_enrollment")
    # Same parse the service accepted, so both values are present and trimmed
    withdrawal = validate_withdrawal_body(body).value
    return _json_private(
        {
            "success": True,
            "message": f"Student {student_id.strip()} && Course {withdrawal.course_id} has been deleted successfully",
            "data": [_serialize_enrollment(e) for e in remaining],
        }
    )
