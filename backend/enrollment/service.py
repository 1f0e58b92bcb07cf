"""Enrollment service layer (Clean Architecture boundary).

Why:
    Encapsulates the enrollment use cases (list/reset/get/create/delete) so the
    web adapter stays thin and the rules can be unit-tested without FastAPI.
    Every operation consults the access policy first, then the schema checks,
    then the store.

Consistency:
    The ledger and each student's course list must always agree. Mutations
    run under the store lock and go through the store's combined writes,
    which apply both halves or neither. Any unexpected failure surfaces as
    `InternalError` after the store has rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from backend.identity_access.domain import IdentityClaim

from .errors import Conflict, Forbidden, InternalError, NotFound, ValidationError
from .policy import Operation, is_allowed
from .schema import validate_enrollment_body, validate_student_id, validate_withdrawal_body
from .store import Enrollment, EnrollmentStoreProtocol, Student

logger = logging.getLogger("roster.enrollment")

_NOT_FOUND_MESSAGES = {
    "student_not_found": "Student does not exists",
    "enrollment_not_found": "Enrollment does not exists",
    "course_not_found": "Course does not exists",
}


def _not_found(code: str) -> NotFound:
    return NotFound(code, _NOT_FOUND_MESSAGES.get(code, "Not found"))


def _role_of(actor: Optional[IdentityClaim]) -> str:
    return actor.role.value if actor is not None else "anonymous"


@dataclass
class EnrollmentService:
    """Use cases for enrollments (framework-independent)."""

    store: EnrollmentStoreProtocol

    def _require(self, actor: Optional[IdentityClaim], target: Optional[str], operation: Operation, message: str | None = None) -> None:
        if not is_allowed(actor, target, operation):
            logger.info("Denied %s: role=%s target=%s", operation.value, _role_of(actor), target)
            raise Forbidden(message=message)

    def list_enrollments(self, actor: Optional[IdentityClaim]) -> List[Enrollment]:
        self._require(actor, None, Operation.LIST_ALL)
        return self.store.list_enrollments()

    def reset(self, actor: Optional[IdentityClaim]) -> None:
        """Clear the ledger and every student's course list. Idempotent."""
        self._require(actor, None, Operation.RESET_ALL)
        try:
            self.store.clear()
        except Exception as exc:
            logger.exception("Enrollment reset failed: %s", exc.__class__.__name__)
            raise InternalError() from exc
        logger.info("Enrollment database has been reset")

    def get_for_student(self, target_student_id: object, actor: Optional[IdentityClaim]) -> Student:
        """Return the student record.

        Behavior:
            - ValidationError when the id is malformed
            - NotFound when the student does not exist
            - Forbidden unless the caller is an admin or the student themself
        """
        checked = validate_student_id(target_student_id)
        if not checked.ok:
            raise ValidationError(violations=checked.violations)
        student_id = checked.value
        student = self.store.get_student(student_id)
        if student is None:
            raise _not_found("student_not_found")
        self._require(actor, student_id, Operation.READ_ONE)
        return student

    def create(self, target_student_id: str, body: Any, actor: Optional[IdentityClaim]) -> Enrollment:
        """Enroll the calling student in a course (self-service only).

        The policy check precedes body validation, so a foreign caller learns
        nothing about the body rules.
        """
        self._require(actor, target_student_id, Operation.CREATE)
        path_id = validate_student_id(target_student_id)
        if not path_id.ok:
            raise ValidationError(violations=path_id.violations)
        target_student_id = path_id.value
        checked = validate_enrollment_body(body)
        if not checked.ok:
            raise ValidationError(violations=checked.violations)
        payload = checked.value
        if payload.student_id != target_student_id:
            raise ValidationError(violations=["studentId in body must match the studentId in the path"])
        course_id = payload.course_id
        with self.store.lock():
            if self.store.get_enrollment(target_student_id, course_id) is not None:
                raise Conflict()
            try:
                enrollment = self.store.enroll(target_student_id, course_id)
            except LookupError as exc:
                raise _not_found(str(exc.args[0]) if exc.args else "student_not_found") from exc
            except ValueError as exc:
                raise Conflict() from exc
            except Exception as exc:
                logger.exception(
                    "Enroll failed, changes rolled back: student=%s course=%s err=%s",
                    target_student_id,
                    course_id,
                    exc.__class__.__name__,
                )
                raise InternalError() from exc
        logger.info("Enrolled student=%s course=%s", target_student_id, course_id)
        return enrollment

    def delete(self, target_student_id: object, body: Any, actor: Optional[IdentityClaim]) -> List[Enrollment]:
        """Withdraw the calling student from a course; returns the updated ledger."""
        checked = validate_student_id(target_student_id)
        if not checked.ok:
            raise ValidationError(violations=checked.violations)
        student_id = checked.value
        self._require(
            actor,
            student_id,
            Operation.DELETE,
            message="You are not allowed to modify another student's data",
        )
        checked_body = validate_withdrawal_body(body)
        if not checked_body.ok:
            raise ValidationError(violations=checked_body.violations)
        course_id = checked_body.value.course_id
        with self.store.lock():
            if self.store.get_enrollment(student_id, course_id) is None:
                raise _not_found("enrollment_not_found")
            student = self.store.get_student(student_id)
            if student is None:
                logger.error("Enrollment %s/%s references unknown student", student_id, course_id)
                raise _not_found("student_not_found")
            if course_id not in student.courses:
                logger.error("Enrollment %s/%s missing from student's course list", student_id, course_id)
                raise _not_found("course_not_found")
            try:
                self.store.withdraw(student_id, course_id)
            except LookupError as exc:
                raise _not_found(str(exc.args[0]) if exc.args else "enrollment_not_found") from exc
            except Exception as exc:
                logger.exception(
                    "Withdraw failed, changes rolled back: student=%s course=%s err=%s",
                    student_id,
                    course_id,
                    exc.__class__.__name__,
                )
                raise InternalError() from exc
            remaining = self.store.list_enrollments()
        logger.info("Withdrew student=%s course=%s", student_id, course_id)
        return remaining
