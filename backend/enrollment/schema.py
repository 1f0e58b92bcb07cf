"""Shape checks for enrollment input (path ids and JSON bodies).

Why:
    Push every "maybe missing / maybe wrong type" question to the boundary so
    the service only ever handles trimmed, well-formed identifiers. Functions
    here are pure and never raise on bad input: they return a `SchemaResult`
    carrying either the parsed value or a list of violation messages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.functional_validators import field_validator

IDENTIFIER_MAX_LENGTH = 64
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

T = TypeVar("T")


@dataclass(frozen=True)
class SchemaResult(Generic[T]):
    value: Optional[T] = None
    violations: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def first_violation(self) -> str | None:
        return self.violations[0] if self.violations else None


def _normalize_identifier(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{name} must not be empty")
    if len(trimmed) > IDENTIFIER_MAX_LENGTH:
        raise ValueError(f"{name} must be at most {IDENTIFIER_MAX_LENGTH} characters")
    if not IDENTIFIER_PATTERN.match(trimmed):
        raise ValueError(f"{name} may only contain letters, digits, '-' and '_'")
    return trimmed


class EnrollmentBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: str = Field(alias="studentId")
    course_id: str = Field(alias="courseId")

    @field_validator("student_id", mode="before")
    @classmethod
    def _check_student_id(cls, v):
        return _normalize_identifier(v, "studentId")

    @field_validator("course_id", mode="before")
    @classmethod
    def _check_course_id(cls, v):
        return _normalize_identifier(v, "courseId")


class WithdrawalBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str = Field(alias="courseId")

    @field_validator("course_id", mode="before")
    @classmethod
    def _check_course_id(cls, v):
        return _normalize_identifier(v, "courseId")


def _violations(exc: PydanticValidationError) -> List[str]:
    out: List[str] = []
    for err in exc.errors():
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error is not None:
            # Our own validators already name the field
            out.append(str(ctx_error))
            continue
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        out.append(f"{loc}: {err.get('msg', 'invalid')}")
    return out


def validate_student_id(value: object) -> SchemaResult[str]:
    try:
        return SchemaResult(value=_normalize_identifier(value, "studentId"))
    except ValueError as exc:
        return SchemaResult(violations=[str(exc)])


def validate_enrollment_body(body: Any) -> SchemaResult[EnrollmentBody]:
    """Check `{studentId, courseId}`; both required, non-empty identifiers."""
    try:
        return SchemaResult(value=EnrollmentBody.model_validate(body))
    except PydanticValidationError as exc:
        return SchemaResult(violations=_violations(exc))


def validate_withdrawal_body(body: Any) -> SchemaResult[WithdrawalBody]:
    """Check `{courseId}` for a delete request."""
    try:
        return SchemaResult(value=WithdrawalBody.model_validate(body))
    except PydanticValidationError as exc:
        return SchemaResult(violations=_violations(exc))


__all__ = [
    "EnrollmentBody",
    "SchemaResult",
    "WithdrawalBody",
    "validate_enrollment_body",
    "validate_student_id",
    "validate_withdrawal_body",
]
