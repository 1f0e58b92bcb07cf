"""
Identity domain: caller roles and the verified identity claim.

Why:
- Centralize allowed roles to avoid drift between the token layer and the
  enrollment policy.
- Parse loosely typed token payloads once, at the boundary, so business logic
  only ever sees a closed role and a present-or-absent student id.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


class Role(str, Enum):
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"


# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(r.value for r in Role)


@dataclass(frozen=True)
class IdentityClaim:
    """Verified caller identity as consumed by the access policy."""

    role: Role
    student_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @classmethod
    def from_claims(cls, claims: Mapping[str, object]) -> "IdentityClaim":
        """Build a claim from a decoded token payload.

        Raises ValueError("invalid_role") for unknown roles and
        ValueError("missing_student_id") for students without an id.
        """
        raw_role = claims.get("role")
        if not isinstance(raw_role, str) or raw_role.strip().upper() not in ALLOWED_ROLES:
            raise ValueError("invalid_role")
        role = Role(raw_role.strip().upper())
        raw_sid = claims.get("studentId")
        student_id = raw_sid.strip() if isinstance(raw_sid, str) and raw_sid.strip() else None
        if role is Role.STUDENT and student_id is None:
            raise ValueError("missing_student_id")
        return cls(role=role, student_id=student_id)

    def to_claims(self) -> dict:
        out: dict = {"role": self.role.value}
        if self.student_id is not None:
            out["studentId"] = self.student_id
        return out


__all__ = ["ALLOWED_ROLES", "IdentityClaim", "Role"]
