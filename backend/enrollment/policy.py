"""
Access control policy for enrollment operations.

Rules:
    - list-all, reset-all: admins only.
    - read-one: admins, or the student reading their own record.
    - create, delete: self-service only. The acting student must be the
      target; admins are denied.

`decide` is pure and total: any combination not listed above is DENY.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from backend.identity_access.domain import IdentityClaim, Role


class Operation(str, Enum):
    LIST_ALL = "list-all"
    RESET_ALL = "reset-all"
    READ_ONE = "read-one"
    CREATE = "create"
    DELETE = "delete"


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


_ADMIN_ONLY = frozenset({Operation.LIST_ALL, Operation.RESET_ALL})
_SELF_SERVICE = frozenset({Operation.CREATE, Operation.DELETE})


def _is_self(actor: IdentityClaim, target_student_id: Optional[str]) -> bool:
    return (
        actor.role is Role.STUDENT
        and actor.student_id is not None
        and target_student_id is not None
        and actor.student_id == target_student_id
    )


def decide(actor: Optional[IdentityClaim], target_student_id: Optional[str], operation: Operation) -> Decision:
    if actor is None:
        return Decision.DENY
    if operation in _ADMIN_ONLY:
        return Decision.ALLOW if actor.is_admin else Decision.DENY
    if operation is Operation.READ_ONE:
        if actor.is_admin or _is_self(actor, target_student_id):
            return Decision.ALLOW
        return Decision.DENY
    if operation in _SELF_SERVICE:
        return Decision.ALLOW if _is_self(actor, target_student_id) else Decision.DENY
    return Decision.DENY


def is_allowed(actor: Optional[IdentityClaim], target_student_id: Optional[str], operation: Operation) -> bool:
    return decide(actor, target_student_id, operation) is Decision.ALLOW
