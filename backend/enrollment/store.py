"""
Enrollment store: the Student Directory and the Enrollment Ledger.

Why:
    The ledger (one record per student/course pair) and each student's course
    list are two views of the same relation. Keeping both behind one store
    lets every write touch both views in a single guarded call, so they can
    never diverge.

Notes:
    - In-memory only; durability is not a goal. Replace with a DB-backed
      implementation of `EnrollmentStoreProtocol` if persistence is needed.
    - One re-entrant lock serializes all access. Callers that need a
      check-then-write sequence hold `lock()` across both steps.
    - Reads hand out copies; the only way to mutate is through the methods
      below.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import threading
from typing import ContextManager, Dict, Iterator, List, Optional, Protocol, Tuple


@dataclass
class Student:
    student_id: str
    courses: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Enrollment:
    student_id: str
    course_id: str


class EnrollmentStoreProtocol(Protocol):
    def lock(self) -> ContextManager[None]:
        ...

    def register_student(self, student_id: str) -> Student:
        ...

    def get_student(self, student_id: str) -> Optional[Student]:
        ...

    def list_students(self) -> List[Student]:
        ...

    def list_enrollments(self) -> List[Enrollment]:
        ...

    def get_enrollment(self, student_id: str, course_id: str) -> Optional[Enrollment]:
        ...

    def enroll(self, student_id: str, course_id: str) -> Enrollment:
        ...

    def withdraw(self, student_id: str, course_id: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def check_consistency(self) -> List[str]:
        ...


class InMemoryEnrollmentStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._students: Dict[str, Student] = {}
        # ledger[(student_id, course_id)] = Enrollment; dict keeps insertion order
        self._ledger: Dict[Tuple[str, str], Enrollment] = {}

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            yield

    # --- Directory -------------------------------------------------------------
    def register_student(self, student_id: str) -> Student:
        """Add a student with an empty course list; existing students are kept."""
        with self._lock:
            student = self._students.get(student_id)
            if student is None:
                student = Student(student_id=student_id)
                self._students[student_id] = student
            return Student(student.student_id, list(student.courses))

    def get_student(self, student_id: str) -> Optional[Student]:
        with self._lock:
            student = self._students.get(student_id)
            if student is None:
                return None
            return Student(student.student_id, list(student.courses))

    def list_students(self) -> List[Student]:
        with self._lock:
            return [Student(s.student_id, list(s.courses)) for s in self._students.values()]

    # --- Ledger ----------------------------------------------------------------
    def list_enrollments(self) -> List[Enrollment]:
        with self._lock:
            return list(self._ledger.values())

    def get_enrollment(self, student_id: str, course_id: str) -> Optional[Enrollment]:
        with self._lock:
            return self._ledger.get((student_id, course_id))

    # --- Combined writes -------------------------------------------------------
    def enroll(self, student_id: str, course_id: str) -> Enrollment:
        """Insert the ledger record and append to the student's courses together.

        Raises:
            LookupError("student_not_found"): no such student; nothing written.
            ValueError("duplicate_enrollment"): pair already in the ledger.
            RuntimeError("directory_out_of_sync"): course listed without a record.
        """
        with self._lock:
            student = self._students.get(student_id)
            if student is None:
                raise LookupError("student_not_found")
            key = (student_id, course_id)
            if key in self._ledger:
                raise ValueError("duplicate_enrollment")
            if course_id in student.courses:
                raise RuntimeError("directory_out_of_sync")
            enrollment = Enrollment(student_id=student_id, course_id=course_id)
            self._ledger[key] = enrollment
            try:
                self._append_course(student, course_id)
            except Exception:
                self._ledger.pop(key, None)
                raise
            return enrollment

    def withdraw(self, student_id: str, course_id: str) -> None:
        """Remove the ledger record and the student's course entry together.

        Raises LookupError with `enrollment_not_found`, `student_not_found` or
        `course_not_found`; in each case nothing is written.
        """
        with self._lock:
            key = (student_id, course_id)
            if key not in self._ledger:
                raise LookupError("enrollment_not_found")
            student = self._students.get(student_id)
            if student is None:
                raise LookupError("student_not_found")
            try:
                index = student.courses.index(course_id)
            except ValueError:
                raise LookupError("course_not_found") from None
            snapshot = list(self._ledger.items())
            del self._ledger[key]
            try:
                self._remove_course(student, index)
            except Exception:
                self._ledger = dict(snapshot)
                raise

    def clear(self) -> None:
        """Empty the ledger and every student's course list."""
        with self._lock:
            snapshot = {sid: list(s.courses) for sid, s in self._students.items()}
            ledger = dict(self._ledger)
            self._ledger = {}
            try:
                for student in self._students.values():
                    student.courses.clear()
            except Exception:
                self._ledger = ledger
                for sid, courses in snapshot.items():
                    self._students[sid].courses[:] = courses
                raise

    # Second half of each combined write; kept separate so a failure here can
    # be rolled back against the already-applied ledger change.
    def _append_course(self, student: Student, course_id: str) -> None:
        student.courses.append(course_id)

    def _remove_course(self, student: Student, index: int) -> None:
        del student.courses[index]

    # --- Diagnostics -----------------------------------------------------------
    def check_consistency(self) -> List[str]:
        """Return human-readable invariant violations (empty when consistent)."""
        problems: List[str] = []
        with self._lock:
            for (sid, cid), rec in self._ledger.items():
                if (rec.student_id, rec.course_id) != (sid, cid):
                    problems.append(f"ledger key mismatch for {sid}/{cid}")
                student = self._students.get(sid)
                if student is None:
                    problems.append(f"enrollment {sid}/{cid} references unknown student")
                    continue
                count = student.courses.count(cid)
                if count != 1:
                    problems.append(f"course {cid} listed {count} times for student {sid}")
            for sid, student in self._students.items():
                for cid in student.courses:
                    if (sid, cid) not in self._ledger:
                        problems.append(f"course {cid} listed for student {sid} without enrollment")
        return problems
