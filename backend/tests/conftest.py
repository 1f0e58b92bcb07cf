"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend, and give every test a fresh enrollment
service so state never leaks between tests.
"""
import os
import sys
from pathlib import Path

import pytest

# Tests run against the dev configuration regardless of the caller's shell.
os.environ["ROSTER_ENV"] = "test"
os.environ.pop("ROSTER_SEED_STUDENTS", None)

# Ensure the repo root (for `backend.*`) and tests dir (for `utils.*`) are importable
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from backend.enrollment.service import EnrollmentService  # noqa: E402
from backend.enrollment.store import InMemoryEnrollmentStore  # noqa: E402

SEEDED_STUDENTS = ("S1", "S2", "S3")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store() -> InMemoryEnrollmentStore:
    s = InMemoryEnrollmentStore()
    for sid in SEEDED_STUDENTS:
        s.register_student(sid)
    return s


@pytest.fixture
def service(store: InMemoryEnrollmentStore) -> EnrollmentService:
    return EnrollmentService(store)


@pytest.fixture(autouse=True)
def _reset_enrollment_service_between_tests(service: EnrollmentService):
    """Install a fresh service (with seeded students) for the HTTP adapter."""
    import backend.web.routes.enrollments as enrollments

    enrollments.set_service(service)
    yield
    enrollments.set_service(EnrollmentService(InMemoryEnrollmentStore()))
