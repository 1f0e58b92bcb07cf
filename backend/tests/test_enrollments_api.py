"""
Enrollments API: status codes, body shapes and cache headers per endpoint.

Why:
    Each failure kind must map to one stable status (400/403/404/409/500) and
    only real successes return 200 with `success: true`. Responses are
    user-scoped and must never be cached.
"""
from __future__ import annotations

import pytest

from backend.enrollment.store import InMemoryEnrollmentStore
from utils.auth import admin, bearer, client, student  # type: ignore

pytestmark = pytest.mark.anyio("asyncio")

BASE = "/api/v2/enrollments"


def _assert_private(resp) -> None:
    assert resp.headers.get("Cache-Control") == "private, no-store"


async def _enroll(c, sid: str, cid: str):
    return await c.post(f"{BASE}/{sid}", json={"studentId": sid, "courseId": cid}, headers=bearer(student(sid)))


@pytest.mark.anyio
async def test_student_enrollment_scenario_over_http(store: InMemoryEnrollmentStore):
    async with client() as c:
        r_create = await _enroll(c, "S1", "CS101")
        assert r_create.status_code == 200
        assert r_create.json() == {
            "success": True,
            "message": "Student S1 && course CS101 has been added successfully",
            "data": {"studentId": "S1", "courseId": "CS101"},
        }
        _assert_private(r_create)
        assert store.get_student("S1").courses == ["CS101"]

        r_dup = await _enroll(c, "S1", "CS101")
        assert r_dup.status_code == 409
        assert r_dup.json()["success"] is False
        assert r_dup.json()["error"] == "conflict"
        assert r_dup.json()["message"] == "studentId && courseId is already exists"
        assert len(store.list_enrollments()) == 1

        r_del = await c.request(
            "DELETE", f"{BASE}/S1", json={"courseId": "CS101"}, headers=bearer(student("S1"))
        )
        assert r_del.status_code == 200
        assert r_del.json() == {
            "success": True,
            "message": "Student S1 && Course CS101 has been deleted successfully",
            "data": [],
        }
        assert store.get_student("S1").courses == []


@pytest.mark.anyio
async def test_list_is_admin_only():
    async with client() as c:
        await _enroll(c, "S1", "CS101")
        r_admin = await c.get(BASE, headers=bearer(admin()))
        assert r_admin.status_code == 200
        assert r_admin.json() == {"success": True, "data": [{"studentId": "S1", "courseId": "CS101"}]}
        _assert_private(r_admin)

        r_student = await c.get(BASE, headers=bearer(student("S1")))
        assert r_student.status_code == 403
        assert r_student.json() == {"success": False, "error": "forbidden", "message": "Forbidden access"}
        _assert_private(r_student)


@pytest.mark.anyio
async def test_reset_is_admin_only_and_clears_courses(store: InMemoryEnrollmentStore):
    async with client() as c:
        await _enroll(c, "S1", "CS101")
        r_forbidden = await c.post(f"{BASE}/reset", headers=bearer(student("S1")))
        assert r_forbidden.status_code == 403
        assert len(store.list_enrollments()) == 1

        r_reset = await c.post(f"{BASE}/reset", headers=bearer(admin()))
        assert r_reset.status_code == 200
        assert r_reset.json() == {"success": True, "message": "enrollment database has been reset"}
        assert store.list_enrollments() == []
        assert store.get_student("S1").courses == []


@pytest.mark.anyio
async def test_reset_failure_returns_500(store: InMemoryEnrollmentStore, monkeypatch: pytest.MonkeyPatch):
    def boom():
        raise RuntimeError("simulated")

    monkeypatch.setattr(store, "clear", boom)
    async with client() as c:
        r = await c.post(f"{BASE}/reset", headers=bearer(admin()))
    assert r.status_code == 500
    assert r.json() == {
        "success": False,
        "error": "internal_error",
        "message": "Something is wrong, please try again",
    }
    _assert_private(r)


@pytest.mark.anyio
async def test_get_student_semantics():
    async with client() as c:
        await _enroll(c, "S1", "CS101")

        r_self = await c.get(f"{BASE}/S1", headers=bearer(student("S1")))
        assert r_self.status_code == 200
        assert r_self.json() == {
            "success": True,
            "message": "Student Information",
            "data": {"studentId": "S1", "courses": ["CS101"]},
        }

        r_admin = await c.get(f"{BASE}/S1", headers=bearer(admin()))
        assert r_admin.status_code == 200

        r_other = await c.get(f"{BASE}/S1", headers=bearer(student("S2")))
        assert r_other.status_code == 403

        r_missing = await c.get(f"{BASE}/S9", headers=bearer(admin()))
        assert r_missing.status_code == 404
        assert r_missing.json()["message"] == "Student does not exists"

        r_bad = await c.get(f"{BASE}/bad%20id", headers=bearer(admin()))
        assert r_bad.status_code == 400
        body = r_bad.json()
        assert body["message"] == "Validation failed"
        assert body["errors"].startswith("studentId")
        _assert_private(r_bad)


@pytest.mark.anyio
async def test_create_rejects_admin_and_foreign_students_before_validation():
    async with client() as c:
        r_admin = await c.post(f"{BASE}/S1", json={"studentId": "S1", "courseId": "CS101"}, headers=bearer(admin()))
        assert r_admin.status_code == 403

        # Body is garbage, but the policy check comes first
        r_other = await c.post(f"{BASE}/S2", content=b"not json", headers=bearer(student("S1")))
        assert r_other.status_code == 403


@pytest.mark.anyio
async def test_create_validation_errors_return_400():
    async with client() as c:
        headers = bearer(student("S1"))
        r_missing = await c.post(f"{BASE}/S1", json={"studentId": "S1"}, headers=headers)
        assert r_missing.status_code == 400
        assert r_missing.json()["errors"] == "courseId: Field required"

        r_not_json = await c.post(f"{BASE}/S1", content=b"{oops", headers={**headers, "Content-Type": "application/json"})
        assert r_not_json.status_code == 400

        r_mismatch = await c.post(f"{BASE}/S1", json={"studentId": "S2", "courseId": "CS101"}, headers=headers)
        assert r_mismatch.status_code == 400


@pytest.mark.anyio
async def test_create_for_unregistered_student_returns_404(store: InMemoryEnrollmentStore):
    async with client() as c:
        r = await _enroll(c, "S9", "CS101")
    assert r.status_code == 404
    assert store.list_enrollments() == []


@pytest.mark.anyio
async def test_delete_semantics():
    async with client() as c:
        await _enroll(c, "S1", "CS101")
        await _enroll(c, "S2", "CS101")

        r_admin = await c.request("DELETE", f"{BASE}/S1", json={"courseId": "CS101"}, headers=bearer(admin()))
        assert r_admin.status_code == 403
        assert r_admin.json()["message"] == "You are not allowed to modify another student's data"

        r_other = await c.request("DELETE", f"{BASE}/S2", json={"courseId": "CS101"}, headers=bearer(student("S1")))
        assert r_other.status_code == 403

        r_unknown = await c.request("DELETE", f"{BASE}/S1", json={"courseId": "MA201"}, headers=bearer(student("S1")))
        assert r_unknown.status_code == 404
        assert r_unknown.json()["message"] == "Enrollment does not exists"

        r_no_body = await c.request("DELETE", f"{BASE}/S1", headers=bearer(student("S1")))
        assert r_no_body.status_code == 400

        r_ok = await c.request("DELETE", f"{BASE}/S1", json={"courseId": "CS101"}, headers=bearer(student("S1")))
        assert r_ok.status_code == 200
        assert r_ok.json()["data"] == [{"studentId": "S2", "courseId": "CS101"}]


@pytest.mark.anyio
async def test_unexpected_service_failure_maps_to_500(monkeypatch: pytest.MonkeyPatch):
    import backend.web.routes.enrollments as enrollments

    class Broken:
        def list_enrollments(self, actor):
            raise KeyError("boom")

    monkeypatch.setattr(enrollments, "_get_service", lambda: Broken())
    async with client() as c:
        r = await c.get(BASE, headers=bearer(admin()))
    assert r.status_code == 500
    assert r.json()["success"] is False


@pytest.mark.anyio
async def test_build_service_registers_seed_students():
    from backend.web import main

    svc = main.build_service(("A1", "A2"))
    assert [s.student_id for s in svc.store.list_students()] == ["A1", "A2"]
    assert svc.store.list_enrollments() == []


@pytest.mark.anyio
async def test_snake_case_bodies_are_rejected_without_side_effects(store: InMemoryEnrollmentStore):
    async with client() as c:
        headers = bearer(student("S1"))
        r_create = await c.post(f"{BASE}/S1", json={"student_id": "S1", "course_id": "CS101"}, headers=headers)
        assert r_create.status_code == 400
        assert store.list_enrollments() == []

        await _enroll(c, "S1", "CS101")
        r_delete = await c.request("DELETE", f"{BASE}/S1", json={"course_id": "CS101"}, headers=headers)
        assert r_delete.status_code == 400
        assert r_delete.json()["errors"] == "courseId: Field required"
        assert store.get_student("S1").courses == ["CS101"]
        assert len(store.list_enrollments()) == 1


@pytest.mark.anyio
async def test_delete_message_uses_trimmed_course_id():
    async with client() as c:
        await _enroll(c, "S1", "CS101")
        r = await c.request("DELETE", f"{BASE}/S1", json={"courseId": "  CS101 "}, headers=bearer(student("S1")))
    assert r.status_code == 200
    assert r.json()["message"] == "Student S1 && Course CS101 has been deleted successfully"
