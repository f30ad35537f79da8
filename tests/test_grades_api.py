"""Tests for the grading API endpoints."""

from __future__ import annotations

import typing as t

import pytest
from fastapi.testclient import TestClient

from edufam.auth import JWTManager
from edufam.model import GradeRecord, GradeStatus, Role, TenantContext, UserID

if t.TYPE_CHECKING:
    from conftest import Actors

Headers = t.Callable[[TenantContext], dict[str, str]]


@pytest.fixture
def upload_body(actors: Actors) -> dict[str, t.Any]:
    return {
        "class_id": str(actors.class_id),
        "subject_id": str(actors.subject_id),
        "term": "2026-T1",
        "exam_type": "END_TERM",
        "max_score": 100,
        "rows": [{"student_id": str(s), "score": score} for s, score in zip(actors.students, (90, 75, 60))],
    }


def upload(client: TestClient, body: dict[str, t.Any], headers: dict[str, str]) -> list[dict[str, t.Any]]:
    response = client.post("/api/grades/bulk", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["grades"]


class TestAuthentication(object):
    """Requests without a usable token."""

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/api/grades")

        assert response.status_code == 401

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get("/api/grades", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_user_without_school(self, client: TestClient, jwt_manager: JWTManager) -> None:
        token = jwt_manager.create_access_token(UserID(), Role.Teacher)

        response = client.get("/api/grades", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403
        assert response.json()["reason"] == "no_school_assigned"


class TestUpload(object):
    """Tests for POST /api/grades/bulk."""

    def test_upload_ranks_cohort(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        response = client.post("/api/grades/bulk", json=upload_body, headers=auth_headers(actors.teacher))

        assert response.status_code == 201
        data = response.json()
        assert data["submission"]["total_students"] == 3
        assert data["submission"]["status"] == "draft"
        assert [(g["score"], g["position"], g["letter_grade"]) for g in data["grades"]] == [
            (90, 1, "A+"),
            (75, 2, "B+"),
            (60, 3, "B"),
        ]
        assert data["skipped"] == []

    def test_invalid_rows(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        upload_body["rows"][1]["score"] = 140

        response = client.post("/api/grades/bulk", json=upload_body, headers=auth_headers(actors.teacher))

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "ValidationError"
        assert data["issues"] == [
            {"index": 1, "student_id": upload_body["rows"][1]["student_id"], "message": "score cannot exceed 100"}
        ]

    def test_malformed_body(self, client: TestClient, actors: Actors, auth_headers: Headers) -> None:
        response = client.post("/api/grades/bulk", json={"rows": []}, headers=auth_headers(actors.teacher))

        assert response.status_code == 422

    def test_parent_cannot_upload(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        response = client.post("/api/grades/bulk", json=upload_body, headers=auth_headers(actors.parent))

        assert response.status_code == 403
        assert response.json()["error"] == "PermissionDeniedError"


class TestWorkflow(object):
    """Entry to release to correction over HTTP."""

    def test_release_and_correct(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        teacher, principal = auth_headers(actors.teacher), auth_headers(actors.principal)
        grades = upload(client, upload_body, teacher)
        ids = [g["grade_id"] for g in grades]

        for path, headers in (("submit", teacher), ("approve", principal), ("release", principal)):
            response = client.post(f"/api/grades/{path}", json={"grade_ids": ids}, headers=headers)
            assert response.status_code == 200, response.text

        released = client.get(f"/api/grades/{ids[2]}", headers=principal).json()
        assert released["status"] == "released"
        assert released["is_immutable"] is True

        response = client.patch(f"/api/grades/{ids[2]}", json={"score": 99}, headers=teacher)
        assert response.status_code == 409
        assert response.json()["override_path"] == f"/api/grades/{ids[2]}/overrides"

        response = client.post(
            f"/api/grades/{ids[2]}/overrides", json={"new_score": 95, "reason": "page 2 missed"}, headers=teacher
        )
        assert response.status_code == 201
        override_id = response.json()["override_id"]

        response = client.post(f"/api/overrides/{override_id}/approve", headers=principal)
        assert response.status_code == 200
        data = response.json()
        assert data["override"]["status"] == "approved"
        assert data["grade"]["score"] == 95
        assert data["grade"]["position"] == 1

        response = client.post(f"/api/overrides/{override_id}/reject", headers=principal)
        assert response.status_code == 409
        assert response.json()["error"] == "OverrideDecidedError"

        history = client.get(f"/api/grades/{ids[2]}/overrides", headers=principal).json()["overrides"]
        assert [o["override_id"] for o in history] == [override_id]

    def test_teacher_cannot_approve(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        teacher = auth_headers(actors.teacher)
        ids = [g["grade_id"] for g in upload(client, upload_body, teacher)]
        client.post("/api/grades/submit", json={"grade_ids": ids}, headers=teacher)

        response = client.post("/api/grades/approve", json={"grade_ids": ids}, headers=teacher)

        assert response.status_code == 403

    def test_invalid_transition(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        ids = [g["grade_id"] for g in upload(client, upload_body, auth_headers(actors.teacher))]

        response = client.post("/api/grades/release", json={"grade_ids": ids}, headers=auth_headers(actors.principal))

        assert response.status_code == 409
        assert response.json()["detail"] == "cannot release a grade that is draft"

    def test_reject_sends_back_with_reason(
        self, client: TestClient, actors: Actors, auth_headers: Headers, upload_body: dict[str, t.Any]
    ) -> None:
        teacher = auth_headers(actors.teacher)
        ids = [g["grade_id"] for g in upload(client, upload_body, teacher)]
        client.post("/api/grades/submit", json={"grade_ids": ids}, headers=teacher)

        response = client.post(
            "/api/grades/reject",
            json={"grade_ids": ids[:1], "reason": "check totals"},
            headers=auth_headers(actors.principal),
        )

        assert response.status_code == 200
        (grade,) = response.json()["grades"]
        assert grade["status"] == "draft"
        assert grade["position"] is None
        assert grade["principal_notes"] == "check totals"


class TestReads(object):
    """Tests for GET /api/grades and GET /api/grades/{grade_id}."""

    def test_other_school_gets_404(
        self,
        client: TestClient,
        actors: Actors,
        actors_factory: t.Callable[..., Actors],
        auth_headers: Headers,
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        grade = grade_factory(actors.teacher)
        other = actors_factory()

        response = client.get(f"/api/grades/{grade.grade_id}", headers=auth_headers(other.principal))

        assert response.status_code == 404

    def test_parent_lists_released_grades_of_children(
        self,
        client: TestClient,
        actors: Actors,
        auth_headers: Headers,
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        child = actors.students[0]
        released = grade_factory(actors.teacher, student_id=child, status=GradeStatus.Released, is_immutable=True)
        grade_factory(actors.teacher, student_id=child)

        response = client.get("/api/grades", headers=auth_headers(actors.parent))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["grades"][0]["grade_id"] == str(released.grade_id)

    def test_filter_by_status(
        self,
        client: TestClient,
        actors: Actors,
        auth_headers: Headers,
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        grade_factory(actors.teacher)
        approved = grade_factory(actors.teacher, status=GradeStatus.Approved)

        response = client.get("/api/grades", params={"status": "approved"}, headers=auth_headers(actors.principal))

        assert [g["grade_id"] for g in response.json()["grades"]] == [str(approved.grade_id)]


class TestCapabilities(object):
    """Tests for GET /api/me/capabilities."""

    def test_teacher(self, client: TestClient, actors: Actors, auth_headers: Headers) -> None:
        response = client.get("/api/me/capabilities", headers=auth_headers(actors.teacher))

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "teacher"
        assert data["view_scope"] == "own_classes"
        assert data["capabilities"]["create"] is True
        assert data["capabilities"]["approve"] is False


class TestAnalytics(object):
    """Tests for GET /api/analytics/summary."""

    def test_owner_summary(
        self,
        client: TestClient,
        actors: Actors,
        auth_headers: Headers,
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        grade_factory(actors.teacher, percentage=50.0)

        response = client.get("/api/analytics/summary", headers=auth_headers(actors.owner))

        assert response.status_code == 200
        data = response.json()
        assert data["total_grades"] == 1
        assert data["average_percentage"] == 50.0
        assert data["degraded"] is False

    def test_finance_officer_summary(
        self,
        client: TestClient,
        actors: Actors,
        auth_headers: Headers,
        grade_factory: t.Callable[..., GradeRecord],
    ) -> None:
        grade_factory(actors.teacher, percentage=50.0)
        finance = TenantContext(user_id=UserID(), role=Role.FinanceOfficer, school_id=actors.school.school_id)

        response = client.get("/api/analytics/summary", headers=auth_headers(finance))

        assert response.status_code == 200
        assert response.json()["total_grades"] == 1

    def test_finance_officer_cannot_list_grades(
        self, client: TestClient, actors: Actors, auth_headers: Headers
    ) -> None:
        finance = TenantContext(user_id=UserID(), role=Role.FinanceOfficer, school_id=actors.school.school_id)

        response = client.get("/api/grades", headers=auth_headers(finance))

        assert response.status_code == 403
