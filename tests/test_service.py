"""End-to-end tests for the portal HTTP interface."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from portal.config import Settings
from portal.service import create_app

PASSWORD = "password"


@pytest.fixture()
def app(tmp_path: Path):
    settings = Settings(
        database_path=tmp_path / "portal.sqlite3",
        session_secret="tests-secret-key",
        latency_scale=0,
    )
    return create_app(settings=settings)


def _login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def test_create_app_requires_session_secret(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        create_app(settings=Settings(database_path=tmp_path / "portal.sqlite3"))


def test_healthcheck(app) -> None:
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}


def test_anonymous_requests_are_sent_to_login(app) -> None:
    with TestClient(app) as client:
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"]["redirect"] == "/login"


def test_login_and_logout_round_trip(app) -> None:
    with TestClient(app) as client:
        user = _login(client, "admin@example.com")
        assert user["role"] == "admin"

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "admin@example.com"

        assert client.post("/auth/logout").status_code == 200
        assert client.get("/auth/me").status_code == 401


def test_wrong_password_is_rejected(app) -> None:
    with TestClient(app) as client:
        response = client.post("/auth/login", json={"email": "admin@example.com", "password": "nope"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid credentials"
        assert client.get("/auth/me").status_code == 401


def test_register_signs_in_and_rejects_duplicates(app) -> None:
    payload = {"name": "Ada", "email": "ada@example.com", "password": "engine", "role": "student"}
    with TestClient(app) as client:
        created = client.post("/auth/register", json=payload)
        assert created.status_code == 201, created.text
        assert client.get("/auth/me").json()["id"] == created.json()["id"]

        duplicate = client.post("/auth/register", json=payload)
        assert duplicate.status_code == 409
        assert duplicate.json()["detail"] == "Email already in use"


def test_admin_manages_users(app) -> None:
    with TestClient(app) as client:
        _login(client, "admin@example.com")

        users = client.get("/users")
        assert users.status_code == 200
        assert len(users.json()) == 7

        added = client.post(
            "/users",
            json={"name": "Grace Hopper", "email": "grace@example.com", "role": "mentor", "password": "cobol"},
        )
        assert added.status_code == 201, added.text

        duplicate = client.post(
            "/users",
            json={"name": "Grace Again", "email": "grace@example.com", "role": "mentor"},
        )
        assert duplicate.status_code == 409

        assignments = client.get("/assignments")
        assert {item["student_id"] for item in assignments.json()} == {"3", "5", "6"}

    with TestClient(app) as other:
        assert _login(other, "grace@example.com", "cobol")["role"] == "mentor"


def test_students_cannot_open_admin_views(app) -> None:
    with TestClient(app) as client:
        _login(client, "student@example.com")
        response = client.get("/users")
        assert response.status_code == 403
        assert response.json()["detail"]["redirect"] == "/unauthorized"


def test_student_chooses_and_removes_mentor(app) -> None:
    with TestClient(app) as student:
        _login(student, "student@example.com")

        current = student.get("/my-mentor").json()
        assert current["mentor"]["id"] == "2"

        chosen = student.put("/my-mentor", json={"mentor_id": "4"})
        assert chosen.status_code == 200, chosen.text
        assert chosen.json()["mentor_id"] == "4"
        assert student.get("/my-mentor").json()["mentor"]["email"] == "sarah@example.com"

        not_a_mentor = student.put("/my-mentor", json={"mentor_id": "5"})
        assert not_a_mentor.status_code == 400

        missing = student.put("/my-mentor", json={"mentor_id": "999"})
        assert missing.status_code == 404

    with TestClient(app) as mentor:
        _login(mentor, "sarah@example.com")
        mentees = mentor.get("/mentees").json()
        assert {item["student"]["id"] for item in mentees} == {"3", "6"}

        inbox = mentor.get("/notifications").json()
        assert any(item["title"] == "New Student Assignment" for item in inbox["notifications"])

    with TestClient(app) as student:
        _login(student, "student@example.com")
        removed = student.delete("/my-mentor")
        assert removed.status_code == 200
        assert removed.json()["mentor_id"] is None
        assert student.get("/my-mentor").json() == {"assignment": None, "mentor": None}


def test_mentor_schedules_meeting_and_records_notes(app) -> None:
    with TestClient(app) as mentor:
        _login(mentor, "mentor@example.com")

        created = mentor.post(
            "/meetings",
            json={
                "student_id": "3",
                "title": "Capstone kickoff",
                "meeting_time": "2024-09-01T10:00:00+00:00",
                "agenda": "Scope the capstone",
            },
        )
        assert created.status_code == 201, created.text
        meeting = created.json()
        assert meeting["status"] == "scheduled"

        foreign = mentor.post(
            "/meetings",
            json={"student_id": "6", "title": "Not mine", "meeting_time": "2024-09-02T10:00:00+00:00"},
        )
        assert foreign.status_code == 403

        notes = mentor.post(
            "/session-notes",
            json={"meeting_id": meeting["id"], "topic": "Capstone scope", "notes": "Agreed on deliverables"},
        )
        assert notes.status_code == 201, notes.text
        assert notes.json()["meeting_title"] == "Capstone kickoff"

        not_owned = mentor.post(
            "/session-notes",
            json={"meeting_id": "4", "topic": "Career", "notes": "Not my student"},
        )
        assert not_owned.status_code == 403

        unknown = mentor.post(
            "/session-notes",
            json={"meeting_id": "999", "topic": "Ghost", "notes": "Nothing"},
        )
        assert unknown.status_code == 404

    with TestClient(app) as student:
        _login(student, "student@example.com")
        meetings = student.get("/meetings").json()
        assert meeting["id"] in {item["id"] for item in meetings}

        logs = student.get("/logs").json()
        assert any(item["topic"] == "Capstone scope" for item in logs)

        titles = {item["title"] for item in student.get("/notifications").json()["notifications"]}
        assert {"New Meeting Scheduled", "Meeting Notes Added"} <= titles

        cancelled = student.patch(f"/meetings/{meeting['id']}/status", json={"status": "cancelled"})
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        assert student.patch("/meetings/4/status", json={"status": "cancelled"}).status_code == 403
        assert student.patch("/meetings/999/status", json={"status": "cancelled"}).status_code == 404

        assert student.post("/meetings", json={}).status_code in {403, 422}

    with TestClient(app) as admin:
        _login(admin, "admin@example.com")
        assert len(admin.get("/logs").json()) == 4
        assert admin.get("/meetings").status_code == 403


def test_notifications_are_marked_seen_idempotently(app) -> None:
    with TestClient(app) as student:
        _login(student, "student@example.com")

        inbox = student.get("/notifications").json()
        assert inbox["unseen"] == 2

        first = student.post("/notifications/4/seen")
        second = student.post("/notifications/4/seen")
        assert first.status_code == 200 and second.status_code == 200
        assert second.json()["seen"] is True
        assert student.get("/notifications").json()["unseen"] == 1

        # Notification 3 belongs to the mentor.
        assert student.post("/notifications/3/seen").status_code == 404


def test_mentor_messages_only_reach_mentees(app) -> None:
    with TestClient(app) as mentor:
        _login(mentor, "mentor@example.com")
        sent = mentor.post(
            "/notifications",
            json={"user_id": "5", "title": "Reading", "message": "Chapter 3 before Friday"},
        )
        assert sent.status_code == 201, sent.text
        assert sent.json()["type"] == "mentor_message"

        refused = mentor.post(
            "/notifications",
            json={"user_id": "6", "title": "Hi", "message": "Not my mentee"},
        )
        assert refused.status_code == 403
