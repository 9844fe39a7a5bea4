import random

import pytest
from fastapi.testclient import TestClient

from api.app import app
from api.services.session_manager import SessionManager

HEADER = "No.,Category,Sub-Category,Question,Option 1,Option 2,Option 3,Option 4,Answer\n"
BANK = HEADER + (
    "1,Math,Algebra,2+2?,3,4,5,6,Option 2\n"
    "2,Math,Arithmetic,3*3?,6,9,12,15,9\n"
    "3,Science,Physics,Unit of force?,Joule,Watt,Newton,Pascal,2\n"
    "4,Science,Chemistry,Symbol of gold?,Au,Ag,Fe,Pb,Option 1\n"
)
CORRECT = {"2+2?": "1", "3*3?": "1", "Unit of force?": "2", "Symbol of gold?": "0"}


@pytest.fixture
def client(db_tables):
    app.state.session_manager = SessionManager(rng=random.Random(1))
    with TestClient(app) as test_client:
        yield test_client
    app.state.session_manager = None


def _login(client: TestClient, username: str, email: str) -> dict[str, str]:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": "secret123"},
    )
    assert response.status_code == 201
    response = client.post(
        "/api/auth/login", json={"username": username, "password": "secret123"}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _upload(client: TestClient, headers, content: str = BANK, **form):
    data = {"title": "Mixed quiz", "time_limit": "10", **form}
    return client.post(
        "/api/tests/upload",
        data=data,
        files={"file": ("bank.csv", content.encode("utf-8"), "text/csv")},
        headers=headers,
    )


@pytest.fixture
def admin(client):
    return _login(client, "admin", "admin@example.com")


@pytest.fixture
def user(client):
    return _login(client, "student", "student@example.com")


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_register_assigns_roles(client, admin, user) -> None:
    assert client.get("/api/auth/me", headers=admin).json()["role"] == "admin"
    assert client.get("/api/auth/me", headers=user).json()["role"] == "user"


def test_upload_requires_admin(client, user) -> None:
    assert _upload(client, user).status_code == 403


def test_upload_rejects_invalid_csv(client, admin) -> None:
    broken = HEADER + "1,Math,,2+2?,3,4,5,6,Option 9\n"
    response = _upload(client, admin, content=broken)

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Line 2")
    assert client.get("/api/tests", headers=admin).json() == []


def test_upload_rejects_other_file_types(client, admin) -> None:
    response = client.post(
        "/api/tests/upload",
        data={"title": "Doc"},
        files={"file": ("bank.docx", b"data", "application/octet-stream")},
        headers=admin,
    )
    assert response.status_code == 400


def test_upload_and_manage_test(client, admin, user) -> None:
    response = _upload(client, admin)
    assert response.status_code == 201
    body = response.json()
    assert body["categories"] == {"Math": 2, "Science": 2}
    test_id = body["test"]["test_id"]

    listing = client.get("/api/tests", headers=user).json()
    assert [(t["test_id"], t["total_questions"]) for t in listing] == [(test_id, 4)]

    details = client.get(f"/api/tests/{test_id}", headers=user).json()
    assert details["can_manage"] is False
    assert details["time_limit"] == 10

    assert client.patch(f"/api/tests/{test_id}", json={"title": "x"}, headers=user).status_code == 403

    patched = client.patch(
        f"/api/tests/{test_id}", json={"questions_count": 2}, headers=admin
    ).json()
    assert patched["questions_count"] == 2

    too_many = client.patch(f"/api/tests/{test_id}", json={"questions_count": 9}, headers=admin)
    assert too_many.status_code == 400

    reset = client.patch(
        f"/api/tests/{test_id}", json={"use_all_questions": True}, headers=admin
    ).json()
    assert reset["questions_count"] is None

    assert client.delete(f"/api/tests/{test_id}", headers=user).status_code == 403
    assert client.delete(f"/api/tests/{test_id}", headers=admin).json() == {"status": "deleted"}
    assert client.get(f"/api/tests/{test_id}", headers=admin).status_code == 404


def test_take_test_end_to_end(client, admin, user) -> None:
    test_id = _upload(client, admin).json()["test"]["test_id"]
    base = f"/api/tests/{test_id}/session"

    started = client.post(base, headers=user).json()
    assert started["state"] == "in_progress"
    assert len(started["questions"]) == 4
    assert all("correct_answer" not in q for q in started["questions"])
    assert 590 <= started["remaining_seconds"] <= 600

    resumed = client.post(base, headers=user).json()
    assert resumed["deadline"] == started["deadline"]
    assert [q["question_id"] for q in resumed["questions"]] == [
        q["question_id"] for q in started["questions"]
    ]

    first = started["questions"][0]["question_id"]
    invalid = client.put(f"{base}/answers/{first}", json={"selected_option": "7"}, headers=user)
    assert invalid.status_code == 400

    for question in started["questions"]:
        response = client.put(
            f"{base}/answers/{question['question_id']}",
            json={"selected_option": CORRECT[question["question_text"]]},
            headers=user,
        )
        assert response.status_code == 200
    assert response.json()["answered_count"] == 4

    moved = client.post(f"{base}/navigate", json={"direction": "next"}, headers=user).json()
    assert moved["current_index"] == 1
    moved = client.post(f"{base}/navigate", json={"index": 10}, headers=user).json()
    assert moved["current_index"] == 1

    submitted = client.post(f"{base}/submit", headers=user).json()
    assert submitted["state"] == "completed"
    assert submitted["score"] == {"correct": 4, "total": 4, "percentage": 100.0}
    assert submitted["remaining_seconds"] == 0

    # the finished session is released once its result is returned
    gone = client.put(f"{base}/answers/{first}", json={"selected_option": "0"}, headers=user)
    assert gone.status_code == 404
    assert client.get(base, headers=user).status_code == 404

    mine = client.get("/api/attempts/me", headers=user).json()
    assert mine["total"] == 1
    assert mine["attempts"][0]["test_title"] == "Mixed quiz"
    assert mine["attempts"][0]["percentage"] == 100.0

    review = client.get(f"/api/tests/{test_id}/attempts", headers=admin).json()
    assert [a["user_email"] for a in review] == ["student@example.com"]

    # a new start after completion begins a fresh session
    restarted = client.post(base, headers=user).json()
    assert restarted["state"] == "in_progress"
    assert restarted["answered_count"] == 0


def test_session_requires_start(client, user) -> None:
    response = client.get("/api/tests/abc123/session", headers=user)
    assert response.status_code == 404


def test_start_unknown_test_reports_error(client, user) -> None:
    body = client.post("/api/tests/abc123/session", headers=user).json()
    assert body["state"] == "error"
    assert body["error"] == "Test not found"


def test_leave_session(client, admin, user) -> None:
    test_id = _upload(client, admin).json()["test"]["test_id"]
    base = f"/api/tests/{test_id}/session"
    deadline = client.post(base, headers=user).json()["deadline"]

    assert client.delete(base, headers=user).json() == {"status": "discarded"}
    assert client.get(base, headers=user).status_code == 404

    # the persisted deadline keeps running
    assert client.post(base, headers=user).json()["deadline"] == deadline


def test_requires_authentication(client) -> None:
    assert client.get("/api/tests").status_code == 401


def test_refresh_and_logout(client, user) -> None:
    refreshed = client.post("/api/auth/refresh", headers=user)
    assert refreshed.status_code == 200
    fresh = {"Authorization": f"Bearer {refreshed.json()['access_token']}"}

    # the refreshed-away token no longer works
    assert client.get("/api/auth/me", headers=user).status_code == 401
    assert client.get("/api/auth/me", headers=fresh).json()["username"] == "student"

    assert client.post("/api/auth/logout", headers=fresh).json()["message"] == "Logged out successfully"
    assert client.get("/api/auth/me", headers=fresh).status_code == 401


def test_duplicate_registration_is_rejected(client, user) -> None:
    response = client.post(
        "/api/auth/register",
        json={"username": "other", "email": "student@example.com", "password": "secret123"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"
