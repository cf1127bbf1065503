"""
API tests.

Run the full FastAPI app against a fresh in-memory mock connection per
test. Identities are created through the real sign-up/sign-in endpoints;
warehouse views are seeded directly on the mock.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from fitcoach.api.dependencies import get_connection
from fitcoach.config.settings import Settings, get_settings
from fitcoach.infrastructure.snowflake.client import MockSnowflakeConnection
from fitcoach.main import create_app


@pytest.fixture
def conn():
    return MockSnowflakeConnection()


@pytest.fixture
def client(conn):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: Settings(
        snowflake_mock_mode=True,
        view_fetch_timeout_seconds=None,
    )
    app.dependency_overrides[get_connection] = lambda: conn
    return TestClient(app)


def _sign_in(client, email: str, password: str = "secret1") -> tuple[dict, dict]:
    """Register (if needed) and sign in; returns auth headers and the sign-in body."""
    client.post("/api/v1/auth/sign-up", json={"email": email, "password": password})
    response = client.post("/api/v1/auth/sign-in", json={"email": email, "password": password})
    assert response.status_code == 200
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["details"]["mock_mode"]["snowflake"] is True

    def test_readiness_in_mock_mode(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert {c["name"] for c in body["checks"]} == {"configuration", "database"}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class TestAuth:

    def test_sign_up_does_not_sign_in(self, client):
        response = client.post(
            "/api/v1/auth/sign-up",
            json={"email": "ana@example.com", "password": "secret1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["identity"]["role_claim"] is None
        assert body["notifications"][0]["title"] == "Registration successful"
        assert "access_token" not in body

    def test_sign_up_errors_are_shown_verbatim(self, client):
        response = client.post(
            "/api/v1/auth/sign-up",
            json={"email": "ana@example.com", "password": "123"},
        )
        assert response.status_code == 400
        notification = response.json()["detail"]["notifications"][0]
        assert notification["description"] == "Password should be at least 6 characters"
        assert notification["variant"] == "destructive"

    def test_sign_in_lands_on_role_tree(self, client):
        _, coach = _sign_in(client, "coach@example.com")
        _, member = _sign_in(client, "ana@example.com")

        assert coach["redirect_to"] == "/coach"
        assert member["redirect_to"] == "/client"
        assert coach["token_type"] == "bearer"

    def test_wrong_password(self, client):
        _sign_in(client, "ana@example.com")
        response = client.post(
            "/api/v1/auth/sign-in",
            json={"email": "ana@example.com", "password": "wrong"},
        )
        assert response.status_code == 401
        assert response.json()["detail"]["notifications"][0]["description"] == "Invalid login credentials"

    def test_session_and_sign_out(self, client):
        headers, _ = _sign_in(client, "ana@example.com")

        before = client.get("/api/v1/auth/session", headers=headers).json()
        signed_out = client.post("/api/v1/auth/sign-out", headers=headers)
        after = client.get("/api/v1/auth/session", headers=headers).json()

        assert before["state"] == "authenticated-client"
        assert before["identity"]["email"] == "ana@example.com"
        assert signed_out.status_code == 204
        assert after == {"identity": None, "loading": False, "state": "unauthenticated"}

    def test_form_labels(self, client):
        body = client.get("/api/v1/auth/form", params={"mode": "sign_up"}).json()
        assert body["submit_label"] == "Sign up"
        assert body["toggle_mode"] == "sign_in"


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

class TestNavigation:

    def test_signed_out_sees_auth_form(self, client):
        body = client.get("/api/v1/navigation", params={"path": "/coach"}).json()
        assert body["state"] == "unauthenticated"
        assert body["view"] == "auth_form"
        assert body["auth_form"] == "sign_in"
        assert body["menu"] == []

    def test_root_redirects_to_landing(self, client):
        headers, _ = _sign_in(client, "coach@example.com")

        body = client.get("/api/v1/navigation", params={"path": "/"}, headers=headers).json()

        assert body["view"] == "coach_dashboard"
        assert body["redirect_to"] == "/coach"
        assert [entry["label"] for entry in body["menu"]] == ["Dashboard", "Clients", "Schedule"]

    def test_other_tree_is_not_found(self, client):
        headers, _ = _sign_in(client, "ana@example.com")
        body = client.get(
            "/api/v1/navigation",
            params={"path": "/coach/schedule"},
            headers=headers,
        ).json()
        assert body["view"] == "not_found"


# ---------------------------------------------------------------------------
# Client pages
# ---------------------------------------------------------------------------

class TestClientPages:

    def test_requires_authentication(self, client):
        response = client.get("/api/v1/client/dashboard")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_coach_gets_not_found(self, client):
        headers, _ = _sign_in(client, "coach@example.com")
        response = client.get("/api/v1/client/dashboard", headers=headers)
        assert response.status_code == 404

    def test_dashboard(self, client, conn):
        headers, body = _sign_in(client, "ana@example.com")
        conn._seed("client_next_seance_view", {
            "id": uuid4(),
            "user_id": body["identity"]["id"],
            "seance_name": "Legs",
            "programme_name": "Base",
            "semaine_number": 2,
        })

        response = client.get("/api/v1/client/dashboard", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["view"] == "client_dashboard"
        assert data["data"]["next_session"]["session_name"] == "Legs"
        assert data["notifications"] == []

    def test_session_of_another_user_redirects(self, client, conn):
        headers, _ = _sign_in(client, "ana@example.com")
        session_id = uuid4()
        conn._seed("seance_detail_view", {
            "id": session_id,
            "seance_name": "Legs",
            "programme_user_id": uuid4(),
        })

        body = client.get(f"/api/v1/client/sessions/{session_id}", headers=headers).json()

        assert body["data"] is None
        assert body["redirect_to"] == "/client"
        assert body["notifications"][0]["description"] == "Unauthorized access"

    def test_wellness_check_in(self, client, conn):
        headers, _ = _sign_in(client, "ana@example.com")

        form = client.get("/api/v1/client/wellness", headers=headers).json()
        saved = client.post(
            "/api/v1/client/wellness",
            json={"sleep_hours": 7.5, "fatigue_level": 2, "stress_level": 4, "soreness_level": 3},
            headers=headers,
        ).json()

        assert form["data"]["levels"]["sleep"] == "good"
        assert saved["redirect_to"] == "/client"
        assert saved["notifications"][0]["title"] == "Check-in saved"
        assert conn._rows("wellness_logs")[0]["sleep_hours"] == 7.5

    def test_wellness_rejects_quarter_hours(self, client):
        headers, _ = _sign_in(client, "ana@example.com")
        response = client.post(
            "/api/v1/client/wellness",
            json={"sleep_hours": 7.25},
            headers=headers,
        )
        assert response.status_code == 422

    def test_feedback(self, client, conn):
        headers, _ = _sign_in(client, "ana@example.com")
        response = client.post(
            "/api/v1/client/feedback",
            json={"session_id": str(uuid4()), "exercise_name": "Squat", "rpe": 8, "reps": 6},
            headers=headers,
        )
        assert response.json()["notifications"][0]["title"] == "Feedback saved"
        assert conn._rows("feedbacks")[0]["exercise_name"] == "Squat"

    def test_history_filter(self, client, conn):
        headers, body = _sign_in(client, "ana@example.com")
        user_id = body["identity"]["id"]
        conn._seed(
            "session_history_view",
            {"id": uuid4(), "user_id": user_id, "seance_name": "A", "status": "completed",
             "seance_date": datetime(2024, 3, 1, tzinfo=timezone.utc)},
            {"id": uuid4(), "user_id": user_id, "seance_name": "B", "status": "started",
             "seance_date": datetime(2024, 3, 2, tzinfo=timezone.utc)},
        )

        data = client.get(
            "/api/v1/client/history",
            params={"filter": "completed"},
            headers=headers,
        ).json()["data"]

        assert [e["session_name"] for e in data["entries"]] == ["A"]
        assert data["total"] == 2
        assert data["filter"] == "completed"
        assert data["counts"] == {"completed": 1, "started": 1, "scheduled": 0}

    def test_goal_lifecycle(self, client):
        headers, _ = _sign_in(client, "ana@example.com")

        created = client.post(
            "/api/v1/client/goals",
            json={"title": "Run 10km", "target_value": 10, "unit": "km", "category": "endurance"},
            headers=headers,
        )
        goal_id = created.json()["data"]
        progressed = client.patch(
            f"/api/v1/client/goals/{goal_id}/progress",
            json={"value": 10},
            headers=headers,
        ).json()
        listed = client.get("/api/v1/client/goals", headers=headers).json()["data"]
        deleted = client.delete(f"/api/v1/client/goals/{goal_id}", headers=headers).json()

        assert created.status_code == 201
        assert progressed["notifications"][0]["title"] == "Progress updated"
        assert listed["achieved"] == 1
        assert listed["goals"][0]["progress_status"] == "achieved"
        assert deleted["notifications"][0]["title"] == "Goal deleted"

    def test_deleting_missing_goal(self, client):
        headers, _ = _sign_in(client, "ana@example.com")
        body = client.delete(f"/api/v1/client/goals/{uuid4()}", headers=headers).json()
        assert body["data"] is None
        assert body["notifications"][0]["description"] == "Goal not found"


# ---------------------------------------------------------------------------
# Coach pages
# ---------------------------------------------------------------------------

class TestCoachPages:

    def test_client_gets_not_found(self, client):
        headers, _ = _sign_in(client, "ana@example.com")
        assert client.get("/api/v1/coach/dashboard", headers=headers).status_code == 404

    def test_dashboard(self, client, conn):
        headers, body = _sign_in(client, "coach@example.com")
        conn._seed("coach_dashboard_view", {
            "id": uuid4(),
            "coach_id": body["identity"]["id"],
            "email": "ana@example.com",
            "next_session_date": datetime(2099, 1, 1, tzinfo=timezone.utc),
        })

        data = client.get("/api/v1/coach/dashboard", headers=headers).json()["data"]

        assert data["stats"] == {"total_clients": 1, "active_sessions": 1, "completed_sessions": 0}

    def test_dashboard_with_timestamp_without_offset(self, client, conn):
        """
        Given the warehouse stores next_session_date without a time zone
        When the coach opens the dashboard
        Then the client still counts as active instead of failing the page
        """
        headers, body = _sign_in(client, "coach@example.com")
        conn._seed("coach_dashboard_view", {
            "id": uuid4(),
            "coach_id": body["identity"]["id"],
            "email": "ana@example.com",
            "next_session_date": "2099-01-01T10:00:00",
        })

        response = client.get("/api/v1/coach/dashboard", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["stats"]["active_sessions"] == 1

    def test_invited_client_signs_up_into_client_tree(self, client, conn):
        """
        Given a coach invites an address that contains 'coach'
        When the invitee signs up and signs in
        Then the explicit client claim sends them to the client tree
        """
        headers, _ = _sign_in(client, "coach@example.com")

        invited = client.post(
            "/api/v1/coach/clients",
            json={"email": "coach.fan@example.com", "full_name": "Fan", "programme_id": str(uuid4())},
            headers=headers,
        ).json()
        _, member = _sign_in(client, "coach.fan@example.com")

        assert invited["notifications"][0]["title"] == "Client added"
        assert len(conn._rows("user_programmes")) == 1
        assert member["identity"]["role_claim"] == "client"
        assert member["redirect_to"] == "/client"

    def test_invite_requires_valid_email(self, client):
        headers, _ = _sign_in(client, "coach@example.com")
        response = client.post(
            "/api/v1/coach/clients",
            json={"email": "nobody"},
            headers=headers,
        )
        assert response.status_code == 400

    def test_client_search(self, client, conn):
        headers, body = _sign_in(client, "coach@example.com")
        coach_id = body["identity"]["id"]
        conn._seed(
            "coach_clients_view",
            {"id": uuid4(), "coach_id": coach_id, "email": "ana@example.com", "full_name": "Ana"},
            {"id": uuid4(), "coach_id": coach_id, "email": "bo@example.com", "full_name": "Bo"},
        )

        data = client.get(
            "/api/v1/coach/clients",
            params={"search": "ANA"},
            headers=headers,
        ).json()["data"]

        assert [c["full_name"] for c in data["clients"]] == ["Ana"]
        assert data["total"] == 2

    def test_profile_of_unknown_client_redirects(self, client):
        headers, _ = _sign_in(client, "coach@example.com")
        body = client.get(f"/api/v1/coach/clients/{uuid4()}", headers=headers).json()
        assert body["redirect_to"] == "/coach"
        assert body["notifications"][0]["description"] == "Could not load the client's data"

    def test_schedule_week(self, client, conn):
        headers, body = _sign_in(client, "coach@example.com")
        conn._seed("coach_schedule_view", {
            "id": uuid4(),
            "coach_id": body["identity"]["id"],
            "seance_name": "Legs",
            "client_email": "ana@example.com",
            "seance_date": datetime(2024, 3, 13, 9, tzinfo=timezone.utc),
            "status": "completed",
        })

        data = client.get(
            "/api/v1/coach/schedule",
            params={"week_of": "2024-03-14", "status": "completed"},
            headers=headers,
        ).json()["data"]

        assert data["previous_week"] == "2024-03-04"
        assert data["next_week"] == "2024-03-18"
        assert data["summary"]["total"] == 1
        assert data["days"][2]["sessions"][0]["session_name"] == "Legs"
        assert data["status_labels"]["completed"] == "Completed"
