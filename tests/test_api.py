import uuid

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

import court_tracker.auth
from court_tracker.auth import User, get_current_active_user
from court_tracker.config import Settings
from court_tracker.data_models import INITIAL_COURTS
from court_tracker.main import app
from court_tracker.registry import CourtRegistry
from court_tracker.tracker import CourtTracker

from conftest import make_courts


def header_user(request: Request) -> User:
    user_id = request.headers.get("X-Test-User", "u1")
    return User(
        id=user_id,
        username=user_id,
        email=f"{user_id}@courttracker.org",
        role=request.headers.get("X-Test-Role", "player"),
    )


def as_user(user_id, role="player"):
    return {"X-Test-User": user_id, "X-Test-Role": role}


@pytest.fixture
def client():
    app.dependency_overrides[get_current_active_user] = header_user
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def fast_client(client):
    """Client whose tracker uses sub-second sessions on two courts."""
    client.app.state.tracker = CourtTracker(
        CourtRegistry(make_courts("court-A", "court-B")),
        Settings(session_duration_ms=400, warning_lead_ms=250),
    )
    return client


def test_list_courts_in_catalog_order(client):
    response = client.get("/api/courts")
    assert response.status_code == 200
    courts = response.json()
    assert [court["id"] for court in courts] == [court["id"] for court in INITIAL_COURTS]
    assert courts[0] == {
        "id": "bad-1",
        "sport": "badminton",
        "name": "Badminton Court 1",
        "court_number": 1,
        "status": "available",
        "current_session": None,
    }


def test_get_court_and_unknown_court(client):
    assert client.get("/api/courts/ten-1").json()["name"] == "Tennis Court"

    response = client.get("/api/courts/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Court not found", "court_id": "nope"}


def test_sports_metadata(client):
    sports = client.get("/api/sports").json()
    assert sports["carrom"] == {"name": "Carrom", "icon": "grid-3x3", "color": "chart-3"}


def test_check_in_and_out_flow(client):
    response = client.post("/api/check-in", json={"court_id": "bad-1"}, headers=as_user("u1"))
    assert response.status_code == 200
    body = response.json()
    assert body["court"]["status"] == "occupied"
    session = body["session"]
    assert session["court_id"] == "bad-1"
    assert session["user_id"] == "u1"
    assert session["end_time"] - session["start_time"] == 3600000
    assert 0 < session["time_remaining"] <= 3600000

    mine = client.get("/api/sessions/me", headers=as_user("u1")).json()
    assert mine["session"]["id"] == session["id"]
    assert client.get("/api/courts/summary").json()["occupied"] == 1

    response = client.post("/api/check-out", json={"court_id": "bad-1"}, headers=as_user("u1"))
    assert response.status_code == 200
    assert response.json()["court"]["status"] == "available"
    assert client.get("/api/sessions/me", headers=as_user("u1")).json() == {"session": None}


def test_check_in_errors(client):
    for missing in (client.post("/api/check-in"), client.post("/api/check-in", json={})):
        assert missing.status_code == 400
        assert missing.json() == {"detail": "Court ID is required", "field": "court_id"}
    assert client.post("/api/check-in", json={"court_id": "nope"}).status_code == 404

    client.post("/api/check-in", json={"court_id": "vol-1"}, headers=as_user("u1"))

    occupied = client.post("/api/check-in", json={"court_id": "vol-1"}, headers=as_user("u2"))
    assert occupied.status_code == 400
    assert occupied.json()["detail"] == "Court is already occupied"

    conflict = client.post("/api/check-in", json={"court_id": "vol-2"}, headers=as_user("u1"))
    assert conflict.status_code == 409
    assert conflict.json()["court_id"] == "vol-1"
    assert conflict.json()["court_name"] == "Volleyball Court 1"


def test_check_out_errors(client):
    assert client.post("/api/check-out").json() == {"detail": "Court ID is required", "field": "court_id"}
    missing = client.post("/api/check-out", json={})
    assert missing.status_code == 400
    assert missing.json() == {"detail": "Court ID is required", "field": "court_id"}

    assert client.post("/api/check-out", json={"court_id": "nope"}).status_code == 404

    not_occupied = client.post("/api/check-out", json={"court_id": "car-3"})
    assert not_occupied.status_code == 400
    assert not_occupied.json()["detail"] == "Court is not occupied"


def test_sweep_requires_admin(client):
    client.post("/api/check-in", json={"court_id": "car-1"}, headers=as_user("u1"))

    assert client.post("/api/admin/sweep", headers=as_user("u1")).status_code == 403

    response = client.post("/api/admin/sweep", headers=as_user("boss", role="super_admin"))
    assert response.status_code == 200
    assert response.json() == {"released": ["car-1"]}
    assert client.get("/api/sessions", headers=as_user("u1")).json() == []


def test_health_reports_consistent_state(client):
    client.post("/api/check-in", json={"court_id": "foo-1"}, headers=as_user("u7"))
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["active_sessions"] == 1


def test_websocket_snapshot_then_events(client):
    with client.websocket_connect("/ws") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "court_update"
        assert snapshot["courts"] == client.get("/api/courts").json()

        client.post("/api/check-in", json={"court_id": "bas-2"}, headers=as_user("u1"))
        event = ws.receive_json()
        assert event["type"] == "check_in"
        assert event["court_id"] == "bas-2"
        assert event["court"]["status"] == "occupied"

        client.post("/api/check-out", json={"court_id": "bas-2"}, headers=as_user("u1"))
        event = ws.receive_json()
        assert event["type"] == "check_out"
        assert event["courts"] == client.get("/api/courts").json()


def test_websocket_receives_warning_and_expiry(fast_client):
    with fast_client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == "court_update"

        fast_client.post("/api/check-in", json={"court_id": "court-A"}, headers=as_user("u1"))
        assert ws.receive_json()["type"] == "check_in"

        warning = ws.receive_json()
        assert warning["type"] == "session_warning"
        assert warning["message"] == "Court A - Only 1 minutes remaining!"

        expired = ws.receive_json()
        assert expired["type"] == "session_expired"
        assert expired["court"]["status"] == "available"

    assert fast_client.get("/api/courts/court-A").json()["status"] == "available"


def test_register_login_and_me():
    username = f"player-{uuid.uuid4().hex[:8]}"
    with TestClient(app) as client:
        response = client.post("/register", json={
            "username": username,
            "full_name": "Test Player",
            "email": f"{username}@courttracker.org",
            "password": "s3cret-pass",
        })
        assert response.status_code == 201

        assert client.post("/register", json={
            "username": username,
            "full_name": "Again",
            "email": f"{username}2@courttracker.org",
            "password": "x",
        }).status_code == 400

        bad = client.post("/token", data={"username": username, "password": "wrong"})
        assert bad.status_code == 401

        token = client.post("/token", data={"username": username, "password": "s3cret-pass"}).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        me = client.get("/api/users/me", headers=headers).json()
        assert me["username"] == username
        assert me["id"] == response.json()["id"]

        check_in = client.post("/api/check-in", json={"court_id": "ten-1"}, headers=headers)
        assert check_in.status_code == 200
        assert check_in.json()["session"]["user_id"] == me["id"]
        client.post("/api/check-out", json={"court_id": "ten-1"}, headers=headers)


def test_endpoints_require_a_token():
    with TestClient(app) as client:
        assert client.post("/api/check-in", json={"court_id": "bad-1"}).status_code == 401
        assert client.get("/api/sessions/me").status_code == 401


def test_register_rejects_an_email_already_in_use():
    first, second = (f"player-{uuid.uuid4().hex[:8]}" for _ in range(2))
    email = f"{first}@courttracker.org"
    with TestClient(app) as client:
        assert client.post("/register", json={
            "username": first,
            "full_name": "First Player",
            "email": email,
            "password": "s3cret-pass",
        }).status_code == 201

        duplicate = client.post("/register", json={
            "username": second,
            "full_name": "Second Player",
            "email": email,
            "password": "other-pass",
        })
        assert duplicate.status_code == 400
        assert duplicate.json() == {"detail": "Email already registered."}
        assert client.post("/token", data={"username": second, "password": "other-pass"}).status_code == 401


def test_startup_refuses_to_run_without_a_secret_key(monkeypatch):
    monkeypatch.setattr(court_tracker.auth, "SECRET_KEY", None)
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        with TestClient(app):
            pass


def test_admin_seed_skips_an_email_already_in_use(monkeypatch):
    # First startup seeds the default admin, which owns the default admin email
    with TestClient(app):
        pass

    admin = f"admin-{uuid.uuid4().hex[:8]}"
    monkeypatch.setenv("ADMIN_USERNAME", admin)
    monkeypatch.setenv("ADMIN_PASSWORD", "admin-pass")
    with TestClient(app) as client:
        assert client.post("/token", data={"username": admin, "password": "admin-pass"}).status_code == 401
        assert client.get("/health").json()["status"] == "healthy"
