"""HTTP surface, driven through FastAPI's TestClient on a file-backed store."""

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app

COMPANY = "constantinolawoffice.com"

PASSWORDS = {"boss": "boss123", "hr": "hr123", "tl": "tl123", "admin": "admin123"}


@pytest.fixture
def client(tmp_path):
    app_settings = Settings(
        _env_file=None,
        STORE_BACKEND="file",
        DATA_FILE=str(tmp_path / "store.json"),
        SEED_DEFAULT_USERS=True,
    )
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


def login(client, who):
    """Log in as a seeded account and return bearer headers."""
    response = client.post("/api/auth/login", json={"email": f"{who}@{COMPANY}", "password": PASSWORDS[who]})
    assert response.status_code == 200, response.text
    # Use the bearer token explicitly so several accounts can act in one test
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.mark.api
def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"api_ok": True, "backend": "file", "store_ok": True}


@pytest.mark.api
def test_login_sets_cookie_and_me(client):
    response = client.post("/api/auth/login", json={"email": f"admin@{COMPANY}", "password": "admin123"})
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "admin"
    assert client.cookies.get("session_token") == body["token"]

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json() == {"id": body["id"], "email": f"admin@{COMPANY}", "role": "admin"}

    assert client.post("/api/auth/logout").json() == {"ok": True}
    client.cookies.clear()
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"}).status_code == 401


@pytest.mark.api
def test_login_errors(client):
    wrong = client.post("/api/auth/login", json={"email": f"admin@{COMPANY}", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["error"]["code"] == "unauthorized"

    outside = client.post("/api/auth/login", json={"email": "admin@gmail.com", "password": "admin123"})
    assert outside.status_code == 400
    assert outside.json()["error"]["code"] == "validation_error"

    malformed = client.post("/api/auth/login", json={"email": "not-an-email"})
    assert malformed.status_code == 400
    assert malformed.json()["error"]["code"] == "validation_error"


@pytest.mark.api
def test_data_requires_session(client):
    response = client.get("/api/data/applicants")
    assert response.status_code == 401
    assert response.json() == {"error": {"code": "unauthorized", "message": "Unauthorized"}}


@pytest.mark.api
def test_gate_and_unknown_entity(client):
    hr = login(client, "hr")
    assert client.get("/api/data/users", headers=hr).status_code == 403
    assert client.get("/api/data/companies", headers=hr).status_code == 404

    admin = login(client, "admin")
    users = client.get("/api/data/users", headers=admin).json()
    assert {u["role"] for u in users} == {"boss", "hr", "team-lead", "admin"}
    assert all("password" not in u for u in users)
    tl = next(u for u in users if u["role"] == "team-lead")
    assert tl["tlAssignmentLimit"] == 5

    assert client.get("/api/data/settings", headers=admin).json() == {"manPowerLimit": 50}
    assert client.delete("/api/data/applicants", headers=admin).status_code == 400


@pytest.mark.api
def test_claim_workflow(client):
    tl = login(client, "tl")
    hr = login(client, "hr")
    boss = login(client, "boss")
    admin = login(client, "admin")

    # Team lead files a request; admin approves it with a limit of one
    request = client.post("/api/data/manpowerRequests", json={"position": "Field Collector", "requestedCount": 2}, headers=tl)
    assert request.status_code == 201
    request_id = request.json()["id"]
    approved = client.put(
        "/api/data/manpowerRequests",
        json={"id": request_id, "status": "approved", "limit": 1},
        headers=admin,
    )
    assert approved.status_code == 200
    assert approved.json()["limit"] == 1

    # HR adds two applicants, the boss approves them
    ids = []
    for name in ("Maria", "Jose"):
        created = client.post("/api/data/applicants", json={"name": name, "positionAppliedFor": "Field Collector"}, headers=hr)
        assert created.status_code == 201
        assert created.json()["status"] == "pending"
        ids.append(created.json()["id"])
        assert client.put(f"/api/data/applicants?id={ids[-1]}", json={"status": "approved"}, headers=boss).status_code == 200

    # Boss may not claim
    assert client.post("/api/assignments/claim", json={"applicantId": ids[0]}, headers=boss).status_code == 403

    claimed = client.post("/api/assignments/claim", json={"applicantId": ids[0]}, headers=tl)
    assert claimed.status_code == 201
    assignment = claimed.json()["assignment"]
    assert assignment["tlEmail"] == f"tl@{COMPANY}"
    assert assignment["requestId"] == request_id
    assert claimed.json()["applicant"]["status"] == "assigned"

    again = client.post("/api/assignments/claim", json={"applicantId": ids[0], "tlEmail": f"tl@{COMPANY}"}, headers=hr)
    assert again.status_code == 409
    assert again.json()["error"]["details"]["rule"] == "already_assigned"

    full = client.post("/api/assignments/claim", json={"applicantId": ids[1]}, headers=tl)
    assert full.status_code == 409
    assert full.json()["error"]["details"]["rule"] == "limit_reached"

    requests = client.get("/api/data/manpowerRequests", headers=tl).json()
    assert [(r["id"], r["assignedCount"]) for r in requests] == [(request_id, 1)]
    assert [a["id"] for a in client.get("/api/data/assignments", headers=tl).json()] == [assignment["id"]]

    # Cancelling is admin-only and frees the slot
    assert client.post(f"/api/assignments/{assignment['id']}/cancel", headers=hr).status_code == 403
    cancelled = client.post(f"/api/assignments/{assignment['id']}/cancel", headers=admin)
    assert cancelled.status_code == 200
    assert cancelled.json()["assignment"]["status"] == "cancelled"
    assert client.post("/api/assignments/claim", json={"applicantId": ids[1]}, headers=tl).status_code == 201

    # Every change shows up in the audit trail, newest first
    assert client.get("/api/audit", headers=hr).status_code == 403
    logs = client.get("/api/audit", headers=admin).json()
    assert logs[0]["entity"] == "assignments"
    assert logs[0]["action"] == "create"
    assert {"actorEmail", "actorRole", "entityId", "beforeData", "afterData", "createdAt"} <= set(logs[0])
    assert [log["id"] for log in logs] == sorted((log["id"] for log in logs), reverse=True)


@pytest.mark.api
def test_claim_validation_and_not_found(client):
    admin = login(client, "admin")

    bad = client.post("/api/assignments/claim", json={"applicantId": "seven"}, headers=admin)
    assert bad.status_code == 400

    missing = client.post("/api/assignments/claim", json={"applicantId": 70, "tlEmail": f"tl@{COMPANY}"}, headers=admin)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"


@pytest.mark.api
def test_delete_applicant(client):
    hr = login(client, "hr")
    admin = login(client, "admin")
    created = client.post("/api/data/applicants", json={"name": "Ana"}, headers=hr).json()

    assert client.delete(f"/api/data/applicants?id={created['id']}", headers=hr).status_code == 403
    assert client.delete(f"/api/data/applicants?id={created['id']}", headers=admin).json() == {"ok": True}
    assert client.delete(f"/api/data/applicants?id={created['id']}", headers=admin).status_code == 404
