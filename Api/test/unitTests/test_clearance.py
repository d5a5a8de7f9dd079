from fastapi.testclient import TestClient
from sqlmodel import Session, select

from clearance.models.Logs import AuditLog
from clearance.models.Notification import Notification
from conftest import add_student


def setup_period(client: TestClient, headers: dict, deadline: str = "2099-06-30T00:00:00Z") -> dict:
    resp = client.post(
        "/api/clearance/setup",
        json={"academic_year": "2098-2099", "semester_type": "1st Semester", "deadline": deadline},
        headers=headers,
    )
    assert resp.status_code == 201
    return resp.json()


def test_current_is_null_when_nothing_configured(client: TestClient, admin_headers):
    resp = client.get("/api/clearance/current", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() is None

    window = client.get("/api/clearance/window", headers=admin_headers).json()
    assert window["is_configured"] is False
    assert window["is_open"] is False
    assert window["effective_deadline"] is None


def test_setup_creates_inactive_period(client: TestClient, admin_headers):
    period = setup_period(client, admin_headers)
    assert period["is_active"] is False

    window = client.get("/api/clearance/window", headers=admin_headers).json()
    assert window["is_configured"] is True
    assert window["is_open"] is False
    assert window["period_id"] == period["id"]


def test_only_admin_can_setup(client: TestClient, library_headers):
    resp = client.post(
        "/api/clearance/setup",
        json={"academic_year": "2098-2099", "semester_type": "1st Semester", "deadline": "2099-06-30T00:00:00Z"},
        headers=library_headers,
    )
    assert resp.status_code == 403


def test_missing_token_is_rejected(client: TestClient):
    assert client.get("/api/clearance/current").status_code == 401


def test_start_opens_window_and_notifies(client: TestClient, session: Session, admin_headers, sms_client):
    add_student(session, "S-001", phone_number="09171234567")
    period = setup_period(client, admin_headers)

    resp = client.put(f"/api/clearance/{period['id']}/start", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is True
    assert resp.json()["start_date"] is not None

    window = client.get("/api/clearance/window", headers=admin_headers).json()
    assert window["is_open"] is True

    notification = session.exec(select(Notification)).first()
    assert notification.title == "Clearance Started"
    assert sms_client.sent and sms_client.sent[0][0] == "09171234567"


def test_second_period_cannot_start_while_one_is_active(client: TestClient, admin_headers):
    first = setup_period(client, admin_headers)
    second = setup_period(client, admin_headers)
    assert client.put(f"/api/clearance/{first['id']}/start", headers=admin_headers).status_code == 200

    resp = client.put(f"/api/clearance/{second['id']}/start", headers=admin_headers)
    assert resp.status_code == 409

    client.put(f"/api/clearance/{first['id']}/stop", headers=admin_headers)
    assert client.put(f"/api/clearance/{second['id']}/start", headers=admin_headers).status_code == 200


def test_current_prefers_the_active_period(client: TestClient, admin_headers):
    first = setup_period(client, admin_headers)
    setup_period(client, admin_headers)
    client.put(f"/api/clearance/{first['id']}/start", headers=admin_headers)

    assert client.get("/api/clearance/current", headers=admin_headers).json()["id"] == first["id"]


def test_stop_closes_the_window(client: TestClient, admin_headers):
    period = setup_period(client, admin_headers)
    client.put(f"/api/clearance/{period['id']}/start", headers=admin_headers)

    resp = client.put(f"/api/clearance/{period['id']}/stop", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert client.get("/api/clearance/window", headers=admin_headers).json()["is_open"] is False


def test_extend_must_be_strictly_later(client: TestClient, session: Session, admin_headers):
    period = setup_period(client, admin_headers, deadline="2099-06-30T00:00:00Z")

    resp = client.put(
        f"/api/clearance/{period['id']}/extend",
        json={"new_deadline": "2099-06-30T00:00:00Z"},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert session.exec(select(AuditLog).where(AuditLog.action == "CLEARANCE_EXTENDED")).first() is None

    resp = client.put(
        f"/api/clearance/{period['id']}/extend",
        json={"new_deadline": "2099-07-15T00:00:00Z"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["extended_deadline"].startswith("2099-07-15")
    assert resp.json()["deadline"].startswith("2099-06-30")


def test_second_extension_compares_against_extended_deadline(client: TestClient, admin_headers):
    period = setup_period(client, admin_headers, deadline="2099-06-30T00:00:00Z")
    client.put(f"/api/clearance/{period['id']}/extend", json={"new_deadline": "2099-07-15T00:00:00Z"}, headers=admin_headers)

    resp = client.put(
        f"/api/clearance/{period['id']}/extend",
        json={"new_deadline": "2099-07-10T00:00:00Z"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_delete_period(client: TestClient, admin_headers):
    period = setup_period(client, admin_headers)

    resp = client.delete(f"/api/clearance/{period['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == period["id"]
    assert client.get("/api/clearance/", headers=admin_headers).json() == []
    assert client.delete(f"/api/clearance/{period['id']}", headers=admin_headers).status_code == 404


def test_missing_fields_are_rejected(client: TestClient, admin_headers):
    resp = client.post("/api/clearance/setup", json={"academic_year": "2098-2099"}, headers=admin_headers)
    assert resp.status_code == 422
