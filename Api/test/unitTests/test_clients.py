import asyncio
import json

import httpx
import pytest

from clearance.clients.PermitClient import PermitClient
from clearance.clients.SmsClient import SmsClient
from clearance.clients.errors import CollaboratorError

PERMIT = {
    "permit": {
        "id": "p-9",
        "studentId": "S-001",
        "permitCode": "QR-9",
        "status": "active",
        "expiresAt": "2099-01-01T00:00:00Z",
    }
}


def permit_client(handler) -> PermitClient:
    return PermitClient(base_url="http://permits.test", timeout=1.0, transport=httpx.MockTransport(handler))


def sms_client(handler) -> SmsClient:
    return SmsClient(base_url="http://sms.test", timeout=1.0, transport=httpx.MockTransport(handler))


def test_check_treats_404_as_no_permit():
    client = permit_client(lambda request: httpx.Response(404, json={"message": "Permit not found"}))
    assert asyncio.run(client.check_by_school_id("S-001")) is None


def test_check_returns_active_permit():
    def handler(request):
        assert request.url.path == "/permit/student/S-001"
        return httpx.Response(200, json=PERMIT)

    permit = asyncio.run(permit_client(handler).check_by_school_id("S-001"))
    assert permit.id == "p-9"
    assert permit.permit_code == "QR-9"
    assert permit.is_active


def test_check_ignores_inactive_permit():
    body = {"permit": dict(PERMIT["permit"], status="expired")}
    client = permit_client(lambda request: httpx.Response(200, json=body))
    assert asyncio.run(client.check_by_school_id("S-001")) is None


def test_check_failure_is_not_no_permit():
    client = permit_client(lambda request: httpx.Response(500, json={"message": "db down"}))
    with pytest.raises(CollaboratorError) as exc:
        asyncio.run(client.check_by_school_id("S-001"))
    assert exc.value.message == "db down"
    assert exc.value.status_code == 500


def test_issue_posts_student_to_cashier_route():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=PERMIT)

    permit = asyncio.run(permit_client(handler).issue("S-001", "cash-1"))
    assert seen == {"path": "/qr-code/generate/cash-1", "body": {"studentId": "S-001"}}
    assert permit.student_id == "S-001"


def test_revoke_uses_generic_message_without_body():
    def handler(request):
        assert request.url.path == "/qr-code/revoke-permit/p-9"
        return httpx.Response(503, text="unavailable")

    with pytest.raises(CollaboratorError) as exc:
        asyncio.run(permit_client(handler).revoke("p-9"))
    assert exc.value.message == "Failed to revoke permit"


def test_bulk_sms_reports_failed_numbers():
    def handler(request):
        body = json.loads(request.content)
        assert request.url.path == "/sms/send-sms"
        if body["phoneNumber"] == "09170000002":
            return httpx.Response(500)
        return httpx.Response(200, json={"ok": True})

    success, failed = asyncio.run(
        sms_client(handler).send_bulk(["09170000001", "09170000002", "09170000003"], "hello")
    )
    assert success == 2
    assert failed == ["09170000002"]


def test_single_sms_never_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert asyncio.run(sms_client(handler).send("09170000001", "hello")) is False


def test_check_treats_null_permit_as_no_permit():
    client = permit_client(lambda request: httpx.Response(200, json={"message": "No permit", "permit": None}))
    assert asyncio.run(client.check_by_school_id("S-001")) is None


def test_check_with_malformed_permit_is_unknown_state():
    body = {"permit": {"id": "p-9", "status": "active"}}
    client = permit_client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(CollaboratorError) as exc:
        asyncio.run(client.check_by_school_id("S-001"))
    assert exc.value.message == "Failed to check student permit"


def test_check_with_non_json_body_is_unknown_state():
    client = permit_client(lambda request: httpx.Response(200, text="<html>gateway</html>"))
    with pytest.raises(CollaboratorError):
        asyncio.run(client.check_by_school_id("S-001"))


def test_issue_without_permit_in_body_fails():
    client = permit_client(lambda request: httpx.Response(201, json={"permit": None}))
    with pytest.raises(CollaboratorError):
        asyncio.run(client.issue("S-001", "cash-1"))
