import httpx

from clearance.clients.errors import CollaboratorError
from clearance.core.log import get_logger
from clearance.core.settings import settings
from clearance.models.Permit import Permit

logger = get_logger(__name__)


def _to_permit(response: httpx.Response, default: str) -> Permit | None:
    """Read the permit out of a response body; None when the body carries no permit.

    A body that cannot be read as a permit is a CollaboratorError, never "no permit".
    """
    try:
        payload = response.json()
        data = payload.get("permit", payload) if isinstance(payload, dict) else None
        if data is None:
            return None
        return Permit(
            id=str(data.get("id") or data.get("_id")),
            student_id=data["studentId"],
            permit_code=data["permitCode"],
            status=data["status"],
            expires_at=data.get("expiresAt"),
        )
    except (KeyError, ValueError, AttributeError, TypeError) as e:
        logger.error("Unreadable permit response: %s", e)
        raise CollaboratorError(default, response.status_code) from e


class PermitClient:
    """Client for the external permit / QR issuance service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.PERMIT_SERVICE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def check_by_school_id(self, school_id: str) -> Permit | None:
        """Return the student's active permit, or None when there is none.

        A 404 or an empty permit field is the normal "no permit" answer. Any
        other failure is raised, since an unknown permit state must not be
        read as "no permit".
        """
        async with self._client() as client:
            try:
                response = await client.get(f"/permit/student/{school_id}")
                if response.status_code == 404:
                    return None
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Permit check failed for student %s: %s", school_id, e)
                raise CollaboratorError.from_http_error(e, "Failed to check student permit") from e

        permit = _to_permit(response, "Failed to check student permit")
        return permit if permit is not None and permit.is_active else None

    async def issue(self, student_id: str, issued_by: str) -> Permit:
        async with self._client() as client:
            try:
                response = await client.post(f"/qr-code/generate/{issued_by}", json={"studentId": student_id})
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Permit issue failed for student %s: %s", student_id, e)
                raise CollaboratorError.from_http_error(e, "Failed to generate permit") from e

        permit = _to_permit(response, "Failed to generate permit")
        if permit is None:
            raise CollaboratorError("Permit service returned no permit", response.status_code)
        logger.info("Issued permit %s for student %s", permit.id, student_id)
        return permit

    async def revoke(self, permit_id: str) -> Permit:
        async with self._client() as client:
            try:
                response = await client.post(f"/qr-code/revoke-permit/{permit_id}")
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Permit revoke failed for %s: %s", permit_id, e)
                raise CollaboratorError.from_http_error(e, "Failed to revoke permit") from e

        permit = _to_permit(response, "Failed to revoke permit")
        if permit is None:
            raise CollaboratorError("Permit service returned no permit", response.status_code)
        logger.info("Revoked permit %s", permit_id)
        return permit
