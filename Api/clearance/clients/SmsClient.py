import httpx

from clearance.core.log import get_logger
from clearance.core.settings import settings

logger = get_logger(__name__)


class SmsClient:
    """Fire-and-forget SMS gateway client. Failures are logged, never raised."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.SMS_SERVICE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    async def send(self, phone_number: str, message: str) -> bool:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            return await self._send(client, phone_number, message)

    async def send_bulk(self, phone_numbers: list[str], message: str) -> tuple[int, list[str]]:
        success_count = 0
        failed_numbers = []
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            for phone_number in phone_numbers:
                if await self._send(client, phone_number, message):
                    success_count += 1
                else:
                    failed_numbers.append(phone_number)

        if failed_numbers:
            logger.warning(
                "SMS sent to %d recipient(s), %d failed", success_count, len(failed_numbers)
            )
        else:
            logger.info("SMS sent to %d recipient(s)", success_count)
        return success_count, failed_numbers

    async def _send(self, client: httpx.AsyncClient, phone_number: str, message: str) -> bool:
        try:
            response = await client.post("/sms/send-sms", json={"phoneNumber": phone_number, "message": message})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to send SMS to %s: %s", phone_number, e)
            return False
        return True
