"""
'emergency/sms.py': Semaphore SMS gateway client.

Emergency alerts reach a senior's contact as a plain SMS. Numbers are normalized to the
Philippine `+63` prefix before being handed to the gateway.
"""
import logging
import re
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

SEMAPHORE_URL = "https://api.semaphore.co/api/v4/messages"
SMS_TIMEOUT = 10.0
COUNTRY_PREFIX = "+63"
TEST_MODE_MESSAGE_ID = "test-mode"


class SmsDeliveryError(Exception):
    """Raised when the gateway rejects a message or cannot be reached."""

    def __init__(self, message: str, *, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


def normalize_phone(phone: str) -> str:
    """Keep digits and `+`; local numbers get the country prefix in place of a leading 0."""
    cleaned = re.sub(r"[^0-9+]", "", phone or "")
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        cleaned = cleaned[1:]
    return f"{COUNTRY_PREFIX}{cleaned}"


class SemaphoreClient:
    """Async client for the Semaphore messages endpoint."""

    def __init__(
            self,
            api_key: str,
            sender_name: str = "SeniorHub",
            test_mode: bool = False,
            url: str = SEMAPHORE_URL,
            timeout: float = SMS_TIMEOUT,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender_name = sender_name
        self.test_mode = test_mode
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def send(self, phone: str, message: str) -> str:
        """
        Send `message` to `phone`.

        Returns:
            str: The gateway message ID ("unknown" when the gateway omits it).

        Raises:
            SmsDeliveryError: On a rejected request, a malformed reply or a network failure.
        """
        number = normalize_phone(phone)
        if self.test_mode:
            logger.info(f"[send] Test mode, SMS to {number} not delivered")
            return TEST_MODE_MESSAGE_ID

        payload = {
            "apikey": self.api_key,
            "number": number,
            "message": message,
            "sendername": self.sender_name,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as http_err:
            detail = self._error_message(http_err.response)
            logger.error(f"[send] Semaphore returned {http_err.response.status_code}: {detail}")
            raise SmsDeliveryError(detail, cause=http_err)

        except httpx.RequestError as req_err:
            logger.error(f"[send] Semaphore request failed: {req_err}", exc_info=True)
            raise SmsDeliveryError(str(req_err) or "SMS API error", cause=req_err)

        except ValueError as parse_err:
            raise SmsDeliveryError("Invalid response from Semaphore API", cause=parse_err)

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            logger.error(f"[send] Unexpected Semaphore reply: {data}")
            raise SmsDeliveryError("Invalid response from Semaphore API")

        message_id = str(data[0].get("message_id") or "unknown")
        logger.info(f"[send] SMS sent to {number} <{message_id}>")
        return message_id

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "SMS API error"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return "SMS API error"
