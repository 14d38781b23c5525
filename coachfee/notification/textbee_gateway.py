# file: coachfee/notification/textbee_gateway.py
"""
TextBee SMS gateway (async).
- POST {base}/sms/send with bearer auth and {deviceId, phone, message}
- The response body is returned verbatim for the audit log
- Transport errors raise NotificationError; HTTP errors are returned as
  unsuccessful results so the caller can log the provider's text
"""
import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from coachfee.core.config import (
    TEXTBEE_BASE_URL,
    TEXTBEE_API_KEY,
    TEXTBEE_DEVICE_ID,
    SMS_HTTP_TIMEOUT,
)
from coachfee.core.errors import NotificationError

logger = logging.getLogger("notification.textbee")


class SmsResult(BaseModel):
    success: bool
    status_code: Optional[int] = None
    response: str = ""


class TextBeeGateway:
    def __init__(
        self,
        base_url: str = TEXTBEE_BASE_URL,
        api_key: Optional[str] = TEXTBEE_API_KEY,
        device_id: Optional[str] = TEXTBEE_DEVICE_ID,
        timeout: float = SMS_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.device_id = device_id
        headers = {
            "Authorization": f"Bearer {api_key or ''}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def send(self, phone: str, message: str) -> SmsResult:
        """`phone` must already be normalized (+880...)."""
        payload = {"deviceId": self.device_id, "phone": phone, "message": message}
        logger.info("[TextBee] send phone=%s chars=%d", phone, len(message))
        try:
            resp = await self._client.post("/sms/send", json=payload)
        except httpx.HTTPError as e:
            logger.exception("[TextBee] request error")
            raise NotificationError(f"SMS gateway request error: {e}")

        body = resp.text
        if not resp.is_success:
            logger.error("[TextBee] send error %s %s", resp.status_code, body)
            return SmsResult(success=False, status_code=resp.status_code, response=body)

        return SmsResult(success=True, status_code=resp.status_code, response=body)

    async def aclose(self) -> None:
        await self._client.aclose()
