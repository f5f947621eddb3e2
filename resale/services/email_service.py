"""Outbound email over the SendGrid v3 ``mail/send`` HTTP API.

Logs instead of sending when no API key is configured (local development).
HTTP errors from the provider propagate to the caller.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailAttachment:
    content: bytes
    filename: str
    mime_type: str = "application/pdf"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    sender: str
    subject: str
    body: str
    attachments: tuple[EmailAttachment, ...] = field(default_factory=tuple)


def build_sendgrid_payload(message: EmailMessage) -> dict:
    payload = {
        "personalizations": [{"to": [{"email": message.to}]}],
        "from": {"email": message.sender},
        "subject": message.subject,
        "content": [{"type": "text/plain", "value": message.body}],
    }
    if message.attachments:
        payload["attachments"] = [
            {
                "content": base64.b64encode(a.content).decode("ascii"),
                "filename": a.filename,
                "type": a.mime_type,
                "disposition": "attachment",
            }
            for a in message.attachments
        ]
    return payload


class EmailClient:
    def __init__(
        self,
        api_key: str = "",
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._simulated = not api_key

    async def send(self, message: EmailMessage) -> dict:
        if self._simulated:
            logger.info(
                "Email (simulated) to=%s subject=%r attachments=%d",
                message.to, message.subject, len(message.attachments),
            )
            return {"status": "simulated", "to": message.to}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(
                self.api_url,
                json=build_sendgrid_payload(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            resp.raise_for_status()

        logger.info("Email sent to=%s subject=%r", message.to, message.subject)
        return {
            "status": "sent",
            "to": message.to,
            "message_id": resp.headers.get("X-Message-Id"),
        }
