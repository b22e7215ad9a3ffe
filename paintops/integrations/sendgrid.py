"""SendGrid email integration client.

Uses real SendGrid API when a valid key is configured, otherwise
falls back to logging-only mock mode.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import httpx

from paintops.config import settings
from paintops.integrations.base import BaseIntegration


def _is_mock() -> bool:
    return BaseIntegration.is_mock_key(settings.SENDGRID_API_KEY)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _addresses(value: str | list[str] | None) -> list[dict[str, str]]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.replace(";", ",").split(",")
    return [{"email": v.strip()} for v in value if v and v.strip()]


class EmailClient(BaseIntegration):
    """Email client with real SendGrid API and mock fallback."""

    SENDGRID_URL = "https://api.sendgrid.com/v3"

    def __init__(self) -> None:
        super().__init__("sendgrid")

    async def health_check(self) -> bool:
        if _is_mock():
            self.logger.info("SendGrid health check: OK (mock)")
            return True
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(
                    f"{self.SENDGRID_URL}/scopes",
                    headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
                )
                return resp.status_code == 200
        except Exception as e:
            self.logger.error("SendGrid health check failed: %s", e)
            return False

    def build_payload(
        self,
        recipients: list[dict[str, str]],
        subject: str,
        html: str,
        cc: str | list[str] | None = None,
        bcc: str | list[str] | None = None,
        sender: str | None = None,
        from_name: str | None = None,
    ) -> dict[str, Any]:
        """Build the v3 mail/send body; cc and bcc are omitted when empty."""
        personalization: dict[str, Any] = {"to": recipients}
        if cc_list := _addresses(cc):
            personalization["cc"] = cc_list
        if bcc_list := _addresses(bcc):
            personalization["bcc"] = bcc_list

        sender_block = {"email": sender or settings.FROM_EMAIL}
        if from_name or settings.FROM_NAME:
            sender_block["name"] = from_name or settings.FROM_NAME
        return {
            "personalizations": [personalization],
            "from": sender_block,
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }

    async def send_email(
        self,
        to: str | list[str],
        subject: str,
        html: str,
        cc: str | list[str] | None = None,
        bcc: str | list[str] | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
    ) -> dict[str, Any]:
        sender = from_email or settings.FROM_EMAIL
        recipients = _addresses(to)
        if not recipients:
            return {"status": "failed", "error": "No recipient address", "to": to}

        result = {"from": sender, "to": to, "subject": subject}
        if _is_mock():
            self.logger.info("Mock email | from=%s | to=%s | cc=%s | subject='%s'", sender, to, cc, subject)
            return {**result, "status": "sent", "message_id": str(uuid.uuid4()), "timestamp": _now()}

        payload = self.build_payload(recipients, subject, html, cc, bcc, sender, from_name)
        self.logger.info("Sending email to=%s subject='%s'", to, subject)
        try:
            async with httpx.AsyncClient(timeout=30) as client:
                resp = await client.post(
                    f"{self.SENDGRID_URL}/mail/send",
                    headers={
                        "Authorization": f"Bearer {settings.SENDGRID_API_KEY}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.error("SendGrid email to %s failed: %s", to, e)
            return {**result, "status": "failed", "error": str(e)}

        message_id = resp.headers.get("X-Message-Id") or str(uuid.uuid4())
        self.logger.info("Email sent via SendGrid: %s", message_id)
        return {**result, "status": "sent", "message_id": message_id, "timestamp": _now()}
