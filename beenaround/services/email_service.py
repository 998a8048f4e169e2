import logging
from typing import Optional

import httpx

from ..config import settings
from ..exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


def render_otp_email(otp: str, expiry_minutes: int, resend: bool = False) -> str:
    intro = "Your new OTP for password reset is" if resend else "Your OTP for password reset is"
    return (
        f"<p>{intro}: <strong>{otp}</strong></p>"
        f"<p>This OTP will expire in {expiry_minutes} minutes.</p>"
        "<p>If you didn't request this, please ignore this email.</p>"
    )


class EmailService:
    """Sends transactional mail through the SendGrid v3 REST API."""

    def __init__(
        self,
        api_key: Optional[str],
        from_email: str,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout_seconds: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url
        self.timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "EmailService":
        return cls(
            api_key=settings.sendgrid_api_key,
            from_email=settings.sendgrid_from_email,
            api_url=settings.sendgrid_api_url,
            timeout_seconds=settings.http_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self.enabled:
            logger.info(
                f"SendGrid not configured; skipping email '{subject}' to {to}")
            return

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"SendGrid request failed: {e}") from e

        if response.status_code >= 300:
            raise EmailDeliveryError(
                f"SendGrid returned {response.status_code}: {response.text[:200]}")
        logger.info(f"Sent email '{subject}' to {to}")
