"""
Outbound email — delivers login codes.

Architecture:
  - Mailer (protocol) defines the interface
  - ConsoleMailer logs the code for development and tests
  - ResendMailer calls the Resend HTTP API
  - Outside production, or with no RESEND_API_KEY, the console mailer is used

The OTP service receives a mailer explicitly; ``get_mailer`` is only
the default the HTTP layer hands it.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from learnpath.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Mailer protocol
# ---------------------------------------------------------------------------


class Mailer(Protocol):
    async def send_otp(self, email: str, otp: str) -> bool: ...


def render_otp_email(otp: str) -> str:
    minutes = settings.OTP_EXPIRE_MINUTES
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #333;">Your Verification Code</h2>'
        f"<p>Use the following code to log in to {settings.APP_NAME}:</p>"
        '<div style="background: #f5f5f5; padding: 20px; text-align: center; '
        'margin: 20px 0; border-radius: 8px;">'
        '<span style="font-size: 32px; font-weight: bold; letter-spacing: 8px; color: #333;">'
        f"{otp}</span></div>"
        f'<p style="color: #666; font-size: 14px;">This code expires in {minutes} minutes.</p>'
        '<p style="color: #999; font-size: 12px;">If you didn\'t request this code, '
        "you can safely ignore this email.</p>"
        "</div>"
    )


# ---------------------------------------------------------------------------
# Console mailer (development / testing)
# ---------------------------------------------------------------------------


class ConsoleMailer:
    """Logs the code instead of sending it."""

    async def send_otp(self, email: str, otp: str) -> bool:
        logger.info(
            "OTP for %s: %s (expires in %d minutes)",
            email, otp, settings.OTP_EXPIRE_MINUTES,
        )
        return True


# ---------------------------------------------------------------------------
# Resend mailer
# ---------------------------------------------------------------------------


class ResendMailer:
    """Posts transactional mail to the Resend API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._sender = sender
        self._transport = transport

    async def send_otp(self, email: str, otp: str) -> bool:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "from": self._sender,
            "to": [email],
            "subject": "Your Login Code",
            "html": render_otp_email(otp),
        }

        try:
            async with httpx.AsyncClient(timeout=15, transport=self._transport) as client:
                resp = await client.post(self._api_url, json=payload, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Resend request failed: %s", exc.response.status_code)
            return False
        except httpx.RequestError as exc:
            logger.error("Resend request error: %s", exc)
            return False

        return True


# ---------------------------------------------------------------------------
# Factory: selects mailer based on config
# ---------------------------------------------------------------------------

_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Return the configured mailer (cached after first call)."""
    global _mailer
    if _mailer is not None:
        return _mailer

    if settings.is_production and settings.RESEND_API_KEY:
        logger.info("Using ResendMailer for OTP delivery")
        _mailer = ResendMailer(
            api_url=settings.RESEND_API_URL,
            api_key=settings.RESEND_API_KEY,
            sender=settings.EMAIL_FROM,
        )
    else:
        logger.info("Using ConsoleMailer for OTP delivery")
        _mailer = ConsoleMailer()
    return _mailer


def set_mailer(mailer: Mailer | None) -> None:
    """Override the mailer (used in tests). ``None`` restores the default."""
    global _mailer
    _mailer = mailer
