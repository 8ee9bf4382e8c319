"""
Email delivery orchestrator — SMTP (primary) with Brevo (fallback).

Delivery order:
  1. SMTP        — if configured
  2. Brevo REST  — if SMTP fails or is not configured

``Mailer.send`` raises EmailDeliveryFailed when every configured provider
failed. When no provider is configured at all (local development) the email
is logged and skipped. Callers that treat an email as best-effort catch
EmailDeliveryFailed themselves.
"""
from __future__ import annotations

import logging
from html import escape

from fastapi import Depends

from app.config import Settings, get_settings
from app.email import brevo, smtp
from app.exceptions import EmailDeliveryFailed

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    # ── Delivery core ─────────────────────────────────────────────────────────

    async def send(self, to_email: str, to_name: str, subject: str, html: str) -> None:
        settings = self.settings
        attempted = False

        if smtp.is_configured(settings):
            attempted = True
            if await smtp.deliver(to_email, to_name, subject, html, settings):
                return
            logger.warning("SMTP failed for %s — falling back to Brevo", to_email)

        if brevo.is_configured(settings):
            attempted = True
            if await brevo.deliver(to_email, to_name, subject, html, settings):
                return
            logger.error("Brevo fallback also failed for %s", to_email)

        if attempted:
            raise EmailDeliveryFailed()

        logger.warning("No email provider configured — skipping email to %s", to_email)

    # ── Templates ─────────────────────────────────────────────────────────────

    async def send_welcome(self, to_email: str, username: str) -> None:
        name = escape(username)
        await self.send(
            to_email, username,
            "Welcome to Insighta!",
            f"<p>Hi {name},</p>"
            "<p>Welcome to Insighta! Verify your email address to start "
            "reading, writing and sharing your ideas.</p>",
        )

    async def send_verification_code(
        self, to_email: str, username: str, code: str, expire_seconds: int
    ) -> None:
        name = escape(username)
        minutes = max(1, expire_seconds // 60)
        await self.send(
            to_email, username,
            "Your Insighta verification code",
            f"<p>Hi {name},</p>"
            "<p>Use the code below to verify your Insighta account:</p>"
            f"<p style='font-size:28px;font-weight:bold;letter-spacing:6px'>{code}</p>"
            f"<p>The code expires in {minutes} minutes. If you did not create an "
            "account, you can ignore this email.</p>",
        )

    async def send_password_reset(
        self, to_email: str, username: str, token: str, expire_seconds: int
    ) -> None:
        name = escape(username)
        minutes = max(1, expire_seconds // 60)
        reset_url = f"{self.settings.app_base_url}/reset-password?token={token}"
        await self.send(
            to_email, username,
            "Reset your Insighta password",
            f"<p>Hi {name},</p>"
            "<p>We received a request to reset your password.</p>"
            f"<p style='margin:24px 0'><a href='{reset_url}' "
            "style='background:#2563eb;color:#fff;padding:12px 24px;border-radius:6px;"
            "text-decoration:none;font-weight:bold'>Reset password</a></p>"
            f"<p>The link expires in {minutes} minutes and can be used once. "
            "If you did not request a reset, ignore this email.</p>",
        )

    async def send_password_changed(self, to_email: str, username: str) -> None:
        name = escape(username)
        await self.send(
            to_email, username,
            "Your Insighta password was changed",
            f"<p>Hi {name},</p>"
            "<p>The password for your Insighta account was just changed. "
            "If this was not you, reset your password immediately.</p>",
        )


def get_mailer(settings: Settings = Depends(get_settings)) -> Mailer:
    """FastAPI dependency; override in tests with a recording double."""
    return Mailer(settings)
