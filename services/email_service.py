"""Email Service for OTP and claim confirmation delivery.

If SMTP credentials are not configured and the app runs in development mode,
falls back to logging the message instead of sending it. Outside development
mode a missing configuration is reported as a failed delivery.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Optional

from config import Settings
from services.delivery import DeliveryResult
from utils.email_templates import render_confirmation_email, render_otp_email

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.sender
        self.timeout = settings.smtp_timeout_seconds

    @property
    def enabled(self) -> bool:
        return all([self.host, self.port, self.user, self.password, self.sender]) and self.port > 0

    def _build_message(self, to_email: str, subject: str, html: str, text: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _send(self, to_email: str, subject: str, html: str, text: str) -> DeliveryResult:
        if not self.enabled:
            if self.settings.dev_mode:
                logger.info("Dev mode (no SMTP configured). Would send %r to %s:\n%s", subject, to_email, text)
                return DeliveryResult(ok=True, skipped=True)
            logger.error("SMTP is not configured; cannot send %r to %s", subject, to_email)
            return DeliveryResult.failure("SMTP not configured")
        try:
            msg = self._build_message(to_email, subject, html, text)
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed sending %r to %s: %s", subject, to_email, e)
            return DeliveryResult.failure(str(e))
        logger.info("Sent %r to %s", subject, to_email)
        return DeliveryResult.success()

    def send_otp_email(self, to_email: str, otp: str, display_name: Optional[str] = None) -> DeliveryResult:
        html, text = render_otp_email(otp, display_name, self.settings.otp_ttl_seconds)
        return self._send(to_email, "Pre-Authorization OTP Verification", html, text)

    def send_confirmation_email(self, claim: Dict[str, str]) -> DeliveryResult:
        html, text = render_confirmation_email(claim)
        return self._send(claim["email"], "Pre-Authorization Request Received", html, text)

