"""Pre-authorization claim submission.

Runs after the verification gate has claimed the claimant's verified OTP:
confirmation email (required), webhook forward (best effort), then the
record is consumed so it cannot authorize a second submission. A failed
confirmation email releases the claim so the user can retry.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict

from services.email_service import EmailService
from services.otp_service import OTPService
from services.webhook_service import WebhookService

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Raised when the confirmation email could not be delivered."""


@dataclass(frozen=True)
class SubmissionResult:
    email: str
    webhook_delivered: bool


class PreAuthService:
    def __init__(self, otp_service: OTPService, email_service: EmailService, webhook_service: WebhookService):
        self.otp_service = otp_service
        self.email_service = email_service
        self.webhook_service = webhook_service

    def submit(self, claim: Dict[str, Any]) -> SubmissionResult:
        """Run a submission whose email the caller has already claimed."""
        email = claim["email"]
        logger.info("Pre-authorization submitted for %s (%s)", email, claim.get("treatmentType"))

        try:
            confirmation = self.email_service.send_confirmation_email(claim)
            if not confirmation.ok:
                raise SubmissionError(confirmation.error or "confirmation email failed")
        except Exception:
            self.otp_service.release(email)
            raise

        forwarded = self.webhook_service.forward_claim(claim)
        if not forwarded.ok:
            logger.warning("Webhook forward failed for %s: %s", email, forwarded.error)

        if not self.otp_service.consume(email):
            logger.warning("No verified OTP left to consume for %s", email)
        return SubmissionResult(email=email, webhook_delivered=forwarded.ok and not forwarded.skipped)
