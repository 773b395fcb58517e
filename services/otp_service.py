"""OTP Service - issues, verifies and gates on email one-time passwords.

Codes are six digits in the range 100000-999999 and live for
`settings.otp_ttl_seconds`. A correct code marks the record verified; the
record is then kept until the gated operation consumes it or it expires.
"""
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import Settings
from services.email_service import EmailService
from services.otp_store import OTPRecord, OTPStore

logger = logging.getLogger(__name__)


class OTPIssueError(Exception):
    """Raised when the OTP email could not be delivered."""


class VerifyResult(str, Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


class GateDecision(str, Enum):
    ALLOW = "allow"
    DENY_NO_RECORD = "no_record"
    DENY_NOT_VERIFIED = "not_verified"
    DENY_EXPIRED = "expired"
    DENY_IN_PROGRESS = "in_progress"

    @property
    def allowed(self) -> bool:
        return self is GateDecision.ALLOW


@dataclass(frozen=True)
class IssueResult:
    identity: str
    expires_at: float
    code: str


@dataclass(frozen=True)
class OTPStatus:
    exists: bool
    verified: bool
    expired: bool


def normalize_identity(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def generate_code() -> str:
    return f"{random.randint(100000, 999999)}"


class OTPService:
    def __init__(self, settings: Settings, store: OTPStore, email_service: EmailService):
        self.settings = settings
        self.store = store
        self.email_service = email_service
        self.ttl_seconds = settings.otp_ttl_seconds

    def _drop_if_expired(self, identity: str, record: Optional[OTPRecord]) -> Optional[OTPRecord]:
        # caller holds the key lock
        if record is not None and record.is_expired(self.store.now()):
            self.store.delete(identity)
            logger.info("Expired OTP removed for %s", identity)
            return None
        return record

    def issue(self, email: str, display_name: Optional[str] = None) -> IssueResult:
        identity = normalize_identity(email)
        if not identity:
            raise ValueError("email is required")
        code = generate_code()
        with self.store.locked(identity):
            expires_at = self.store.now() + self.ttl_seconds
            self.store.put(OTPRecord(identity=identity, code=code, expires_at=expires_at,
                                     display_name=display_name))
        if self.settings.dev_mode:
            logger.info("OTP for %s: %s", identity, code)
        else:
            logger.info("OTP issued for %s", identity)

        result = self.email_service.send_otp_email(identity, code, display_name)
        if not result.ok:
            raise OTPIssueError(result.error or "delivery failed")
        return IssueResult(identity=identity, expires_at=expires_at, code=code)

    def verify(self, email: str, submitted_code: str) -> VerifyResult:
        identity = normalize_identity(email)
        submitted = (submitted_code or "").strip()
        with self.store.locked(identity):
            record = self.store.get(identity)
            if record is None:
                return VerifyResult.NOT_FOUND
            if self._drop_if_expired(identity, record) is None:
                return VerifyResult.EXPIRED
            # a verified record has no pending code left to check
            if record.verified:
                return VerifyResult.NOT_FOUND
            if submitted != record.code:
                return VerifyResult.MISMATCH
            record.verified = True
        logger.info("OTP verified for %s", identity)
        return VerifyResult.VERIFIED

    def _gate(self, identity: str) -> GateDecision:
        # caller holds the key lock
        record = self.store.get(identity)
        if record is None:
            return GateDecision.DENY_NO_RECORD
        if self._drop_if_expired(identity, record) is None:
            return GateDecision.DENY_EXPIRED
        if not record.verified:
            return GateDecision.DENY_NOT_VERIFIED
        if record.claimed:
            return GateDecision.DENY_IN_PROGRESS
        return GateDecision.ALLOW

    def require_verified(self, email: str) -> GateDecision:
        """Read-only gate check; does not reserve the record."""
        identity = normalize_identity(email)
        with self.store.locked(identity):
            return self._gate(identity)

    def claim(self, email: str) -> GateDecision:
        """Gate check that reserves the verified record for one submission.

        Only one caller gets ALLOW until the record is released or consumed.
        """
        identity = normalize_identity(email)
        with self.store.locked(identity):
            decision = self._gate(identity)
            if decision.allowed:
                self.store.get(identity).claimed = True
        return decision

    def release(self, email: str) -> bool:
        """Undo a claim after a failed submission so the user can retry."""
        identity = normalize_identity(email)
        with self.store.locked(identity):
            record = self.store.get(identity)
            if record is None or not record.claimed:
                return False
            record.claimed = False
        return True

    def consume(self, email: str) -> bool:
        """Delete a verified, unexpired record. Returns False if there was none."""
        identity = normalize_identity(email)
        with self.store.locked(identity):
            record = self._drop_if_expired(identity, self.store.get(identity))
            if record is None or not record.verified:
                return False
            self.store.delete(identity)
        logger.info("OTP consumed for %s", identity)
        return True

    def status(self, email: str) -> OTPStatus:
        identity = normalize_identity(email)
        with self.store.locked(identity):
            record = self.store.get(identity)
            if record is None:
                return OTPStatus(exists=False, verified=False, expired=False)
            if self._drop_if_expired(identity, record) is None:
                return OTPStatus(exists=False, verified=False, expired=True)
            return OTPStatus(exists=True, verified=record.verified, expired=False)

    def purge_expired(self) -> int:
        """Remove every expired record. Used by the periodic sweeper."""
        removed = 0
        for identity in self.store.identities():
            with self.store.locked(identity):
                record = self.store.get(identity)
                if record is not None and record.is_expired(self.store.now()):
                    self.store.delete(identity)
                    removed += 1
        if removed:
            logger.info("Swept %d expired OTP record(s)", removed)
        return removed
