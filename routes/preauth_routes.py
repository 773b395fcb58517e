"""Pre-authorization claim submission routes (requires a verified email)"""
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from routes.dependencies import get_otp_service, get_preauth_service
from services.otp_service import GateDecision, OTPService
from services.preauth_service import PreAuthService, SubmissionError

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
MAX_AMOUNT = 100_000_000


class PreAuthRequest(BaseModel):
    patientName: str
    email: str
    phoneNumber: str
    hospitalName: str
    policyPrefix: str
    policyNumber: str
    treatmentType: str
    estimatedAmount: str
    doctorNotes: Optional[str] = ""

    @field_validator("patientName")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Patient name is required")
        if not NAME_RE.match(value):
            raise ValueError("Name can only contain letters and spaces")
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        if len(value) > 100:
            raise ValueError("Name is too long")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Email is required")
        if not EMAIL_RE.match(value):
            raise ValueError("Please enter a valid email address")
        if len(value) > 255:
            raise ValueError("Email is too long")
        return value

    @field_validator("phoneNumber")
    @classmethod
    def check_phone(cls, value: str) -> str:
        digits = re.sub(r"\D", "", value)
        if len(digits) != 10:
            raise ValueError("Phone number must be exactly 10 digits")
        return digits

    @field_validator("hospitalName", "policyPrefix", "policyNumber", "treatmentType")
    @classmethod
    def check_required(cls, value: str, info) -> str:
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name} is required")
        return value

    @field_validator("estimatedAmount", mode="before")
    @classmethod
    def check_amount(cls, value) -> str:
        value = str(value).strip()
        if not value:
            raise ValueError("Estimated amount is required")
        if not value.isdigit():
            raise ValueError("Amount must be a number")
        amount = int(value)
        if amount <= 0:
            raise ValueError("Amount must be greater than 0")
        if amount > MAX_AMOUNT:
            raise ValueError("Amount is too high")
        return str(amount)


DENIAL_MESSAGES = {
    GateDecision.DENY_NO_RECORD: "Email not verified. Please request and verify an OTP first.",
    GateDecision.DENY_NOT_VERIFIED: "Email not verified. Please verify the OTP sent to your email.",
    GateDecision.DENY_EXPIRED: "OTP verification has expired. Please request a new one.",
    GateDecision.DENY_IN_PROGRESS: "A submission for this email is already in progress.",
}


def require_verified_email(claim: PreAuthRequest,
                           otp_service: OTPService = Depends(get_otp_service)) -> PreAuthRequest:
    """Gate: claims the email's live, verified OTP for this request only."""
    decision = otp_service.claim(claim.email)
    if not decision.allowed:
        logger.info("Submission blocked for %s: %s", claim.email, decision.value)
        raise HTTPException(status_code=403, detail=DENIAL_MESSAGES[decision])
    return claim


@router.post("/submit-preauth")
def submit_preauth(claim: PreAuthRequest = Depends(require_verified_email),
                   preauth_service: PreAuthService = Depends(get_preauth_service)):
    try:
        result = preauth_service.submit(claim.model_dump())
    except SubmissionError as e:
        logger.error("Error submitting form for %s: %s", claim.email, e)
        raise HTTPException(status_code=500, detail="Failed to submit form. Please try again.")
    return {
        "success": True,
        "message": "Pre-authorization submitted successfully",
        "webhookDelivered": result.webhook_delivered,
    }
