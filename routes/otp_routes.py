"""OTP routes: send, verify and status for email verification"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from config import Settings
from routes.dependencies import get_otp_service, get_settings
from services.otp_service import OTPIssueError, OTPService, VerifyResult

logger = logging.getLogger(__name__)

router = APIRouter()


class SendOTPRequest(BaseModel):
    email: Optional[str] = None
    patientName: Optional[str] = None


class VerifyOTPRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None


class OTPStatusRequest(BaseModel):
    email: Optional[str] = None


VERIFY_MESSAGES = {
    VerifyResult.NOT_FOUND: "OTP not found or expired. Please request a new one.",
    VerifyResult.EXPIRED: "OTP has expired. Please request a new one.",
    VerifyResult.MISMATCH: "Invalid OTP. Please try again.",
}


@router.post("/send-otp")
def send_otp(payload: SendOTPRequest,
             otp_service: OTPService = Depends(get_otp_service),
             settings: Settings = Depends(get_settings)):
    """Issue a fresh OTP for the email and deliver it. Any earlier code stops working."""
    if not (payload.email or "").strip():
        raise HTTPException(status_code=400, detail="Email is required")
    try:
        issued = otp_service.issue(payload.email, payload.patientName)
    except OTPIssueError as e:
        logger.error("Error sending OTP to %s: %s", payload.email, e)
        raise HTTPException(status_code=500, detail="Failed to send OTP. Please try again.")
    resp = {"success": True, "message": "OTP sent successfully"}
    if settings.dev_mode:
        resp["devOTP"] = issued.code
    return resp


@router.post("/verify-otp")
def verify_otp(payload: VerifyOTPRequest, otp_service: OTPService = Depends(get_otp_service)):
    if not (payload.email or "").strip() or not (payload.otp or "").strip():
        raise HTTPException(status_code=400, detail="Email and OTP are required")
    result = otp_service.verify(payload.email, payload.otp)
    if result is not VerifyResult.VERIFIED:
        raise HTTPException(status_code=400, detail=VERIFY_MESSAGES[result])
    return {"success": True, "otpVerified": True, "message": "Email verified successfully"}


@router.post("/check-otp-status")
def check_otp_status(payload: OTPStatusRequest, otp_service: OTPService = Depends(get_otp_service)):
    """Read-only view of the email's OTP state (expired records are dropped)."""
    if not (payload.email or "").strip():
        raise HTTPException(status_code=400, detail="Email is required")
    status = otp_service.status(payload.email)
    if status.verified:
        message = "Email is verified"
    elif status.exists:
        message = "OTP pending verification"
    elif status.expired:
        message = "OTP has expired. Please request a new one."
    else:
        message = "No OTP found for this email"
    return {
        "success": True,
        "otpVerified": status.verified,
        "exists": status.exists,
        "expired": status.expired,
        "message": message,
    }
