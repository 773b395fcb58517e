"""Request dependencies resolving the services owned by the running app."""
from fastapi import Request

from config import Settings
from services.otp_service import OTPService
from services.preauth_service import PreAuthService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_otp_service(request: Request) -> OTPService:
    return request.app.state.otp_service


def get_preauth_service(request: Request) -> PreAuthService:
    return request.app.state.preauth_service
