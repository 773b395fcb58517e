"""Application settings.

Values come from the environment (and `.env`) once at startup and are
passed explicitly to the services that need them.

Env vars:
  APP_ENV, PORT, CORS_ORIGINS
  SMTP_HOST, SMTP_PORT, SMTP_USER (or EMAIL_USER), SMTP_PASS (or EMAIL_PASS),
  SMTP_FROM, SMTP_TIMEOUT_SECONDS
  WEBHOOK_URL, WEBHOOK_TIMEOUT_SECONDS
  OTP_TTL_SECONDS, OTP_SWEEP_INTERVAL_MINUTES
"""
from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "production"
    port: int = 5000
    cors_origins: Annotated[List[str], NoDecode] = ["*"]

    smtp_host: Optional[str] = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = Field(default=None, validation_alias=AliasChoices("SMTP_USER", "EMAIL_USER"))
    smtp_password: Optional[str] = Field(default=None, validation_alias=AliasChoices("SMTP_PASS", "EMAIL_PASS"))
    smtp_from: Optional[str] = None
    smtp_timeout_seconds: int = 10

    webhook_url: Optional[str] = None
    webhook_timeout_seconds: int = 10

    otp_ttl_seconds: int = 600
    otp_sweep_interval_minutes: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            value = [o.strip() for o in value.split(",") if o.strip()]
        return value or ["*"]

    @field_validator("app_env", mode="before")
    @classmethod
    def default_env(cls, value):
        return (value or "").strip() or "production"

    @field_validator("webhook_url", "smtp_from", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        return value or None

    @property
    def dev_mode(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def sender(self) -> str:
        return self.smtp_from or self.smtp_user or "noreply@example.com"


def load_settings() -> Settings:
    return Settings()
