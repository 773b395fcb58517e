import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from services.delivery import DeliveryResult
from services.otp_service import OTPService
from services.otp_store import OTPStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEmailService:
    """Stands in for EmailService; remembers what would have been sent."""

    def __init__(self):
        self.otp_emails = []
        self.confirmations = []
        self.fail_otp = False
        self.fail_confirmation = False

    def send_otp_email(self, to_email, otp, display_name=None):
        if self.fail_otp:
            return DeliveryResult.failure("smtp down")
        self.otp_emails.append({"to": to_email, "otp": otp, "name": display_name})
        return DeliveryResult.success()

    def send_confirmation_email(self, claim):
        if self.fail_confirmation:
            return DeliveryResult.failure("smtp down")
        self.confirmations.append(claim)
        return DeliveryResult.success()

    def last_code(self, email):
        return [m["otp"] for m in self.otp_emails if m["to"] == email][-1]


class RecordingWebhook:
    def __init__(self):
        self.forwarded = []
        self.fail = False

    def forward_claim(self, claim):
        if self.fail:
            return DeliveryResult.failure("webhook timed out after 10s")
        self.forwarded.append(claim)
        return DeliveryResult.success()


@pytest.fixture
def settings():
    return Settings(app_env="production", otp_ttl_seconds=600, otp_sweep_interval_minutes=0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return OTPStore(clock=clock)


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def webhook():
    return RecordingWebhook()


@pytest.fixture
def otp_service(settings, store, email_service):
    return OTPService(settings, store, email_service)


@pytest.fixture
def client(settings, store, email_service, webhook):
    app = create_app(settings=settings, store=store, email_service=email_service, webhook_service=webhook)
    return TestClient(app)


@pytest.fixture
def valid_claim():
    return {
        "patientName": "Asha Rao",
        "email": "a@x.com",
        "phoneNumber": "98765 43210",
        "hospitalName": "Apollo Hospital",
        "policyPrefix": "APL-",
        "policyNumber": "123456",
        "treatmentType": "Surgery",
        "estimatedAmount": "250000",
        "doctorNotes": "Knee replacement",
    }
