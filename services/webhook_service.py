"""Forwards submitted claims to an external workflow endpoint."""
import logging
from typing import Any, Dict

import requests

from config import Settings
from services.delivery import DeliveryResult

logger = logging.getLogger(__name__)


class WebhookService:
    def __init__(self, settings: Settings):
        self.url = settings.webhook_url
        self.timeout = settings.webhook_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def forward_claim(self, claim: Dict[str, Any]) -> DeliveryResult:
        """POST the claim as JSON. Never raises; the outcome is in the result."""
        if not self.enabled:
            logger.info("WEBHOOK_URL not set; skipping claim forward for %s", claim.get("email"))
            return DeliveryResult(ok=True, skipped=True)
        try:
            response = requests.post(self.url, json=claim, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout:
            return DeliveryResult.failure(f"webhook timed out after {self.timeout}s")
        except requests.exceptions.HTTPError as e:
            return DeliveryResult.failure(f"webhook returned {e.response.status_code}")
        except requests.RequestException as e:
            return DeliveryResult.failure(f"webhook request failed: {e}")
        return DeliveryResult.success()
