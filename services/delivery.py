"""Outcome of an outbound delivery (email or webhook)."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    error: Optional[str] = None
    # True when nothing was sent because the channel is not configured
    skipped: bool = False

    @classmethod
    def success(cls) -> "DeliveryResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "DeliveryResult":
        return cls(ok=False, error=error)
