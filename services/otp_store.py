"""In-memory OTP record store with per-identity locking.

Records live only as long as the process. Callers wrap every
read-check-mutate sequence in `store.locked(identity)`. Locks come from a
fixed pool indexed by the identity's hash, so the lock table never grows.
"""
import time
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Iterator, List, Optional

LOCK_STRIPES = 64


@dataclass
class OTPRecord:
    identity: str
    code: str
    expires_at: float
    verified: bool = False
    # set while a gated submission is in flight
    claimed: bool = False
    display_name: Optional[str] = None

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class OTPStore:
    def __init__(self, clock: Callable[[], float] = time.time, stripes: int = LOCK_STRIPES):
        self._clock = clock
        self._records: Dict[str, OTPRecord] = {}
        self._locks: List[Lock] = [Lock() for _ in range(stripes)]

    def now(self) -> float:
        return self._clock()

    def _lock_for(self, identity: str) -> Lock:
        return self._locks[hash(identity) % len(self._locks)]

    @contextmanager
    def locked(self, identity: str) -> Iterator[None]:
        # never nest: two identities may share a stripe
        with self._lock_for(identity):
            yield

    # The accessors below expect the caller to hold `locked(identity)`.
    def get(self, identity: str) -> Optional[OTPRecord]:
        return self._records.get(identity)

    def put(self, record: OTPRecord) -> None:
        self._records[record.identity] = record

    def delete(self, identity: str) -> bool:
        return self._records.pop(identity, None) is not None

    def identities(self) -> List[str]:
        """Snapshot of the keys currently stored."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
