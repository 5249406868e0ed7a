from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional


class DuplicateSendError(Exception):
    def __init__(self, operation_id: str, seconds_since_last: float):
        super().__init__("duplicate_send")
        self.operation_id = operation_id
        self.seconds_since_last = seconds_since_last


class SendDeduplicator:
    """
    Time-windowed guard against accidental double sends.

    Process-local and in-memory: it does not survive a restart and is not
    shared across instances. Owned by a CampaignFanOut instance.
    """

    def __init__(
        self,
        window_sec: float = 5.0,
        retention_sec: float = 600.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.window_sec = float(window_sec)
        self.retention_sec = max(float(retention_sec), self.window_sec)
        self._clock = clock or time.monotonic
        self._accepted: Dict[str, float] = {}
        self._lock = threading.Lock()

    def acquire(self, operation_id: str) -> None:
        """Record operation_id as accepted now, or raise DuplicateSendError."""
        now = self._clock()
        with self._lock:
            last = self._accepted.get(operation_id)
            if last is not None and (now - last) < self.window_sec:
                raise DuplicateSendError(operation_id, now - last)
            self._accepted[operation_id] = now

    def release(self, operation_id: str) -> None:
        with self._lock:
            self._accepted.pop(operation_id, None)

    def prune(self) -> int:
        cutoff = self._clock() - self.retention_sec
        with self._lock:
            stale = [k for k, ts in self._accepted.items() if ts < cutoff]
            for k in stale:
                del self._accepted[k]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._accepted)
