from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Optional


class RunBudget:
    """Run-scoped counters shared by concurrent page handlers.

    ``max_records == 0`` means no record cap. Every mutation goes through
    the lock; readers get a consistent view via the properties.
    """

    def __init__(self, max_records: int = 50, max_pages: int = 20):
        self.max_records = int(max_records)
        self.max_pages = int(max_pages)
        self._records_emitted = 0
        self._pages_processed = 0
        self._blocked_profiles = 0
        self._extraction_method = "None"
        self.started_at = datetime.now(timezone.utc)
        self._t0 = time.perf_counter()
        self._lock = threading.Lock()

    @property
    def records_emitted(self) -> int:
        with self._lock:
            return self._records_emitted

    @property
    def pages_processed(self) -> int:
        with self._lock:
            return self._pages_processed

    @property
    def blocked_profiles(self) -> int:
        with self._lock:
            return self._blocked_profiles

    @property
    def extraction_method(self) -> str:
        with self._lock:
            return self._extraction_method

    def start_page(self) -> int:
        with self._lock:
            self._pages_processed += 1
            return self._pages_processed

    def remaining(self) -> Optional[int]:
        """Records still allowed, or None when unbounded."""
        if self.max_records == 0:
            return None
        with self._lock:
            return max(0, self.max_records - self._records_emitted)

    def reserve(self, wanted: int) -> int:
        """Atomically claim up to ``wanted`` record slots; returns the grant."""
        with self._lock:
            if self.max_records == 0:
                granted = wanted
            else:
                granted = max(0, min(wanted, self.max_records - self._records_emitted))
            self._records_emitted += granted
            return granted

    def release(self, n: int) -> None:
        """Return slots claimed for records that were never written."""
        with self._lock:
            self._records_emitted = max(0, self._records_emitted - int(n))

    def record_method(self, label: str) -> None:
        with self._lock:
            self._extraction_method = label

    def add_blocked(self, n: int) -> None:
        with self._lock:
            self._blocked_profiles += int(n)

    def records_exhausted(self) -> bool:
        with self._lock:
            return self.max_records > 0 and self._records_emitted >= self.max_records

    def pages_exhausted(self) -> bool:
        with self._lock:
            return self.max_pages > 0 and self._pages_processed >= self.max_pages

    def elapsed_s(self) -> float:
        return max(0.0, time.perf_counter() - self._t0)
