from __future__ import annotations

import threading
from typing import Iterable, List, Optional, Set

from ..logging_config import get_logger
from ..schemas import LawyerRecord


log = get_logger(__name__)


class Deduplicator:
    """Run-wide filter on the profile URL identity key.

    Records without a profile URL have no identity and are always admitted.
    Keys leave the seen-set only when their records could not be written.
    Concurrent page handlers share one instance.
    """

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._lock = threading.Lock()

    def admit(self, record: LawyerRecord) -> bool:
        key = record.identity_key
        if not key:
            return True
        with self._lock:
            if key in self._seen:
                log.debug(f"Skipping duplicate lawyer: {record.name} ({key})")
                return False
            self._seen.add(key)
        return True

    def take(self, records: Iterable[LawyerRecord], limit: Optional[int] = None) -> List[LawyerRecord]:
        """Admit records in order until ``limit`` are kept; None keeps all."""
        kept: List[LawyerRecord] = []
        removed = 0
        for record in records:
            if limit is not None and len(kept) >= limit:
                break
            if self.admit(record):
                kept.append(record)
            else:
                removed += 1
        if removed > 0:
            log.info(f"Removed {removed} duplicate lawyers")
        return kept

    def release(self, records: Iterable[LawyerRecord]) -> None:
        """Forget keys admitted for records that were never written."""
        with self._lock:
            for record in records:
                if record.identity_key:
                    self._seen.discard(record.identity_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._seen
