from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Union

from ..schemas import LawyerRecord


RecordLike = Union[LawyerRecord, Dict[str, Any]]


class Dataset:
    """Append-only JSONL sink for scraped records.

    - One JSON object per line (UTF-8, newline-delimited)
    - Thread-safe (coarse lock); page handlers push concurrently
    - Write errors propagate: a sink that cannot persist is a run failure
    """

    def __init__(self, file_path: Union[str, Path]) -> None:
        self.file_path = Path(file_path)
        self._lock = threading.Lock()
        self._count = 0
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _as_dict(item: RecordLike) -> Dict[str, Any]:
        if isinstance(item, LawyerRecord):
            return item.to_output()
        return dict(item)

    def push_data(self, items: Iterable[RecordLike]) -> int:
        """Append a batch of records; returns how many were written."""
        lines = [json.dumps(self._as_dict(i), ensure_ascii=False) for i in items]
        if not lines:
            return 0
        with self._lock:
            with self.file_path.open("a", encoding="utf-8") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
            self._count += len(lines)
        return len(lines)

    @property
    def count(self) -> int:
        return self._count

    def iter_items(self) -> Iterator[Dict[str, Any]]:
        if not self.file_path.exists():
            return
        with self.file_path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield json.loads(line)

    def get_items(self) -> List[Dict[str, Any]]:
        return list(self.iter_items())
