from __future__ import annotations

import json
import re
import threading
from pathlib import Path
from typing import Any, Optional, Union


_EXTENSIONS = {
    "application/json": ".json",
    "text/html": ".html",
    "text/plain": ".txt",
}
_KEY_RE = re.compile(r"^[A-Za-z0-9!\-_.'()]{1,256}$")


class KeyValueStore:
    """Directory-backed blob store keyed by name.

    ``set_value("statistics", {...})`` writes ``<root>/statistics.json``;
    ``set_value("DEBUG_PAGE_HTML", html, content_type="text/html")`` writes
    ``<root>/DEBUG_PAGE_HTML.html``. Setting a key again replaces it.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path_for(self, key: str, content_type: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"invalid key: {key!r}")
        ext = _EXTENSIONS.get(content_type.split(";")[0].strip().lower(), ".bin")
        return self.root / f"{key}{ext}"

    def set_value(self, key: str, value: Any, content_type: str = "application/json") -> Path:
        path = self._path_for(key, content_type)
        if path.suffix == ".json":
            payload = json.dumps(value, ensure_ascii=False, indent=2, default=str)
        elif isinstance(value, bytes):
            payload = value.decode("utf-8", errors="replace")
        else:
            payload = str(value)
        with self._lock:
            # Drop stale copies stored under another content type
            for old in self.root.glob(f"{key}.*"):
                if old != path:
                    old.unlink(missing_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(payload, encoding="utf-8")
            tmp.replace(path)
        return path

    def get_value(self, key: str) -> Optional[Any]:
        for path in sorted(self.root.glob(f"{key}.*")):
            if path.suffix == ".tmp":
                continue
            text = path.read_text(encoding="utf-8")
            if path.suffix == ".json":
                return json.loads(text)
            return text
        return None
