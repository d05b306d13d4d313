from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any


class JsonlLogger:
    """Append-only JSON-lines event log, safe to share between router threads."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None
        self._fh = None
        self._lock = threading.Lock()
        if self._path:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._path.open("w", encoding="utf-8")

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def closed(self) -> bool:
        return self._fh is None

    def log(self, event: str, **kwargs: Any) -> None:
        with self._lock:
            if not self._fh:
                return
            row = {"event": event, **kwargs}
            self._fh.write(json.dumps(row, sort_keys=True) + "\n")
            self._fh.flush()

    def close(self) -> None:
        with self._lock:
            if self._fh:
                self._fh.close()
                self._fh = None
