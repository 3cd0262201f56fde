from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, TypeVar


T = TypeVar("T")


class JsonDocument:
    """A single JSON file read and rewritten as a whole under one lock.

    Writes go to a temporary file in the same directory and are moved into
    place, so readers never observe a half-written document.
    """

    def __init__(self, path: Path, *, empty: Callable[[], Any]) -> None:
        self._path = path
        self._empty = empty
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Any:
        with self._lock:
            if not self._path.exists():
                return self._empty()
            return json.loads(self._path.read_text(encoding="utf-8"))

    def modify(self, change: Callable[[Any], T]) -> T:
        """Run a read-modify-write cycle; `change` mutates the data in place."""
        with self._lock:
            data = self.read()
            result = change(data)
            self._write(data)
            return result

    def _write(self, data: Any) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(data, fp, ensure_ascii=False, indent=2)
                fp.write("\n")
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
