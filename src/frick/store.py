"""
Durable key-value storage for frick.

Everything the engine persists (blocking flag, session start, daily totals,
profiles) lives in one JSON document. Writes go to a temporary file that
replaces the real one, so readers only ever see a complete document.

Every write happens inside a transaction. The outermost transaction takes a
lock file shared by all frick processes and re-reads the document first, so
concurrent commands never overwrite each other's changes.
"""

import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from frick.settings import settings
from frick.utils.locking import FileLock


class KeyValueStore:
    """JSON-backed key-value store with atomic, optionally batched, writes."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else settings.state_file
        self._lock = threading.RLock()
        self._file_lock = FileLock(self.path.with_suffix(".lock"))
        self._depth = 0
        self._dirty = False
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load state from {self.path}: {e}. Starting fresh.")
            return {}
        if not isinstance(data, dict):
            logger.error(f"State file {self.path} is not an object. Starting fresh.")
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=4, ensure_ascii=False)
        tmp.replace(self.path)
        self._dirty = False

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """
        Batches every write made inside the block into a single flush.

        If the block raises, or the flush itself fails, the in-memory state
        is rolled back to what it was when the block started and the file on
        disk is left untouched.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._file_lock.acquire()
                self._data = self._load()
                self._dirty = False

            snapshot = json.loads(json.dumps(self._data))
            was_dirty = self._dirty
            try:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                if outermost and self._dirty:
                    self._flush()
            except BaseException:
                self._data = snapshot
                self._dirty = was_dirty
                raise
            finally:
                if outermost:
                    self._file_lock.release()

    def reload(self) -> None:
        """Picks up changes written by other processes."""
        with self.transaction():
            pass

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self.transaction():
            self._data[key] = value
            self._dirty = True

    def delete(self, key: str) -> None:
        with self.transaction():
            if key in self._data:
                del self._data[key]
                self._dirty = True

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return [k for k in self._data if k.startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data
