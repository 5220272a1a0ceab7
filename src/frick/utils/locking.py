"""
Exclusive file lock shared between frick processes.

Unix uses fcntl.flock(), Windows msvcrt.locking(). The OS drops the lock when
the holding process exits, even on a crash.
"""

import sys
from pathlib import Path
from typing import IO


class FileLock:
    """Blocking, exclusive lock on `path`. Not reentrant; callers nest above it."""

    def __init__(self, path: Path):
        self.path = path
        self._handle: IO | None = None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(self.path, "a+")
        try:
            if sys.platform == "win32":
                import msvcrt

                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
            else:
                import fcntl

                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        except OSError:
            handle.close()
            raise
        self._handle = handle

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            if sys.platform == "win32":
                import msvcrt

                self._handle.seek(0)
                msvcrt.locking(self._handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                import fcntl

                fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
