"""
Physical tag access.

The engine only needs something that can be scanned for a text payload and
written with one. `FileTag` treats a file as the tag: scanning waits for the file
to appear, either at the configured path or as `frick.tag` at the root of any
removable drive, and reads it verbatim.
"""

import asyncio
from pathlib import Path
from typing import Protocol

from loguru import logger

from frick.errors import ScanFailed
from frick.settings import settings
from frick.utils.paths import tag_locations


class TagAuthenticator(Protocol):
    async def scan(self) -> str:
        """Waits for a tag and returns its payload. Raises ScanFailed."""
        ...

    async def write(self, payload: str) -> bool:
        """Writes `payload` to a tag, returning whether it succeeded."""
        ...


class FileTag:
    """A tag backed by a file on disk."""

    def __init__(
        self,
        path: Path | None = None,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ):
        self.explicit = path is not None
        self.path = Path(path) if path is not None else settings.tag_file
        self.timeout = settings.scan_timeout_seconds if timeout is None else timeout
        self.poll_interval = (
            settings.scan_poll_interval if poll_interval is None else poll_interval
        )

    async def scan(self) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout

        logger.debug(f"Waiting for tag at {self.path}")
        found = self.find()
        while found is None:
            if loop.time() >= deadline:
                raise ScanFailed(f"No tag presented within {self.timeout:g}s ({self.path})")
            await asyncio.sleep(self.poll_interval)
            found = self.find()

        try:
            payload = found.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanFailed(f"Could not read tag at {found}: {e}") from e

        logger.debug(f"Read {len(payload)} characters from tag at {found}")
        return payload

    def find(self) -> Path | None:
        """The first location holding a tag. Without an explicit path, removable drives count too."""
        candidates = [self.path] if self.explicit else tag_locations(self.path)
        return next((p for p in candidates if p.is_file()), None)

    async def write(self, payload: str) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write tag at {self.path}: {e}")
            return False
        logger.info(f"Tag written at {self.path}")
        return True
