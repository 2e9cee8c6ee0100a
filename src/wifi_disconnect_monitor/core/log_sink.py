"""Append-only, timestamped monitor log.

Every append opens the file, writes one entry and closes it again, so the
monitor loop and the event collector can both write without sharing a handle
or a lock.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import aiofiles

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
ENCODING = "utf-8"
# Lone surrogates (undecodable interface names, event text) are escaped, not fatal.
ENCODE_ERRORS = "backslashreplace"


def format_entry(message: str, *, when: datetime) -> str:
    """Render one log entry (without the trailing newline)."""
    return f"[{when.strftime(TIMESTAMP_FORMAT)}] {message}"


class LogSink:
    """Append-only text log shared by every component of a session."""

    def __init__(self, path: str | Path, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.path = Path(path)
        self._clock = clock

    async def append(self, message: str) -> bool:
        """Append one entry. Returns False (and logs to stderr) if the write failed."""
        entry = format_entry(message, when=self._clock())
        logger.info("%s", entry)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(
                self.path, mode="a", encoding=ENCODING, errors=ENCODE_ERRORS
            ) as f:
                await f.write(entry + "\n")
        except (OSError, ValueError) as exc:
            logger.error("Failed to write to log file %s: %s", self.path, exc)
            return False
        return True

    async def read_text(self) -> str:
        """Return the whole log (empty if nothing has been written yet)."""
        if not self.path.exists():
            return ""
        async with aiofiles.open(self.path, encoding=ENCODING, errors="replace") as f:
            return await f.read()
