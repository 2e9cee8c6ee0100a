"""Collaborator interfaces.

Implementations are synchronous; the async core calls them through
``asyncio.to_thread`` so a slow PowerShell or journalctl call never blocks
the event loop.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from ..core.models import AdapterRecord, CommandResult, DiagnosticRecord, LogLevel, UnreadableRecord


class AdapterSource(Protocol):
    """Enumerates every network adapter on the host."""

    def list_adapters(self) -> Sequence[AdapterRecord | UnreadableRecord]:
        """Return a fresh snapshot of all adapters.

        Entries that could not be parsed come back as `UnreadableRecord`.
        """
        ...


class DiagnosticSource(Protocol):
    """Queries OS diagnostic records (Windows event log, systemd journal)."""

    def query(
        self,
        providers: Sequence[str],
        *,
        since: datetime,
        max_level: LogLevel | None = None,
    ) -> Sequence[DiagnosticRecord | UnreadableRecord]:
        """Return records from `providers` newer than `since`.

        When `max_level` is given only records at least that severe are returned.
        Records that could not be parsed come back as `UnreadableRecord`.
        """
        ...


class CommandRunner(Protocol):
    """Runs an external command without stdin and captures its stdout."""

    def run(self, argv: Sequence[str]) -> CommandResult:
        ...
