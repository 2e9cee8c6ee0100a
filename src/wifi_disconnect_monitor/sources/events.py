"""OS diagnostic-record sources (Windows event log, systemd journal)."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..core.models import DiagnosticRecord, LogLevel, UnreadableRecord
from .base import CommandRunner
from .commands import SubprocessCommandRunner, describe_invalid_payload, run_powershell_json

logger = logging.getLogger(__name__)

# Windows event levels: 0 LogAlways, 1 Critical, 2 Error, 3 Warning, 4 Information, 5 Verbose
_WIN_LEVELS: dict[int, LogLevel] = {
    0: LogLevel.INFO,
    1: LogLevel.CRITICAL,
    2: LogLevel.ERROR,
    3: LogLevel.WARNING,
    4: LogLevel.INFO,
    5: LogLevel.DEBUG,
}

# syslog priorities: 0 emerg .. 7 debug
_JOURNAL_LEVELS: dict[int, LogLevel] = {
    0: LogLevel.CRITICAL,
    1: LogLevel.CRITICAL,
    2: LogLevel.CRITICAL,
    3: LogLevel.ERROR,
    4: LogLevel.WARNING,
    5: LogLevel.INFO,
    6: LogLevel.INFO,
    7: LogLevel.DEBUG,
}


def _ps_quote(s: str) -> str:
    return "'" + s.replace("'", "''") + "'"


def windows_levels_for(max_level: LogLevel | None) -> list[int]:
    """Windows numeric levels at least as severe as max_level ([] means no filter)."""
    if max_level is None or max_level in (LogLevel.DEBUG, LogLevel.UNKNOWN):
        return []
    return sorted(n for n, lvl in _WIN_LEVELS.items() if lvl.at_least(max_level))


def build_winevent_script(
    providers: Sequence[str], *, since: datetime, max_level: LogLevel | None
) -> str:
    provider_list = ", ".join(_ps_quote(p) for p in providers)
    start = since.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    lines = [
        "$ErrorActionPreference = 'Stop'",
        f"$filter = @{{ ProviderName = @({provider_list}); "
        f"StartTime = [datetime]::Parse('{start}', "
        "[Globalization.CultureInfo]::InvariantCulture, "
        "[Globalization.DateTimeStyles]::AdjustToUniversal).ToLocalTime() }",
    ]
    levels = windows_levels_for(max_level)
    if levels:
        lines.append(f"$filter['Level'] = @({', '.join(str(n) for n in levels)})")
    lines.extend(
        [
            "$events = @(Get-WinEvent -FilterHashtable $filter -ErrorAction SilentlyContinue |",
            "    Select-Object @{n='Level';e={[int]$_.Level}},",
            "        @{n='TimeCreated';e={$_.TimeCreated.ToString('yyyy-MM-ddTHH:mm:ss.fffzzz')}},",
            "        ProviderName, Id, Message)",
            "ConvertTo-Json -InputObject $events -Depth 3",
        ]
    )
    return "\n".join(lines)


class _WinEvent(BaseModel):
    level: int = Field(default=0, alias="Level")
    time_created: str | None = Field(default=None, alias="TimeCreated")
    provider: str = Field(alias="ProviderName")
    event_id: int = Field(alias="Id")
    message: str = Field(default="", alias="Message")

    @field_validator("message", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


def _parse_ts(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def record_from_winevent(payload: dict[str, Any]) -> DiagnosticRecord:
    item = _WinEvent.model_validate(payload)
    return DiagnosticRecord(
        level=_WIN_LEVELS.get(item.level, LogLevel.UNKNOWN),
        timestamp=_parse_ts(item.time_created),
        provider=item.provider,
        event_id=item.event_id,
        description=item.message.strip(),
    )


@dataclass(frozen=True, slots=True)
class WindowsEventSource:
    """DiagnosticSource backed by Get-WinEvent."""

    runner: CommandRunner = field(default_factory=lambda: SubprocessCommandRunner(timeout=60))

    def query(
        self,
        providers: Sequence[str],
        *,
        since: datetime,
        max_level: LogLevel | None = None,
    ) -> list[DiagnosticRecord | UnreadableRecord]:
        if not providers:
            return []
        script = build_winevent_script(providers, since=since, max_level=max_level)
        payloads = run_powershell_json(self.runner, script, what="Get-WinEvent")

        out: list[DiagnosticRecord | UnreadableRecord] = []
        for payload in payloads:
            try:
                out.append(record_from_winevent(payload))
            except ValidationError as exc:
                logger.debug("Unreadable event record %r: %s", payload, exc)
                out.append(UnreadableRecord(describe_invalid_payload(exc)))
        return out


def _journal_message(value: Any) -> str:
    # journald emits non-UTF-8 messages as a list of byte values.
    if isinstance(value, list):
        return bytes(int(b) for b in value).decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def record_from_journal(obj: dict[str, Any]) -> DiagnosticRecord:
    """Convert one `journalctl --output=json` object into a DiagnosticRecord."""
    try:
        priority = int(obj.get("PRIORITY", -1))
    except (TypeError, ValueError):
        priority = -1

    ts: datetime | None = None
    raw_ts = obj.get("__REALTIME_TIMESTAMP")
    if raw_ts:
        ts = datetime.fromtimestamp(int(raw_ts) / 1_000_000, tz=UTC).astimezone()

    provider = obj.get("SYSLOG_IDENTIFIER") or obj.get("_SYSTEMD_UNIT") or obj.get("_COMM") or "-"
    # The journal has no event id; the emitting PID is the closest numeric handle.
    pid = obj.get("_PID") or obj.get("SYSLOG_PID") or 0
    return DiagnosticRecord(
        level=_JOURNAL_LEVELS.get(priority, LogLevel.UNKNOWN),
        timestamp=ts,
        provider=str(provider),
        event_id=int(pid),
        description=_journal_message(obj.get("MESSAGE")).strip(),
    )


def journal_priority_for(max_level: LogLevel | None) -> int | None:
    if max_level is None or max_level in (LogLevel.DEBUG, LogLevel.UNKNOWN):
        return None
    return max(p for p, lvl in _JOURNAL_LEVELS.items() if lvl.at_least(max_level))


def build_journalctl_argv(
    providers: Sequence[str], *, since: datetime, max_level: LogLevel | None
) -> list[str]:
    argv = ["journalctl", "--no-pager", "--output=json"]
    argv.extend(["--since", since.astimezone().strftime("%Y-%m-%d %H:%M:%S")])
    prio = journal_priority_for(max_level)
    if prio is not None:
        argv.extend(["-p", f"0..{prio}"])
    for p in providers:
        argv.extend(["-t", p])
    return argv


@dataclass(frozen=True, slots=True)
class JournalEventSource:
    """DiagnosticSource backed by journalctl (identifiers act as providers)."""

    runner: CommandRunner = field(default_factory=lambda: SubprocessCommandRunner(timeout=60))

    def query(
        self,
        providers: Sequence[str],
        *,
        since: datetime,
        max_level: LogLevel | None = None,
    ) -> list[DiagnosticRecord | UnreadableRecord]:
        if not providers:
            return []
        argv = build_journalctl_argv(providers, since=since, max_level=max_level)
        result = self.runner.run(argv)
        if not result.ok:
            raise RuntimeError(f"journalctl failed: {result.error}")

        out: list[DiagnosticRecord | UnreadableRecord] = []
        for line in result.stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                out.append(record_from_journal(json.loads(line)))
            except (json.JSONDecodeError, TypeError, ValueError) as exc:
                logger.debug("Unreadable journal line %r: %s", line[:200], exc)
                out.append(UnreadableRecord(f"invalid journal entry: {exc}"))
        return out
