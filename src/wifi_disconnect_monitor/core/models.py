"""Core data models for the WiFi monitor."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


class LogLevel(str, Enum):
    """Normalized severity levels for OS diagnostic records."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        """Lower is more severe (CRITICAL=1 .. DEBUG=5, UNKNOWN=6)."""
        return _LEVEL_RANK[self]

    def at_least(self, threshold: LogLevel) -> bool:
        """True when this level is as severe as, or more severe than, threshold."""
        return self.rank <= threshold.rank


_LEVEL_RANK = {
    LogLevel.CRITICAL: 1,
    LogLevel.ERROR: 2,
    LogLevel.WARNING: 3,
    LogLevel.INFO: 4,
    LogLevel.DEBUG: 5,
    LogLevel.UNKNOWN: 6,
}


class ConnectionState(str, Enum):
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"


class AdapterKind(str, Enum):
    WIRELESS = "WIRELESS"
    OTHER = "OTHER"


class OperStatus(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    OTHER = "OTHER"


@dataclass(frozen=True, slots=True)
class IPAddressInfo:
    address: str
    prefix_length: int


@dataclass(frozen=True, slots=True)
class AdapterRecord:
    """Snapshot of one network adapter, produced fresh by every query."""

    name: str
    description: str
    kind: AdapterKind
    status: OperStatus
    speed_bps: int | None = None  # None when the OS does not report a link speed
    ip_addresses: tuple[IPAddressInfo, ...] = ()
    gateways: tuple[str, ...] = ()
    dns_servers: tuple[str, ...] = ()

    @property
    def is_wireless(self) -> bool:
        return self.kind is AdapterKind.WIRELESS

    @property
    def is_up(self) -> bool:
        return self.status is OperStatus.UP

    @property
    def speed_mbps(self) -> int | None:
        if self.speed_bps is None:
            return None
        return self.speed_bps // 1_000_000


@dataclass(frozen=True, slots=True)
class DiagnosticRecord:
    """OS diagnostic/event-log record as returned by a DiagnosticSource."""

    level: LogLevel
    timestamp: datetime | None
    provider: str
    event_id: int
    description: str


@dataclass(frozen=True, slots=True)
class UnreadableRecord:
    """Placeholder for a source entry that could not be parsed.

    Sources return these alongside good entries so the caller can record
    each failure in the monitor log.
    """

    reason: str


@dataclass(frozen=True, slots=True)
class DiagnosticCommand:
    """External diagnostic command embedded in the shutdown report."""

    label: str
    argv: tuple[str, ...]

    @property
    def display(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True, slots=True)
class CommandResult:
    stdout: str
    ok: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class MonitoringSession:
    """One monitoring run: created at start, consumed once by the report."""

    started_at: datetime
    log_path: Path
