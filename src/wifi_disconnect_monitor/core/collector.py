"""Periodic harvesting of OS networking and hardware events into the monitor log."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..sources.base import DiagnosticSource
from .log_sink import TIMESTAMP_FORMAT, LogSink
from .models import DiagnosticRecord, LogLevel, UnreadableRecord
from .monitor import wait_for_stop

logger = logging.getLogger(__name__)

RELEVANCE_KEYWORDS: tuple[str, ...] = (
    "wifi",
    "wi-fi",
    "wireless",
    "wlan",
    "802.11",
    "network",
    "adapter",
    "driver",
    "hardware",
    "device",
    "usb",
    "disconnect",
    "reset",
    "power",
    "timeout",
    "fail",
)

WINDOWS_NETWORK_PROVIDERS: tuple[str, ...] = (
    "Microsoft-Windows-WLAN-AutoConfig",
    "Microsoft-Windows-NetworkProfile",
    "Microsoft-Windows-NDIS",
    "Microsoft-Windows-Dhcp-Client",
    "Microsoft-Windows-DNS-Client",
    "Microsoft-Windows-NCSI",
    "Netwtw10",
    "Netwtw14",
)

WINDOWS_HARDWARE_PROVIDERS: tuple[str, ...] = (
    "Microsoft-Windows-Kernel-PnP",
    "Microsoft-Windows-DriverFrameworks-UserMode",
    "Microsoft-Windows-UserPnp",
    "Microsoft-Windows-Kernel-Power",
    "Microsoft-Windows-USB-USBHUB3",
    "Microsoft-Windows-USB-USBXHCI",
    "Microsoft-Windows-WHEA-Logger",
)

JOURNAL_NETWORK_PROVIDERS: tuple[str, ...] = (
    "NetworkManager",
    "wpa_supplicant",
    "iwd",
    "systemd-networkd",
    "dhclient",
    "dhcpcd",
    "systemd-resolved",
)

JOURNAL_HARDWARE_PROVIDERS: tuple[str, ...] = (
    "kernel",
    "systemd-udevd",
    "bluetoothd",
)


@dataclass(frozen=True, slots=True)
class ProviderSet:
    network: tuple[str, ...]
    hardware: tuple[str, ...]


def default_providers(*, windows: bool) -> ProviderSet:
    if windows:
        return ProviderSet(network=WINDOWS_NETWORK_PROVIDERS, hardware=WINDOWS_HARDWARE_PROVIDERS)
    return ProviderSet(network=JOURNAL_NETWORK_PROVIDERS, hardware=JOURNAL_HARDWARE_PROVIDERS)


def is_relevant_hardware_record(
    record: DiagnosticRecord, *, keywords: Sequence[str] = RELEVANCE_KEYWORDS
) -> bool:
    """Warnings and worse always count; anything milder needs a keyword hit."""
    if record.level.at_least(LogLevel.WARNING):
        return True
    text = record.description.lower()
    return any(k.lower() in text for k in keywords)


def format_record(label: str, record: DiagnosticRecord) -> str:
    ts = record.timestamp.strftime(TIMESTAMP_FORMAT) if record.timestamp else "-"
    return (
        f"{label} Event: [{record.level.value}] {ts} "
        f"{record.provider} - {record.event_id}: {record.description}"
    )


class DiagnosticCollector:
    def __init__(
        self,
        source: DiagnosticSource,
        sink: LogSink,
        *,
        providers: ProviderSet,
        interval: float = 300.0,
        window_minutes: int = 15,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if window_minutes <= 0:
            raise ValueError("window_minutes must be > 0")
        self._source = source
        self._sink = sink
        self._providers = providers
        self._interval = interval
        self._window = timedelta(minutes=window_minutes)
        self._window_minutes = window_minutes
        self._clock = clock

    async def collect_network(self) -> int:
        since = self._clock().astimezone() - self._window
        records = await asyncio.to_thread(
            self._source.query, self._providers.network, since=since
        )
        count = 0
        for record in records:
            if isinstance(record, UnreadableRecord):
                await self._sink.append(f"Error processing network event: {record.reason}")
                continue
            try:
                await self._sink.append(format_record("Network", record))
                count += 1
            except Exception as exc:
                await self._sink.append(f"Error processing network event: {exc}")
        await self._sink.append(
            f"Found {count} network events in the last {self._window_minutes} minutes"
        )
        return count

    async def collect_hardware(self) -> int:
        since = self._clock().astimezone() - self._window
        records = await asyncio.to_thread(
            self._source.query,
            self._providers.hardware,
            since=since,
            max_level=LogLevel.WARNING,
        )
        count = 0
        for record in records:
            if isinstance(record, UnreadableRecord):
                await self._sink.append(f"Error processing hardware event: {record.reason}")
                continue
            try:
                if not is_relevant_hardware_record(record):
                    continue
                await self._sink.append(format_record("Hardware", record))
                count += 1
            except Exception as exc:
                await self._sink.append(f"Error processing hardware event: {exc}")
        await self._sink.append(
            f"Found {count} relevant hardware events in the last {self._window_minutes} minutes"
        )
        return count

    async def collect_once(self, stop: asyncio.Event | None = None) -> None:
        """One harvest; each category fails independently."""
        await self._sink.append("Collecting recent event logs...")
        for name, step in (("network", self.collect_network), ("hardware", self.collect_hardware)):
            if stop is not None and stop.is_set():
                return
            try:
                await step()
            except Exception as exc:
                await self._sink.append(f"Error collecting {name} events: {exc}")

    async def run(self, stop: asyncio.Event) -> bool:
        """Harvest every interval until `stop` is set; False if it ended on an error."""
        try:
            while not await wait_for_stop(stop, self._interval):
                await self.collect_once(stop)
        except Exception as exc:
            logger.exception("Event collector failed")
            await self._sink.append(f"Event collector error: {exc}")
            stop.set()
            return False
        return True
