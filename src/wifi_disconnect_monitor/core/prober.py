"""Wireless adapter status probing."""

from __future__ import annotations

import asyncio

from ..sources.base import AdapterSource
from .log_sink import LogSink
from .models import AdapterRecord, UnreadableRecord


def wireless_adapters(adapters: list[AdapterRecord]) -> list[AdapterRecord]:
    return [a for a in adapters if a.is_wireless]


def select_connected(adapters: list[AdapterRecord]) -> AdapterRecord | None:
    """First operationally-up wireless adapter, if any."""
    for a in adapters:
        if a.is_wireless and a.is_up:
            return a
    return None


def format_adapter_details(adapter: AdapterRecord) -> str:
    """Detail block logged right after a CONNECTED transition."""
    lines = ["  DNS Servers:"]
    lines.extend(f"    {dns}" for dns in adapter.dns_servers)
    lines.append("  Gateways:")
    lines.extend(f"    {gw}" for gw in adapter.gateways)
    lines.append("  IP Addresses:")
    lines.extend(f"    {ip.address} ({ip.prefix_length})" for ip in adapter.ip_addresses)
    speed = adapter.speed_mbps
    lines.append(f"  Speed: {speed if speed is not None else 'unknown'} Mbps")
    return "\n".join(lines)


class AdapterProber:
    """Answers "is a wireless adapter connected right now?".

    The wireless adapter count is logged on the first probe and on every probe
    that finds no wireless adapter at all.
    """

    def __init__(self, source: AdapterSource, sink: LogSink) -> None:
        self._source = source
        self._sink = sink
        self._probed = False
        self.last_wireless_count = 0

    async def list_adapters(self) -> list[AdapterRecord]:
        """Current adapters; unreadable entries are written to the log and dropped."""
        adapters: list[AdapterRecord] = []
        for entry in await asyncio.to_thread(self._source.list_adapters):
            if isinstance(entry, UnreadableRecord):
                await self._sink.append(f"Error reading network adapter: {entry.reason}")
                continue
            adapters.append(entry)
        return adapters

    async def probe(self) -> AdapterRecord | None:
        adapters = await self.list_adapters()
        wireless = wireless_adapters(adapters)
        self.last_wireless_count = len(wireless)

        if not self._probed or not wireless:
            await self._sink.append(f"Found {len(wireless)} wireless adapters:")
            for a in wireless:
                await self._sink.append(f"  • {a.name} - {a.description} ({a.status.value})")
        self._probed = True

        return select_connected(wireless)
