"""Shutdown report: header, system info, adapters, command output, full log.

Sections are always written in that order. A failing section is reported
inline; only a failure to create or write the report file itself makes
``assemble`` return None.
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

import aiofiles

from ..sources.base import AdapterSource, CommandRunner
from .log_sink import ENCODE_ERRORS, ENCODING, TIMESTAMP_FORMAT, LogSink
from .models import AdapterRecord, DiagnosticCommand, MonitoringSession, UnreadableRecord

logger = logging.getLogger(__name__)

REPORT_TITLE = "=== WiFi Disconnect Monitor Report ==="
REPORT_PREFIX = "WifiDisconnectReport_"
SECTION_SYSTEM = "=== SYSTEM INFORMATION ==="
SECTION_ADAPTERS = "=== NETWORK ADAPTERS ==="
SECTION_DIAGNOSTICS = "=== NETWORK DIAGNOSTICS ==="
SECTION_LOG = "=== DISCONNECT LOG ==="


def report_filename(when: datetime) -> str:
    return f"{REPORT_PREFIX}{when.strftime('%Y%m%d_%H%M%S')}.txt"


def system_info_lines() -> list[str]:
    return [
        f"Computer Name: {platform.node() or 'unknown'}",
        f"OS Version: {platform.platform()}",
        f"Processor Count: {os.cpu_count() or 'unknown'}",
        f"Python Version: {platform.python_version()} ({platform.python_implementation()})",
    ]


def adapter_lines(adapter: AdapterRecord) -> list[str]:
    speed = adapter.speed_mbps
    lines = [
        "",
        f"Adapter: {adapter.name}",
        f"  Description: {adapter.description}",
        f"  Type: {adapter.kind.value}",
        f"  Status: {adapter.status.value}",
        f"  Speed: {speed if speed is not None else 'unknown'} Mbps",
        "  IP Addresses:",
    ]
    lines.extend(f"    {ip.address}/{ip.prefix_length}" for ip in adapter.ip_addresses)
    lines.append("  DNS Servers:")
    lines.extend(f"    {dns}" for dns in adapter.dns_servers)
    return lines


class ReportAssembler:
    def __init__(
        self,
        sink: LogSink,
        adapters: AdapterSource,
        runner: CommandRunner,
        commands: Sequence[DiagnosticCommand],
        *,
        report_dir: str | Path = ".",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._sink = sink
        self._adapters = adapters
        self._runner = runner
        self._commands = list(commands)
        self._report_dir = Path(report_dir)
        self._clock = clock

    async def _adapter_section(self) -> list[str]:
        lines = [SECTION_ADAPTERS]
        try:
            adapters = await asyncio.to_thread(self._adapters.list_adapters)
        except Exception as exc:
            lines.append(f"Error listing network adapters: {exc}")
            return lines
        for adapter in adapters:
            if isinstance(adapter, UnreadableRecord):
                lines.extend(["", f"Error reading network adapter: {adapter.reason}"])
                continue
            lines.extend(adapter_lines(adapter))
        return lines

    async def _command_section(self, command: DiagnosticCommand) -> list[str]:
        lines = [f"-- {command.label} --"]
        try:
            result = await asyncio.to_thread(self._runner.run, command.argv)
        except Exception as exc:
            lines.append(f"Error running command: {command.display}: {exc}")
            return lines

        if result.stdout:
            lines.append(result.stdout.rstrip("\n"))
        if not result.ok:
            lines.append(f"Error running command: {command.display}: {result.error or 'failed'}")
        return lines

    async def _log_section(self) -> list[str]:
        try:
            text = await self._sink.read_text()
        except Exception as exc:
            return [SECTION_LOG, f"Error reading log file {self._sink.path}: {exc}"]
        return [SECTION_LOG, text.rstrip("\n")]

    async def assemble(self, session: MonitoringSession) -> Path | None:
        """Write the report; returns its path, or None if the file could not be written."""
        await self._sink.append("Generating summary report...")
        now = self._clock()
        path = self._report_dir / report_filename(now)

        try:
            self._report_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(
                path, mode="w", encoding=ENCODING, errors=ENCODE_ERRORS
            ) as f:

                async def write_lines(lines: list[str]) -> None:
                    await f.write("\n".join(lines) + "\n")

                await write_lines(
                    [
                        REPORT_TITLE,
                        f"Generated: {now.strftime(TIMESTAMP_FORMAT)}",
                        "Monitoring period: "
                        f"{session.started_at.strftime(TIMESTAMP_FORMAT)} - "
                        f"{now.strftime(TIMESTAMP_FORMAT)}",
                        "=================================",
                    ]
                )

                await write_lines(["", SECTION_SYSTEM, *system_info_lines()])
                await write_lines(["", *await self._adapter_section()])

                await write_lines(["", SECTION_DIAGNOSTICS])
                for command in self._commands:
                    await write_lines(["", *await self._command_section(command)])

                await write_lines(["", *await self._log_section()])
        except (OSError, ValueError) as exc:
            logger.error("Error generating report %s: %s", path, exc)
            await self._sink.append(f"Error generating report: {exc}")
            return None

        await self._sink.append(f"Report generated: {path}")
        return path
