"""Monitoring session: run both loops until stopped, then write the report."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

from ..sources.base import AdapterSource, CommandRunner, DiagnosticSource
from .collector import DiagnosticCollector, ProviderSet
from .log_sink import LogSink
from .models import DiagnosticCommand, MonitoringSession
from .monitor import TransitionMonitor
from .prober import AdapterProber
from .report import ReportAssembler
from .settings import MonitorSettings

logger = logging.getLogger(__name__)


async def run_session(
    settings: MonitorSettings,
    *,
    adapters: AdapterSource,
    events: DiagnosticSource,
    runner: CommandRunner,
    commands: Sequence[DiagnosticCommand],
    providers: ProviderSet,
    stop: asyncio.Event,
    clock: Callable[[], datetime] = datetime.now,
) -> Path | None:
    """Monitor until `stop` is set, then assemble the report exactly once.

    Returns the report path, or None if the report file could not be written.
    """
    sink = LogSink(settings.log_file, clock=clock)
    session = MonitoringSession(started_at=clock(), log_path=sink.path)
    assembler = ReportAssembler(
        sink,
        adapters,
        runner,
        commands,
        report_dir=settings.report_dir,
        clock=clock,
    )

    try:
        await sink.append("Monitor started")
        prober = AdapterProber(adapters, sink)
        monitor = TransitionMonitor(prober, sink, interval=settings.poll_interval)
        loops = [monitor.run(stop)]
        if settings.collect_events:
            collector = DiagnosticCollector(
                events,
                sink,
                providers=providers,
                interval=settings.collect_interval,
                window_minutes=settings.event_window_minutes,
                clock=clock,
            )
            loops.append(collector.run(stop))

        results = await asyncio.gather(*loops, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Monitoring task ended with an error: %s", result)
                await sink.append(f"Error: {result}")
        if all(result is True for result in results):
            await sink.append("Monitor stopped by user")
        else:
            await sink.append("Monitor stopped after an error")
    finally:
        report = await assembler.assemble(session)
    return report
