from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from wifi_disconnect_monitor.core.collector import default_providers
from wifi_disconnect_monitor.core.session import run_session
from wifi_disconnect_monitor.core.settings import DEFAULT_LOG_FILE, MonitorSettings, resolve_settings
from wifi_disconnect_monitor.sources import HostSources, default_sources
from wifi_disconnect_monitor.sources.commands import IS_WINDOWS

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Console logging; the level comes from WIFI_MONITOR_LOG_LEVEL."""
    level_name = os.getenv("WIFI_MONITOR_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _positive_float(s: str) -> float:
    try:
        value = float(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {s!r}") from e
    if value <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return value


def _positive_int(s: str) -> int:
    try:
        value = int(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {s!r}") from e
    if value <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wifi-disconnect-monitor",
        description="Log WiFi connect/disconnect transitions and write a diagnostic report on Ctrl+C.",
    )
    p.add_argument("--log-file", type=Path, default=None, help=f"Monitor log (default: {DEFAULT_LOG_FILE})")
    p.add_argument("--report-dir", type=Path, default=None, help="Directory for the shutdown report (default: .)")
    p.add_argument("--interval", dest="poll_interval", type=_positive_float, default=None,
                   help="Seconds between adapter checks (default: 10)")
    p.add_argument("--collect-interval", type=_positive_float, default=None,
                   help="Seconds between event-log harvests (default: 300)")
    p.add_argument("--event-window", dest="event_window_minutes", type=_positive_int, default=None,
                   help="Minutes of event history per harvest (default: 15)")
    p.add_argument("--no-events", dest="collect_events", action="store_false",
                   help="Do not harvest OS event logs")
    p.add_argument("--command-timeout", type=_positive_float, default=None,
                   help="Timeout in seconds for each report diagnostic command (default: 60)")
    p.set_defaults(collect_events=None)
    return p


def _install_stop_handlers(loop: asyncio.AbstractEventLoop, stop: asyncio.Event) -> None:
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is None:
            continue
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support add_signal_handler.
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))


async def _amain(settings: MonitorSettings, sources: HostSources) -> Path | None:
    stop = asyncio.Event()
    _install_stop_handlers(asyncio.get_running_loop(), stop)
    return await run_session(
        settings,
        adapters=sources.adapters,
        events=sources.events,
        runner=sources.commands,
        commands=sources.diagnostic_commands,
        providers=default_providers(windows=IS_WINDOWS),
        stop=stop,
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    _configure_logging()

    try:
        settings = resolve_settings(
            log_file=args.log_file,
            report_dir=args.report_dir,
            poll_interval=args.poll_interval,
            collect_interval=args.collect_interval,
            event_window_minutes=args.event_window_minutes,
            collect_events=args.collect_events,
            command_timeout=args.command_timeout,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    print("=== WiFi Disconnect Monitor ===")
    print(f"Logs will be saved to: {settings.log_file}")
    print("Press Ctrl+C to stop monitoring")
    LOGGER.debug("Settings: %s", settings.model_dump())

    sources = default_sources(command_timeout=settings.command_timeout)
    report = asyncio.run(_amain(settings, sources))

    if report is None:
        print("Report could not be written; see the log for details.", file=sys.stderr)
        raise SystemExit(1)
    print(f"\nMonitor stopped. Report generated: {report}")


if __name__ == "__main__":
    main()
