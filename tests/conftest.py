from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest
from stubs import FIXED_NOW

from wifi_disconnect_monitor.core.log_sink import LogSink


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def sink(tmp_path: Path, clock) -> LogSink:
    return LogSink(tmp_path / "WifiDisconnectLog.txt", clock=clock)


@pytest.fixture
def read_log() -> Callable[[LogSink], list[str]]:
    """Entry messages (timestamps stripped); multi-line entries stay joined."""

    def _read(sink: LogSink) -> list[str]:
        text = sink.path.read_text(encoding="utf-8") if sink.path.exists() else ""
        entries: list[str] = []
        for line in text.splitlines():
            if line.startswith("[") and "] " in line:
                entries.append(line.split("] ", 1)[1])
            elif entries:
                entries[-1] += "\n" + line
        return entries

    return _read
