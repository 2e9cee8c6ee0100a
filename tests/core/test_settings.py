from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from wifi_disconnect_monitor.core.settings import DEFAULT_LOG_FILE, MonitorSettings, resolve_settings

_VARS = (
    "WIFI_MONITOR_LOG_FILE",
    "WIFI_MONITOR_REPORT_DIR",
    "WIFI_MONITOR_POLL_INTERVAL",
    "WIFI_MONITOR_COLLECT_INTERVAL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults() -> None:
    s = resolve_settings()
    assert s.log_file == Path(DEFAULT_LOG_FILE)
    assert s.report_dir == Path(".")
    assert s.poll_interval == 10
    assert s.collect_interval == 300
    assert s.event_window_minutes == 15
    assert s.collect_events is True
    assert s.command_timeout == 60


def test_env_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WIFI_MONITOR_LOG_FILE", "/var/log/wifi.txt")
    monkeypatch.setenv("WIFI_MONITOR_POLL_INTERVAL", "2.5")
    s = resolve_settings()
    assert s.log_file == Path("/var/log/wifi.txt")
    assert s.poll_interval == 2.5


def test_explicit_values_beat_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WIFI_MONITOR_POLL_INTERVAL", "2.5")
    assert resolve_settings(poll_interval=30).poll_interval == 30


def test_none_overrides_are_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WIFI_MONITOR_REPORT_DIR", "reports")
    s = resolve_settings(report_dir=None, collect_events=None)
    assert s.report_dir == Path("reports")
    assert s.collect_events is True


def test_invalid_env_value_names_the_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WIFI_MONITOR_COLLECT_INTERVAL", "soon")
    with pytest.raises(ValueError, match="WIFI_MONITOR_COLLECT_INTERVAL"):
        resolve_settings()


def test_invalid_override_names_the_field() -> None:
    with pytest.raises(ValueError, match="Invalid settings: poll_interval"):
        resolve_settings(poll_interval=0)


def test_settings_are_frozen() -> None:
    s = MonitorSettings()
    with pytest.raises(ValidationError):
        s.poll_interval = 1  # type: ignore[misc]
