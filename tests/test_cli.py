from __future__ import annotations

from pathlib import Path

import pytest

from wifi_disconnect_monitor import cli


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("WIFI_MONITOR_LOG_FILE", "WIFI_MONITOR_REPORT_DIR", "WIFI_MONITOR_POLL_INTERVAL", "WIFI_MONITOR_COLLECT_INTERVAL"):
        monkeypatch.delenv(var, raising=False)


def test_parser_defaults_leave_settings_unset() -> None:
    args = cli.build_parser().parse_args([])
    assert args.log_file is None
    assert args.poll_interval is None
    assert args.collect_events is None


def test_parser_options() -> None:
    args = cli.build_parser().parse_args(
        ["--log-file", "w.txt", "--interval", "2.5", "--event-window", "30", "--no-events"]
    )
    assert args.log_file == Path("w.txt")
    assert args.poll_interval == 2.5
    assert args.event_window_minutes == 30
    assert args.collect_events is False


@pytest.mark.parametrize("argv", [["--interval", "0"], ["--interval", "fast"], ["--event-window", "1.5"]])
def test_parser_rejects_bad_values(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.build_parser().parse_args(argv)
    assert exc.value.code == 2


def test_invalid_env_exits_with_usage_error(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setenv("WIFI_MONITOR_POLL_INTERVAL", "-1")
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2
    assert "WIFI_MONITOR_POLL_INTERVAL" in capsys.readouterr().err


def test_main_prints_report_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    seen = {}

    async def fake_amain(settings, sources):
        seen["settings"] = settings
        return tmp_path / "WifiDisconnectReport_20261017_093000.txt"

    monkeypatch.setattr(cli, "_amain", fake_amain)
    cli.main(["--log-file", str(tmp_path / "log.txt"), "--no-events", "--command-timeout", "5"])

    out = capsys.readouterr().out
    assert "=== WiFi Disconnect Monitor ===" in out
    assert f"Logs will be saved to: {tmp_path / 'log.txt'}" in out
    assert "Report generated: " in out
    assert seen["settings"].collect_events is False
    assert seen["settings"].command_timeout == 5


def test_main_exits_nonzero_without_report(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_amain(settings, sources):
        return None

    monkeypatch.setattr(cli, "_amain", fake_amain)
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 1
