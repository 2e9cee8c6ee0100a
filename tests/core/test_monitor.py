from __future__ import annotations

import asyncio

import pytest
from stubs import StubAdapterSource, ethernet, wifi

from wifi_disconnect_monitor.core.log_sink import LogSink
from wifi_disconnect_monitor.core.models import ConnectionState
from wifi_disconnect_monitor.core.monitor import TransitionMonitor, wait_for_stop
from wifi_disconnect_monitor.core.prober import AdapterProber

NONE: list = []


def _monitor(snapshots, sink: LogSink, *, interval: float = 10.0) -> TransitionMonitor:
    return TransitionMonitor(AdapterProber(StubAdapterSource(snapshots), sink), sink, interval=interval)


def _transitions(entries: list[str]) -> list[str]:
    return [e for e in entries if e.startswith(("WiFi CONNECTED", "WiFi DISCONNECTED"))]


@pytest.mark.asyncio
async def test_probe_sequence_logs_only_real_transitions(sink, read_log) -> None:
    a, b = [wifi("A")], [wifi("B")]
    monitor = _monitor([NONE, a, a, NONE, b], sink)

    await monitor.start()
    for _ in range(4):
        await monitor.check()

    entries = read_log(sink)
    assert "No wireless adapters found" in entries
    assert _transitions(entries) == [
        "WiFi CONNECTED: A",
        "WiFi DISCONNECTED!",
        "WiFi CONNECTED: B",
    ]
    for name in ("A", "B"):
        idx = entries.index(f"WiFi CONNECTED: {name}")
        assert entries[idx + 1].startswith("  DNS Servers:")
        assert "  Speed: 866 Mbps" in entries[idx + 1]
    assert monitor.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "pattern",
    [
        [True, True, True, True],
        [False, True, False, True, False],
        [True, False, False, True, True, False],
        [False, False, False],
    ],
)
async def test_one_entry_per_state_change(sink, read_log, pattern) -> None:
    snapshots = [[wifi("Wi-Fi")] if up else [wifi("Wi-Fi", up=False)] for up in pattern]
    monitor = _monitor(snapshots, sink)

    await monitor.start()
    for _ in pattern[1:]:
        await monitor.check()

    expected_changes = sum(1 for prev, cur in zip(pattern, pattern[1:]) if prev != cur)
    assert len(_transitions(read_log(sink))) == expected_changes


@pytest.mark.asyncio
async def test_start_reports_initial_state(tmp_path, clock, read_log) -> None:
    up_sink = LogSink(tmp_path / "up.txt", clock=clock)
    m = _monitor([[ethernet(), wifi("Wi-Fi")]], up_sink)
    await m.start()
    assert m.state is ConnectionState.CONNECTED
    assert "Found active wireless adapter: Wi-Fi" in read_log(up_sink)

    down_sink = LogSink(tmp_path / "down.txt", clock=clock)
    m = _monitor([[wifi("Wi-Fi", up=False), wifi("Wi-Fi 2", up=False)]], down_sink)
    await m.start()
    assert m.state is ConnectionState.DISCONNECTED
    assert "Found 2 wireless adapters, but none are connected" in read_log(down_sink)


@pytest.mark.asyncio
async def test_state_changes_only_after_transition_is_logged(tmp_path, clock) -> None:
    seen: list[tuple[str, ConnectionState]] = []

    class RecordingSink(LogSink):
        async def append(self, message: str) -> bool:
            seen.append((message, monitor.state))
            return await super().append(message)

    sink = RecordingSink(tmp_path / "log.txt", clock=clock)
    monitor = _monitor([[wifi("Wi-Fi")], NONE], sink)
    await monitor.start()
    await monitor.check()

    assert ("WiFi DISCONNECTED!", ConnectionState.CONNECTED) in seen
    assert monitor.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_log_write_failure_does_not_stop_monitoring(tmp_path) -> None:
    sink = LogSink(tmp_path)  # a directory: every append fails
    monitor = _monitor([NONE, [wifi("Wi-Fi")]], sink)
    await monitor.start()
    await monitor.check()
    assert monitor.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_probe_error_is_logged_and_state_kept(sink, read_log) -> None:
    monitor = _monitor([[wifi("Wi-Fi")], RuntimeError("Get-NetAdapter failed: access denied")], sink)
    await monitor.start()
    await monitor.check()

    entries = read_log(sink)
    assert "Error probing wireless adapters: Get-NetAdapter failed: access denied" in entries
    assert _transitions(entries) == []
    assert monitor.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_initial_probe_error_starts_disconnected(sink, read_log) -> None:
    monitor = _monitor([OSError("boom"), [wifi("Wi-Fi")]], sink)
    await monitor.start()
    assert monitor.state is ConnectionState.DISCONNECTED
    await monitor.check()
    assert _transitions(read_log(sink)) == ["WiFi CONNECTED: Wi-Fi"]


@pytest.mark.asyncio
async def test_detail_block_failure_is_logged(sink, read_log, monkeypatch) -> None:
    from wifi_disconnect_monitor.core import monitor as monitor_module

    def broken(adapter):
        raise ValueError("no IP properties")

    monkeypatch.setattr(monitor_module, "format_adapter_details", broken)
    monitor = _monitor([NONE, [wifi("Wi-Fi")]], sink)
    await monitor.start()
    await monitor.check()

    entries = read_log(sink)
    assert entries[-2:] == ["WiFi CONNECTED: Wi-Fi", "Error getting adapter details: no IP properties"]
    assert monitor.state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_run_returns_when_stop_is_set(sink, read_log) -> None:
    monitor = _monitor([NONE, [wifi("Wi-Fi")]], sink, interval=0.01)
    stop = asyncio.Event()
    asyncio.get_running_loop().call_later(0.2, stop.set)

    await asyncio.wait_for(monitor.run(stop), timeout=5)

    assert _transitions(read_log(sink)) == ["WiFi CONNECTED: Wi-Fi"]


@pytest.mark.asyncio
async def test_run_with_stop_already_set_only_takes_initial_reading(sink) -> None:
    source = StubAdapterSource([NONE])
    monitor = TransitionMonitor(AdapterProber(source, sink), sink, interval=10)
    stop = asyncio.Event()
    stop.set()

    await asyncio.wait_for(monitor.run(stop), timeout=5)
    assert source.calls == 1


@pytest.mark.asyncio
async def test_run_unexpected_error_requests_shutdown(sink, read_log, monkeypatch) -> None:
    monitor = _monitor([NONE], sink, interval=0.01)

    async def explode() -> None:
        raise RuntimeError("unexpected")

    monkeypatch.setattr(monitor, "check", explode)
    stop = asyncio.Event()

    assert await asyncio.wait_for(monitor.run(stop), timeout=5) is False

    assert stop.is_set()
    assert "Monitor loop error: unexpected" in read_log(sink)


@pytest.mark.asyncio
async def test_wait_for_stop() -> None:
    stop = asyncio.Event()
    assert await wait_for_stop(stop, 0.01) is False
    stop.set()
    assert await wait_for_stop(stop, 10) is True


def test_interval_must_be_positive(sink) -> None:
    with pytest.raises(ValueError):
        _monitor([NONE], sink, interval=0)


@pytest.mark.asyncio
async def test_unencodable_adapter_name_does_not_end_session(sink, read_log) -> None:
    monitor = _monitor([NONE, [wifi("wl\udcff0")], NONE], sink, interval=0.01)
    stop = asyncio.Event()
    asyncio.get_running_loop().call_later(0.2, stop.set)

    assert await asyncio.wait_for(monitor.run(stop), timeout=5) is True

    entries = read_log(sink)
    assert not any(e.startswith("Monitor loop error") for e in entries)
    assert _transitions(entries) == ["WiFi CONNECTED: wl\\udcff0", "WiFi DISCONNECTED!"]
