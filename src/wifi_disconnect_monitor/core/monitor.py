"""Connection transition detection.

The monitor owns the only "last known state" value. Transition entries are
written (and awaited) before that value changes, so a transition is never
recorded as the new state without its log line.
"""

from __future__ import annotations

import asyncio
import logging

from .log_sink import LogSink
from .models import AdapterRecord, ConnectionState
from .prober import AdapterProber, format_adapter_details

logger = logging.getLogger(__name__)


async def wait_for_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Sleep up to `timeout` seconds; True if `stop` was set meanwhile."""
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout)
    except TimeoutError:
        return False
    return True


class TransitionMonitor:
    def __init__(self, prober: AdapterProber, sink: LogSink, *, interval: float = 10.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._prober = prober
        self._sink = sink
        self._interval = interval
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def start(self) -> None:
        """Take the initial reading without logging it as a transition."""
        try:
            adapter = await self._prober.probe()
        except Exception as exc:
            await self._sink.append(f"Error probing wireless adapters: {exc}")
            self._state = ConnectionState.DISCONNECTED
            return

        if adapter is not None:
            await self._sink.append(f"Found active wireless adapter: {adapter.name}")
            self._state = ConnectionState.CONNECTED
            return

        count = self._prober.last_wireless_count
        if count:
            await self._sink.append(f"Found {count} wireless adapters, but none are connected")
        else:
            await self._sink.append("No wireless adapters found")
        self._state = ConnectionState.DISCONNECTED

    async def check(self) -> None:
        """One poll: probe and log a transition if connectedness changed."""
        try:
            adapter = await self._prober.probe()
        except Exception as exc:
            await self._sink.append(f"Error probing wireless adapters: {exc}")
            return

        current = ConnectionState.CONNECTED if adapter is not None else ConnectionState.DISCONNECTED
        if current is self._state:
            return

        if adapter is not None:
            await self._log_connected(adapter)
        else:
            await self._sink.append("WiFi DISCONNECTED!")
        self._state = current

    async def _log_connected(self, adapter: AdapterRecord) -> None:
        await self._sink.append(f"WiFi CONNECTED: {adapter.name}")
        try:
            details = format_adapter_details(adapter)
        except Exception as exc:
            await self._sink.append(f"Error getting adapter details: {exc}")
            return
        await self._sink.append(details)

    async def run(self, stop: asyncio.Event) -> bool:
        """Poll until `stop` is set; False if the loop ended on an error.

        An unexpected failure is logged and turned into a shutdown request so
        the session still reaches its report.
        """
        try:
            await self.start()
            while not stop.is_set():
                await self.check()
                if await wait_for_stop(stop, self._interval):
                    break
        except Exception as exc:
            logger.exception("Monitor loop failed")
            await self._sink.append(f"Monitor loop error: {exc}")
            stop.set()
            return False
        return True
