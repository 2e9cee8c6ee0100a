"""WiFi disconnect monitor.

Watches the wireless adapter, logs connect/disconnect transitions, harvests
related OS events, and writes a diagnostic report on shutdown.
"""

from __future__ import annotations

__version__ = "0.2.0"
