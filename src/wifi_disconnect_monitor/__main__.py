"""Module entrypoint.

Allows:
    python -m wifi_disconnect_monitor
"""

from __future__ import annotations

from wifi_disconnect_monitor.cli import main

if __name__ == "__main__":
    main()
