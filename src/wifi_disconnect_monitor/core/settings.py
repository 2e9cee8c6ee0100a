"""Runtime configuration.

Settings come from defaults, then ``WIFI_MONITOR_*`` environment variables,
then explicit overrides (usually the CLI). No configuration files are read.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_LOG_FILE = "WifiDisconnectLog.txt"

_ENV_VARS: dict[str, str] = {
    "log_file": "WIFI_MONITOR_LOG_FILE",
    "report_dir": "WIFI_MONITOR_REPORT_DIR",
    "poll_interval": "WIFI_MONITOR_POLL_INTERVAL",
    "collect_interval": "WIFI_MONITOR_COLLECT_INTERVAL",
}


class MonitorSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_file: Path = Field(default=Path(DEFAULT_LOG_FILE), description="Append-only monitor log.")
    report_dir: Path = Field(default=Path("."), description="Where shutdown reports are written.")
    poll_interval: float = Field(default=10.0, gt=0, description="Seconds between adapter probes.")
    collect_interval: float = Field(
        default=300.0, gt=0, description="Seconds between event-log harvests."
    )
    event_window_minutes: int = Field(
        default=15, gt=0, description="How far back each harvest looks."
    )
    collect_events: bool = True
    command_timeout: float = Field(
        default=60.0, gt=0, description="Per-command timeout for report diagnostics."
    )


def _env_overrides() -> dict[str, str]:
    out: dict[str, str] = {}
    for field_name, var in _ENV_VARS.items():
        value = os.getenv(var)
        if value is None or value == "":
            continue
        out[field_name] = value
    return out


def resolve_settings(**overrides: Any) -> MonitorSettings:
    """Build settings from env vars and explicit overrides (None means unset)."""
    data: dict[str, Any] = _env_overrides()
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return MonitorSettings.model_validate(data)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            name = str(err["loc"][0]) if err["loc"] else "settings"
            source = _ENV_VARS.get(name) if name not in overrides or overrides[name] is None else None
            label = source or name
            problems.append(f"{label}: {err['msg']}")
        raise ValueError("Invalid settings: " + "; ".join(problems)) from exc
