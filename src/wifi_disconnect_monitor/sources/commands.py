"""External command execution and the report's diagnostic command lists."""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PureWindowsPath
from typing import Any

from pydantic import ValidationError

from ..core.models import CommandResult, DiagnosticCommand
from .base import CommandRunner

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform.startswith("win")

# Keeps console windows from flashing up for every PowerShell/netsh call.
_CREATE_NO_WINDOW = 0x08000000 if IS_WINDOWS else 0

# PowerShell is told to write UTF-8; native Windows tools use the OEM code page.
_POWERSHELL_UTF8 = "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8"
_POWERSHELL_NAMES = ("powershell", "powershell.exe", "pwsh", "pwsh.exe")


def powershell_argv(script: str) -> tuple[str, ...]:
    """argv for a non-interactive PowerShell invocation of `script`."""
    return (
        "powershell",
        "-NoProfile",
        "-NonInteractive",
        "-ExecutionPolicy",
        "Bypass",
        "-Command",
        f"{_POWERSHELL_UTF8}\n{script}",
    )


def output_encoding(argv: Sequence[str], *, windows: bool = IS_WINDOWS) -> str:
    """Codec the child process writes its output in."""
    if not windows:
        return "utf-8"
    if argv and PureWindowsPath(argv[0]).name.lower() in _POWERSHELL_NAMES:
        return "utf-8"
    return "oem"


@dataclass(frozen=True, slots=True)
class SubprocessCommandRunner:
    """CommandRunner backed by ``subprocess.run``.

    ``encoding`` overrides the per-command choice made by `output_encoding`.
    """

    timeout: float = 60.0
    encoding: str | None = None

    def run(self, argv: Sequence[str]) -> CommandResult:
        kwargs: dict = dict(
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding=self.encoding or output_encoding(argv),
            errors="replace",
            timeout=self.timeout,
        )
        if IS_WINDOWS:
            kwargs["creationflags"] = _CREATE_NO_WINDOW

        try:
            proc = subprocess.run(list(argv), **kwargs)
        except FileNotFoundError:
            return CommandResult(stdout="", ok=False, error=f"command not found: {argv[0]}")
        except subprocess.TimeoutExpired as exc:
            out = exc.stdout if isinstance(exc.stdout, str) else ""
            return CommandResult(
                stdout=out, ok=False, error=f"timed out after {self.timeout:g}s"
            )
        except OSError as exc:
            return CommandResult(stdout="", ok=False, error=str(exc))

        if proc.returncode != 0:
            err = (proc.stderr or "").strip()
            logger.debug("%s exited with %s: %s", argv[0], proc.returncode, err)
            detail = f"exit code {proc.returncode}"
            if err:
                detail = f"{detail}: {err}"
            return CommandResult(stdout=proc.stdout or "", ok=False, error=detail)

        return CommandResult(stdout=proc.stdout or "", ok=True)


def run_powershell_json(runner: CommandRunner, script: str, *, what: str) -> list[dict[str, Any]]:
    """Run a script ending in ConvertTo-Json and return a list of objects.

    Raises RuntimeError when PowerShell fails or prints something that is not JSON.
    """
    result = runner.run(powershell_argv(script))
    if not result.ok:
        raise RuntimeError(f"{what} failed: {result.error}")

    text = result.stdout.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"{what} returned invalid JSON: {exc}") from exc

    # ConvertTo-Json emits a bare object for single results.
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    raise RuntimeError(f"{what} returned unexpected JSON type {type(data).__name__}")


def describe_invalid_payload(exc: ValidationError) -> str:
    """One-line summary of why a PowerShell JSON object was rejected."""
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "entry"
        problems.append(f"{loc}: {err['msg']}")
    return "invalid entry (" + "; ".join(problems) + ")"


def windows_diagnostic_commands() -> list[DiagnosticCommand]:
    return [
        DiagnosticCommand("IPCONFIG", ("ipconfig", "/all")),
        DiagnosticCommand("NETSH WLAN SHOW INTERFACES", ("netsh", "wlan", "show", "interfaces")),
        DiagnosticCommand("NETSH WLAN SHOW NETWORKS", ("netsh", "wlan", "show", "networks")),
        DiagnosticCommand("PING TEST", ("ping", "8.8.8.8", "-n", "4")),
        DiagnosticCommand(
            "NETWORK ADAPTER DETAILS",
            powershell_argv("Get-NetAdapter | Format-List *"),
        ),
        DiagnosticCommand(
            "NETWORK DRIVER DETAILS",
            powershell_argv(
                "Get-NetAdapter | Get-NetAdapterAdvancedProperty | Format-Table -AutoSize"
            ),
        ),
        DiagnosticCommand(
            "PROBLEM DEVICES",
            powershell_argv(
                "Get-CimInstance Win32_PnPEntity "
                "| Where-Object { $_.ConfigManagerErrorCode -ne 0 } "
                "| Select-Object Name, DeviceID, ConfigManagerErrorCode | Format-List"
            ),
        ),
    ]


def linux_diagnostic_commands() -> list[DiagnosticCommand]:
    return [
        DiagnosticCommand("IP ADDR", ("ip", "addr", "show")),
        DiagnosticCommand("NMCLI DEVICE SHOW", ("nmcli", "device", "show")),
        DiagnosticCommand("NMCLI DEVICE WIFI LIST", ("nmcli", "device", "wifi", "list")),
        DiagnosticCommand("PING TEST", ("ping", "-c", "4", "8.8.8.8")),
        DiagnosticCommand("LINK STATISTICS", ("ip", "-s", "link")),
        DiagnosticCommand("NETWORK DEVICES AND DRIVERS", ("lspci", "-k")),
    ]


def default_diagnostic_commands() -> list[DiagnosticCommand]:
    """Report commands for the current platform."""
    if IS_WINDOWS:
        return windows_diagnostic_commands()
    return linux_diagnostic_commands()
