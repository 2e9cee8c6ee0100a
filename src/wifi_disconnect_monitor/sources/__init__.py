"""Host collaborators: adapter enumeration, OS event queries, external commands."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.models import DiagnosticCommand
from .adapters import PsutilAdapterSource, WindowsAdapterSource
from .base import AdapterSource, CommandRunner, DiagnosticSource
from .commands import IS_WINDOWS, SubprocessCommandRunner, default_diagnostic_commands
from .events import JournalEventSource, WindowsEventSource


@dataclass(frozen=True, slots=True)
class HostSources:
    adapters: AdapterSource
    events: DiagnosticSource
    commands: CommandRunner
    diagnostic_commands: tuple[DiagnosticCommand, ...]


def default_sources(*, command_timeout: float = 60.0) -> HostSources:
    """Pick the collaborator implementations for the current platform."""
    runner = SubprocessCommandRunner(timeout=command_timeout)
    diagnostics = tuple(default_diagnostic_commands())
    if IS_WINDOWS:
        return HostSources(
            adapters=WindowsAdapterSource(),
            events=WindowsEventSource(),
            commands=runner,
            diagnostic_commands=diagnostics,
        )
    return HostSources(
        adapters=PsutilAdapterSource(),
        events=JournalEventSource(),
        commands=runner,
        diagnostic_commands=diagnostics,
    )


__all__ = [
    "AdapterSource",
    "CommandRunner",
    "DiagnosticSource",
    "HostSources",
    "JournalEventSource",
    "PsutilAdapterSource",
    "SubprocessCommandRunner",
    "WindowsAdapterSource",
    "WindowsEventSource",
    "default_sources",
]
