"""Network adapter enumeration.

Two implementations of AdapterSource:

- WindowsAdapterSource: one PowerShell call combining Get-NetAdapter,
  Get-NetIPAddress and Get-NetIPConfiguration, parsed with pydantic.
- PsutilAdapterSource: psutil for status/speed/addresses, plus sysfs,
  /proc/net/route and /etc/resolv.conf for the bits psutil does not expose.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import psutil
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.models import AdapterKind, AdapterRecord, IPAddressInfo, OperStatus, UnreadableRecord
from .base import CommandRunner
from .commands import SubprocessCommandRunner, describe_invalid_payload, run_powershell_json

logger = logging.getLogger(__name__)

# NDIS_PHYSICAL_MEDIUM: 9 == NdisPhysicalMediumNative802_11
_NDIS_NATIVE_802_11 = "9"
_WIRELESS_HINTS = ("wireless", "wi-fi", "wifi", "wlan", "802.11", "airport")
_WIRELESS_NAME_PREFIXES = ("wl",)

_ADAPTERS_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
$items = foreach ($a in Get-NetAdapter) {
    $cfg = Get-NetIPConfiguration -InterfaceIndex $a.ifIndex -ErrorAction SilentlyContinue
    $ips = @(Get-NetIPAddress -InterfaceIndex $a.ifIndex -ErrorAction SilentlyContinue |
        ForEach-Object { [pscustomobject]@{ Address = $_.IPAddress; PrefixLength = [int]$_.PrefixLength } })
    $gw = @(@($cfg.IPv4DefaultGateway) + @($cfg.IPv6DefaultGateway) |
        Where-Object { $_ } | ForEach-Object { $_.NextHop })
    $dns = @($cfg.DNSServer | Where-Object { $_ } | ForEach-Object { $_.ServerAddresses })
    [pscustomobject]@{
        Name = $a.Name
        Description = $a.InterfaceDescription
        PhysicalMedium = [string]$a.NdisPhysicalMedium
        Status = [string]$a.Status
        Speed = [int64]$a.Speed
        IPAddresses = $ips
        Gateways = $gw
        DnsServers = $dns
    }
}
ConvertTo-Json -InputObject @($items) -Depth 4
"""


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        return [value]
    return value


class _WinIPAddress(BaseModel):
    address: str = Field(alias="Address")
    prefix_length: int = Field(alias="PrefixLength")


class _WinAdapter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    description: str = Field(default="", alias="Description")
    physical_medium: str = Field(default="", alias="PhysicalMedium")
    status: str = Field(default="", alias="Status")
    speed: int | None = Field(default=None, alias="Speed")
    ip_addresses: list[_WinIPAddress] = Field(default_factory=list, alias="IPAddresses")
    gateways: list[str] = Field(default_factory=list, alias="Gateways")
    dns_servers: list[str] = Field(default_factory=list, alias="DnsServers")

    @field_validator("description", "physical_medium", "status", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("ip_addresses", "gateways", "dns_servers", mode="before")
    @classmethod
    def _wrap_scalar(cls, v: Any) -> Any:
        return _as_list(v)


def looks_wireless(*texts: str) -> bool:
    """Heuristic used when the OS does not tell us the physical medium."""
    for text in texts:
        t = (text or "").lower()
        if any(h in t for h in _WIRELESS_HINTS):
            return True
    return False


def _windows_status(status: str) -> OperStatus:
    s = status.strip().lower()
    if s == "up":
        return OperStatus.UP
    if s in ("disconnected", "disabled", "down", "not present"):
        return OperStatus.DOWN
    return OperStatus.OTHER


def adapter_from_windows_payload(payload: dict[str, Any]) -> AdapterRecord:
    """Convert one Get-NetAdapter JSON object into an AdapterRecord."""
    item = _WinAdapter.model_validate(payload)
    wireless = item.physical_medium == _NDIS_NATIVE_802_11 or looks_wireless(
        item.description, item.name
    )
    return AdapterRecord(
        name=item.name,
        description=item.description,
        kind=AdapterKind.WIRELESS if wireless else AdapterKind.OTHER,
        status=_windows_status(item.status),
        speed_bps=item.speed if item.speed and item.speed > 0 else None,
        ip_addresses=tuple(
            IPAddressInfo(address=ip.address, prefix_length=ip.prefix_length)
            for ip in item.ip_addresses
        ),
        gateways=tuple(g for g in item.gateways if g),
        dns_servers=tuple(d for d in item.dns_servers if d),
    )


@dataclass(frozen=True, slots=True)
class WindowsAdapterSource:
    runner: CommandRunner = field(default_factory=lambda: SubprocessCommandRunner(timeout=30))

    def list_adapters(self) -> list[AdapterRecord | UnreadableRecord]:
        payloads = run_powershell_json(self.runner, _ADAPTERS_SCRIPT, what="Get-NetAdapter")
        out: list[AdapterRecord | UnreadableRecord] = []
        for payload in payloads:
            try:
                out.append(adapter_from_windows_payload(payload))
            except ValidationError as exc:
                logger.debug("Unreadable adapter entry %r: %s", payload, exc)
                out.append(UnreadableRecord(describe_invalid_payload(exc)))
        return out


def prefix_from_netmask(netmask: str | None, *, family: int) -> int:
    """Count the bits of a dotted/colon netmask; host-length prefix when missing."""
    if not netmask:
        return 32 if family == socket.AF_INET else 128
    mask = ipaddress.ip_address(netmask.split("%", 1)[0])
    return bin(int(mask)).count("1")


def read_default_gateways(route_table: Path) -> dict[str, list[str]]:
    """Parse /proc/net/route into {interface: [gateway, ...]} (IPv4 defaults only)."""
    out: dict[str, list[str]] = {}
    try:
        lines = route_table.read_text(encoding="ascii", errors="replace").splitlines()
    except OSError:
        return out

    for line in lines[1:]:
        parts = line.split()
        if len(parts) < 3 or parts[1] != "00000000":
            continue
        try:
            gw = socket.inet_ntoa(struct.pack("<L", int(parts[2], 16)))
        except (ValueError, struct.error):
            continue
        out.setdefault(parts[0], []).append(gw)
    return out


def read_dns_servers(resolv_conf: Path) -> list[str]:
    try:
        lines = resolv_conf.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []
    servers: list[str] = []
    for line in lines:
        parts = line.split()
        if len(parts) >= 2 and parts[0] == "nameserver":
            servers.append(parts[1])
    return servers


@dataclass(frozen=True, slots=True)
class PsutilAdapterSource:
    sys_class_net: Path = Path("/sys/class/net")
    route_table: Path = Path("/proc/net/route")
    resolv_conf: Path = Path("/etc/resolv.conf")

    def _is_wireless(self, name: str) -> bool:
        iface = self.sys_class_net / name
        if (iface / "wireless").exists() or (iface / "phy80211").exists():
            return True
        return name.lower().startswith(_WIRELESS_NAME_PREFIXES) or looks_wireless(name)

    def list_adapters(self) -> list[AdapterRecord]:
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()
        gateways = read_default_gateways(self.route_table)
        dns = read_dns_servers(self.resolv_conf)

        out: list[AdapterRecord] = []
        for name in sorted(set(stats) | set(addrs)):
            st = stats.get(name)
            is_up = bool(st and st.isup)

            ips: list[IPAddressInfo] = []
            for a in addrs.get(name, ()):
                if a.family not in (socket.AF_INET, socket.AF_INET6):
                    continue
                try:
                    prefix = prefix_from_netmask(a.netmask, family=a.family)
                except ValueError:
                    prefix = 32 if a.family == socket.AF_INET else 128
                ips.append(IPAddressInfo(address=a.address.split("%", 1)[0], prefix_length=prefix))

            out.append(
                AdapterRecord(
                    name=name,
                    description=name,
                    kind=AdapterKind.WIRELESS if self._is_wireless(name) else AdapterKind.OTHER,
                    status=OperStatus.UP if is_up else OperStatus.DOWN,
                    speed_bps=st.speed * 1_000_000 if st and st.speed else None,
                    ip_addresses=tuple(ips),
                    gateways=tuple(gateways.get(name, ())),
                    dns_servers=tuple(dns) if is_up else (),
                )
            )
        return out
