"""OS telemetry source backed by psutil."""

from __future__ import annotations

import logging
import platform
import time
from typing import Protocol

import psutil

from .models import NicCounters, SystemInfo, VolumeUsage

_log = logging.getLogger("devdash.telemetry")

_CPU_KEY = "HARDWARE\\DESCRIPTION\\System\\CentralProcessor\\0"


class TelemetrySource(Protocol):
    def cpu_percents(self) -> list[float]: ...

    def memory(self) -> tuple[int, int]:
        """Return ``(total, available)`` in bytes."""
        ...

    def volumes(self) -> list[VolumeUsage]: ...

    def nic_counters(self) -> dict[str, NicCounters]: ...

    def process_names(self) -> list[str]: ...

    def system_info(self) -> SystemInfo: ...


def drive_letter(mount_point: str) -> str | None:
    """Normalize ``C:\\`` / ``C:`` to ``C:``; anything else is not a local drive."""
    name = mount_point.rstrip("\\/")
    if len(name) == 2 and name.endswith(":") and name[0].isalpha():
        return name
    return None


def _cpu_brand() -> str:
    if platform.system() == "Windows":
        try:
            import winreg  # type: ignore

            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, _CPU_KEY, 0, winreg.KEY_READ) as key:
                value, _kind = winreg.QueryValueEx(key, "ProcessorNameString")
            if isinstance(value, str) and value.strip():
                return value.strip()
        except OSError as exc:
            _log.debug("cpu brand lookup failed: %s", exc)
    return platform.processor() or platform.machine() or "Unknown CPU"


class PsutilTelemetrySource:
    def __init__(self) -> None:
        # Prime the non-blocking per-core measurement.
        psutil.cpu_percent(interval=None, percpu=True)
        self._cpu_brand = _cpu_brand()

    def cpu_percents(self) -> list[float]:
        return [float(p) for p in psutil.cpu_percent(interval=None, percpu=True)]

    def memory(self) -> tuple[int, int]:
        vm = psutil.virtual_memory()
        return int(vm.total), int(vm.available)

    def volumes(self) -> list[VolumeUsage]:
        out: list[VolumeUsage] = []
        for part in psutil.disk_partitions(all=False):
            if "cdrom" in part.opts or part.fstype == "":
                continue
            try:
                du = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError):
                continue
            out.append(VolumeUsage(mount_point=part.mountpoint, total_bytes=int(du.total), available_bytes=int(du.free)))
        return out

    def nic_counters(self) -> dict[str, NicCounters]:
        counters = psutil.net_io_counters(pernic=True) or {}
        return {
            name: NicCounters(bytes_recv=int(c.bytes_recv), bytes_sent=int(c.bytes_sent))
            for name, c in counters.items()
        }

    def process_names(self) -> list[str]:
        names: list[str] = []
        for proc in psutil.process_iter(["name"]):
            name = proc.info.get("name")
            if name:
                names.append(name)
        return names

    def system_info(self) -> SystemInfo:
        try:
            freq = psutil.cpu_freq()
        except (OSError, NotImplementedError):
            freq = None
        return SystemInfo(
            os_name=platform.system(),
            os_version=platform.release(),
            hostname=platform.node(),
            uptime_s=max(0, int(time.time() - psutil.boot_time())),
            cpu_brand=self._cpu_brand,
            physical_cores=psutil.cpu_count(logical=False),
            threads=psutil.cpu_count(logical=True) or 0,
            cpu_freq_mhz=float(freq.current) if freq and freq.current else None,
        )
