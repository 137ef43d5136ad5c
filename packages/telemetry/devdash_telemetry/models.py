"""Typed telemetry models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class VolumeUsage:
    mount_point: str
    total_bytes: int
    available_bytes: int

    @property
    def used_bytes(self) -> int:
        return max(0, self.total_bytes - self.available_bytes)

    @property
    def used_fraction(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return min(1.0, self.used_bytes / self.total_bytes)


@dataclass(frozen=True)
class NicCounters:
    bytes_recv: int
    bytes_sent: int


@dataclass(frozen=True)
class SystemInfo:
    """Host identity and CPU description; refreshed with the 1 s telemetry poll."""

    os_name: str
    os_version: str
    hostname: str
    uptime_s: int
    cpu_brand: str
    physical_cores: int | None = None
    threads: int = 0
    cpu_freq_mhz: float | None = None

    @property
    def uptime_hm(self) -> tuple[int, int]:
        return self.uptime_s // 3600, (self.uptime_s % 3600) // 60


@dataclass(frozen=True)
class GpuSnapshot:
    name: str
    memory_total: int | None = None
    memory_used: int | None = None
    utilization: float | None = None
    temperature: float | None = None
    driver_version: str | None = None
    bus_id: str | None = None

    @property
    def memory_fraction(self) -> float | None:
        if not self.memory_total or self.memory_used is None:
            return None
        return min(1.0, self.memory_used / self.memory_total)


@dataclass(frozen=True)
class InterfaceReading:
    name: str
    recv_rate: float
    sent_rate: float
    recv_total: int
    sent_total: int


@dataclass(frozen=True)
class DashboardSnapshot:
    cpu_percent: float
    memory_fraction: float
    disks: dict[str, float] = field(default_factory=dict)
    network: list[InterfaceReading] = field(default_factory=list)
    gpu: GpuSnapshot | None = None
    gpu_usage: float | None = None
    gpu_memory: float | None = None
    timestamp: datetime | None = None
    memory_total: int = 0
    memory_used: int = 0
    memory_free: int = 0
    volumes: dict[str, VolumeUsage] = field(default_factory=dict)
    system: SystemInfo | None = None
