"""Fixed-cadence sampling of the telemetry source into display smoothers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from .gpu import GpuProbe
from .models import DashboardSnapshot, InterfaceReading, SystemInfo, VolumeUsage
from .smoothing import DifferentialCounter, SmoothedValue
from .source import TelemetrySource, drive_letter

_log = logging.getLogger("devdash.telemetry")

# Hyper-V/WSL switches are named "vEthernet (...)" and would otherwise match "ethernet".
_VIRTUAL_MARKERS = ("vethernet", "virtual", "loopback", "vmware", "virtualbox", "hyper-v", "pseudo-interface")


def is_physical_interface(name: str) -> bool:
    lower = name.lower()
    if any(marker in lower for marker in _VIRTUAL_MARKERS):
        return False
    return (
        "ethernet" in lower
        or lower.startswith(("eth", "en", "wlan", "wi-fi", "wireless"))
        or "wireless" in lower
    )


@dataclass
class InterfaceCounters:
    received: DifferentialCounter
    sent: DifferentialCounter

    def reading(self, name: str) -> InterfaceReading:
        return InterfaceReading(
            name=name,
            recv_rate=self.received.rate,
            sent_rate=self.sent.rate,
            recv_total=self.received.total,
            sent_total=self.sent.total,
        )


class TelemetrySampler:
    """Single owner of every smoothed display value.

    ``refresh_system`` belongs on the 1 s cadence, ``refresh_network`` on the
    100 ms cadence and ``advance`` on every frame.
    """

    def __init__(self, source: TelemetrySource, gpu: GpuProbe | None = None) -> None:
        self.source = source
        self.gpu = gpu or GpuProbe()
        self.cpu = SmoothedValue()
        self.memory = SmoothedValue()
        self.gpu_usage = SmoothedValue()
        self.gpu_memory = SmoothedValue()
        self.disks: dict[str, SmoothedValue] = {}
        self.interfaces: dict[str, InterfaceCounters] = {}
        self.volumes: dict[str, VolumeUsage] = {}
        self.memory_total = 0
        self.system: SystemInfo | None = None

    def refresh_system(self) -> None:
        percents = self.source.cpu_percents()
        if percents:
            self.cpu.set_target(min(100.0, max(0.0, sum(percents) / len(percents))))
        else:
            self.cpu.set_target(0.0)

        total, available = self.source.memory()
        self.memory_total = max(0, int(total))
        if total > 0:
            used = (total - available) / total
            self.memory.set_target(min(1.0, max(0.0, used)))

        for volume in self.source.volumes():
            drive = drive_letter(volume.mount_point)
            if drive is None:
                continue
            if volume.total_bytes <= 0:
                _log.warning("disk %s has zero total space", drive)
                continue
            usage = volume.used_fraction
            self.volumes[drive] = volume
            smoother = self.disks.get(drive)
            if smoother is None:
                self.disks[drive] = SmoothedValue(usage)
            else:
                smoother.set_target(usage)

        self.system = self.source.system_info()
        self.refresh_gpu()

    def refresh_gpu(self) -> None:
        snap = self.gpu.refresh()
        if snap is None:
            return
        if snap.utilization is not None:
            self.gpu_usage.set_target(min(1.0, max(0.0, snap.utilization / 100.0)))
        fraction = snap.memory_fraction
        if fraction is not None:
            self.gpu_memory.set_target(fraction)

    def refresh_network(self, now: float | None = None) -> None:
        now = time.monotonic() if now is None else now
        counters = self.source.nic_counters()
        physical = {name: c for name, c in counters.items() if is_physical_interface(name)}

        for name in list(self.interfaces):
            if name not in physical:
                _log.info("network interface %s removed", name, extra={"event": "nic_removed"})
                del self.interfaces[name]

        for name, c in physical.items():
            tracked = self.interfaces.get(name)
            if tracked is None:
                self.interfaces[name] = InterfaceCounters(
                    received=DifferentialCounter.seeded(c.bytes_recv, now),
                    sent=DifferentialCounter.seeded(c.bytes_sent, now),
                )
                _log.info("network interface %s added", name, extra={"event": "nic_added"})
                continue
            tracked.received.update(c.bytes_recv, now)
            tracked.sent.update(c.bytes_sent, now)

    def advance(self, dt: float) -> None:
        self.cpu.update(dt)
        self.memory.update(dt)
        for smoother in self.disks.values():
            smoother.update(dt)
        self.gpu_usage.update(dt)
        self.gpu_memory.update(dt)

    def snapshot(self) -> DashboardSnapshot:
        gpu = self.gpu.snapshot
        # Used bytes track the smoothed fraction, not the raw reading.
        memory_used = int(self.memory_total * self.memory.current)
        return DashboardSnapshot(
            cpu_percent=self.cpu.current,
            memory_fraction=self.memory.current,
            disks={name: v.current for name, v in sorted(self.disks.items())},
            network=[c.reading(name) for name, c in sorted(self.interfaces.items())],
            gpu=gpu,
            gpu_usage=(self.gpu_usage.current if gpu is not None and gpu.utilization is not None else None),
            gpu_memory=(self.gpu_memory.current if gpu is not None and gpu.memory_fraction is not None else None),
            timestamp=datetime.now(timezone.utc),
            memory_total=self.memory_total,
            memory_used=memory_used,
            memory_free=self.memory_total - memory_used,
            volumes=dict(sorted(self.volumes.items())),
            system=self.system,
        )
