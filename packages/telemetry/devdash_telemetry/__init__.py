"""System telemetry sampling and display smoothing for DevDash."""

from .gpu import GpuProbe, GpuProvider, GpuSourceKind, NvmlGpuProvider, WmiGpuProvider
from .models import DashboardSnapshot, GpuSnapshot, InterfaceReading, NicCounters, SystemInfo, VolumeUsage
from .sampler import TelemetrySampler, is_physical_interface
from .smoothing import DifferentialCounter, SmoothedValue
from .source import PsutilTelemetrySource, TelemetrySource, drive_letter

__all__ = [
    "DashboardSnapshot",
    "DifferentialCounter",
    "GpuProbe",
    "GpuProvider",
    "GpuSnapshot",
    "GpuSourceKind",
    "InterfaceReading",
    "NicCounters",
    "NvmlGpuProvider",
    "PsutilTelemetrySource",
    "SmoothedValue",
    "SystemInfo",
    "TelemetrySampler",
    "TelemetrySource",
    "VolumeUsage",
    "WmiGpuProvider",
    "drive_letter",
    "is_physical_interface",
]
