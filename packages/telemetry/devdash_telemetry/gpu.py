"""GPU telemetry with an NVML -> WMI -> nothing fallback chain."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from enum import Enum
from typing import Callable

from .models import GpuSnapshot

_log = logging.getLogger("devdash.telemetry.gpu")

_PLACEHOLDER_ADAPTERS = ("microsoft basic display", "microsoft basic render", "microsoft remote display")
_PNP_RE = re.compile(r"VEN_([0-9A-Fa-f]{4}).*DEV_([0-9A-Fa-f]{4})")


class GpuSourceKind(str, Enum):
    VENDOR = "Vendor"
    GENERIC = "Generic"
    UNAVAILABLE = "Unavailable"


class GpuProvider:
    kind = GpuSourceKind.UNAVAILABLE

    def identify(self) -> GpuSnapshot | None:
        return None

    def refresh(self, current: GpuSnapshot) -> GpuSnapshot:
        return current


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class NvmlGpuProvider(GpuProvider):
    kind = GpuSourceKind.VENDOR

    def __init__(self) -> None:
        import pynvml  # type: ignore

        self._nvml = pynvml
        pynvml.nvmlInit()
        try:
            if pynvml.nvmlDeviceGetCount() < 1:
                raise RuntimeError("NVML reports no devices")
            self._handle = pynvml.nvmlDeviceGetHandleByIndex(0)
        except Exception:
            # Leave NVML uninitialised when falling back to another provider.
            pynvml.nvmlShutdown()
            raise

    def identify(self) -> GpuSnapshot:
        nvml = self._nvml
        h = self._handle
        try:
            name = _text(nvml.nvmlDeviceGetName(h))
        except Exception:
            name = "Unknown GPU"

        bus_id = None
        try:
            pci = nvml.nvmlDeviceGetPciInfo(h)
            bus_id = f"{pci.domain:04x}:{pci.bus:02x}:{pci.device:02x}.0"
        except Exception:
            pass

        driver = None
        try:
            driver = _text(nvml.nvmlSystemGetDriverVersion())
        except Exception:
            pass

        return GpuSnapshot(name=name, driver_version=driver, bus_id=bus_id)

    def refresh(self, current: GpuSnapshot) -> GpuSnapshot:
        nvml = self._nvml
        h = self._handle
        changes: dict[str, object] = {}
        try:
            mem = nvml.nvmlDeviceGetMemoryInfo(h)
            changes["memory_total"] = int(mem.total)
            changes["memory_used"] = int(mem.used)
        except Exception as exc:
            _log.debug("nvml memory query failed: %s", exc)
        try:
            changes["utilization"] = float(nvml.nvmlDeviceGetUtilizationRates(h).gpu)
        except Exception as exc:
            _log.debug("nvml utilization query failed: %s", exc)
        try:
            changes["temperature"] = float(nvml.nvmlDeviceGetTemperature(h, nvml.NVML_TEMPERATURE_GPU))
        except Exception as exc:
            _log.debug("nvml temperature query failed: %s", exc)
        return replace(current, **changes)


def _is_placeholder(name: str) -> bool:
    lower = name.lower()
    return any(p in lower for p in _PLACEHOLDER_ADAPTERS)


def _bus_id_from_pnp(device_id: str | None) -> str | None:
    if not device_id or not device_id.upper().startswith("PCI\\"):
        return None
    match = _PNP_RE.search(device_id)
    if not match:
        return None
    return f"0000:00:00.0 [{match.group(1)}:{match.group(2)}]"


def _as_int(value) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class WmiGpuProvider(GpuProvider):
    kind = GpuSourceKind.GENERIC

    def __init__(self, connection=None) -> None:
        if connection is None:
            import wmi  # type: ignore

            connection = wmi.WMI()
        self._wmi = connection
        self._adapter = None
        for controller in self._wmi.Win32_VideoController():
            name = getattr(controller, "Name", None) or ""
            if name and not _is_placeholder(name):
                self._adapter = controller
                break
        if self._adapter is None:
            raise RuntimeError("no hardware video controller reported by WMI")

    def identify(self) -> GpuSnapshot:
        a = self._adapter
        return GpuSnapshot(
            name=a.Name,
            memory_total=_as_int(getattr(a, "AdapterRAM", None)),
            driver_version=getattr(a, "DriverVersion", None),
            bus_id=_bus_id_from_pnp(getattr(a, "PNPDeviceID", None)),
        )

    def refresh(self, current: GpuSnapshot) -> GpuSnapshot:
        try:
            engines = self._wmi.Win32_PerfFormattedData_GPUPerformanceCounters_GPUEngine()
        except Exception as exc:
            _log.debug("wmi gpu engine query failed: %s", exc)
            return current
        readings = [_as_int(getattr(e, "UtilizationPercentage", None)) for e in engines]
        readings = [r for r in readings if r is not None]
        if not readings:
            return current
        return replace(current, utilization=float(min(100, max(readings))))


ProviderFactory = Callable[[], GpuProvider]


class GpuProbe:
    """Owns the active GPU provider and the latest snapshot.

    ``snapshot`` is ``None`` when no provider could be initialised, so the
    caller can render a "no GPU" placeholder.
    """

    def __init__(self, provider: GpuProvider | None = None) -> None:
        self.provider = provider or GpuProvider()
        self.snapshot: GpuSnapshot | None = self.provider.identify()

    @property
    def kind(self) -> GpuSourceKind:
        return self.provider.kind if self.snapshot is not None else GpuSourceKind.UNAVAILABLE

    @classmethod
    def detect(
        cls,
        vendor: ProviderFactory = NvmlGpuProvider,
        generic: ProviderFactory = WmiGpuProvider,
    ) -> "GpuProbe":
        for factory in (vendor, generic):
            try:
                provider = factory()
                probe = cls(provider)
            except Exception as exc:
                _log.warning("gpu provider %s unavailable: %s", getattr(factory, "__name__", factory), exc)
                continue
            if probe.snapshot is not None:
                _log.info(
                    "gpu source %s: %s (driver %s)",
                    probe.kind.value,
                    probe.snapshot.name,
                    probe.snapshot.driver_version or "unknown",
                    extra={"event": "gpu_detected"},
                )
                return probe
        _log.warning("no suitable GPU found", extra={"event": "gpu_unavailable"})
        return cls()

    def refresh(self) -> GpuSnapshot | None:
        if self.snapshot is None:
            return None
        try:
            self.snapshot = self.provider.refresh(self.snapshot)
        except Exception as exc:
            _log.warning("gpu refresh failed: %s", exc, extra={"event": "gpu_refresh_failed"})
        return self.snapshot
