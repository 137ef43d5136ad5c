"""Ninite app catalog, installation detection, and installer pipeline."""

from .catalog import AppDescriptor, by_category, default_catalog, find_app, resolve_installer_ids
from .detection import (
    DetectionSignals,
    InstallationDetector,
    ProbeSource,
    RegistryRoot,
    RegistryView,
    UninstallEntry,
    WindowsProbeSource,
)
from .pipeline import (
    DownloadFailed,
    Failed,
    InstallerError,
    InstallerPhase,
    InstallerPipeline,
    InstallerState,
    NoAppsSelected,
    ProgressMessage,
    ProgressUpdate,
    StateChanged,
    drain,
)

__all__ = [
    "AppDescriptor",
    "DetectionSignals",
    "DownloadFailed",
    "Failed",
    "InstallationDetector",
    "InstallerError",
    "InstallerPhase",
    "InstallerPipeline",
    "InstallerState",
    "NoAppsSelected",
    "ProbeSource",
    "ProgressMessage",
    "ProgressUpdate",
    "RegistryRoot",
    "RegistryView",
    "StateChanged",
    "UninstallEntry",
    "WindowsProbeSource",
    "by_category",
    "default_catalog",
    "drain",
    "find_app",
    "resolve_installer_ids",
]
