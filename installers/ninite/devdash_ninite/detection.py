"""Installed-application detection via registry, filesystem, and uninstall probes."""

from __future__ import annotations

import getpass
import glob
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol

from .catalog import USERNAME_TOKEN, AppDescriptor

_log = logging.getLogger("devdash.detector")

UNINSTALL_SUBTREES = (
    "SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall",
    "SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall",
)


class RegistryRoot(str, Enum):
    MACHINE = "HKLM"
    USER = "HKCU"


class RegistryView(str, Enum):
    BITS_64 = "64-bit"
    BITS_32 = "32-bit"


@dataclass(frozen=True)
class UninstallEntry:
    display_name: str
    install_location: str | None = None


class ProbeSource(Protocol):
    def key_exists(self, root: RegistryRoot, view: RegistryView, path: str) -> bool: ...

    def glob(self, pattern: str) -> list[str]: ...

    def is_file(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def uninstall_entries(self, subtree: str) -> list[UninstallEntry]: ...


class WindowsProbeSource:
    """Real registry and filesystem. On non-Windows hosts every registry probe is negative."""

    def __init__(self) -> None:
        try:
            import winreg  # type: ignore
        except ImportError:
            winreg = None
        self._winreg = winreg

    def key_exists(self, root: RegistryRoot, view: RegistryView, path: str) -> bool:
        reg = self._winreg
        if reg is None:
            return False
        hive = reg.HKEY_LOCAL_MACHINE if root is RegistryRoot.MACHINE else reg.HKEY_CURRENT_USER
        flag = reg.KEY_WOW64_64KEY if view is RegistryView.BITS_64 else reg.KEY_WOW64_32KEY
        try:
            with reg.OpenKey(hive, path, 0, reg.KEY_READ | flag):
                return True
        except OSError:
            return False

    def glob(self, pattern: str) -> list[str]:
        return glob.glob(pattern)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def uninstall_entries(self, subtree: str) -> list[UninstallEntry]:
        reg = self._winreg
        if reg is None:
            return []
        entries: list[UninstallEntry] = []
        with reg.OpenKey(reg.HKEY_LOCAL_MACHINE, subtree, 0, reg.KEY_READ) as parent:
            index = 0
            while True:
                try:
                    child_name = reg.EnumKey(parent, index)
                except OSError:
                    break
                index += 1
                try:
                    with reg.OpenKey(parent, child_name) as child:
                        display_name = _query_str(reg, child, "DisplayName")
                        if display_name is None:
                            continue
                        entries.append(UninstallEntry(display_name, _query_str(reg, child, "InstallLocation")))
                except OSError:
                    continue
        return entries


def _query_str(reg, key, value_name: str) -> str | None:
    try:
        value, _kind = reg.QueryValueEx(key, value_name)
    except OSError:
        return None
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class DetectionSignals:
    registry: bool
    file: bool
    uninstall: bool

    @property
    def installed(self) -> bool:
        # The file probe is authoritative; the other signals are diagnostics only.
        return self.file


class InstallationDetector:
    """Recomputes ``AppDescriptor.installed`` for a catalog.

    Running it twice without filesystem changes is a no-op: no state change
    and no repeated log lines.
    """

    def __init__(self, probes: ProbeSource | None = None, username: str | None = None) -> None:
        self.probes = probes or WindowsProbeSource()
        self.username = username if username is not None else _current_username()

    def registry_signal(self, app: AppDescriptor) -> bool:
        for key_path in app.registry_probes:
            for view in RegistryView:
                for root in RegistryRoot:
                    try:
                        hit = self.probes.key_exists(root, view, key_path)
                    except OSError as exc:
                        _log.debug("registry probe failed for %s: %s", app.name, exc)
                        continue
                    if hit:
                        _log.debug("found %s in %s registry (%s): %s", app.name, root.value, view.value, key_path)
                        return True
        return False

    def expand(self, pattern: str) -> str:
        return pattern.replace(USERNAME_TOKEN, self.username)

    def file_signal(self, app: AppDescriptor) -> bool:
        for pattern in app.path_probes:
            path = self.expand(pattern)
            if "*" in path:
                try:
                    matches = self.probes.glob(path)
                except (OSError, ValueError) as exc:
                    _log.warning("failed to check glob pattern for %s: %s", app.name, exc)
                    continue
                for match in matches:
                    if self.probes.is_file(match):
                        _log.debug("found %s at path: %s", app.name, match)
                        return True
            elif self.probes.is_file(path):
                _log.debug("found %s at path: %s", app.name, path)
                return True
        return False

    def uninstall_signal(self, app: AppDescriptor) -> bool:
        needle = app.name.lower()
        for subtree in UNINSTALL_SUBTREES:
            try:
                entries: Iterable[UninstallEntry] = self.probes.uninstall_entries(subtree)
            except OSError as exc:
                _log.debug("uninstall subtree %s unreadable: %s", subtree, exc)
                continue
            for entry in entries:
                if needle not in entry.display_name.lower():
                    continue
                if entry.install_location and not self.probes.is_dir(entry.install_location):
                    _log.debug("install location missing for %s: %s", app.name, entry.install_location)
                    continue
                return True
        return False

    def signals(self, app: AppDescriptor) -> DetectionSignals:
        return DetectionSignals(
            registry=self.registry_signal(app),
            file=self.file_signal(app),
            uninstall=self.uninstall_signal(app),
        )

    def detect(self, app: AppDescriptor) -> bool:
        """Update ``app.installed``; return True when it flipped."""
        signals = self.signals(app)
        was_installed = app.installed
        app.installed = signals.installed
        if app.installed == was_installed:
            return False

        _log.info(
            "installation status changed for %s: %s -> %s",
            app.name,
            was_installed,
            app.installed,
            extra={"event": "install_state_changed"},
        )
        if not app.installed:
            _log.debug(
                "detection failed for %s - registry: %s, file: %s, uninstall: %s",
                app.name,
                signals.registry,
                signals.file,
                signals.uninstall,
            )
        return True

    def detect_all(self, catalog: list[AppDescriptor]) -> list[str]:
        return [app.name for app in catalog if self.detect(app)]


def _current_username() -> str:
    try:
        return getpass.getuser()
    except Exception:
        return os.environ.get("USERNAME", "")
