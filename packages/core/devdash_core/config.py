"""Persistent app settings schema and load/save helpers."""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 2
DEFAULT_ENDPOINT = "https://ninite.com/{ids}/ninite.exe"

_log = logging.getLogger("devdash.config")


@dataclass
class DisplayConfig:
    custom_username: str | None = None


@dataclass
class PollingConfig:
    telemetry_interval_s: float = 1.0
    network_interval_s: float = 0.1
    detection_interval_s: float = 2.0


@dataclass
class InstallerConfig:
    endpoint: str = DEFAULT_ENDPOINT
    download_dir: str | None = None
    artifact_name: str = "ninite.exe"
    chunk_size: int = 64 * 1024
    timeout_s: int = 180


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    display: DisplayConfig = field(default_factory=DisplayConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    installer: InstallerConfig = field(default_factory=InstallerConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)

    def artifact_path(self) -> Path:
        base = Path(self.installer.download_dir) if self.installer.download_dir else Path(tempfile.gettempdir()) / "devdash"
        return base / self.installer.artifact_name


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "DevDash"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "DevDash"
    return Path.home() / ".config" / "devdash"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_display(cfg: AppConfig) -> None:
    name = cfg.display.custom_username
    if not isinstance(name, str) or not name.strip():
        cfg.display.custom_username = None


def _normalize_polling(cfg: AppConfig) -> None:
    p = cfg.polling
    p.telemetry_interval_s = max(0.25, min(10.0, float(p.telemetry_interval_s)))
    p.network_interval_s = max(0.05, min(5.0, float(p.network_interval_s)))
    p.detection_interval_s = max(0.5, min(60.0, float(p.detection_interval_s)))


def _normalize_installer(cfg: AppConfig) -> None:
    inst = cfg.installer
    if not isinstance(inst.endpoint, str) or "{ids}" not in inst.endpoint:
        inst.endpoint = DEFAULT_ENDPOINT
    if not inst.artifact_name:
        inst.artifact_name = "ninite.exe"
    inst.chunk_size = max(1024, int(inst.chunk_size))
    inst.timeout_s = max(5, int(inst.timeout_s))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 was the flat settings.json with a single display-name override.
        display = dict(data.get("display", {}) or {})
        if "custom_username" in data:
            display.setdefault("custom_username", data.pop("custom_username"))
        data["display"] = display
        data.setdefault("polling", {})
        data.setdefault("installer", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        _log.warning("config unreadable, using defaults: %s", path, extra={"event": "config_malformed"})
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    try:
        data = _migrate(raw)
    except (TypeError, ValueError):
        _log.warning("config version invalid, using defaults: %s", path, extra={"event": "config_malformed"})
        return AppConfig()
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        display=_merge(DisplayConfig, data.get("display", {})),
        polling=_merge(PollingConfig, data.get("polling", {})),
        installer=_merge(InstallerConfig, data.get("installer", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    try:
        _normalize_display(cfg)
        _normalize_polling(cfg)
        _normalize_installer(cfg)
    except (TypeError, ValueError):
        _log.warning("config values invalid, using defaults: %s", path, extra={"event": "config_malformed"})
        return AppConfig()
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path | None:
    """Write settings to disk. Failures are logged and reported as ``None``."""
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        _log.warning("could not save config %s: %s", path, exc, extra={"event": "config_save_failed"})
        return None
    return path


def display_name(cfg: AppConfig, fallback: str) -> str:
    return cfg.display.custom_username or fallback
