"""HTTP and process plumbing shared by the installer pipeline and CLI."""

from __future__ import annotations

import os
import ssl
import subprocess
import urllib.request
from pathlib import Path
from typing import Any, Callable, Protocol

try:
    import certifi
except Exception:  # pragma: no cover - fallback when optional dependency unavailable
    certifi = None


USER_AGENT = "DevDash/0.1 (+https://github.com/devdash/devdash)"


class Response(Protocol):
    status: int
    headers: Any

    def read(self, amt: int = ...) -> bytes: ...

    def __enter__(self) -> "Response": ...

    def __exit__(self, exc_type, exc, tb) -> Any: ...


class Process(Protocol):
    def wait(self) -> int: ...


Opener = Callable[[str, int], Response]
Launcher = Callable[[Path], Process]


def _build_ssl_context() -> ssl.SSLContext:
    """Create TLS context for installer downloads with explicit CA handling."""
    if os.environ.get("DEVDASH_ALLOW_INSECURE_TLS", "").strip() == "1":
        return ssl._create_unverified_context()

    ca_bundle = os.environ.get("DEVDASH_CA_BUNDLE", "").strip()
    if ca_bundle:
        return ssl.create_default_context(cafile=ca_bundle)

    if certifi is not None:
        return ssl.create_default_context(cafile=certifi.where())

    return ssl.create_default_context()


def urlopen(url: str, timeout: int) -> Response:
    request = urllib.request.Request(
        url,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/octet-stream, */*",
        },
    )
    return urllib.request.urlopen(request, timeout=timeout, context=_build_ssl_context())


def launch_installer(path: Path) -> subprocess.Popen:
    """Start the downloaded artifact with no arguments."""
    return subprocess.Popen([str(path)])


def content_length(headers: Any) -> int | None:
    raw = headers.get("Content-Length") if headers is not None else None
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def is_installer_process(name: str, installer_stem: str = "ninite") -> bool:
    lower = name.lower()
    return installer_stem in lower and lower.endswith(".exe")
