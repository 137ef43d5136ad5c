"""Download-and-run state machine for the composed Ninite installer.

A run moves ``Idle -> Downloading -> Installing -> Idle``. Any failure ends
the run with a single ``Failed`` message, which the consumer turns into
``InstallerState.error(...)``; leaving that state takes an explicit retry.
All communication with the polling side goes through ``channel``.
"""

from __future__ import annotations

import http.client
import logging
import queue
import subprocess
import tempfile
import threading
import urllib.error
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Union

from .catalog import AppDescriptor, resolve_installer_ids
from .service import Launcher, Opener, Response, content_length, launch_installer, urlopen

_log = logging.getLogger("devdash.installer")

DEFAULT_ENDPOINT = "https://ninite.com/{ids}/ninite.exe"
ID_SEPARATOR = "-"


class InstallerPhase(str, Enum):
    IDLE = "Idle"
    DOWNLOADING = "Downloading"
    INSTALLING = "Installing"
    ERROR = "Error"


@dataclass(frozen=True)
class InstallerState:
    phase: InstallerPhase
    message: str | None = None

    @classmethod
    def error(cls, message: str) -> "InstallerState":
        return cls(InstallerPhase.ERROR, message)

    @property
    def is_idle(self) -> bool:
        return self.phase is InstallerPhase.IDLE

    def __str__(self) -> str:
        if self.message:
            return f"{self.phase.value}: {self.message}"
        return self.phase.value


IDLE = InstallerState(InstallerPhase.IDLE)
DOWNLOADING = InstallerState(InstallerPhase.DOWNLOADING)
INSTALLING = InstallerState(InstallerPhase.INSTALLING)


@dataclass(frozen=True)
class ProgressUpdate:
    fraction: float


@dataclass(frozen=True)
class StateChanged:
    state: InstallerState


@dataclass(frozen=True)
class Failed:
    message: str


ProgressMessage = Union[ProgressUpdate, StateChanged, Failed]


class InstallerError(RuntimeError):
    pass


class NoAppsSelected(InstallerError):
    def __init__(self) -> None:
        super().__init__("No apps selected")


class DownloadFailed(InstallerError):
    def __init__(self, reason: str, status: int | None = None) -> None:
        self.reason = reason
        self.status = status
        super().__init__(f"Download failed: {reason}")


def drain(channel: "queue.Queue[ProgressMessage]") -> Iterator[ProgressMessage]:
    """Yield queued messages in order without blocking."""
    while True:
        try:
            yield channel.get_nowait()
        except queue.Empty:
            return


class InstallerPipeline:
    def __init__(
        self,
        catalog: list[AppDescriptor],
        channel: "queue.Queue[ProgressMessage] | None" = None,
        artifact_path: Path | None = None,
        endpoint: str = DEFAULT_ENDPOINT,
        opener: Opener = urlopen,
        launcher: Launcher = launch_installer,
        chunk_size: int = 64 * 1024,
        timeout_s: int = 180,
    ) -> None:
        self.catalog = catalog
        self.channel: queue.Queue[ProgressMessage] = channel if channel is not None else queue.Queue()
        self.artifact_path = artifact_path or Path(tempfile.gettempdir()) / "devdash" / "ninite.exe"
        self.endpoint = endpoint
        self.chunk_size = chunk_size
        self.timeout_s = timeout_s
        self._opener = opener
        self._launcher = launcher

    def build_url(self, selected: list[str]) -> str:
        ids = resolve_installer_ids(self.catalog, list(selected))
        return self.endpoint.format(ids=ID_SEPARATOR.join(ids))

    def start(self, selected: list[str]) -> threading.Thread:
        """Launch a run on a worker thread.

        Raises ``NoAppsSelected`` synchronously, before any message is sent.
        Refusing a second concurrent run is the caller's job.
        """
        if not selected:
            raise NoAppsSelected()
        worker = threading.Thread(target=self.run, args=(list(selected),), name="devdash-installer", daemon=True)
        worker.start()
        return worker

    def run(self, selected: list[str]) -> bool:
        try:
            self._execute(selected)
        except InstallerError as exc:
            _log.error("installer run failed: %s", exc, extra={"event": "installer_failed"})
            self._emit(Failed(str(exc)))
            return False
        except Exception as exc:
            _log.exception("installer run crashed", extra={"event": "installer_crashed"})
            self._discard_artifact()
            self._emit(Failed(str(exc)))
            return False
        return True

    def _emit(self, message: ProgressMessage) -> None:
        self.channel.put(message)

    def _execute(self, selected: list[str]) -> None:
        if not selected:
            raise NoAppsSelected()

        url = self.build_url(selected)
        self._emit(StateChanged(DOWNLOADING))
        _log.info("downloading installer from %s", url, extra={"event": "download_start"})

        with self._open(url) as response:
            status = int(getattr(response, "status", 200) or 200)
            if not 200 <= status < 300:
                raise DownloadFailed(f"Server returned: {status}", status=status)
            total = content_length(response.headers)
            self._remove_existing()
            self._download(response, total)

        self._emit(StateChanged(INSTALLING))
        self._install()
        self._cleanup()
        self._emit(StateChanged(IDLE))

    def _open(self, url: str) -> Response:
        try:
            return self._opener(url, self.timeout_s)
        except urllib.error.HTTPError as exc:
            raise DownloadFailed(f"Server returned: {exc.code}", status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise DownloadFailed(str(exc.reason)) from exc
        except (OSError, ValueError, http.client.HTTPException) as exc:
            raise DownloadFailed(str(exc)) from exc

    def _remove_existing(self) -> None:
        path = self.artifact_path
        if not path.exists():
            return
        try:
            path.unlink()
        except OSError as exc:
            _log.error("failed to remove existing installer: %s", exc)
            raise DownloadFailed(
                "Could not remove existing installer file. Please close any running installers and try again."
            ) from exc
        _log.info("removed existing installer file")

    def _chunks(self, response: Response) -> Iterator[bytes]:
        while True:
            try:
                chunk = response.read(self.chunk_size)
            except (OSError, http.client.HTTPException) as exc:
                raise DownloadFailed(f"Connection lost: {exc}") from exc
            if not chunk:
                return
            yield chunk

    def _download(self, response: Response, total: int | None) -> None:
        path = self.artifact_path
        downloaded = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = path.open("wb")
        except OSError as exc:
            self._discard_artifact()
            raise DownloadFailed(f"Could not create installer file: {exc}") from exc

        try:
            with fh:
                for chunk in self._chunks(response):
                    fh.write(chunk)
                    downloaded += len(chunk)
                    if total:
                        self._emit(ProgressUpdate(min(1.0, downloaded / total)))
        except DownloadFailed:
            self._discard_artifact()
            raise
        except OSError as exc:
            _log.error("failed to write installer chunk: %s", exc)
            self._discard_artifact()
            raise DownloadFailed(f"Failed to write installer: {exc}") from exc

        _log.info("downloaded %d bytes to %s", downloaded, path, extra={"event": "download_complete"})

    def _install(self) -> None:
        try:
            process = self._launcher(self.artifact_path)
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            _log.error("failed to launch installer: %s", exc)
            self._discard_artifact()
            raise DownloadFailed(f"Failed to launch installer: {exc}") from exc
        _log.info("launched installer", extra={"event": "installer_launched"})

        try:
            code = process.wait()
        except (OSError, subprocess.SubprocessError) as exc:
            _log.error("failed to wait for installer: %s", exc)
            self._discard_artifact()
            raise DownloadFailed(f"Failed to wait for installer: {exc}") from exc
        _log.info("installer exited with code %s", code, extra={"event": "installer_exited"})

    def _cleanup(self) -> None:
        try:
            self.artifact_path.unlink(missing_ok=True)
        except OSError as exc:
            _log.warning("could not clean up installer file: %s", exc)
            return
        _log.info("cleaned up installer file")

    def _discard_artifact(self) -> None:
        try:
            self.artifact_path.unlink(missing_ok=True)
        except OSError as exc:
            _log.warning("could not remove partial installer file: %s", exc)
