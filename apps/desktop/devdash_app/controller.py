"""Polling-side owner of telemetry, detection, selection, and installer state."""

from __future__ import annotations

import logging
import threading

from devdash_core import AppConfig, PollScheduler
from devdash_ninite import (
    AppDescriptor,
    Failed,
    InstallationDetector,
    InstallerPhase,
    InstallerPipeline,
    InstallerState,
    ProgressMessage,
    ProgressUpdate,
    StateChanged,
    default_catalog,
    drain,
    find_app,
)
from devdash_ninite.pipeline import IDLE
from devdash_ninite.service import is_installer_process
from devdash_telemetry import DashboardSnapshot, GpuProbe, PsutilTelemetrySource, TelemetrySampler

_log = logging.getLogger("devdash.app")


class DashboardController:
    """Runs on the polling context; the only writer of selection and installer state.

    ``tick`` is meant to be called once per frame. Sampling, detection and
    message draining happen on their own cadences inside it.
    """

    def __init__(
        self,
        sampler: TelemetrySampler,
        detector: InstallationDetector,
        pipeline: InstallerPipeline,
        catalog: list[AppDescriptor],
        scheduler: PollScheduler | None = None,
    ) -> None:
        self.sampler = sampler
        self.detector = detector
        self.pipeline = pipeline
        self.catalog = catalog
        self.scheduler = scheduler or PollScheduler()

        self.state: InstallerState = IDLE
        self.progress = 0.0
        self.selected: list[str] = []
        self.installer_running = False
        self._worker: threading.Thread | None = None

    def tick(self, now: float | None = None) -> None:
        now = self.scheduler.clock() if now is None else now
        dt = self.scheduler.frame(now)

        if self.scheduler.detection.poll(now):
            self.check_installations()

        self.sampler.advance(dt)

        if self.scheduler.network.poll(now):
            self.sampler.refresh_network(now)
        if self.scheduler.telemetry.poll(now):
            self.sampler.refresh_system()

        self.drain_messages()

    def snapshot(self) -> DashboardSnapshot:
        return self.sampler.snapshot()

    def check_installations(self) -> None:
        self.installer_running = any(is_installer_process(n) for n in self.sampler.source.process_names())
        # An installer mid-run leaves half-written files around; wait for it.
        if not self.installer_running:
            self.detector.detect_all(self.catalog)

    def refresh_installations(self) -> None:
        _log.info("refreshing program installation status", extra={"event": "detection_refresh"})
        self.detector.detect_all(self.catalog)
        installed = {app.name for app in self.catalog if app.installed}
        self.selected = [name for name in self.selected if name not in installed]

    def select(self, name: str) -> bool:
        app = find_app(self.catalog, name)
        if app is None or app.installed or self.busy:
            return False
        if name not in self.selected:
            _log.debug("selected app for installation: %s", name)
            self.selected.append(name)
        return True

    def deselect(self, name: str) -> None:
        if name in self.selected:
            _log.debug("deselected app: %s", name)
            self.selected.remove(name)

    @property
    def busy(self) -> bool:
        return not self.state.is_idle or (self._worker is not None and self._worker.is_alive())

    def install(self) -> bool:
        """Start a pipeline run for the current selection.

        Returns False while a run is active or an error awaits retry.
        ``NoAppsSelected`` propagates when nothing is selected.
        """
        self.drain_messages()
        if self.busy:
            _log.warning("installer busy (%s), refusing second run", self.state)
            return False
        _log.info("starting installation of selected apps: %s", self.selected, extra={"event": "install_requested"})
        self.progress = 0.0
        self._worker = self.pipeline.start(list(self.selected))
        return True

    def retry(self) -> bool:
        if self.state.phase is not InstallerPhase.ERROR:
            return False
        _log.info("retrying installation", extra={"event": "install_retry"})
        self.state = IDLE
        self.progress = 0.0
        return True

    def apply(self, message: ProgressMessage) -> None:
        if isinstance(message, ProgressUpdate):
            self.progress = message.fraction
        elif isinstance(message, StateChanged):
            self.state = message.state
            if message.state.is_idle:
                _log.info("installation completed, refreshing program status", extra={"event": "install_complete"})
                self.refresh_installations()
        elif isinstance(message, Failed):
            _log.error("installer error: %s", message.message)
            self.state = InstallerState.error(message.message)

    def drain_messages(self) -> int:
        count = 0
        for message in drain(self.pipeline.channel):
            self.apply(message)
            count += 1
        return count


def build_controller(cfg: AppConfig) -> DashboardController:
    catalog = default_catalog()
    sampler = TelemetrySampler(PsutilTelemetrySource(), GpuProbe.detect())
    pipeline = InstallerPipeline(
        catalog,
        artifact_path=cfg.artifact_path(),
        endpoint=cfg.installer.endpoint,
        chunk_size=cfg.installer.chunk_size,
        timeout_s=cfg.installer.timeout_s,
    )
    scheduler = PollScheduler.from_intervals(
        cfg.polling.telemetry_interval_s,
        cfg.polling.network_interval_s,
        cfg.polling.detection_interval_s,
    )
    return DashboardController(sampler, InstallationDetector(), pipeline, catalog, scheduler)
