"""Cadence bookkeeping for the polling loop."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

Clock = Callable[[], float]


@dataclass
class Cadence:
    """Fires at most once per ``interval_s``.

    A cadence that has never fired is due immediately when ``fire_first`` is set.
    """

    interval_s: float
    fire_first: bool = True
    last_fired: float | None = None

    def due(self, now: float) -> bool:
        if self.last_fired is None:
            return self.fire_first
        return now - self.last_fired >= self.interval_s

    def mark(self, now: float) -> None:
        self.last_fired = now

    def poll(self, now: float) -> bool:
        if self.last_fired is None and not self.fire_first:
            self.last_fired = now
            return False
        if self.due(now):
            self.last_fired = now
            return True
        return False


@dataclass
class PollScheduler:
    telemetry: Cadence = field(default_factory=lambda: Cadence(1.0))
    network: Cadence = field(default_factory=lambda: Cadence(0.1))
    detection: Cadence = field(default_factory=lambda: Cadence(2.0))
    clock: Clock = time.monotonic
    last_frame: float | None = None

    @classmethod
    def from_intervals(
        cls,
        telemetry_s: float,
        network_s: float,
        detection_s: float,
        clock: Clock = time.monotonic,
    ) -> "PollScheduler":
        return cls(
            telemetry=Cadence(telemetry_s),
            network=Cadence(network_s),
            detection=Cadence(detection_s),
            clock=clock,
        )

    def frame(self, now: float) -> float:
        """Return seconds since the previous frame (0.0 on the first one)."""
        dt = 0.0 if self.last_frame is None else max(0.0, now - self.last_frame)
        self.last_frame = now
        return dt
