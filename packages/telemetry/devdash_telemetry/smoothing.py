"""Display smoothing and cumulative-counter differencing."""

from __future__ import annotations

import math
from dataclasses import dataclass

SMOOTHING_K = 8.0
U64_MAX = (1 << 64) - 1


def lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * min(1.0, max(0.0, t))


class SmoothedValue:
    """Exponential approach of ``current`` toward ``target``.

    With ``k = 8`` the displayed value covers ~63% of the remaining gap every
    1/8 s. The approach is monotonic: ``current`` always stays between its
    previous value and ``target``.
    """

    __slots__ = ("current", "target", "k")

    def __init__(self, value: float = 0.0, k: float = SMOOTHING_K) -> None:
        self.current = float(value)
        self.target = float(value)
        self.k = k

    def set_target(self, value: float) -> None:
        self.target = float(value)

    def update(self, dt: float) -> None:
        if not dt > 0.0:
            return
        factor = 1.0 if math.isinf(dt) else -math.expm1(-self.k * dt)
        start, end = self.current, self.target
        value = lerp(start, end, factor)
        # lerp can land one ulp past the target in floating point.
        lo, hi = (start, end) if start <= end else (end, start)
        self.current = min(hi, max(lo, value))

    def __repr__(self) -> str:
        return f"SmoothedValue(current={self.current!r}, target={self.target!r})"


@dataclass
class DifferentialCounter:
    total: int = 0
    last_reading: int = 0
    rate: float = 0.0
    last_timestamp: float = 0.0

    @classmethod
    def seeded(cls, reading: int, timestamp: float) -> "DifferentialCounter":
        return cls(total=0, last_reading=int(reading), rate=0.0, last_timestamp=timestamp)

    def update(self, reading: int, timestamp: float) -> int:
        """Fold in a new cumulative reading and return the delta applied.

        A reading lower than the previous one is a counter reset; the new
        reading itself is counted as the increment.
        """
        reading = int(reading)
        elapsed = timestamp - self.last_timestamp
        if elapsed <= 0:
            self.last_reading = reading
            return 0

        delta = reading if reading < self.last_reading else reading - self.last_reading
        self.rate = delta / elapsed
        self.total = min(U64_MAX, self.total + delta)
        self.last_reading = reading
        self.last_timestamp = timestamp
        return delta
