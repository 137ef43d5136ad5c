import math
import random
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from devdash_telemetry.smoothing import U64_MAX, DifferentialCounter, SmoothedValue, lerp


class SmoothedValueTests(unittest.TestCase):
    def test_zero_dt_leaves_current(self):
        v = SmoothedValue(10.0)
        v.set_target(90.0)
        v.update(0.0)
        self.assertEqual(v.current, 10.0)

    def test_negative_dt_treated_as_zero(self):
        v = SmoothedValue(10.0)
        v.set_target(90.0)
        v.update(-1.0)
        self.assertEqual(v.current, 10.0)

    def test_one_over_k_covers_63_percent(self):
        v = SmoothedValue(0.0)
        v.set_target(100.0)
        v.update(1.0 / 8.0)
        self.assertAlmostEqual(v.current, 100.0 * (1 - math.exp(-1.0)), places=6)

    def test_infinite_dt_snaps_to_target(self):
        v = SmoothedValue(3.0)
        v.set_target(-7.5)
        v.update(float("inf"))
        self.assertEqual(v.current, -7.5)

    def test_set_target_is_idempotent(self):
        v = SmoothedValue(1.0)
        v.set_target(5.0)
        v.set_target(5.0)
        self.assertEqual(v.target, 5.0)
        self.assertEqual(v.current, 1.0)

    def test_never_overshoots_and_strictly_approaches(self):
        rng = random.Random(1234)
        for _ in range(500):
            start = rng.uniform(-1000, 1000)
            target = rng.uniform(-1000, 1000)
            dt = rng.choice([rng.uniform(0.001, 0.1), rng.uniform(0.1, 5.0), 100.0])
            v = SmoothedValue(start)
            v.set_target(target)
            v.update(dt)
            lo, hi = min(start, target), max(start, target)
            self.assertTrue(lo <= v.current <= hi)
            if start != target:
                self.assertLess(abs(target - v.current), abs(target - start))

    def test_repeated_updates_converge_monotonically(self):
        v = SmoothedValue(0.0)
        v.set_target(1.0)
        previous = v.current
        for _ in range(200):
            v.update(1.0 / 60.0)
            self.assertGreaterEqual(v.current, previous)
            self.assertLessEqual(v.current, 1.0)
            previous = v.current
        self.assertAlmostEqual(v.current, 1.0, places=6)

    def test_lerp_clamps_factor(self):
        self.assertEqual(lerp(0.0, 10.0, 2.0), 10.0)
        self.assertEqual(lerp(0.0, 10.0, -1.0), 0.0)


class DifferentialCounterTests(unittest.TestCase):
    def test_reset_counts_new_reading_as_delta(self):
        counter = DifferentialCounter.seeded(100, timestamp=0.0)
        deltas = [counter.update(reading, float(t)) for t, reading in enumerate([150, 140, 200], start=1)]
        self.assertEqual(deltas, [50, 140, 60])
        self.assertEqual(counter.total, 250)
        self.assertEqual(counter.last_reading, 200)

    def test_rate_uses_elapsed_time(self):
        counter = DifferentialCounter.seeded(0, timestamp=10.0)
        counter.update(1000, 10.5)
        self.assertAlmostEqual(counter.rate, 2000.0)
        self.assertEqual(counter.last_timestamp, 10.5)

    def test_non_positive_elapsed_only_records_reading(self):
        counter = DifferentialCounter.seeded(100, timestamp=5.0)
        counter.update(400, 5.0)
        self.assertEqual(counter.total, 0)
        self.assertEqual(counter.rate, 0.0)
        self.assertEqual(counter.last_reading, 400)
        counter.update(450, 6.0)
        self.assertEqual(counter.total, 50)

    def test_total_saturates(self):
        counter = DifferentialCounter(total=U64_MAX - 10, last_reading=0, last_timestamp=0.0)
        counter.update(1000, 1.0)
        self.assertEqual(counter.total, U64_MAX)
        self.assertGreaterEqual(counter.rate, 0.0)

    def test_seeded_counter_starts_at_zero(self):
        counter = DifferentialCounter.seeded(123456, timestamp=1.0)
        self.assertEqual(counter.total, 0)
        self.assertEqual(counter.rate, 0.0)


if __name__ == "__main__":
    unittest.main()
