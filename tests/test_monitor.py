"""Tests for capture-side delta accumulation."""

import threading
import unittest
from unittest.mock import MagicMock, call

from typing_stats.daily_stats import Metric
from typing_stats.monitor import DeltaAccumulator, DeltaFlusher, PendingDeltas


class TestDeltaAccumulator(unittest.TestCase):
    """Test cases for DeltaAccumulator."""

    def setUp(self):
        """Set up test fixtures."""
        self.accumulator = DeltaAccumulator()

    def test_drain_empty(self):
        """Test draining with nothing accumulated."""
        pending = self.accumulator.drain()
        self.assertTrue(pending.empty)
        self.assertEqual(pending.counts, {})

    def test_add_counts(self):
        """Test counts accumulate per metric."""
        self.accumulator.add(Metric.KEYSTROKES)
        self.accumulator.add(Metric.KEYSTROKES, 4)
        self.accumulator.add("clicks", 2)

        pending = self.accumulator.drain()

        self.assertEqual(pending.counts, {Metric.KEYSTROKES: 5, Metric.CLICKS: 2})

    def test_drain_resets(self):
        """Test that drain clears what it returned."""
        self.accumulator.add(Metric.WORDS, 3)
        self.accumulator.add_distance(10.0)
        self.accumulator.drain()

        self.assertTrue(self.accumulator.drain().empty)

    def test_non_positive_amounts_ignored(self):
        """Test that zero and negative deltas are dropped."""
        self.accumulator.add(Metric.SCROLLS, 0)
        self.accumulator.add(Metric.SCROLLS, -2)
        self.accumulator.add_distance(-5.0)

        self.assertTrue(self.accumulator.drain().empty)

    def test_distance_metric_routes_to_distance(self):
        """Test add(DISTANCE) behaves like add_distance."""
        self.accumulator.add(Metric.DISTANCE, 12)
        self.assertEqual(self.accumulator.drain().distance, 12.0)

    def test_add_movement(self):
        """Test pointer travel is measured between positions."""
        self.accumulator.add_movement(0, 0)
        self.accumulator.add_movement(3, 4)
        self.accumulator.add_movement(3, 10)

        self.assertEqual(self.accumulator.drain().distance, 11.0)

    def test_first_movement_only_seeds_position(self):
        """Test the first position adds no distance."""
        self.accumulator.add_movement(500, 500)
        self.assertEqual(self.accumulator.drain().distance, 0.0)

    def test_concurrent_adds(self):
        """Test counts from several threads all land."""

        def worker():
            for _ in range(1000):
                self.accumulator.add(Metric.KEYSTROKES)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(self.accumulator.drain().counts[Metric.KEYSTROKES], 4000)


class TestDeltaFlusher(unittest.TestCase):
    """Test cases for DeltaFlusher."""

    def setUp(self):
        """Set up test fixtures."""
        self.accumulator = DeltaAccumulator()
        self.sink = MagicMock()
        self.flusher = DeltaFlusher(self.accumulator, self.sink, interval=0.01)

    def test_flush_hands_deltas_to_sink(self):
        """Test each pending metric becomes one sink call."""
        self.accumulator.add(Metric.KEYSTROKES, 7)
        self.accumulator.add(Metric.CLICKS, 1)
        self.accumulator.add_distance(25.0)

        pending = self.flusher.flush()

        self.assertIsInstance(pending, PendingDeltas)
        self.sink.on_delta.assert_has_calls(
            [call(Metric.KEYSTROKES, 7), call(Metric.CLICKS, 1)], any_order=True
        )
        self.sink.on_distance_delta.assert_called_once_with(25.0)

    def test_flush_with_nothing_pending(self):
        """Test an empty flush makes no sink calls."""
        self.flusher.flush()

        self.sink.on_delta.assert_not_called()
        self.sink.on_distance_delta.assert_not_called()

    def test_start_and_stop(self):
        """Test the flush thread lifecycle."""
        self.flusher.start()
        self.assertTrue(self.flusher.running)

        self.flusher.stop()
        self.assertFalse(self.flusher.running)

    def test_stop_flushes_remaining(self):
        """Test stop hands over deltas added after the last tick."""
        self.flusher.start()
        self.flusher.stop()
        self.accumulator.add(Metric.WORDS, 2)

        self.flusher.stop()

        self.sink.on_delta.assert_called_once_with(Metric.WORDS, 2)

    def test_sink_errors_do_not_kill_thread(self):
        """Test a failing sink is logged and the loop keeps running."""
        done = threading.Event()

        def on_delta(metric, amount):
            if self.sink.on_delta.call_count >= 2:
                done.set()
            raise RuntimeError("sink down")

        self.sink.on_delta.side_effect = on_delta
        self.flusher.start()
        try:
            with self.assertLogs("typing_stats.monitor", level="ERROR"):
                for _ in range(100):
                    self.accumulator.add(Metric.KEYSTROKES)
                    if done.wait(0.05):
                        break
        finally:
            self.flusher._stop_event.set()
            self.flusher._thread.join(timeout=1)
            self.flusher._thread = None

        self.assertTrue(done.is_set())


if __name__ == "__main__":
    unittest.main()
