#!/usr/bin/env python3
"""
Capture-side delta accumulation for Typing Stats.

Input hooks run on their own thread and must never block on I/O. They add
to a DeltaAccumulator under a short lock; a DeltaFlusher hands the
accumulated deltas to the reconciler at a fixed interval.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Tuple

from .daily_stats import COUNTER_METRICS, Metric

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL = 0.1


class DeltaSink(Protocol):
    def on_delta(self, metric: Metric, amount: int): ...

    def on_distance_delta(self, pixels: float): ...


@dataclass
class PendingDeltas:
    """Deltas accumulated since the last flush."""

    counts: Dict[Metric, int] = field(default_factory=dict)
    distance: float = 0.0

    @property
    def empty(self) -> bool:
        return not any(self.counts.values()) and self.distance <= 0


class DeltaAccumulator:
    """Thread-safe accumulator fed by input hooks."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[Metric, int] = {metric: 0 for metric in COUNTER_METRICS}
        self._distance = 0.0
        self._last_position: Optional[Tuple[float, float]] = None

    def add(self, metric: Metric, amount: int = 1) -> None:
        metric = Metric(metric)
        if metric is Metric.DISTANCE:
            self.add_distance(float(amount))
            return
        if amount <= 0:
            return
        with self._lock:
            self._counts[metric] += amount

    def add_distance(self, pixels: float) -> None:
        if not pixels > 0:
            return
        with self._lock:
            self._distance += pixels

    def add_movement(self, x: float, y: float) -> None:
        """Record a pointer position; travel is measured from the previous one."""
        with self._lock:
            if self._last_position is not None:
                last_x, last_y = self._last_position
                self._distance += math.hypot(x - last_x, y - last_y)
            self._last_position = (x, y)

    def drain(self) -> PendingDeltas:
        """Return and clear everything accumulated so far."""
        with self._lock:
            pending = PendingDeltas(
                counts={m: c for m, c in self._counts.items() if c > 0},
                distance=self._distance,
            )
            for metric in self._counts:
                self._counts[metric] = 0
            self._distance = 0.0
        return pending


class DeltaFlusher:
    """Periodically moves accumulated deltas into a sink."""

    def __init__(
        self,
        accumulator: DeltaAccumulator,
        sink: DeltaSink,
        interval: float = DEFAULT_FLUSH_INTERVAL,
    ):
        self.accumulator = accumulator
        self.sink = sink
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def flush(self) -> PendingDeltas:
        pending = self.accumulator.drain()
        if pending.empty:
            return pending
        for metric, amount in pending.counts.items():
            self.sink.on_delta(metric, amount)
        if pending.distance > 0:
            self.sink.on_distance_delta(pending.distance)
        return pending

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.flush()
            except Exception:
                logger.exception("Flushing deltas failed")

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="DeltaFlusher", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the flush thread and hand over whatever is still pending."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval * 10 + 1)
            self._thread = None
        self.flush()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
