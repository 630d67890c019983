#!/usr/bin/env python3
"""
Typing Stats application core.
Wires device identity, storage, sync and delta capture together.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

from .config import Config, get_default_data_dir
from .daily_stats import Metric
from .device import DeviceIdentity
from .http_sync import HttpSyncClient
from .monitor import DEFAULT_FLUSH_INTERVAL, DeltaAccumulator, DeltaFlusher
from .scheduler import TimerFactory
from .storage import LocalStore
from .sync import DEFAULT_SAVE_DELAY, SyncReconciler
from .utils import ensure_data_dir, format_count, format_distance

logger = logging.getLogger(__name__)


class TypingStats:
    """
    Typing Stats - orchestrates capture, history and sync components.

    Uses composition: the reconciler owns the history, the flusher moves
    captured deltas onto it, and storage backends are injected into it.
    """

    def __init__(
        self,
        data_dir: Optional[Union[str, Path]] = None,
        endpoint: str = "",
        auth_token: str = "",  # nosec B107
        save_debounce: float = DEFAULT_SAVE_DELAY,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        poll_interval: float = 60.0,
        dpi: float = 96.0,
        distance_format: str = "mi",
        selected_metrics: Optional[List[str]] = None,
        timer_factory: Optional[TimerFactory] = None,
    ):
        """
        Initialize Typing Stats.

        Args:
            data_dir: Directory for day files and the device id.
                      If None, uses the default user data directory.
            endpoint: Remote store URL; empty keeps history local only.
            auth_token: Bearer token for the remote store.
            save_debounce: Quiet period in seconds before saving.
            flush_interval: Seconds between capture flushes.
            poll_interval: Seconds between remote change polls.
            dpi: Pointer DPI used to display distance.
            distance_format: "mi", "ft" or "both".
            selected_metrics: Metrics shown in the status line.
            timer_factory: Replacement for threading.Timer (tests).
        """
        self.data_dir = ensure_data_dir(data_dir or get_default_data_dir())
        self.device = DeviceIdentity.load_or_create(self.data_dir)
        self.dpi = dpi
        self.distance_format = distance_format
        self.selected_metrics = [
            Metric(name) for name in (selected_metrics or ["keystrokes"])
        ]

        self.local = LocalStore(self.data_dir)
        self.remote: Optional[HttpSyncClient] = None
        if endpoint:
            self.remote = HttpSyncClient(
                endpoint,
                auth_token,
                device=self.device.value,
                poll_interval=poll_interval,
            )

        self.reconciler = SyncReconciler(
            self.local,
            self.device.value,
            remote=self.remote,
            save_delay=save_debounce,
            timer_factory=timer_factory,
        )
        self.accumulator = DeltaAccumulator()
        self.flusher = DeltaFlusher(self.accumulator, self.reconciler, flush_interval)
        self.running = False
        self._stop_requested = threading.Event()

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "TypingStats":
        options = dict(
            data_dir=config.data_dir,
            endpoint=config.sync_endpoint,
            auth_token=config.sync_auth_token,
            save_debounce=config.save_debounce,
            flush_interval=config.flush_interval,
            poll_interval=config.remote_poll_interval,
            dpi=config.dpi,
            distance_format=config.distance_format,
            selected_metrics=config.selected_metrics,
        )
        options.update(overrides)
        return cls(**options)

    def start(self) -> None:
        """Load history, start syncing and start flushing captured deltas."""
        if self.running:
            return
        logger.info(
            "Starting typing stats for device %s (data in %s)",
            self.device,
            self.data_dir,
        )
        self.reconciler.start()
        self.flusher.start()
        self.running = True

    def stop(self) -> None:
        """Flush pending deltas and force a final save."""
        self._stop_requested.set()
        if not self.running:
            return
        self.flusher.stop()
        self.reconciler.shutdown()
        self.running = False

    def request_stop(self) -> None:
        """Wake wait() without doing any shutdown work; safe in signal handlers."""
        self._stop_requested.set()

    def wait(self) -> None:
        """Block until stop() or request_stop() is called."""
        while not self._stop_requested.wait(1.0):
            pass

    def record(self, metric: Metric, amount: float = 1) -> None:
        """Feed a captured delta, as an input hook would."""
        self.accumulator.add(Metric(metric), amount)

    def format_value(self, metric: Metric, value: float) -> str:
        if metric is Metric.DISTANCE:
            return format_distance(value, self.dpi, self.distance_format)
        return format_count(int(value))

    def status_line(self) -> str:
        """Short summary of today's selected metrics."""
        today = self.reconciler.today()
        parts = []
        for metric in self.selected_metrics:
            value = today.total(metric) if today else 0
            parts.append(f"{self.format_value(metric, value)} {metric.value}")
        return " | ".join(parts)
