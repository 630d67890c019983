#!/usr/bin/env python3
"""
Timer helpers for Typing Stats.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class Debouncer:
    """Coalesces rapid triggers into one call after a quiet period.

    Every schedule() cancels the pending timer and arms a new one, so the
    action runs once, ``delay`` seconds after the last trigger.
    """

    def __init__(
        self,
        delay: float,
        action: Callable[[], None],
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.delay = delay
        self.action = action
        self.timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    def schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = self.timer_factory(self.delay, lambda: self._fire(generation))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> bool:
        """Cancel the pending call. Returns True if one was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
            self._generation += 1
        if timer is None:
            return False
        timer.cancel()
        return True

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that lost the race with cancel() or schedule() is stale.
            if generation != self._generation:
                return
            self._timer = None
        try:
            self.action()
        except Exception:
            logger.exception("Debounced action failed")
