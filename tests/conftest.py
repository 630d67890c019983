"""Pytest configuration and shared test doubles."""

import shutil
import tempfile
from datetime import datetime

import pytest

from typing_stats.daily_stats import DailyAggregate, Metric
from typing_stats.storage import LocalStorage, RemoteStore

DEVICE_A = "DEVICE-A"
DEVICE_B = "DEVICE-B"


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class FakeTimerFactory:
    """Collects every FakeTimer created by a Debouncer."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.timers if t.started and not t.cancelled]

    def fire_all(self):
        for timer in self.active:
            timer.fire()


class MemoryLocalStore(LocalStorage):
    """In-memory local storage recording every save."""

    def __init__(self, days=None, fail_load=False):
        self.days = {day.day: day.copy() for day in (days or [])}
        self.saves = []
        self.fail_load = fail_load
        self.fail_save = False

    def load_all(self):
        if self.fail_load:
            raise OSError("disk unavailable")
        return {key: day.copy() for key, day in self.days.items()}

    def save(self, aggregate):
        if self.fail_save:
            return False
        self.saves.append(aggregate.copy())
        self.days[aggregate.day] = aggregate.copy()
        return True


class MemoryRemoteStore(MemoryLocalStore, RemoteStore):
    """In-memory remote store that lets tests push changes."""

    def __init__(self, days=None, fail_load=False):
        super().__init__(days, fail_load)
        self.callbacks = []
        self.stopped = False

    def observe_changes(self, callback):
        self.callbacks.append(callback)

    def stop(self):
        self.stopped = True

    def deliver(self, aggregates):
        for callback in self.callbacks:
            callback(list(aggregates))


def make_day(day, device=DEVICE_A, **totals):
    """Build a DailyAggregate with the given per-metric totals for device."""
    aggregate = DailyAggregate(day, created_at=datetime(2024, 1, 1))
    for name, amount in totals.items():
        metric = Metric(name)
        if metric is Metric.DISTANCE:
            aggregate.increment_distance(device, amount)
        else:
            aggregate.increment(device, metric, amount)
    return aggregate


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "unit: mark test as unit test")
