#!/usr/bin/env python3
"""
Sync reconciler for Typing Stats.
Orchestrates the history store, local storage and the remote store.

All cache mutations run on one worker thread. Deltas from capture threads
and remote change notifications are submitted onto it, so the history store
itself never sees concurrent access. Readers use the immutable snapshot
published after every committed mutation.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .daily_stats import DailyAggregate, Metric, today_id
from .errors import DayMismatch
from .repository import HistoryStore, MetricStats, compute_rolling_stats
from .scheduler import Debouncer, TimerFactory
from .storage import LocalStorage, RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DELAY = 1.0


class ReconcilerState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PERSISTING = "persisting"
    TERMINATING = "terminating"
    STOPPED = "stopped"


@dataclass(frozen=True)
class StatsSnapshot:
    """Read-only view of the history published to observers."""

    today: Optional[DailyAggregate] = None
    stats: Mapping[Metric, MetricStats] = field(default_factory=dict)
    days: Tuple[DailyAggregate, ...] = ()
    taken_at: Optional[datetime] = None


Observer = Callable[[StatsSnapshot], None]


class SyncReconciler:
    """Keeps the local history converged with the remote store."""

    def __init__(
        self,
        local: LocalStorage,
        device: str,
        remote: Optional[RemoteStore] = None,
        save_delay: float = DEFAULT_SAVE_DELAY,
        timer_factory: Optional[TimerFactory] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.local = local
        self.remote = remote
        self.device = str(device)
        self.clock = clock
        self.history = HistoryStore(self.device)
        self.state = ReconcilerState.IDLE

        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="typing-stats"
        )
        self._debouncer = Debouncer(save_delay, self._on_save_due, timer_factory)
        self._observers: List[Observer] = []
        self._observers_lock = threading.Lock()
        self._published_days: Dict[str, DailyAggregate] = {}
        self._snapshot = StatsSnapshot()
        # Days with changes not yet written everywhere; kept until a save succeeds
        self._dirty_days: Set[str] = set()

    # Lifecycle

    def start(self) -> None:
        """Load and merge local and remote history, then begin observing."""
        if self.state is not ReconcilerState.IDLE:
            raise RuntimeError(f"Cannot start reconciler in state {self.state.value}")
        self._submit(self._load).result()

    def shutdown(self) -> None:
        """Cancel the pending save and force a final save of every unsaved day."""
        if self.state in (ReconcilerState.IDLE, ReconcilerState.STOPPED):
            self.state = ReconcilerState.STOPPED
            self._executor.shutdown(wait=True)
            return
        self._debouncer.cancel()
        try:
            self._submit(self._terminate).result()
        finally:
            self._executor.shutdown(wait=True)
            self.state = ReconcilerState.STOPPED
            logger.info("Reconciler stopped")

    def __enter__(self) -> "SyncReconciler":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # Capture-side entry points (any thread)

    def on_delta(self, metric: Metric, amount: int) -> Future:
        return self._submit(self._record, Metric(metric), amount)

    def on_distance_delta(self, pixels: float) -> Future:
        return self._submit(self._record, Metric.DISTANCE, pixels)

    def flush(self) -> None:
        """Block until every task submitted so far has run."""
        self._submit(lambda: None).result()

    def save_now(self) -> bool:
        """Persist every unsaved day immediately, bypassing the debounce."""
        self._debouncer.cancel()
        return self._submit(self._persist_pending).result()

    def publish_all(self) -> int:
        """Write every known day to local storage and the remote store."""
        return self._submit(self._publish_all).result()

    # Presentation surface (any thread)

    @property
    def snapshot(self) -> StatsSnapshot:
        return self._snapshot

    def today(self) -> Optional[DailyAggregate]:
        return self._snapshot.today

    def rolling_stats(self) -> Mapping[Metric, MetricStats]:
        return self._snapshot.stats

    def all_days(self) -> Sequence[DailyAggregate]:
        return self._snapshot.days

    def recent_days(self, limit: int = 7) -> Sequence[DailyAggregate]:
        return self._snapshot.days[:limit]

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register observer for change notifications; returns an unsubscriber."""
        with self._observers_lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._observers_lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # Worker-thread internals

    def _submit(self, fn: Callable, *args) -> Future:
        return self._executor.submit(fn, *args)

    def _load(self) -> None:
        self.state = ReconcilerState.LOADING
        local_days = self._load_from(self.local, "local")
        remote_days = self._load_from(self.remote, "remote") if self.remote else {}

        for aggregate in (local_days or {}).values():
            self._merge_one(aggregate)
        remote_changed = [
            aggregate.day
            for aggregate in (remote_days or {}).values()
            if self._merge_one(aggregate)
        ]

        if local_days is None:
            # Writing remote days now could replace local-only counts we failed to read
            if remote_changed:
                logger.warning(
                    "Local history unreadable; not writing %d remote days locally",
                    len(remote_changed),
                )
        else:
            for day in remote_changed:
                merged = self.history.get(day)
                if merged is not None and merged != local_days.get(day):
                    self._save_local(merged)

        logger.info(
            "Loaded %d local and %d remote days (%d total)",
            len(local_days or {}),
            len(remote_days or {}),
            len(self.history),
        )

        if self.remote is not None:
            try:
                self.remote.observe_changes(self._on_remote_changes)
            except Exception as e:
                logger.warning("Could not observe remote changes: %s", e)

        self.state = ReconcilerState.READY
        self._publish([aggregate.day for aggregate in self.history.all_days()])

    def _load_from(self, store, label: str) -> Optional[Dict[str, DailyAggregate]]:
        """Load a snapshot; None means the load failed."""
        try:
            return dict(store.load_all())
        except Exception as e:
            logger.warning("Could not load %s history, starting empty: %s", label, e)
            return None

    def _merge_one(self, aggregate: DailyAggregate) -> bool:
        try:
            return self.history.merge_remote_day(aggregate)
        except DayMismatch as e:
            logger.warning("Skipping merge: %s", e)
            return False

    def _record(self, metric: Metric, amount) -> bool:
        now = self.clock()
        if metric is Metric.DISTANCE:
            changed = self.history.record_distance(amount, now=now)
        else:
            changed = self.history.record_increment(metric, amount, now=now)
        if changed:
            day = today_id(now)
            self._dirty_days.add(day)
            self._publish([day])
            self._debouncer.schedule()
        return changed

    def _on_remote_changes(self, aggregates: Iterable[DailyAggregate]) -> None:
        try:
            self._submit(self._merge_remote, list(aggregates))
        except RuntimeError:
            logger.debug("Dropping remote changes after shutdown")

    def _merge_remote(self, aggregates: List[DailyAggregate]) -> List[str]:
        changed = [
            aggregate.day for aggregate in aggregates if self._merge_one(aggregate)
        ]
        if not changed:
            return changed

        for day in changed:
            merged = self.history.get(day)
            if merged is not None:
                self._save_local(merged)
        today = today_id(self.clock())
        if today in changed:
            # Republish the merged view so the remote converges too
            self._dirty_days.add(today)
            self._debouncer.schedule()

        logger.debug("Merged remote changes for %s", ", ".join(changed))
        self._publish(changed)
        return changed

    def _on_save_due(self) -> None:
        try:
            self._submit(self._persist_pending)
        except RuntimeError:
            logger.debug("Save fired after shutdown")

    def _persist_pending(self) -> bool:
        """Save every dirty day; days whose save fails stay dirty."""
        if not self._dirty_days:
            return True

        previous = self.state
        if previous is ReconcilerState.READY:
            self.state = ReconcilerState.PERSISTING
        try:
            ok = True
            for day in sorted(self._dirty_days):
                aggregate = self.history.get(day)
                if aggregate is None or self._save_everywhere(aggregate):
                    self._dirty_days.discard(day)
                else:
                    ok = False
            return ok
        finally:
            if previous is ReconcilerState.READY:
                self.state = ReconcilerState.READY

    def _publish_all(self) -> int:
        saved = 0
        for aggregate in self.history.all_days():
            if self._save_everywhere(aggregate):
                self._dirty_days.discard(aggregate.day)
                saved += 1
        return saved

    def _terminate(self) -> None:
        self.state = ReconcilerState.TERMINATING
        if self.remote is not None:
            try:
                self.remote.stop()
            except Exception as e:
                logger.warning("Could not stop remote observer: %s", e)
        self._persist_pending()

    def _save_everywhere(self, aggregate: DailyAggregate) -> bool:
        snapshot = aggregate.copy()
        ok = self._save_local(snapshot)
        if self.remote is not None:
            ok = self._save_remote(snapshot) and ok
        return ok

    def _save_local(self, aggregate: DailyAggregate) -> bool:
        try:
            ok = bool(self.local.save(aggregate))
        except Exception as e:
            logger.warning("Local save of %s failed: %s", aggregate.day, e)
            return False
        if not ok:
            logger.warning("Local save of %s failed", aggregate.day)
        return ok

    def _save_remote(self, aggregate: DailyAggregate) -> bool:
        try:
            ok = bool(self.remote.save(aggregate))
        except Exception as e:
            logger.warning("Remote save of %s failed: %s", aggregate.day, e)
            return False
        if not ok:
            logger.warning("Remote save of %s failed", aggregate.day)
        return ok

    def _publish(self, changed_days: Iterable[str]) -> None:
        for day in changed_days:
            aggregate = self.history.get(day)
            if aggregate is not None:
                self._published_days[day] = aggregate.copy()

        now = self.clock()
        self._snapshot = StatsSnapshot(
            today=self._published_days.get(today_id(now)),
            stats=compute_rolling_stats(self._published_days, now),
            days=tuple(
                self._published_days[key]
                for key in sorted(self._published_days, reverse=True)
            ),
            taken_at=now,
        )

        with self._observers_lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(self._snapshot)
            except Exception:
                logger.exception("Stats observer failed")
