#!/usr/bin/env python3
"""
History store for Typing Stats.
Keeps every known day in memory and derives rolling statistics from it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .daily_stats import DailyAggregate, Metric, day_id_days_ago, today_id

logger = logging.getLogger(__name__)

Number = Union[int, float]

AVERAGE_WINDOWS = (7, 30)


@dataclass(frozen=True)
class MetricStats:
    """Rolling statistics for a single metric."""

    yesterday: Number = 0
    avg7: Number = 0
    avg30: Number = 0
    record: Number = 0
    record_day: Optional[str] = None


class HistoryStore:
    """Day-keyed cache of DailyAggregate records.

    Only today's entry receives local increments; any entry can absorb
    remote data. The store is not thread safe: the owner serializes access.
    """

    def __init__(
        self,
        device: str,
        days: Optional[Mapping[str, DailyAggregate]] = None,
    ):
        self.device = str(device)
        self._cache: Dict[str, DailyAggregate] = {}
        if days:
            for aggregate in days.values():
                self.merge_remote_day(aggregate)

    def _today_entry(self, now: Optional[datetime] = None) -> DailyAggregate:
        now = now or datetime.now()
        key = today_id(now)
        aggregate = self._cache.get(key)
        if aggregate is None:
            aggregate = DailyAggregate.for_date(now)
            self._cache[key] = aggregate
        return aggregate

    def record_increment(
        self, metric: Metric, amount: int, now: Optional[datetime] = None
    ) -> bool:
        """Add amount to today's metric for this device."""
        if amount <= 0:
            return False
        return self._today_entry(now).increment(self.device, Metric(metric), amount)

    def record_distance(self, pixels: float, now: Optional[datetime] = None) -> bool:
        """Add pointer travel (pixels) to today's running distance."""
        if not pixels > 0:
            return False
        return self._today_entry(now).increment_distance(self.device, pixels)

    def merge_remote_day(self, remote: DailyAggregate) -> bool:
        """Fold a remote replica of one day into the cache.

        Unknown days are adopted as a copy. Returns True when the cache
        changed.
        """
        local = self._cache.get(remote.day)
        if local is None:
            self._cache[remote.day] = remote.copy()
            logger.debug("Adopted day %s", remote.day)
            return True
        return local.merge(remote)

    def merge_remote_days(self, remotes: Iterable[DailyAggregate]) -> List[str]:
        """Merge several remote days, returning the ids that changed."""
        return [remote.day for remote in remotes if self.merge_remote_day(remote)]

    def get(self, day: str) -> Optional[DailyAggregate]:
        return self._cache.get(day)

    def today(self, now: Optional[datetime] = None) -> Optional[DailyAggregate]:
        return self._cache.get(today_id(now))

    def all_days(self) -> List[DailyAggregate]:
        """All known days, newest first."""
        return [self._cache[key] for key in sorted(self._cache, reverse=True)]

    def recent_days(self, limit: int = 7) -> List[DailyAggregate]:
        return self.all_days()[:limit]

    def snapshot(self) -> Dict[str, DailyAggregate]:
        """Deep copy of the cache, safe to hand to other threads."""
        return {key: aggregate.copy() for key, aggregate in self._cache.items()}

    def __contains__(self, day: str) -> bool:
        return day in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def compute_rolling_stats(
        self, now: Optional[datetime] = None
    ) -> Dict[Metric, MetricStats]:
        return compute_rolling_stats(self._cache, now)


def _average(metric: Metric, totals: List[Number]) -> Number:
    if not totals:
        return 0.0 if metric is Metric.DISTANCE else 0
    if metric is Metric.DISTANCE:
        return sum(totals) / len(totals)
    return sum(totals) // len(totals)


def compute_rolling_stats(
    days: Mapping[str, DailyAggregate], now: Optional[datetime] = None
) -> Dict[Metric, MetricStats]:
    """Yesterday, 7/30-day averages and all-time record for every metric.

    Averages cover the N days before today and only count days that have a
    record; missing days are excluded rather than treated as zero. Record
    ties go to the earliest day.
    """
    now = now or datetime.now()
    yesterday = days.get(day_id_days_ago(1, now))
    windows = {
        size: [
            days[key]
            for key in (day_id_days_ago(offset, now) for offset in range(1, size + 1))
            if key in days
        ]
        for size in AVERAGE_WINDOWS
    }
    ordered = [days[key] for key in sorted(days)]

    stats: Dict[Metric, MetricStats] = {}
    for metric in Metric:
        record: Number = 0
        record_day: Optional[str] = None
        for aggregate in ordered:
            total = aggregate.total(metric)
            if record_day is None or total > record:
                record, record_day = total, aggregate.day

        stats[metric] = MetricStats(
            yesterday=yesterday.total(metric) if yesterday else 0,
            avg7=_average(metric, [a.total(metric) for a in windows[7]]),
            avg30=_average(metric, [a.total(metric) for a in windows[30]]),
            record=record,
            record_day=record_day,
        )
    return stats
