#!/usr/bin/env python3
"""
Per-day activity aggregate for Typing Stats.
Bundles one grow-only counter per metric plus per-device travel distance.
"""

import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .errors import DayMismatch
from .gcounter import GrowOnlyCounter, is_valid_amount

logger = logging.getLogger(__name__)

DAY_FORMAT = "%Y-%m-%d"


class Metric(str, Enum):
    """Tracked activity metrics."""

    KEYSTROKES = "keystrokes"
    WORDS = "words"
    CLICKS = "clicks"
    SCROLLS = "scrolls"
    DISTANCE = "distance"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def is_counter(self) -> bool:
        return self is not Metric.DISTANCE


COUNTER_METRICS = (Metric.KEYSTROKES, Metric.WORDS, Metric.CLICKS, Metric.SCROLLS)

# Serialized field names; "counter" is what keystroke-only records used.
_FIELD_NAMES = {
    Metric.KEYSTROKES: "counter",
    Metric.WORDS: "wordCounter",
    Metric.CLICKS: "clickCounter",
    Metric.SCROLLS: "scrollCounter",
}


def day_id(value: Union[date, datetime]) -> str:
    """Format a date as the canonical YYYY-MM-DD day identifier."""
    return value.strftime(DAY_FORMAT)


def today_id(now: Optional[datetime] = None) -> str:
    return day_id(now or datetime.now())


def day_id_days_ago(days: int, now: Optional[datetime] = None) -> str:
    return day_id((now or datetime.now()) - timedelta(days=days))


def parse_day_id(value: str) -> Optional[date]:
    try:
        parsed = datetime.strptime(value, DAY_FORMAT).date()
    except (TypeError, ValueError):
        return None
    # strptime also accepts unpadded fields such as "2024-1-5"
    return parsed if day_id(parsed) == value else None


class DailyAggregate:
    """Activity counters for one calendar day across all devices."""

    def __init__(
        self,
        day: str,
        created_at: Optional[datetime] = None,
        modified_at: Optional[datetime] = None,
    ):
        if parse_day_id(day) is None:
            raise ValueError(f"Invalid day identifier: {day!r}")
        self._day = day
        self.counters: Dict[Metric, GrowOnlyCounter] = {
            metric: GrowOnlyCounter() for metric in COUNTER_METRICS
        }
        self.distance: Dict[str, float] = {}
        self._created_at = created_at or datetime.now()
        self.modified_at = modified_at or self._created_at

    @classmethod
    def for_date(cls, when: Optional[datetime] = None) -> "DailyAggregate":
        when = when or datetime.now()
        return cls(day_id(when), created_at=when)

    @property
    def day(self) -> str:
        return self._day

    @property
    def created_at(self) -> datetime:
        return self._created_at

    def increment(self, device: str, metric: Metric, amount: int = 1) -> bool:
        """Increment a counter metric for device. Returns True if it changed."""
        metric = Metric(metric)
        if metric is Metric.DISTANCE:
            return self.increment_distance(device, float(amount))
        changed = self.counters[metric].increment(device, amount)
        if changed:
            self.modified_at = datetime.now()
        return changed

    def increment_distance(self, device: str, pixels: float) -> bool:
        """Add pixels of pointer travel to the device's running total."""
        if not pixels > 0:
            logger.debug("Ignoring non-positive distance %r for %s", pixels, device)
            return False
        self.distance[device] = self.distance.get(device, 0.0) + float(pixels)
        self.modified_at = datetime.now()
        return True

    def merge(self, other: "DailyAggregate") -> bool:
        """Merge another replica of the same day into this one.

        Counters and per-device distance totals both take the per-device
        maximum, so merging the same snapshot twice changes nothing.
        Returns True when any value grew.
        """
        if other.day != self._day:
            raise DayMismatch(self._day, other.day)

        changed = False
        for metric in COUNTER_METRICS:
            if self.counters[metric].merge(other.counters[metric]):
                changed = True

        for device, pixels in other.distance.items():
            if pixels > self.distance.get(device, 0.0):
                self.distance[device] = pixels
                changed = True

        if other.modified_at > self.modified_at:
            self.modified_at = other.modified_at
        return changed

    def total(self, metric: Metric) -> Union[int, float]:
        metric = Metric(metric)
        if metric is Metric.DISTANCE:
            return self.total_distance
        return self.counters[metric].total()

    @property
    def total_keystrokes(self) -> int:
        return self.counters[Metric.KEYSTROKES].total()

    @property
    def total_words(self) -> int:
        return self.counters[Metric.WORDS].total()

    @property
    def total_clicks(self) -> int:
        return self.counters[Metric.CLICKS].total()

    @property
    def total_scrolls(self) -> int:
        return self.counters[Metric.SCROLLS].total()

    @property
    def total_distance(self) -> float:
        return sum(self.distance.values())

    def devices(self):
        """All devices that contributed to this day."""
        found = set(self.distance)
        for counter in self.counters.values():
            found.update(counter)
        return sorted(found)

    def copy(self) -> "DailyAggregate":
        clone = DailyAggregate(self._day, self._created_at, self.modified_at)
        for metric in COUNTER_METRICS:
            clone.counters[metric] = self.counters[metric].copy()
        clone.distance = dict(self.distance)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self._day}
        for metric in COUNTER_METRICS:
            data[_FIELD_NAMES[metric]] = self.counters[metric].to_dict()
        data["distancePerDevice"] = dict(self.distance)
        data["createdAt"] = self._created_at.isoformat()
        data["modifiedAt"] = self.modified_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DailyAggregate":
        """Load a serialized record.

        Records written before words, clicks, scrolls and distance were
        tracked load with those metrics empty.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Record is not an object: {data!r}")
        day = data.get("id") or data.get("day")
        if not isinstance(day, str):
            raise ValueError(f"Record has no day identifier: {data!r}")

        created_at = _parse_timestamp(data.get("createdAt"))
        modified_at = _parse_timestamp(data.get("modifiedAt"))
        aggregate = cls(day, created_at=created_at, modified_at=modified_at)

        for metric in COUNTER_METRICS:
            aggregate.counters[metric] = GrowOnlyCounter.from_dict(
                data.get(_FIELD_NAMES[metric])
            )

        distance = data.get("distancePerDevice") or {}
        if not isinstance(distance, Mapping):
            raise ValueError(f"Malformed distance record: {distance!r}")
        for device, pixels in distance.items():
            if not is_valid_amount(pixels):
                logger.warning("Skipping malformed distance %r for %s", pixels, device)
                continue
            if pixels > 0:
                aggregate.distance[str(device)] = float(pixels)
        return aggregate

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DailyAggregate):
            return NotImplemented
        return (
            self._day == other._day
            and self.counters == other.counters
            and self.distance == other.distance
        )

    def __repr__(self) -> str:
        return (
            f"DailyAggregate(day={self._day!r}, "
            f"keystrokes={self.total_keystrokes}, words={self.total_words}, "
            f"clicks={self.total_clicks}, scrolls={self.total_scrolls}, "
            f"distance={self.total_distance:.1f})"
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning("Ignoring malformed timestamp %r", value)
        return None
    # Timestamps are kept naive in local time.
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
