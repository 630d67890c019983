#!/usr/bin/env python3
"""
Grow-only counter (G-Counter) CRDT.

Each device owns one slot that only ever increases. The counter's value is
the sum of all slots, and merging two counters takes the maximum of every
slot, which makes merge commutative, associative and idempotent. Snapshots
can therefore be exchanged in any order, any number of times, and every
replica ends up with the same state.

Example::

    a = GrowOnlyCounter()
    b = GrowOnlyCounter()
    a.increment("device-a", 100)
    b.increment("device-b", 70)
    a.merge(b)
    assert a.total() == 170
"""

import logging
import math
from typing import Any, Dict, Iterator, List, Mapping, Optional

logger = logging.getLogger(__name__)


def is_valid_amount(value: Any) -> bool:
    """True for finite int or float values; bools are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class GrowOnlyCounter:
    """Per-device grow-only counter."""

    __slots__ = ("_counts",)

    def __init__(self, counts: Optional[Mapping[str, int]] = None):
        self._counts: Dict[str, int] = {}
        if counts:
            for device, count in counts.items():
                if count > 0:
                    self._counts[device] = int(count)

    def increment(self, device: str, amount: int = 1) -> bool:
        """Add amount to the device's slot.

        Non-positive amounts are ignored; the return value tells whether the
        counter changed.
        """
        if amount <= 0:
            logger.debug("Ignoring non-positive increment %r for %s", amount, device)
            return False
        self._counts[device] = self._counts.get(device, 0) + int(amount)
        return True

    def value_for(self, device: str) -> int:
        return self._counts.get(device, 0)

    def total(self) -> int:
        return sum(self._counts.values())

    def devices(self) -> List[str]:
        return sorted(self._counts)

    def merge(self, other: "GrowOnlyCounter") -> bool:
        """Merge other into this counter (pointwise max per device).

        Returns True when any slot grew. other is never modified.
        """
        changed = False
        for device, count in other._counts.items():
            if count > self._counts.get(device, 0):
                self._counts[device] = count
                changed = True
        return changed

    def copy(self) -> "GrowOnlyCounter":
        return GrowOnlyCounter(self._counts)

    def to_dict(self) -> Dict[str, Any]:
        return {"counts": dict(self._counts)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "GrowOnlyCounter":
        """Build a counter from to_dict() output, dropping malformed slots.

        Raises ValueError when the record is not shaped like a counter.
        """
        counter = cls()
        if not data:
            return counter
        counts = data.get("counts") if isinstance(data, Mapping) else data
        if counts is None:
            return counter
        if not isinstance(counts, Mapping):
            raise ValueError(f"Malformed counter record: {data!r}")
        for device, count in counts.items():
            if not is_valid_amount(count):
                logger.warning("Skipping malformed count %r for %s", count, device)
                continue
            if count > 0:
                counter._counts[str(device)] = int(count)
        return counter

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GrowOnlyCounter):
            return NotImplemented
        return self._counts == other._counts

    def __repr__(self) -> str:
        return f"GrowOnlyCounter({self._counts!r})"
