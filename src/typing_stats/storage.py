#!/usr/bin/env python3
"""
Data storage and persistence for Typing Stats.
Defines the storage interfaces the reconciler depends on and the
JSON-file local store.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Union

from .daily_stats import DailyAggregate

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Sequence[DailyAggregate]], None]


class LocalStorage(ABC):
    """Durable storage for this device's copy of the history."""

    @abstractmethod
    def load_all(self) -> Dict[str, DailyAggregate]:
        """Return every stored day keyed by day id."""

    @abstractmethod
    def save(self, aggregate: DailyAggregate) -> bool:
        """Persist one day, returning True on success."""


class RemoteStore(LocalStorage):
    """Shared store that other devices publish their days to."""

    @abstractmethod
    def observe_changes(self, callback: ChangeCallback) -> None:
        """Invoke callback with days changed by other devices.

        Delivery is at-least-once, may batch days and may happen on any
        thread.
        """

    def stop(self) -> None:
        """Stop observing changes."""


class LocalStore(LocalStorage):
    """Stores one JSON file per day in the data directory."""

    FILENAME_PATTERN = re.compile(r"stats_(\d{4}-\d{2}-\d{2})\.json")

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def get_day_filename(self, day: str) -> str:
        return f"stats_{day}.json"

    def get_day_path(self, day: str) -> Path:
        return self.data_dir / self.get_day_filename(day)

    def load_day(self, day: str) -> Optional[DailyAggregate]:
        """Load a single day, or None if it is missing or unreadable."""
        filepath = self.get_day_path(day)
        if not filepath.exists():
            return None

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return DailyAggregate.from_dict(json.load(f))
        except (ArithmeticError, TypeError, ValueError, OSError) as e:
            logger.warning("Could not read %s: %s", filepath, e)
            return None

    def load_all(self) -> Dict[str, DailyAggregate]:
        days: Dict[str, DailyAggregate] = {}
        for filepath in sorted(self.data_dir.glob("stats_*.json")):
            match = self.FILENAME_PATTERN.fullmatch(filepath.name)
            if not match:
                continue
            aggregate = self.load_day(match.group(1))
            if aggregate is None:
                continue
            if aggregate.day != match.group(1):
                logger.warning(
                    "Skipping %s: contains day %s", filepath.name, aggregate.day
                )
                continue
            days[aggregate.day] = aggregate
        return days

    def save(self, aggregate: DailyAggregate) -> bool:
        """Write the day to disk via a temporary file."""
        filepath = self.get_day_path(aggregate.day)
        tmp_path = filepath.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(aggregate.to_dict(), f, indent=2, ensure_ascii=False)
            tmp_path.replace(filepath)
            return True
        except OSError as e:
            logger.warning("Could not save %s: %s", filepath, e)
            return False
