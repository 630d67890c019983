"""
Typing Stats - per-day keyboard and mouse activity counters synced across devices.

This package provides:

- Grow-only counters (G-Counter CRDT) attributed to each device
- Per-day aggregates of keystrokes, words, clicks, scrolls and pointer distance
- Rolling statistics: yesterday, 7/30-day averages and all-time records
- Debounced persistence to JSON files and an HTTP remote store
- Convergent merging of remote snapshots in any order, any number of times
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core import TypingStats
from .daily_stats import DailyAggregate, Metric
from .device import DeviceIdentity
from .gcounter import GrowOnlyCounter
from .repository import HistoryStore
from .sync import SyncReconciler

__all__ = [
    "TypingStats",
    "DailyAggregate",
    "DeviceIdentity",
    "GrowOnlyCounter",
    "HistoryStore",
    "Metric",
    "SyncReconciler",
]
