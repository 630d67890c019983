#!/usr/bin/env python3
"""
Command line interface for Typing Stats.
"""

import logging
import math
import signal
import sys

from .config import get_config
from .core import TypingStats
from .daily_stats import Metric
from .utils import configure_logging, short_display_day

logger = logging.getLogger(__name__)

USAGE = [
    "Typing Stats",
    "Usage: typing-stats [command]",
    "Commands:",
    "  status                  Show device, sync endpoint and today's totals",
    "  stats                   Show yesterday, averages and records",
    "  history                 Show every recorded day",
    "  record METRIC AMOUNT    Record a delta (keystrokes, words, clicks,",
    "                          scrolls or distance in pixels)",
    "  sync                    Merge with the remote store and republish all days",
    "  run                     Keep syncing until interrupted",
    "\nEnvironment Variables:",
    "  TYPING_STATS_DATA_DIR     Data directory",
    "  TYPING_STATS_ENDPOINT     Remote store URL",
    "  TYPING_STATS_AUTH_TOKEN   Bearer token for the remote store",
    "  TYPING_STATS_VERBOSE      Enable debug logging",
]


def print_usage():
    for line in USAGE:
        print(line)


def show_status(app: TypingStats):
    today = app.reconciler.today()
    print("Typing Stats Status:")
    print(f"  Device: {app.device}")
    print(f"  Data directory: {app.data_dir}")
    print(f"  Endpoint: {app.remote.endpoint if app.remote else 'local only'}")
    print(f"  Days tracked: {len(app.reconciler.all_days())}")
    for metric in Metric:
        value = today.total(metric) if today else 0
        print(f"  Today {metric.value}: {app.format_value(metric, value)}")


def show_stats(app: TypingStats):
    stats = app.reconciler.rolling_stats()
    print(f"{'Metric':<12}{'Yesterday':>14}{'7-day avg':>14}{'30-day avg':>14}  Record")
    for metric in Metric:
        entry = stats.get(metric)
        if entry is None:
            continue
        record = app.format_value(metric, entry.record)
        if entry.record_day:
            record += f" ({short_display_day(entry.record_day)})"
        print(
            f"{metric.display_name:<12}"
            f"{app.format_value(metric, entry.yesterday):>14}"
            f"{app.format_value(metric, entry.avg7):>14}"
            f"{app.format_value(metric, entry.avg30):>14}  {record}"
        )


def show_history(app: TypingStats):
    days = app.reconciler.all_days()
    if not days:
        print("No activity recorded yet")
        return
    for day in days:
        print(
            f"{day.day}  keys {day.total_keystrokes:>8}  words {day.total_words:>6}  "
            f"clicks {day.total_clicks:>6}  scrolls {day.total_scrolls:>6}  "
            f"distance {app.format_value(Metric.DISTANCE, day.total_distance)}"
        )


def record_delta(app: TypingStats, args) -> bool:
    if len(args) != 2:
        print("Usage: typing-stats record METRIC AMOUNT")
        return False
    try:
        metric = Metric(args[0])
    except ValueError:
        print(f"Unknown metric: {args[0]}")
        return False
    try:
        amount = float(args[1]) if metric is Metric.DISTANCE else int(args[1])
    except ValueError:
        print(f"Invalid amount: {args[1]}")
        return False
    if not math.isfinite(amount):
        print(f"Invalid amount: {args[1]}")
        return False
    if amount <= 0:
        print("Amount must be positive")
        return False

    app.record(metric, amount)
    app.flusher.flush()
    app.reconciler.save_now()
    print(f"Recorded {amount} {metric.value}")
    return True


def run_forever(app: TypingStats):
    def handle_signal(signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        app.request_stop()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    app.reconciler.subscribe(
        lambda snapshot: logger.debug("Today: %s", app.status_line())
    )
    print(f"Typing stats running for device {app.device}. Press Ctrl+C to stop.")
    app.wait()


def main():
    """Main entry point."""
    if len(sys.argv) == 1 or "--help" in sys.argv or "-h" in sys.argv:
        print_usage()
        return

    command = sys.argv[1]
    if command not in ("status", "stats", "history", "record", "sync", "run"):
        print(f"Unknown command: {command}")
        print("Use --help for usage information")
        return

    config = get_config()
    configure_logging(config.verbose_logging)
    app = TypingStats.from_config(config)

    ok = True
    try:
        app.start()
        if command == "status":
            show_status(app)
        elif command == "stats":
            show_stats(app)
        elif command == "history":
            show_history(app)
        elif command == "record":
            ok = record_delta(app, sys.argv[2:])
        elif command == "sync":
            if app.remote is None:
                print("Error: No sync endpoint configured.")
                print("Set TYPING_STATS_ENDPOINT or sync_endpoint in settings.json.")
            else:
                saved = app.reconciler.publish_all()
                print(f"Sync completed: {saved} days published")
        elif command == "run":
            run_forever(app)
    except KeyboardInterrupt:
        print("\nReceived interrupt signal")
    finally:
        app.stop()

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
