#!/usr/bin/env python3
"""
Display and setup helpers for Typing Stats.
"""

import logging
from pathlib import Path
from typing import Union

from .daily_stats import parse_day_id

INCHES_PER_FOOT = 12.0
FEET_PER_MILE = 5280.0

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


def ensure_data_dir(data_dir: Union[str, Path]) -> Path:
    path = Path(data_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def pixels_to_feet(pixels: float, dpi: float = 96.0) -> float:
    return pixels / dpi / INCHES_PER_FOOT


def pixels_to_miles(pixels: float, dpi: float = 96.0) -> float:
    return pixels_to_feet(pixels, dpi) / FEET_PER_MILE


def format_distance(pixels: float, dpi: float = 96.0, fmt: str = "mi") -> str:
    """Format pointer travel for display.

    ``mi`` switches to feet below one mile, ``ft`` always uses grouped feet
    and ``both`` shows the two side by side.
    """
    feet = pixels_to_feet(pixels, dpi)
    miles = pixels_to_miles(pixels, dpi)
    if fmt == "ft":
        return f"{feet:,.0f} ft"
    if fmt == "both":
        return f"{feet:.0f} ft / {miles:.2f} mi"
    if miles >= 1.0:
        return f"{miles:.2f} mi"
    return f"{feet:.0f} ft"


def format_count(count: int) -> str:
    """Compact count for the status line (1234 -> 1.2k)."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1000:
        return f"{count / 1000:.1f}k"
    return str(count)


def display_day(day: str) -> str:
    """Format a day id as e.g. "Dec 27"."""
    parsed = parse_day_id(day)
    if parsed is None:
        return day
    return f"{parsed.strftime('%b')} {parsed.day}"


def short_display_day(day: str) -> str:
    """Format a day id as e.g. "12/26"."""
    parsed = parse_day_id(day)
    if parsed is None:
        return day
    return f"{parsed.month}/{parsed.day}"
