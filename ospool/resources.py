"""
Resource parsing utilities for ospool.

Handles parsing of resource specifications like memory sizes and wall-time
durations supplied by the workflow engine or on the command line.
"""

import logging
import re
from datetime import timedelta
from typing import Optional, Union

logger = logging.getLogger(__name__)

DurationLike = Union[int, float, str, timedelta, None]

DURATION_UNITS = {
    "ms": 0.001,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "h": 3600,
    "hour": 3600,
    "hours": 3600,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
}


def parse_memory_size(memory_str: str) -> Optional[int]:
    """
    Parse memory size string to bytes.

    Supports formats like: "4GB", "512 MB", "2TB", "1024" (assumed MB)
    Returns memory size in bytes, or None if parsing fails.
    """
    if not memory_str:
        return None

    memory_str = str(memory_str).strip().upper()

    match = re.match(r"^(\d+(?:\.\d+)?)\s*([KMGT]?B?)$", memory_str)
    if not match:
        logger.warning("Could not parse memory size: %s", memory_str)
        return None

    value, unit = match.groups()
    value = float(value)

    multipliers = {
        "": 1024 * 1024,  # Default to MB
        "B": 1,
        "KB": 1024,
        "MB": 1024 * 1024,
        "GB": 1024 * 1024 * 1024,
        "TB": 1024 * 1024 * 1024 * 1024,
        "K": 1024,
        "M": 1024 * 1024,
        "G": 1024 * 1024 * 1024,
        "T": 1024 * 1024 * 1024 * 1024,
    }

    return int(value * multipliers[unit])


def parse_duration_seconds(duration: DurationLike) -> Optional[int]:
    """
    Parse a wall-time duration to whole seconds.

    Accepts a number of seconds, a ``timedelta``, or a string such as
    "2h", "1h30m", "90m", "45s", "1d", "2 hours", "120 min", "02:30:00" or "2:30".
    Returns None for an empty value; raises ValueError for garbage.
    """
    if duration is None or duration == "":
        return None

    if isinstance(duration, timedelta):
        return int(duration.total_seconds())

    if isinstance(duration, (int, float)):
        return int(duration)

    text = str(duration).strip().lower().replace(" ", "")

    # HH:MM:SS or HH:MM
    if ":" in text:
        parts = text.split(":")
        if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid duration format: {duration}")
        hours, minutes = int(parts[0]), int(parts[1])
        seconds = int(parts[2]) if len(parts) == 3 else 0
        return hours * 3600 + minutes * 60 + seconds

    if text.isdigit():
        return int(text)

    tokens = re.findall(r"(\d+(?:\.\d+)?)([a-z]+)", text)
    if (
        not tokens
        or any(unit not in DURATION_UNITS for _, unit in tokens)
        or "".join(n + u for n, u in tokens) != text
    ):
        raise ValueError(f"Invalid duration format: {duration}")

    total = sum(float(number) * DURATION_UNITS[unit] for number, unit in tokens)
    return int(total)
