"""
Comanda Scheduling - Time Slot Arithmetic
===========================================
Appointment times are wall-clock ``HH:MM`` labels on a given date.
End times wrap at midnight; overlap checks work on the unwrapped
minute range so a late service still blocks its full duration.
"""

from __future__ import annotations

import re
from typing import Tuple

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """Minutes since midnight of an ``HH:MM`` label."""
    match = _HHMM.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"'{value}' is not a HH:MM time.")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def compute_end_time(start_time: str, duration: int) -> str:
    """
    >>> compute_end_time("09:30", 45)
    '10:15'
    >>> compute_end_time("23:30", 60)
    '00:30'
    """
    return format_hhmm(parse_hhmm(start_time) + duration)


def slot_window(start_time: str, duration: int) -> Tuple[int, int]:
    start = parse_hhmm(start_time)
    return start, start + duration


def windows_overlap(first: Tuple[int, int], second: Tuple[int, int]) -> bool:
    """Half-open ranges: back-to-back services do not overlap."""
    return first[0] < second[1] and second[0] < first[1]
