"""
Comanda Core Time - Clock
===========================
Engines never call datetime.now(). Services stamp commands with
``clock.now_utc()``; event payloads carry ISO-8601 strings derived
from that single reading.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock. Returns the same instant until advanced.

    Usage:
        clock = FixedClock(datetime(2026, 2, 19, 14, 0, tzinfo=timezone.utc))
        clock.advance(minutes=5)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, seconds: float = 0, minutes: float = 0) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(
            seconds=seconds, minutes=minutes,
        )


def to_iso(value: datetime) -> str:
    """Serialize an aware datetime for event payloads."""
    if value.tzinfo is None:
        raise ValueError("Refusing to serialize a naive datetime.")
    return value.astimezone(timezone.utc).isoformat()


def clock_label(value: str) -> str:
    """HH:MM label of an ISO timestamp, as shown on a tab."""
    return datetime.fromisoformat(value).strftime("%H:%M")
