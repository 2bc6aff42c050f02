"""
Comanda Core Time - Public API
"""

from core.time.clock import Clock, FixedClock, SystemClock, clock_label, to_iso

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "clock_label",
    "to_iso",
]
