"""
Comanda Replay - rebuild projections from the event stream.
"""

from core.replay.context import ReplayContext, is_replay_active
from core.replay.errors import (
    ReplayChainBrokenError,
    ReplayError,
    ReplayIsolationError,
)
from core.replay.projection_rebuilder import RebuildResult, rebuild_projections

__all__ = [
    "ReplayContext",
    "is_replay_active",
    "ReplayChainBrokenError",
    "ReplayError",
    "ReplayIsolationError",
    "RebuildResult",
    "rebuild_projections",
]
