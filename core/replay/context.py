"""
Comanda Replay - Replay Context
=================================
Thread-local flag. While a rebuild replays events through the
projections, every event store refuses to append.
"""

import logging
import threading

logger = logging.getLogger("comanda.replay")

_replay_state = threading.local()


def is_replay_active() -> bool:
    return getattr(_replay_state, "active", False)


class ReplayContext:
    """
    Usage:
        with ReplayContext():
            registry.apply(event_type, payload)   # allowed
            persist_event(...)                     # ReplayIsolationError
    """

    def __enter__(self):
        self._previous = is_replay_active()
        _replay_state.active = True
        logger.debug("Replay mode activated, persistence blocked.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _replay_state.active = self._previous
        logger.debug("Replay mode deactivated.")
        return False
