"""
Comanda Replay - Errors
"""


class ReplayError(Exception):
    """Base error for all replay operations."""


class ReplayChainBrokenError(ReplayError):
    """Hash-chain verification failed, replay refused."""

    def __init__(self, company_id, event_id, detail: str):
        self.company_id = company_id
        self.event_id = event_id
        self.detail = detail
        super().__init__(
            f"Replay refused, hash chain broken for company "
            f"{company_id} at event {event_id}: {detail}"
        )


class ReplayIsolationError(ReplayError):
    """Attempt to persist an event during replay mode."""

    def __init__(self, message: str = None):
        super().__init__(
            message or "Cannot persist events during replay. "
            "Replay mode is read-only."
        )
