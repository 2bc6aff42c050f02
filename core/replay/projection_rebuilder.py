"""
Comanda Replay - Projection Rebuilder
=======================================
Projections are disposable. Rebuilding one company:

    1. Verify the company's hash chain (refuse on any break)
    2. Truncate that company's rows in every registered projection
    3. Apply the events, in sequence order, through the same
       ProjectionRegistry.apply path used by live writes

Runs inside ReplayContext, so nothing can append while it replays.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from core.event_store.hashing import find_chain_break
from core.replay.context import ReplayContext
from core.replay.errors import ReplayChainBrokenError

logger = logging.getLogger("comanda.replay")


@dataclass
class RebuildResult:
    company_id: str
    projections: List[str] = field(default_factory=list)
    events_replayed: int = 0
    events_by_type: Dict[str, int] = field(default_factory=dict)


def rebuild_projections(
    projection_registry,
    company_id: str,
    events: Iterable[dict],
    *,
    verify_chain: bool = True,
) -> RebuildResult:
    """
    Rebuild every projection for one company from its event stream.

    Args:
        projection_registry: core.projections.ProjectionRegistry.
        company_id:          Company whose rows are rebuilt.
        events:              Envelopes of that company (any order).
        verify_chain:        Refuse to replay a tampered stream.

    Raises:
        ReplayChainBrokenError if the chain does not verify.
    """
    ordered = sorted(
        (event for event in events if event["company_id"] == company_id),
        key=lambda event: event["sequence"],
    )

    if verify_chain:
        broken = find_chain_break(ordered)
        if broken is not None:
            raise ReplayChainBrokenError(
                company_id,
                broken["event_id"],
                f"sequence {broken['sequence']} does not verify",
            )

    result = RebuildResult(
        company_id=company_id,
        projections=projection_registry.projection_names(),
    )

    logger.info(
        "Projection rebuild starting: company=%s events=%d",
        company_id, len(ordered),
    )

    with ReplayContext():
        projection_registry.truncate(company_id=company_id)
        for event in ordered:
            projection_registry.apply(event["event_type"], event["payload"])
            result.events_replayed += 1
            result.events_by_type[event["event_type"]] = (
                result.events_by_type.get(event["event_type"], 0) + 1
            )

    logger.info(
        "Projection rebuild complete: company=%s replayed=%d",
        company_id, result.events_replayed,
    )
    return result
