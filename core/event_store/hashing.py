"""
Comanda Event Store - Hash Chain
==================================
    event_hash = SHA256(canonical_json(hashed_content) + previous_event_hash)

hashed_content covers the event id, type, sequence and payload, so
reordering, retyping or editing any stored event breaks the chain.
The first event of every company links to GENESIS_HASH.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, Optional

GENESIS_HASH = "GENESIS"


def canonical_serialize(value: Any) -> str:
    """Deterministic JSON: sorted keys, fixed separators, ASCII only."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def compute_event_hash(content: Any, previous_event_hash: str) -> str:
    hash_input = canonical_serialize(content) + previous_event_hash
    return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()


def hashed_content(event_data: dict) -> dict:
    return {
        "event_id": str(event_data["event_id"]),
        "event_type": event_data["event_type"],
        "sequence": event_data["sequence"],
        "payload": event_data["payload"],
    }


def seal_event(event_data: dict, *, sequence: int, previous_event_hash: str) -> dict:
    """Stamp chain fields onto an event envelope (mutates and returns it)."""
    event_data["sequence"] = sequence
    event_data["previous_event_hash"] = previous_event_hash
    event_data["event_hash"] = compute_event_hash(
        hashed_content(event_data), previous_event_hash,
    )
    return event_data


def find_chain_break(events: Iterable[dict]) -> Optional[dict]:
    """
    Walk one company's events in sequence order and return the first
    event whose links or hash do not verify, or None when intact.
    """
    expected_previous = GENESIS_HASH
    expected_sequence = 1
    for event in events:
        if event["sequence"] != expected_sequence:
            return event
        if event["previous_event_hash"] != expected_previous:
            return event
        recomputed = compute_event_hash(hashed_content(event), expected_previous)
        if event["event_hash"] != recomputed:
            return event
        expected_previous = event["event_hash"]
        expected_sequence += 1
    return None
