"""
Comanda ledger adapter.
Process-level glue that wires the engines together.
"""

from adapters.ledger.wiring import LedgerEngines, build_engines, get_engines

__all__ = [
    "LedgerEngines",
    "build_engines",
    "get_engines",
]
