"""
Comanda Core Engines - shared application-service plumbing.
"""

from core.engines.service import EngineService, ExecutionResult

__all__ = ["EngineService", "ExecutionResult"]
