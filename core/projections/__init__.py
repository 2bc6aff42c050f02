from core.projections.registry import (
    ProjectionHealth,
    ProjectionInfo,
    ProjectionRegistry,
    ProjectionStoreProtocol,
)

__all__ = [
    "ProjectionHealth",
    "ProjectionInfo",
    "ProjectionRegistry",
    "ProjectionStoreProtocol",
]
