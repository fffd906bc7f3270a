"""Daily route planning for field appointments."""

from .models.domain import (
    Day,
    Destination,
    Leg,
    OptimizationMode,
    OptimizationSettings,
    Priority,
    SplitRoute,
    TerritoryType,
)
from .services.routing import optimize

__all__ = [
    "Day",
    "Destination",
    "Leg",
    "OptimizationMode",
    "OptimizationSettings",
    "Priority",
    "SplitRoute",
    "TerritoryType",
    "optimize",
]
