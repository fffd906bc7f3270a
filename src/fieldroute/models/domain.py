"""Domain models for destinations, legs and day itineraries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import settings

LocationRef = str


class Priority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class TerritoryType(str, Enum):
    URBAN = "urban"
    RURAL = "rural"
    MIXED = "mixed"


class OptimizationMode(str, Enum):
    DISTANCE = "distance"
    TIME = "time"


@dataclass(frozen=True, slots=True)
class Destination:
    """An appointment stop supplied by the caller."""

    address: LocationRef
    firm_id: Optional[str] = None
    claim_type: Optional[str] = None
    priority: Priority = Priority.NORMAL
    customer_name: Optional[str] = None

    @property
    def is_urgent(self) -> bool:
        return self.priority is Priority.URGENT


@dataclass(frozen=True, slots=True)
class OptimizationSettings:
    """Per-call knobs for sequencing and day splitting."""

    optimize_enabled: bool = settings.optimize_enabled
    split_enabled: bool = settings.split_enabled
    max_leg_miles: float = settings.max_leg_miles
    optimization_mode: OptimizationMode = OptimizationMode(settings.optimization_mode)
    max_daily_hours: float = settings.max_daily_hours
    max_stops_per_day: int = settings.max_stops_per_day
    time_per_appointment_minutes: float = settings.time_per_appointment_minutes
    territory_type: TerritoryType = TerritoryType(settings.territory_type)
    geographic_clustering_enabled: bool = settings.geographic_clustering_enabled

    @property
    def max_daily_minutes(self) -> float:
        return self.max_daily_hours * 60.0


@dataclass(frozen=True, slots=True)
class LegEstimate:
    """Distance/time answer for one directed origin-destination pair."""

    distance_miles: float
    duration_minutes: float
    estimated: bool = False


@dataclass(frozen=True, slots=True)
class Leg:
    origin: LocationRef
    destination: LocationRef
    distance_miles: float
    duration_minutes: float
    is_return_leg: bool = False
    is_from_start: bool = False
    estimated: bool = False


@dataclass(frozen=True, slots=True)
class Day:
    """A bounded daily itinerary that starts and ends at the start location."""

    label: str
    stops: tuple[LocationRef, ...]
    visits: tuple[Destination, ...]
    legs: tuple[Leg, ...]
    total_miles: float
    total_minutes: int
    appointment_minutes: int
    total_day_minutes: int
    efficiency_percent: int
    stop_count: int


@dataclass(frozen=True, slots=True)
class RouteSummary:
    miles: float
    minutes: int
    day_count: int
    avg_stops_per_day: float
    avg_efficiency: int
    total_day_minutes: int = 0


@dataclass(frozen=True, slots=True)
class SplitRoute:
    """Result of one optimization run."""

    start: LocationRef
    days: tuple[Day, ...]
    overall: RouteSummary
    flagged: tuple[Destination, ...] = field(default_factory=tuple)
    source: str = "heuristic"
    estimated_leg_count: int = 0

    def is_flagged(self, destination: Destination) -> bool:
        """Whether this exact input entry was flagged; equal duplicates are told apart."""
        return any(flagged is destination for flagged in self.flagged)

    @property
    def stop_count(self) -> int:
        return sum(day.stop_count for day in self.days)
