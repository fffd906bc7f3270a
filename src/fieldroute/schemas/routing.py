"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DestinationModel(BaseModel):
    address: str
    firm_id: Optional[str] = None
    claim_type: Optional[str] = None
    priority: Literal["normal", "high", "urgent"] = "normal"
    customer_name: Optional[str] = None


class OptimizationSettingsModel(BaseModel):
    """Per-request overrides; unset fields fall back to configured defaults."""

    optimize_enabled: Optional[bool] = None
    split_enabled: Optional[bool] = None
    max_leg_miles: Optional[float] = Field(None, gt=0)
    optimization_mode: Optional[Literal["distance", "time"]] = None
    max_daily_hours: Optional[float] = Field(None, gt=0, le=24)
    max_stops_per_day: Optional[int] = Field(None, ge=1)
    time_per_appointment_minutes: Optional[float] = Field(None, ge=0)
    territory_type: Optional[Literal["urban", "rural", "mixed"]] = None
    geographic_clustering_enabled: Optional[bool] = None


class OptimizeRequest(BaseModel):
    start: str = Field(..., description="Start and end location for every day.")
    destinations: List[DestinationModel]
    settings: Optional[OptimizationSettingsModel] = None
    day_start_time: Optional[str] = Field(
        default=None,
        pattern=r"^\d{1,2}:\d{2}$",
        description="Departure time used for the per-day schedule (HH:MM).",
    )


class LegModel(BaseModel):
    origin: str
    destination: str
    distance_miles: float
    duration_minutes: float
    is_return_leg: bool
    is_from_start: bool
    estimated: bool = False


class ScheduledVisitModel(BaseModel):
    location: str
    arrival: str
    departure: Optional[str]
    travel_minutes: int
    is_return: bool = False
    elapsed_minutes: int = 0


class DayModel(BaseModel):
    label: str
    stops: List[str]
    visits: List[DestinationModel]
    legs: List[LegModel]
    total_miles: float
    total_minutes: int
    appointment_minutes: int
    total_day_minutes: int
    efficiency_percent: int
    stop_count: int
    schedule: List[ScheduledVisitModel] = Field(default_factory=list)


class RouteSummaryModel(BaseModel):
    miles: float
    minutes: int
    day_count: int
    avg_stops_per_day: float
    avg_efficiency: int
    total_day_minutes: int = 0


class SplitRouteModel(BaseModel):
    start: str
    days: List[DayModel]
    overall: RouteSummaryModel
    flagged: List[DestinationModel] = Field(default_factory=list)
    source: str = "heuristic"
    estimated_leg_count: int = 0


class MoveDayRequest(BaseModel):
    route: SplitRouteModel
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class RoundTripResponse(BaseModel):
    origin: str
    destination: str
    one_way_miles: float
    miles: float
    duration_minutes: float
    method: str


class ErrorDetail(BaseModel):
    code: str
    message: str
