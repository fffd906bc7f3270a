"""Routing orchestration service."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Sequence

from ...config import settings as app_settings
from ...models.domain import (
    Day,
    Destination,
    Leg,
    LocationRef,
    OptimizationMode,
    OptimizationSettings,
    Priority,
    RouteSummary,
    SplitRoute,
    TerritoryType,
)
from ...schemas.routing import (
    DayModel,
    DestinationModel,
    LegModel,
    OptimizationSettingsModel,
    OptimizeRequest,
    RoundTripResponse,
    RouteSummaryModel,
    ScheduledVisitModel,
    SplitRouteModel,
)
from .clustering import ClusterEngine
from .errors import MissingAddressError, NoDestinationsError, NoStartLocationError, TooManyDestinationsError
from .heuristic import HeuristicEstimator
from .maps_client import DistanceMatrixClient
from .partitioner import DayPartitioner, build_leg_chain, day_label, summarize
from .provider import CostLookup, DistanceProvider
from .schedule import build_day_schedule
from .sequencer import SequenceResult, SequencingEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoundTrip:
    origin: LocationRef
    destination: LocationRef
    one_way_miles: float
    miles: float
    duration_minutes: float
    method: str


def validate_request(
    start: LocationRef,
    destinations: Sequence[Destination],
    max_destinations: int | None = None,
) -> None:
    max_destinations = max_destinations or app_settings.max_destinations
    if not start or not start.strip():
        raise NoStartLocationError("A start location is required.")
    if not destinations:
        raise NoDestinationsError("At least one destination is required.")
    if len(destinations) > max_destinations:
        raise TooManyDestinationsError(
            f"{len(destinations)} destinations requested; at most {max_destinations} can be optimized at once."
        )
    for position, destination in enumerate(destinations, start=1):
        if not destination.address or not destination.address.strip():
            raise MissingAddressError(f"Destination {position} has no address.")


def build_provider(settings: OptimizationSettings | None = None) -> DistanceProvider:
    """Live distance matrix client when an API key is configured, otherwise the heuristic."""
    settings = settings or OptimizationSettings()
    if app_settings.maps_api_key:
        return DistanceMatrixClient()
    return HeuristicEstimator(territory=settings.territory_type)


def sequence_destinations(
    costs: CostLookup,
    start: LocationRef,
    destinations: Sequence[Destination],
    settings: OptimizationSettings,
) -> SequenceResult:
    time_matrix_available = settings.optimization_mode is OptimizationMode.TIME and costs.provider.exact
    if (
        settings.territory_type is TerritoryType.RURAL
        and settings.geographic_clustering_enabled
        and not time_matrix_available
    ):
        return ClusterEngine(costs).sequence(start, destinations, settings)
    return SequencingEngine(costs).sequence(start, destinations, settings)


def optimize(
    start: LocationRef,
    destinations: Sequence[Destination],
    settings: OptimizationSettings | None = None,
    provider: DistanceProvider | None = None,
) -> SplitRoute:
    """Order the destinations and split them into day itineraries."""
    settings = settings or OptimizationSettings()
    validate_request(start, destinations)

    provider = provider or build_provider(settings)
    costs = CostLookup(provider)
    if provider.exact:
        # one batched matrix request; every later leg lookup is a cache hit
        costs.matrix([start, *(destination.address for destination in destinations)])

    if settings.optimize_enabled:
        sequenced = sequence_destinations(costs, start, destinations, settings)
    else:
        sequenced = SequenceResult(order=tuple(destinations))

    legs = build_leg_chain(costs, start, sequenced.order)
    route = DayPartitioner(costs).split(start, sequenced.order, legs, settings)

    estimated_legs = sum(1 for day in route.days for leg in day.legs if leg.estimated)
    if costs.substituted:
        logger.warning(f"{costs.substituted} leg lookups failed and use the default leg value")
    if sequenced.flagged:
        logger.info(
            f"{len(sequenced.flagged)} stops have no neighbour within {settings.max_leg_miles} mi "
            f"and are flagged for a separate day"
        )
    logger.info(
        f"Optimized {len(destinations)} stops from {start!r}: {route.overall.day_count} days, "
        f"{route.overall.miles} mi via {provider.name}"
    )
    return replace(
        route,
        flagged=sequenced.flagged,
        source=provider.name,
        estimated_leg_count=estimated_legs,
    )


def move_day(route: SplitRoute, from_index: int, to_index: int) -> SplitRoute:
    """Return a copy of ``route`` with one day moved to a new position."""
    count = len(route.days)
    if not (0 <= from_index < count) or not (0 <= to_index < count):
        raise ValueError(f"Day positions must be between 0 and {count - 1}.")
    days = list(route.days)
    moved = days.pop(from_index)
    days.insert(to_index, moved)
    relabeled = tuple(replace(day, label=day_label(index)) for index, day in enumerate(days))
    return replace(route, days=relabeled, overall=summarize(relabeled))


def roundtrip_mileage(
    origin: LocationRef,
    destination: LocationRef,
    provider: DistanceProvider | None = None,
) -> RoundTrip:
    if not origin or not origin.strip():
        raise NoStartLocationError("An origin is required.")
    if not destination or not destination.strip():
        raise MissingAddressError("A destination is required.")
    provider = provider or build_provider()
    estimate = CostLookup(provider).leg_cost(origin, destination)
    return RoundTrip(
        origin=origin,
        destination=destination,
        one_way_miles=round(estimate.distance_miles, 2),
        miles=round(estimate.distance_miles * 2, 2),
        duration_minutes=round(estimate.duration_minutes, 1),
        method="estimated" if estimate.estimated else provider.name,
    )


def _build_settings(overrides: OptimizationSettingsModel | None) -> OptimizationSettings:
    base = OptimizationSettings()
    if overrides is None:
        return base
    values = overrides.model_dump(exclude_none=True)
    if "optimization_mode" in values:
        values["optimization_mode"] = OptimizationMode(values["optimization_mode"])
    if "territory_type" in values:
        values["territory_type"] = TerritoryType(values["territory_type"])
    return replace(base, **values)


def _destination_from_model(model: DestinationModel) -> Destination:
    return Destination(
        address=model.address,
        firm_id=model.firm_id,
        claim_type=model.claim_type,
        priority=Priority(model.priority),
        customer_name=model.customer_name,
    )


def _destination_to_model(destination: Destination) -> DestinationModel:
    return DestinationModel(
        address=destination.address,
        firm_id=destination.firm_id,
        claim_type=destination.claim_type,
        priority=destination.priority.value,
        customer_name=destination.customer_name,
    )


def _day_to_model(day: Day, time_per_appointment: float | None, day_start_time: str | None) -> DayModel:
    schedule = build_day_schedule(day, time_per_appointment, day_start_time)
    return DayModel(
        label=day.label,
        stops=list(day.stops),
        visits=[_destination_to_model(visit) for visit in day.visits],
        legs=[LegModel(**asdict(leg)) for leg in day.legs],
        total_miles=day.total_miles,
        total_minutes=day.total_minutes,
        appointment_minutes=day.appointment_minutes,
        total_day_minutes=day.total_day_minutes,
        efficiency_percent=day.efficiency_percent,
        stop_count=day.stop_count,
        schedule=[ScheduledVisitModel(**asdict(visit)) for visit in schedule],
    )


def split_route_to_model(
    route: SplitRoute,
    time_per_appointment: float | None = None,
    day_start_time: str | None = None,
) -> SplitRouteModel:
    return SplitRouteModel(
        start=route.start,
        days=[_day_to_model(day, time_per_appointment, day_start_time) for day in route.days],
        overall=RouteSummaryModel(**asdict(route.overall)),
        flagged=[_destination_to_model(destination) for destination in route.flagged],
        source=route.source,
        estimated_leg_count=route.estimated_leg_count,
    )


def split_route_from_model(model: SplitRouteModel) -> SplitRoute:
    days = tuple(
        Day(
            label=day.label,
            stops=tuple(day.stops),
            visits=tuple(_destination_from_model(visit) for visit in day.visits),
            legs=tuple(Leg(**leg.model_dump()) for leg in day.legs),
            total_miles=day.total_miles,
            total_minutes=day.total_minutes,
            appointment_minutes=day.appointment_minutes,
            total_day_minutes=day.total_day_minutes,
            efficiency_percent=day.efficiency_percent,
            stop_count=day.stop_count,
        )
        for day in model.days
    )
    return SplitRoute(
        start=model.start,
        days=days,
        overall=RouteSummary(**model.overall.model_dump()),
        flagged=tuple(_destination_from_model(destination) for destination in model.flagged),
        source=model.source,
        estimated_leg_count=model.estimated_leg_count,
    )


def optimize_route(payload: OptimizeRequest, provider: DistanceProvider | None = None) -> SplitRouteModel:
    settings = _build_settings(payload.settings)
    destinations = [_destination_from_model(destination) for destination in payload.destinations]
    route = optimize(payload.start, destinations, settings, provider=provider)
    return split_route_to_model(route, settings.time_per_appointment_minutes, payload.day_start_time)


def roundtrip_response(origin: str, destination: str, provider: DistanceProvider | None = None) -> RoundTripResponse:
    return RoundTripResponse(**asdict(roundtrip_mileage(origin, destination, provider)))
