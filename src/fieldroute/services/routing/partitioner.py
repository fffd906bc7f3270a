"""Split an ordered stop sequence into bounded day itineraries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from ...models.domain import Day, Destination, Leg, LocationRef, OptimizationSettings, RouteSummary, SplitRoute
from .provider import CostLookup

logger = logging.getLogger(__name__)


def build_leg(
    costs: CostLookup,
    origin: LocationRef,
    destination: LocationRef,
    *,
    is_from_start: bool = False,
    is_return_leg: bool = False,
) -> Leg:
    estimate = costs.leg_cost(origin, destination)
    return Leg(
        origin=origin,
        destination=destination,
        distance_miles=estimate.distance_miles,
        duration_minutes=estimate.duration_minutes,
        is_return_leg=is_return_leg,
        is_from_start=is_from_start,
        estimated=estimate.estimated,
    )


def build_leg_chain(costs: CostLookup, start: LocationRef, stops: Sequence[Destination]) -> list[Leg]:
    """Legs start -> stop 1 -> stop 2 ...; ``legs[i]`` ends at ``stops[i]``."""
    legs: list[Leg] = []
    previous = start
    for index, stop in enumerate(stops):
        legs.append(build_leg(costs, previous, stop.address, is_from_start=index == 0))
        previous = stop.address
    return legs


@dataclass(slots=True)
class _OpenDay:
    visits: list[Destination] = field(default_factory=list)
    legs: list[Leg] = field(default_factory=list)
    travel_minutes: float = 0.0
    travel_miles: float = 0.0
    appointment_minutes: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.legs

    def add(self, leg: Leg, visit: Destination, appointment_minutes: float) -> None:
        self.legs.append(leg)
        self.visits.append(visit)
        self.travel_minutes += leg.duration_minutes
        self.travel_miles += leg.distance_miles
        self.appointment_minutes += appointment_minutes

    def close(self, return_leg: Leg) -> None:
        self.legs.append(return_leg)
        self.travel_minutes += return_leg.duration_minutes
        self.travel_miles += return_leg.distance_miles


def finalize_day(label: str, draft: _OpenDay) -> Day:
    total_minutes = round(draft.travel_minutes)
    appointment_minutes = round(draft.appointment_minutes)
    total_day_minutes = round(draft.travel_minutes + draft.appointment_minutes)
    efficiency = round(appointment_minutes / total_day_minutes * 100) if total_day_minutes else 0
    return Day(
        label=label,
        stops=tuple(visit.address for visit in draft.visits),
        visits=tuple(draft.visits),
        legs=tuple(draft.legs),
        total_miles=round(draft.travel_miles, 1),
        total_minutes=total_minutes,
        appointment_minutes=appointment_minutes,
        total_day_minutes=total_day_minutes,
        efficiency_percent=efficiency,
        # the closing return leg is not a visit
        stop_count=len(draft.visits),
    )


def summarize(days: Sequence[Day]) -> RouteSummary:
    day_count = len(days)
    if not day_count:
        return RouteSummary(miles=0.0, minutes=0, day_count=0, avg_stops_per_day=0.0, avg_efficiency=0)
    return RouteSummary(
        miles=round(sum(day.total_miles for day in days), 1),
        minutes=sum(day.total_minutes for day in days),
        day_count=day_count,
        avg_stops_per_day=round(sum(day.stop_count for day in days) / day_count, 1),
        avg_efficiency=round(sum(day.efficiency_percent for day in days) / day_count),
        total_day_minutes=sum(day.total_day_minutes for day in days),
    )


def day_label(index: int) -> str:
    return f"Day {index + 1}"


class DayPartitioner:
    def __init__(self, costs: CostLookup) -> None:
        self.costs = costs

    def split(
        self,
        start: LocationRef,
        stops: Sequence[Destination],
        legs: Sequence[Leg],
        settings: OptimizationSettings,
    ) -> SplitRoute:
        if len(stops) != len(legs):
            raise ValueError(f"Expected one leg per stop, got {len(legs)} legs for {len(stops)} stops.")

        if not settings.split_enabled:
            return self._single_day(start, stops, legs, settings)

        per_visit = settings.time_per_appointment_minutes
        days: list[Day] = []
        current = _OpenDay()

        for stop, leg in zip(stops, legs):
            # an empty day always takes its first leg, whatever it costs
            if not current.is_empty and self._should_split(current, stop, leg, start, settings):
                self._close(current, start)
                days.append(finalize_day(day_label(len(days)), current))
                current = _OpenDay()
                leg = build_leg(self.costs, start, stop.address, is_from_start=True)

            current.add(leg, stop, per_visit)

        if not current.is_empty:
            self._close(current, start)
            days.append(finalize_day(day_label(len(days)), current))

        logger.info(f"Partitioned {len(stops)} stops into {len(days)} days")
        return SplitRoute(start=start, days=tuple(days), overall=summarize(days))

    def _should_split(
        self,
        current: _OpenDay,
        stop: Destination,
        leg: Leg,
        start: LocationRef,
        settings: OptimizationSettings,
    ) -> bool:
        return_minutes = self.costs.leg_cost(stop.address, start).duration_minutes
        projected_minutes = (
            current.travel_minutes
            + leg.duration_minutes
            + return_minutes
            + current.appointment_minutes
            + settings.time_per_appointment_minutes
        )
        projected_stops = len(current.visits) + 1

        if projected_minutes > settings.max_daily_minutes:
            logger.debug(f"Day full by time at {stop.address!r} ({projected_minutes:.0f} min projected)")
            return True
        if projected_stops > settings.max_stops_per_day:
            logger.debug(f"Day full by stop count at {stop.address!r}")
            return True
        if leg.distance_miles > settings.max_leg_miles:
            logger.debug(f"Leg to {stop.address!r} is {leg.distance_miles:.1f} mi, over the leg cap")
            return True
        return False

    def _close(self, current: _OpenDay, start: LocationRef) -> None:
        last_stop = current.visits[-1].address
        current.close(build_leg(self.costs, last_stop, start, is_return_leg=True))

    def _single_day(
        self,
        start: LocationRef,
        stops: Sequence[Destination],
        legs: Sequence[Leg],
        settings: OptimizationSettings,
    ) -> SplitRoute:
        if not stops:
            return SplitRoute(start=start, days=(), overall=summarize(()))
        current = _OpenDay()
        for stop, leg in zip(stops, legs):
            current.add(leg, stop, settings.time_per_appointment_minutes)
        self._close(current, start)
        days = (finalize_day(day_label(0), current),)
        return SplitRoute(start=start, days=days, overall=summarize(days))
