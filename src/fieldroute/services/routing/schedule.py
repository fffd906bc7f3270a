"""Clock-time schedule for a single day itinerary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ...config import settings
from ...models.domain import Day, LocationRef


@dataclass(frozen=True, slots=True)
class ScheduledVisit:
    location: LocationRef
    arrival: str
    departure: str | None
    travel_minutes: int
    is_return: bool = False
    elapsed_minutes: int = 0


def _clock(value: datetime, day_start: datetime) -> str:
    """HH:MM, suffixed with the day offset once the itinerary runs past midnight."""
    label = value.strftime("%H:%M")
    offset = (value.date() - day_start.date()).days
    return f"{label} (+{offset}d)" if offset else label


def build_day_schedule(
    day: Day,
    time_per_appointment_minutes: float | None = None,
    start_time: str | None = None,
) -> tuple[ScheduledVisit, ...]:
    """Arrival and departure times for every stop, ending with the return home.

    Without an explicit appointment length the day's own average is used.
    ``elapsed_minutes`` counts from the departure at the day start time.
    """
    if time_per_appointment_minutes is None:
        time_per_appointment_minutes = day.appointment_minutes / day.stop_count if day.stop_count else 0.0
    day_start = datetime.strptime(start_time or settings.day_start_time, "%H:%M")
    clock = day_start
    visits: list[ScheduledVisit] = []
    for leg in day.legs:
        clock += timedelta(minutes=leg.duration_minutes)
        arrival = clock
        elapsed = round((arrival - day_start).total_seconds() / 60)
        if leg.is_return_leg:
            visits.append(
                ScheduledVisit(
                    location=leg.destination,
                    arrival=_clock(arrival, day_start),
                    departure=None,
                    travel_minutes=round(leg.duration_minutes),
                    is_return=True,
                    elapsed_minutes=elapsed,
                )
            )
            continue
        clock += timedelta(minutes=time_per_appointment_minutes)
        visits.append(
            ScheduledVisit(
                location=leg.destination,
                arrival=_clock(arrival, day_start),
                departure=_clock(clock, day_start),
                travel_minutes=round(leg.duration_minutes),
                elapsed_minutes=elapsed,
            )
        )
    return tuple(visits)
