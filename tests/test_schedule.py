from fieldroute.models.domain import Destination, LegEstimate, OptimizationSettings
from fieldroute.services.routing.partitioner import DayPartitioner, build_leg_chain
from fieldroute.services.routing.provider import CostLookup, DistanceProvider
from fieldroute.services.routing.schedule import build_day_schedule


class LineProvider(DistanceProvider):
    name = "line"

    def __init__(self, positions):
        self.positions = positions

    def estimate(self, origin, destination):
        miles = abs(self.positions[origin] - self.positions[destination])
        return LegEstimate(miles, miles)


def _day(*addresses, **overrides):
    costs = CostLookup(LineProvider({"S": 0, "A": 10, "B": 20, "REMOTE": 500}))
    stops = [Destination(address=address) for address in addresses]
    settings = OptimizationSettings(time_per_appointment_minutes=30.0, **overrides)
    route = DayPartitioner(costs).split("S", stops, build_leg_chain(costs, "S", stops), settings)
    return route.days[0]


def test_schedule_starts_at_configured_time():
    schedule = build_day_schedule(_day("A", "B"), 30.0)

    assert [(visit.location, visit.arrival, visit.departure) for visit in schedule] == [
        ("A", "08:10", "08:40"),
        ("B", "08:50", "09:20"),
        ("S", "09:40", None),
    ]
    assert schedule[-1].is_return
    assert [visit.elapsed_minutes for visit in schedule] == [10, 50, 100]


def test_schedule_uses_day_average_without_appointment_length():
    schedule = build_day_schedule(_day("A"), start_time="07:30")

    assert schedule[0].departure == "08:10"


def test_schedule_marks_arrivals_past_midnight():
    schedule = build_day_schedule(_day("REMOTE", max_daily_hours=1.0), 30.0)

    assert schedule[0].arrival == "16:20"
    assert schedule[0].departure == "16:50"
    assert schedule[-1].arrival == "01:10 (+1d)"
    assert schedule[-1].elapsed_minutes == 1030
