import pytest

from fieldroute.models.domain import (
    Destination,
    LegEstimate,
    OptimizationMode,
    OptimizationSettings,
    Priority,
    TerritoryType,
)
from fieldroute.schemas.routing import DestinationModel, OptimizationSettingsModel, OptimizeRequest
from fieldroute.services.routing import service
from fieldroute.services.routing.errors import (
    MissingAddressError,
    NoDestinationsError,
    NoStartLocationError,
    TooManyDestinationsError,
)
from fieldroute.services.routing.heuristic import HeuristicEstimator
from fieldroute.services.routing.maps_client import DistanceMatrixClient
from fieldroute.services.routing.provider import DistanceProvider


class LineProvider(DistanceProvider):
    name = "line"

    def __init__(self, positions, exact=False):
        self.positions = positions
        self.exact = exact

    def estimate(self, origin, destination):
        miles = abs(self.positions[origin] - self.positions[destination])
        return LegEstimate(miles, miles)


class BrokenProvider(DistanceProvider):
    name = "broken"

    def estimate(self, origin, destination):
        raise RuntimeError("service unavailable")


POSITIONS = {
    "S": 0,
    "A": 10,
    "B": 20,
    "C": 30,
    "X": 10,
    "Y": 20,
    "FAR": 200,
    "N10": 10,
    "N12": 12,
    "N14": 14,
    "F100": 100,
    "F104": 104,
    "F108": 108,
}

ADDRESSES = [
    "12 Elm St, Evanston, IL",
    "400 Oak Ave, Evanston, IL",
    "1800 Sherman Ave, Evanston, IL",
    "99 Pine Rd, Skokie, IL",
    "7 Lincoln Ave, Skokie, IL",
    "233 Wacker Dr, Chicago, IL",
    "1060 Lake St, Oak Park, IL",
    "100 Main St, Springfield, IL",
    "5 Oak Rd, Chatham, IL",
    "300 Front St, Wheaton, IL",
    "15 River Rd, Naperville, IL",
    "1 Main St, Kenosha, WI",
]


def _stop(address, priority=Priority.NORMAL):
    return Destination(address=address, priority=priority)


def _stops(*addresses):
    return [_stop(address) for address in addresses]


def _line(exact=False):
    return LineProvider(POSITIONS, exact=exact)


def _visited(route):
    return [stop for day in route.days for stop in day.stops]


def test_validation_errors_carry_codes():
    with pytest.raises(NoStartLocationError) as exc:
        service.optimize("  ", _stops("A"))
    assert exc.value.code == "NoStartLocation"

    with pytest.raises(NoDestinationsError):
        service.optimize("S", [])

    with pytest.raises(TooManyDestinationsError):
        service.optimize("S", _stops(*[f"{n} Main St, Evanston, IL" for n in range(16)]))

    with pytest.raises(MissingAddressError) as exc:
        service.optimize("S", [_stop("A"), _stop(" ")])
    assert "Destination 2" in exc.value.message


def test_single_day_when_split_disabled():
    start = "1 Main St, Evanston, IL"
    stops = _stops("12 Elm St, Evanston, IL", "99 Pine Rd, Skokie, IL")

    route = service.optimize(start, stops, OptimizationSettings(split_enabled=False))

    assert route.overall.day_count == 1
    assert sorted(route.days[0].stops) == sorted(stop.address for stop in stops)
    assert route.days[0].legs[-1].is_return_leg
    assert route.source == "heuristic"
    assert route.estimated_leg_count == 3


def test_bare_labels_stay_on_one_day_without_split():
    route = service.optimize("A", _stops("B", "C"), OptimizationSettings(split_enabled=False))

    assert len(route.days) == 1
    assert sorted(route.days[0].stops) == ["B", "C"]
    assert route.stop_count == 2


def test_nearest_stop_first_with_line_provider():
    route = service.optimize("S", _stops("C", "A", "B"), OptimizationSettings(split_enabled=False), provider=_line())

    assert route.days[0].stops == ("A", "B", "C")
    assert route.estimated_leg_count == 0
    assert route.source == "line"


def test_one_stop_per_day():
    route = service.optimize("S", _stops("A", "B", "C"), OptimizationSettings(max_stops_per_day=1), provider=_line())

    assert route.overall.day_count == 3
    assert all(day.stop_count == 1 for day in route.days)
    assert all(day.legs[-1].destination == "S" for day in route.days)


def test_urgent_stop_visited_first():
    stops = [_stop("X"), _stop("Y", Priority.URGENT)]

    route = service.optimize("S", stops, OptimizationSettings(), provider=_line())

    assert _visited(route) == ["Y", "X"]


def test_unreachable_stop_is_flagged_and_gets_its_own_day():
    stops = _stops("FAR", "A")

    route = service.optimize("S", stops, OptimizationSettings(), provider=_line())

    assert [stop.address for stop in route.flagged] == ["FAR"]
    assert route.is_flagged(stops[0])
    assert not route.is_flagged(stops[1])
    assert [day.stops for day in route.days] == [("A",), ("FAR",)]


@pytest.mark.parametrize("territory", [TerritoryType.MIXED, TerritoryType.RURAL])
def test_lone_unreachable_stop_is_flagged(territory):
    stops = _stops("FAR")

    route = service.optimize("S", stops, OptimizationSettings(territory_type=territory), provider=_line())

    assert route.is_flagged(stops[0])
    assert [day.stops for day in route.days] == [("FAR",)]


def test_only_the_flagged_copy_of_a_duplicate_is_reported():
    stops = _stops("FAR", "A", "FAR")

    route = service.optimize("S", stops, OptimizationSettings(), provider=_line())

    assert stops[0] == stops[2]
    assert route.is_flagged(stops[0])
    assert not route.is_flagged(stops[2])


def test_rural_territory_sequences_by_cluster():
    settings = OptimizationSettings(territory_type=TerritoryType.RURAL)
    stops = _stops("F104", "N12", "F100", "N14", "F108", "N10")

    route = service.optimize("S", stops, settings, provider=_line())

    assert [day.stops for day in route.days] == [("N10", "N12", "N14"), ("F100", "F104", "F108")]


def test_time_mode_with_exact_provider_keeps_first_destination():
    settings = OptimizationSettings(optimization_mode=OptimizationMode.TIME, split_enabled=False)

    route = service.optimize("S", _stops("C", "A", "B"), settings, provider=_line(exact=True))

    assert route.days[0].stops == ("C", "B", "A")


def test_optimization_disabled_keeps_input_order():
    settings = OptimizationSettings(optimize_enabled=False, split_enabled=False)

    route = service.optimize("S", _stops("C", "A", "B"), settings, provider=_line())

    assert route.days[0].stops == ("C", "A", "B")


def test_failed_lookups_use_default_leg():
    route = service.optimize("S", _stops("A", "B", "C"), OptimizationSettings(), provider=BrokenProvider())

    assert route.overall.day_count == 1
    assert route.estimated_leg_count == 4
    assert route.overall.miles == 100.0
    assert all(leg.duration_minutes == 45.0 for leg in route.days[0].legs)


def test_heuristic_route_respects_day_bounds():
    settings = OptimizationSettings(max_stops_per_day=4, max_daily_hours=6.0)
    stops = _stops(*ADDRESSES)
    stops[5] = _stop(ADDRESSES[5], Priority.URGENT)

    route = service.optimize("1 Main St, Evanston, IL", stops, settings)

    assert sorted(_visited(route)) == sorted(ADDRESSES)
    assert route.days[0].stops[0] == ADDRESSES[5]
    for day in route.days:
        assert day.legs[0].is_from_start
        assert day.legs[-1].is_return_leg
        assert day.stop_count <= settings.max_stops_per_day
        if day.stop_count > 1:
            assert day.total_day_minutes <= settings.max_daily_minutes
            for leg in day.legs[1:-1]:
                assert leg.distance_miles <= settings.max_leg_miles


def test_heuristic_route_is_reproducible():
    stops = _stops(*ADDRESSES[:8])
    settings = OptimizationSettings(territory_type=TerritoryType.RURAL)

    first = service.optimize("1 Main St, Evanston, IL", stops, settings)
    second = service.optimize("1 Main St, Evanston, IL", stops, settings)

    assert first == second


def test_inputs_are_not_mutated():
    stops = _stops("FAR", "A")
    snapshot = list(stops)

    service.optimize("S", stops, OptimizationSettings(), provider=_line())

    assert stops == snapshot


def test_move_day_relabels_and_resummarizes():
    route = service.optimize("S", _stops("A", "B", "C"), OptimizationSettings(max_stops_per_day=1), provider=_line())

    moved = service.move_day(route, 2, 0)

    assert [day.stops for day in moved.days] == [("C",), ("A",), ("B",)]
    assert [day.label for day in moved.days] == ["Day 1", "Day 2", "Day 3"]
    assert moved.overall.miles == route.overall.miles

    with pytest.raises(ValueError):
        service.move_day(route, 0, 3)


def test_roundtrip_mileage():
    trip = service.roundtrip_mileage("S", "C", provider=_line())

    assert trip.one_way_miles == 30.0
    assert trip.miles == 60.0
    assert trip.method == "line"

    estimated = service.roundtrip_mileage("12 Elm St, Evanston, IL", "400 Oak Ave, Evanston, IL", HeuristicEstimator())
    assert estimated.method == "estimated"

    with pytest.raises(NoStartLocationError):
        service.roundtrip_mileage("", "C", provider=_line())


def test_build_provider_follows_api_key(monkeypatch):
    monkeypatch.setattr(service.app_settings, "maps_api_key", None)
    assert isinstance(service.build_provider(), HeuristicEstimator)

    monkeypatch.setattr(service.app_settings, "maps_api_key", "test-key")
    assert isinstance(service.build_provider(), DistanceMatrixClient)


def test_optimize_route_builds_schedule():
    payload = OptimizeRequest(
        start="S",
        destinations=[DestinationModel(address="A"), DestinationModel(address="B", priority="high")],
        settings=OptimizationSettingsModel(max_stops_per_day=1),
        day_start_time="09:00",
    )

    result = service.optimize_route(payload, provider=_line())

    assert len(result.days) == 2
    schedule = result.days[0].schedule
    assert [(visit.location, visit.arrival, visit.departure) for visit in schedule] == [
        ("A", "09:10", "09:40"),
        ("S", "09:50", None),
    ]
    assert result.days[1].visits[0].priority == "high"
    assert service.split_route_from_model(result).overall.day_count == 2
