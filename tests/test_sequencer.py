import math

from fieldroute.models.domain import (
    Destination,
    LegEstimate,
    OptimizationMode,
    OptimizationSettings,
    Priority,
    TerritoryType,
)
from fieldroute.services.routing.provider import CostLookup, DistanceProvider
from fieldroute.services.routing.sequencer import SequencingEngine


class LineProvider(DistanceProvider):
    """Locations sit on a line; distance is the gap, one minute per mile."""

    name = "line"

    def __init__(self, positions, exact=False):
        self.positions = positions
        self.exact = exact

    def estimate(self, origin, destination):
        miles = abs(self.positions[origin] - self.positions[destination])
        return LegEstimate(miles, miles)


class InfiniteProvider(DistanceProvider):
    name = "infinite"

    def estimate(self, origin, destination):
        return LegEstimate(math.inf, math.inf)


def _stop(address, priority=Priority.NORMAL):
    return Destination(address=address, priority=priority)


def _settings(**overrides):
    values = dict(territory_type=TerritoryType.MIXED, max_leg_miles=50.0, optimization_mode=OptimizationMode.DISTANCE)
    values.update(overrides)
    return OptimizationSettings(**values)


def _addresses(result):
    return [stop.address for stop in result.order]


def test_nearest_neighbor_from_start():
    provider = LineProvider({"S": 0, "A": 30, "B": 10, "C": 20})
    engine = SequencingEngine(CostLookup(provider))

    result = engine.sequence("S", [_stop("A"), _stop("B"), _stop("C")], _settings())

    assert _addresses(result) == ["B", "C", "A"]
    assert result.flagged == ()


def test_urgent_stops_lead_in_input_order():
    provider = LineProvider({"S": 0, "X": 10, "Y": 20, "Z": 5})
    engine = SequencingEngine(CostLookup(provider))
    stops = [_stop("X"), _stop("Y", Priority.URGENT), _stop("Z", Priority.URGENT)]

    result = engine.sequence("S", stops, _settings())

    assert _addresses(result) == ["Y", "Z", "X"]


def test_ties_keep_input_order():
    provider = LineProvider({"S": 0, "A": 10, "B": -10})
    engine = SequencingEngine(CostLookup(provider))

    result = engine.sequence("S", [_stop("A"), _stop("B")], _settings())

    assert _addresses(result) == ["A", "B"]


def test_stop_without_reachable_neighbor_is_flagged():
    provider = LineProvider({"S": 0, "A": 10, "B": 200})
    engine = SequencingEngine(CostLookup(provider))

    result = engine.sequence("S", [_stop("B"), _stop("A")], _settings())

    assert _addresses(result) == ["A", "B"]
    assert [stop.address for stop in result.flagged] == ["B"]


def test_single_and_empty_inputs_keep_their_order():
    engine = SequencingEngine(CostLookup(LineProvider({"S": 0, "A": 40})))

    result = engine.sequence("S", [_stop("A")], _settings())

    assert _addresses(result) == ["A"]
    assert result.flagged == ()
    assert engine.sequence("S", [], _settings()).order == ()


def test_lone_stop_beyond_leg_cap_is_flagged():
    engine = SequencingEngine(CostLookup(LineProvider({"S": 0, "FAR": 200})))

    result = engine.sequence("S", [_stop("FAR")], _settings())

    assert _addresses(result) == ["FAR"]
    assert [stop.address for stop in result.flagged] == ["FAR"]


def test_lone_stop_beyond_leg_cap_is_flagged_in_time_mode():
    engine = SequencingEngine(CostLookup(LineProvider({"S": 0, "FAR": 200}, exact=True)))

    result = engine.sequence("S", [_stop("FAR")], _settings(optimization_mode=OptimizationMode.TIME))

    assert [stop.address for stop in result.flagged] == ["FAR"]


def test_infinite_costs_still_terminate_in_input_order():
    engine = SequencingEngine(CostLookup(InfiniteProvider()))
    stops = [_stop("A"), _stop("B"), _stop("C")]

    result = engine.sequence("S", stops, _settings())

    assert _addresses(result) == ["A", "B", "C"]
    assert len(result.flagged) == 3


def test_time_mode_with_exact_provider_keeps_first_destination():
    provider = LineProvider({"S": 0, "D1": 100, "D2": 5, "D3": 90}, exact=True)
    engine = SequencingEngine(CostLookup(provider))
    stops = [_stop("D1"), _stop("D2"), _stop("D3")]

    result = engine.sequence("S", stops, _settings(optimization_mode=OptimizationMode.TIME))

    assert _addresses(result) == ["D1", "D3", "D2"]
    assert [stop.address for stop in result.flagged] == ["D2"]


def test_time_mode_without_exact_provider_uses_scored_ordering():
    provider = LineProvider({"S": 0, "D1": 100, "D2": 5, "D3": 90})
    engine = SequencingEngine(CostLookup(provider))
    stops = [_stop("D1"), _stop("D2"), _stop("D3")]

    result = engine.sequence("S", stops, _settings(optimization_mode=OptimizationMode.TIME))

    assert _addresses(result) == ["D2", "D3", "D1"]
