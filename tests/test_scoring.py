import math

import pytest

from fieldroute.models.domain import LegEstimate, TerritoryType
from fieldroute.services.routing.scoring import Scorer


def test_rural_cost_triples_long_jumps():
    scorer = Scorer(TerritoryType.RURAL, max_leg_miles=50)

    assert scorer.cost(50.0, 999.0) == pytest.approx(50.0)
    assert scorer.cost(150.0, 0.0) == pytest.approx(450.0)


def test_urban_cost_is_driven_by_minutes():
    scorer = Scorer(TerritoryType.URBAN, max_leg_miles=50)

    assert scorer.cost(999.0, 30.0) == pytest.approx(30.0)
    assert scorer.cost(0.0, 60.0) == pytest.approx(150.0)


def test_mixed_cost_blends_distance_and_time():
    scorer = Scorer(TerritoryType.MIXED, max_leg_miles=50)

    assert scorer.cost(40.0, 30.0) == pytest.approx(29.0)
    assert scorer.cost(100.0, 90.0) == pytest.approx(133.0)


def test_infinite_inputs_score_infinite():
    scorer = Scorer("mixed", max_leg_miles=50)

    assert math.isinf(scorer.cost(math.inf, 10.0))
    assert math.isinf(scorer.score(10.0, math.inf).score)


def test_acceptability_follows_leg_cap():
    scorer = Scorer(TerritoryType.RURAL, max_leg_miles=50)

    assert scorer.score_leg(LegEstimate(50.0, 60.0)).acceptable is True
    assert scorer.score_leg(LegEstimate(50.1, 60.0)).acceptable is False
