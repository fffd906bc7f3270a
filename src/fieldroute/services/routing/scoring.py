"""Territory-aware leg scoring (lower is better)."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ...models.domain import LegEstimate, TerritoryType

RURAL_LONG_JUMP_MILES = 100.0
URBAN_LONG_DRIVE_MINUTES = 45.0
MIXED_FAR_MILES = 60.0
MIXED_LONG_MINUTES = 60.0


@dataclass(frozen=True, slots=True)
class LegScore:
    score: float
    acceptable: bool


class Scorer:
    def __init__(self, territory: TerritoryType, max_leg_miles: float) -> None:
        self.territory = TerritoryType(territory)
        self.max_leg_miles = max_leg_miles

    def cost(self, distance_miles: float, duration_minutes: float) -> float:
        if math.isinf(distance_miles) or math.isinf(duration_minutes):
            return math.inf
        match self.territory:
            case TerritoryType.RURAL:
                # long inter-cluster jumps cost triple
                penalty = distance_miles * 2 if distance_miles > RURAL_LONG_JUMP_MILES else 0.0
                return distance_miles + penalty
            case TerritoryType.URBAN:
                penalty = duration_minutes * 1.5 if duration_minutes > URBAN_LONG_DRIVE_MINUTES else 0.0
                return duration_minutes + penalty
            case _:
                distance_weight = 0.7 if distance_miles > MIXED_FAR_MILES else 0.5
                time_weight = 0.7 if duration_minutes > MIXED_LONG_MINUTES else 0.3
                return distance_miles * distance_weight + duration_minutes * time_weight

    def score(self, distance_miles: float, duration_minutes: float) -> LegScore:
        return LegScore(
            score=self.cost(distance_miles, duration_minutes),
            acceptable=distance_miles <= self.max_leg_miles,
        )

    def score_leg(self, leg: LegEstimate) -> LegScore:
        return self.score(leg.distance_miles, leg.duration_minutes)
