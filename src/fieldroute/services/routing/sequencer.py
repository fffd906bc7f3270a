"""Priority-aware nearest-neighbor visit ordering."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

from ...models.domain import Destination, LocationRef, OptimizationMode, OptimizationSettings
from .provider import CostLookup
from .scoring import Scorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SequenceResult:
    order: tuple[Destination, ...]
    flagged: tuple[Destination, ...] = field(default_factory=tuple)


def nearest_neighbor(
    costs: CostLookup,
    scorer: Scorer,
    origin: LocationRef,
    candidates: Sequence[Destination],
) -> tuple[list[Destination], list[Destination]]:
    """Greedy tour from ``origin`` over ``candidates`` using the scorer.

    Returns the visiting order and the stops that had to be taken although no
    remaining candidate was within the leg cap. Ties keep input order.
    """
    remaining = list(candidates)
    ordered: list[Destination] = []
    flagged: list[Destination] = []
    current = origin

    while remaining:
        best_index: int | None = None
        best_score = math.inf
        any_acceptable = False
        for index, candidate in enumerate(remaining):
            scored = scorer.score_leg(costs.leg_cost(current, candidate.address))
            any_acceptable = any_acceptable or scored.acceptable
            if scored.score < best_score:
                best_index, best_score = index, scored.score
        if best_index is None:
            # every score is infinite; keep moving instead of stalling
            best_index = 0
        chosen = remaining.pop(best_index)
        if not any_acceptable:
            flagged.append(chosen)
        ordered.append(chosen)
        current = chosen.address

    return ordered, flagged


class SequencingEngine:
    def __init__(self, costs: CostLookup) -> None:
        self.costs = costs

    def sequence(
        self,
        start: LocationRef,
        destinations: Sequence[Destination],
        settings: OptimizationSettings,
    ) -> SequenceResult:
        if not destinations:
            return SequenceResult(order=tuple(destinations))

        if settings.optimization_mode is OptimizationMode.TIME and self.costs.provider.exact:
            return self._sequence_by_time(start, destinations, settings)

        urgent = [destination for destination in destinations if destination.is_urgent]
        others = [destination for destination in destinations if not destination.is_urgent]
        scorer = Scorer(settings.territory_type, settings.max_leg_miles)
        ordered, flagged = nearest_neighbor(self.costs, scorer, start, others)
        logger.debug(f"Sequenced {len(others)} stops after {len(urgent)} urgent stops ({len(flagged)} flagged)")
        return SequenceResult(order=tuple(urgent + ordered), flagged=tuple(flagged))

    def _sequence_by_time(
        self,
        start: LocationRef,
        destinations: Sequence[Destination],
        settings: OptimizationSettings,
    ) -> SequenceResult:
        """Nearest neighbor over a full time matrix; the first destination stays first."""
        locations = [start, *(destination.address for destination in destinations)]
        matrix = self.costs.matrix(locations)

        count = len(destinations)
        order = [0]
        visited = {0}
        flagged: list[Destination] = []
        if not (matrix.distances[0, 1:] <= settings.max_leg_miles).any():
            flagged.append(destinations[0])
        while len(order) < count:
            current = order[-1] + 1  # matrix row, offset by the start location
            best: int | None = None
            best_minutes = math.inf
            any_acceptable = False
            for index in range(count):
                if index in visited:
                    continue
                if matrix.distances[current, index + 1] <= settings.max_leg_miles:
                    any_acceptable = True
                minutes = float(matrix.durations[current, index + 1])
                if minutes < best_minutes:
                    best, best_minutes = index, minutes
            if best is None:
                best = next(index for index in range(count) if index not in visited)
            if not any_acceptable:
                flagged.append(destinations[best])
            order.append(best)
            visited.add(best)

        return SequenceResult(
            order=tuple(destinations[index] for index in order),
            flagged=tuple(flagged),
        )
