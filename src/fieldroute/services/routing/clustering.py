"""Geographic grouping of rural destinations before sequencing.

Clusters are grown greedily around the stop nearest the start, using the
first member as the cluster centroid (no coordinates are assumed). Clusters
are ordered by a score that favours compact groups within a day's reach and
groups holding high-priority stops; urgent stops are slotted in front of the
cluster they sit closest to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Sequence

from ...models.domain import Destination, LocationRef, OptimizationSettings, Priority
from .provider import CostLookup
from .scoring import Scorer
from .sequencer import SequenceResult, nearest_neighbor

logger = logging.getLogger(__name__)

MIN_CLUSTER_SIZE = 2
GROWTH_RADIUS_FACTOR = 0.8

FROM_START_WEIGHT = 0.6
SPAN_WEIGHT = 0.3
SWEET_SPOT_SIZE = (3, 5)
SWEET_SPOT_BONUS = 20.0
UNDERSIZED_PENALTY = 30.0
HIGH_PRIORITY_BONUS = 15.0
DAY_TRIP_BAND_MILES = (20.0, 60.0)
DAY_TRIP_BONUS = 10.0


@dataclass(frozen=True, slots=True)
class Cluster:
    stops: tuple[Destination, ...]
    score: float
    lead: Destination | None = None

    @property
    def size(self) -> int:
        return len(self.stops)


@dataclass(frozen=True, slots=True)
class ClusterPlan:
    clusters: tuple[Cluster, ...]
    leading_urgent: tuple[Destination, ...] = field(default_factory=tuple)
    flagged: tuple[Destination, ...] = field(default_factory=tuple)

    def flatten(self) -> tuple[Destination, ...]:
        order: list[Destination] = list(self.leading_urgent)
        for cluster in self.clusters:
            if cluster.lead is not None:
                order.append(cluster.lead)
            order.extend(cluster.stops)
        return tuple(order)


class ClusterEngine:
    def __init__(self, costs: CostLookup) -> None:
        self.costs = costs

    def cluster(
        self,
        start: LocationRef,
        destinations: Sequence[Destination],
        settings: OptimizationSettings,
    ) -> ClusterPlan:
        urgent = [destination for destination in destinations if destination.is_urgent]
        pool = [destination for destination in destinations if not destination.is_urgent]

        scorer = Scorer(settings.territory_type, settings.max_leg_miles)
        clusters: list[Cluster] = []
        flagged: list[Destination] = []
        for members in self._grow(start, pool, settings):
            ordered, members_flagged = nearest_neighbor(self.costs, scorer, start, members)
            flagged.extend(members_flagged)
            clusters.append(Cluster(stops=tuple(ordered), score=self.score(start, ordered)))

        clusters.sort(key=lambda cluster: cluster.score)
        placed, leftover = self._insert_urgent(clusters, urgent)
        logger.info(
            f"Grouped {len(pool)} stops into {len(placed)} clusters; "
            f"{len(urgent) - len(leftover)} urgent stops placed before clusters, {len(leftover)} up front"
        )
        return ClusterPlan(clusters=tuple(placed), leading_urgent=tuple(leftover), flagged=tuple(flagged))

    def sequence(
        self,
        start: LocationRef,
        destinations: Sequence[Destination],
        settings: OptimizationSettings,
    ) -> SequenceResult:
        if not destinations:
            return SequenceResult(order=tuple(destinations))
        plan = self.cluster(start, destinations, settings)
        return SequenceResult(order=plan.flatten(), flagged=plan.flagged)

    def _grow(
        self,
        start: LocationRef,
        pool: Sequence[Destination],
        settings: OptimizationSettings,
    ) -> list[list[Destination]]:
        unassigned = list(pool)
        groups: list[list[Destination]] = []
        member_cap = settings.max_stops_per_day - 1
        radius = GROWTH_RADIUS_FACTOR * settings.max_leg_miles
        # a day that holds a single stop can never satisfy the minimum size, so merging is off
        allow_merge = settings.max_stops_per_day >= MIN_CLUSTER_SIZE

        while unassigned:
            seed = min(unassigned, key=lambda destination: self.costs.distance(start, destination.address))
            unassigned.remove(seed)
            members = [seed]
            while unassigned and len(members) < member_cap:
                candidate = min(
                    unassigned,
                    key=lambda destination: self.costs.distance(seed.address, destination.address),
                )
                if self.costs.distance(seed.address, candidate.address) > radius:
                    break
                members.append(candidate)
                unassigned.remove(candidate)

            if len(members) < MIN_CLUSTER_SIZE and groups and allow_merge:
                target = min(groups, key=lambda group: self.costs.distance(group[0].address, seed.address))
                target.extend(members)
            else:
                groups.append(members)
        return groups

    def score(self, start: LocationRef, ordered: Sequence[Destination]) -> float:
        """Cluster ranking score; lower clusters are visited first."""
        from_start = self.costs.distance(start, ordered[0].address)
        span = sum(
            self.costs.distance(first.address, second.address)
            for first, second in zip(ordered, ordered[1:])
        )
        score = FROM_START_WEIGHT * from_start + SPAN_WEIGHT * span

        size = len(ordered)
        if SWEET_SPOT_SIZE[0] <= size <= SWEET_SPOT_SIZE[1]:
            score -= SWEET_SPOT_BONUS
        elif size < MIN_CLUSTER_SIZE:
            score += UNDERSIZED_PENALTY
        score -= HIGH_PRIORITY_BONUS * sum(1 for stop in ordered if stop.priority is Priority.HIGH)
        if DAY_TRIP_BAND_MILES[0] <= from_start <= DAY_TRIP_BAND_MILES[1]:
            score -= DAY_TRIP_BONUS
        return score

    def _insert_urgent(
        self,
        clusters: Sequence[Cluster],
        urgent: Sequence[Destination],
    ) -> tuple[list[Cluster], list[Destination]]:
        remaining = list(urgent)
        placed: list[Cluster] = []
        for cluster in clusters:
            if not remaining:
                placed.append(cluster)
                continue
            anchor = cluster.stops[0].address
            lead = min(remaining, key=lambda destination: self.costs.distance(destination.address, anchor))
            remaining.remove(lead)
            placed.append(replace(cluster, lead=lead))
        return placed, remaining
