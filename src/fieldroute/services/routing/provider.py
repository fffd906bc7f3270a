"""Distance provider contract and the per-run cost lookup built on top of it."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ...config import settings
from ...models.domain import LegEstimate, LocationRef

logger = logging.getLogger(__name__)


def default_leg() -> LegEstimate:
    """Conservative value used whenever a leg cannot be computed."""
    return LegEstimate(
        distance_miles=settings.default_leg_miles,
        duration_minutes=settings.default_leg_minutes,
        estimated=True,
    )


def normalize_location(location: LocationRef) -> str:
    return " ".join((location or "").lower().split())


def same_location(first: LocationRef, second: LocationRef) -> bool:
    return normalize_location(first) == normalize_location(second)


@dataclass(slots=True)
class DistanceMatrix:
    """Distances (miles) and durations (minutes) indexed by (origin, destination)."""

    distances: np.ndarray
    durations: np.ndarray
    degraded: np.ndarray

    @classmethod
    def filled(cls, rows: int, cols: int, fill: LegEstimate | None = None) -> "DistanceMatrix":
        fill = fill or default_leg()
        return cls(
            distances=np.full((rows, cols), fill.distance_miles, dtype=float),
            durations=np.full((rows, cols), fill.duration_minutes, dtype=float),
            degraded=np.full((rows, cols), fill.estimated, dtype=bool),
        )

    @property
    def shape(self) -> tuple[int, int]:
        return self.distances.shape

    def cell(self, origin_index: int, destination_index: int) -> LegEstimate:
        return LegEstimate(
            distance_miles=float(self.distances[origin_index, destination_index]),
            duration_minutes=float(self.durations[origin_index, destination_index]),
            estimated=bool(self.degraded[origin_index, destination_index]),
        )


class DistanceProvider(ABC):
    """Answers distance/time questions between two location references.

    Implementations must not raise from ``estimate``: when a route cannot be
    computed they substitute :func:`default_leg`.
    """

    name: str = "provider"
    exact: bool = False

    @abstractmethod
    def estimate(self, origin: LocationRef, destination: LocationRef) -> LegEstimate:
        raise NotImplementedError

    def estimate_matrix(
        self,
        origins: Sequence[LocationRef],
        destinations: Sequence[LocationRef],
    ) -> DistanceMatrix:
        matrix = DistanceMatrix.filled(len(origins), len(destinations), LegEstimate(0.0, 0.0))
        for i, origin in enumerate(origins):
            for j, destination in enumerate(destinations):
                value = self.estimate(origin, destination)
                matrix.distances[i, j] = value.distance_miles
                matrix.durations[i, j] = value.duration_minutes
                matrix.degraded[i, j] = value.estimated
        return matrix


class CostLookup:
    """Memoized leg costs for a single optimization run.

    Every leg the engine needs goes through here so repeated questions get the
    same answer and a misbehaving provider cannot abort the run.
    """

    def __init__(self, provider: DistanceProvider) -> None:
        self.provider = provider
        self._cache: dict[tuple[str, str], LegEstimate] = {}
        self.substituted = 0

    def leg_cost(self, origin: LocationRef, destination: LocationRef) -> LegEstimate:
        if same_location(origin, destination):
            return LegEstimate(0.0, 0.0)
        key = (normalize_location(origin), normalize_location(destination))
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            value = self.provider.estimate(origin, destination)
        except Exception as exc:
            logger.warning(f"Distance lookup {origin!r} -> {destination!r} failed, using default: {exc}")
            value = default_leg()
            self.substituted += 1
        self._cache[key] = value
        return value

    def distance(self, origin: LocationRef, destination: LocationRef) -> float:
        return self.leg_cost(origin, destination).distance_miles

    def _cached_matrix(self, locations: Sequence[LocationRef]) -> DistanceMatrix | None:
        matrix = DistanceMatrix.filled(len(locations), len(locations), LegEstimate(0.0, 0.0))
        for i, origin in enumerate(locations):
            for j, destination in enumerate(locations):
                if same_location(origin, destination):
                    continue
                value = self._cache.get((normalize_location(origin), normalize_location(destination)))
                if value is None:
                    return None
                matrix.distances[i, j] = value.distance_miles
                matrix.durations[i, j] = value.duration_minutes
                matrix.degraded[i, j] = value.estimated
        return matrix

    def matrix(self, locations: Sequence[LocationRef]) -> DistanceMatrix:
        """Square matrix over ``locations``; results also prime the leg cache.

        The provider is only asked when some pair is not cached yet.
        """
        cached = self._cached_matrix(locations)
        if cached is not None:
            return cached
        try:
            matrix = self.provider.estimate_matrix(locations, locations)
            if matrix.shape != (len(locations), len(locations)):
                raise ValueError(f"matrix shape {matrix.shape} does not match {len(locations)} locations")
        except Exception as exc:
            logger.warning(f"Matrix request for {len(locations)} locations failed, falling back to leg lookups: {exc}")
            matrix = DistanceMatrix.filled(len(locations), len(locations), LegEstimate(0.0, 0.0))
            for i, origin in enumerate(locations):
                for j, destination in enumerate(locations):
                    value = self.leg_cost(origin, destination)
                    matrix.distances[i, j] = value.distance_miles
                    matrix.durations[i, j] = value.duration_minutes
                    matrix.degraded[i, j] = value.estimated
            return matrix

        for i, origin in enumerate(locations):
            for j, destination in enumerate(locations):
                if same_location(origin, destination):
                    matrix.distances[i, j] = 0.0
                    matrix.durations[i, j] = 0.0
                    matrix.degraded[i, j] = False
                    continue
                key = (normalize_location(origin), normalize_location(destination))
                self._cache.setdefault(key, matrix.cell(i, j))
        return matrix
