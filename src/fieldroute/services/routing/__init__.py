"""Route sequencing and day partitioning."""

from .clustering import ClusterEngine, ClusterPlan
from .heuristic import HeuristicEstimator
from .maps_client import DistanceMatrixClient
from .partitioner import DayPartitioner
from .provider import CostLookup, DistanceMatrix, DistanceProvider
from .sequencer import SequenceResult, SequencingEngine
from .service import move_day, optimize, roundtrip_mileage

__all__ = [
    "ClusterEngine",
    "ClusterPlan",
    "CostLookup",
    "DayPartitioner",
    "DistanceMatrix",
    "DistanceMatrixClient",
    "DistanceProvider",
    "HeuristicEstimator",
    "SequenceResult",
    "SequencingEngine",
    "move_day",
    "optimize",
    "roundtrip_mileage",
]
