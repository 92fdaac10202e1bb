"""
Pairwise comparison metrics.

- PairwiseMetric: base class tagging a metric as 'similarity' or 'distance'
- CallableMetric: adapter for plain comparison functions
- Built-in metrics backed by scikit-learn pairwise routines
- get_metric: resolve a registered metric name
"""

from .base import (DISTANCE, SIMILARITY, CallableMetric, PairwiseMetric,
                   symmetric_fill)
from .builtin import (METRIC_REGISTRY, CosineSimilarity, EuclideanDistance,
                      GaussianSimilarity, HaversineDistance, ManhattanDistance,
                      SquaredEuclideanDistance, get_metric)

__all__ = [
    "DISTANCE",
    "SIMILARITY",
    "PairwiseMetric",
    "CallableMetric",
    "symmetric_fill",
    "METRIC_REGISTRY",
    "EuclideanDistance",
    "SquaredEuclideanDistance",
    "ManhattanDistance",
    "HaversineDistance",
    "CosineSimilarity",
    "GaussianSimilarity",
    "get_metric",
]
