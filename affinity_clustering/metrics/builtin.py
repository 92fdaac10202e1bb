"""
Built-in pairwise metrics and the metric name registry.

Pair evaluation uses numpy directly; full matrices are computed with the
vectorised routines in :mod:`sklearn.metrics.pairwise` and symmetrised so the
upper triangle is authoritative.
"""

import logging
from typing import Any, Dict, Type, Union

import numpy as np
from sklearn.metrics.pairwise import (
    cosine_similarity,
    euclidean_distances,
    haversine_distances,
    manhattan_distances,
    rbf_kernel,
)

from .base import DISTANCE, SIMILARITY, PairwiseMetric, symmetric_fill

LOGGER = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


class EuclideanDistance(PairwiseMetric):
    """Straight-line (L2) distance."""

    kind = DISTANCE
    name = "euclidean"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - b))

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        return symmetric_fill(euclidean_distances(X))

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        return euclidean_distances(X, Y)


class SquaredEuclideanDistance(PairwiseMetric):
    """Squared L2 distance, the classic affinity propagation input."""

    kind = DISTANCE
    name = "sqeuclidean"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - b
        return float(np.dot(diff, diff))

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        return symmetric_fill(euclidean_distances(X, squared=True))

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        return euclidean_distances(X, Y, squared=True)


class ManhattanDistance(PairwiseMetric):
    """City-block (L1) distance."""

    kind = DISTANCE
    name = "manhattan"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.abs(np.asarray(a, dtype=np.float64) - b).sum())

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        return symmetric_fill(manhattan_distances(X))

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        return manhattan_distances(X, Y)


class HaversineDistance(PairwiseMetric):
    """
    Great-circle distance between ``[latitude, longitude]`` points.

    Coordinates are given in degrees; distances are returned in units of
    ``radius`` (kilometres by default).
    """

    kind = DISTANCE
    name = "haversine"

    def __init__(self, radius: float = EARTH_RADIUS_KM):
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        self.radius = radius

    def get_params(self) -> Dict[str, Any]:
        return {"radius": self.radius}

    @staticmethod
    def _check_coordinates(X: np.ndarray):
        if X.shape[-1] != 2:
            raise ValueError(
                f"Haversine distance requires [latitude, longitude] rows, "
                f"got {X.shape[-1]} features"
            )

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        pair = np.radians(np.vstack([a, b]).astype(np.float64))
        self._check_coordinates(pair)
        return float(haversine_distances(pair[:1], pair[1:])[0, 0] * self.radius)

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        self._check_coordinates(X)
        return symmetric_fill(haversine_distances(np.radians(X)) * self.radius)

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        self._check_coordinates(X)
        self._check_coordinates(Y)
        return haversine_distances(np.radians(X), np.radians(Y)) * self.radius


class CosineSimilarity(PairwiseMetric):
    """Cosine of the angle between two vectors."""

    kind = SIMILARITY
    name = "cosine"

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(cosine_similarity([a], [b])[0, 0])

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        return symmetric_fill(cosine_similarity(X))

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        return cosine_similarity(X, Y)


class GaussianSimilarity(PairwiseMetric):
    """
    Gaussian (RBF) kernel similarity ``exp(-||a - b||^2 / (2 * sigma^2))``.

    Parameters
    ----------
    sigma : float
        Kernel bandwidth, must be positive
    """

    kind = SIMILARITY
    name = "gaussian"

    def __init__(self, sigma: float = 1.0):
        if sigma <= 0:
            raise ValueError(f"sigma must be positive, got {sigma}")
        self.sigma = sigma

    def get_params(self) -> Dict[str, Any]:
        return {"sigma": self.sigma}

    @property
    def gamma(self) -> float:
        return 1.0 / (2.0 * self.sigma**2)

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(rbf_kernel([a], [b], gamma=self.gamma)[0, 0])

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        return symmetric_fill(rbf_kernel(X, gamma=self.gamma))

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        return rbf_kernel(X, Y, gamma=self.gamma)


METRIC_REGISTRY: Dict[str, Type[PairwiseMetric]] = {
    "euclidean": EuclideanDistance,
    "sqeuclidean": SquaredEuclideanDistance,
    "manhattan": ManhattanDistance,
    "haversine": HaversineDistance,
    "cosine": CosineSimilarity,
    "gaussian": GaussianSimilarity,
}


def get_metric(metric: Union[str, PairwiseMetric], **params: Any) -> PairwiseMetric:
    """
    Resolve a metric name or instance.

    Parameters
    ----------
    metric : Union[str, PairwiseMetric]
        Registered metric name or a ready metric instance
    **params
        Constructor arguments of a registered metric, e.g. ``sigma`` for
        ``"gaussian"`` or ``radius`` for ``"haversine"``

    Returns
    -------
    PairwiseMetric
        Metric instance

    Examples
    --------
    >>> get_metric("haversine").kind
    'distance'
    """
    if isinstance(metric, PairwiseMetric):
        if params:
            raise ValueError("Metric parameters cannot be applied to a metric instance")
        return metric

    if not isinstance(metric, str):
        raise TypeError(
            f"metric must be a name or PairwiseMetric, got {type(metric).__name__}"
        )

    key = metric.lower()
    if key not in METRIC_REGISTRY:
        raise ValueError(
            f"Unknown metric: {metric}. Choose one of {sorted(METRIC_REGISTRY)}"
        )

    try:
        return METRIC_REGISTRY[key](**params)
    except TypeError as exc:
        raise ValueError(f"Invalid parameters for metric {key}: {exc}") from exc
