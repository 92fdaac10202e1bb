"""
Pairwise comparison capability consumed by the similarity builder.

A metric compares two feature vectors and reports whether its output is a
similarity (higher means more alike) or a distance (lower means more alike).
The similarity builder uses :attr:`PairwiseMetric.kind` to decide whether the
pairwise matrix has to be negated before message passing.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import numpy as np
from tqdm import tqdm

LOGGER = logging.getLogger(__name__)

SIMILARITY = "similarity"
DISTANCE = "distance"
METRIC_KINDS = (SIMILARITY, DISTANCE)


def symmetric_fill(matrix: np.ndarray) -> np.ndarray:
    """
    Mirror the strictly upper triangle of a square matrix onto the lower one.

    Vectorised pairwise routines may differ in the last bit between ``M[i, j]``
    and ``M[j, i]``; the upper triangle (row-major ``i < j``) is authoritative.

    Parameters
    ----------
    matrix : np.ndarray
        Square matrix, shape (m, m)

    Returns
    -------
    np.ndarray
        New symmetric matrix with the diagonal of ``matrix`` preserved
    """
    upper = np.triu(matrix, k=1)
    return upper + upper.T + np.diag(np.diag(matrix))


class PairwiseMetric(ABC):
    """
    Base class for pairwise similarity and distance metrics.

    Subclasses implement :meth:`__call__` for a single pair of vectors and set
    :attr:`kind`. Vectorised subclasses may override :meth:`pairwise`.
    """

    kind: str = DISTANCE
    name: str = "metric"

    @abstractmethod
    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        """Compare two 1-D feature vectors."""

    @property
    def is_similarity(self) -> bool:
        return self.kind == SIMILARITY

    def get_params(self) -> Dict[str, Any]:
        """Constructor arguments needed to rebuild this metric by name."""
        return {}

    def pairwise(self, X: np.ndarray, show_progress: bool = False) -> np.ndarray:
        """
        Compute the full pairwise matrix of ``X``.

        Every unordered pair ``i < j`` is evaluated once in row-major order and
        mirrored to ``(j, i)``.

        Parameters
        ----------
        X : np.ndarray
            Data matrix, shape (m, n)
        show_progress : bool
            Whether to display a progress bar over rows

        Returns
        -------
        np.ndarray
            Pairwise matrix, shape (m, m)
        """
        m = X.shape[0]
        out = np.zeros((m, m), dtype=np.float64)
        for i in tqdm(range(m), desc=f"Pairwise {self.name}", disable=not show_progress):
            out[i, i] = self(X[i], X[i])
            for j in range(i + 1, m):
                value = self(X[i], X[j])
                out[i, j] = value
                out[j, i] = value
        return out

    def between(self, X: np.ndarray, Y: np.ndarray) -> np.ndarray:
        """
        Compare every row of ``X`` with every row of ``Y``.

        Parameters
        ----------
        X : np.ndarray
            Query rows, shape (p, n)
        Y : np.ndarray
            Reference rows, shape (q, n)

        Returns
        -------
        np.ndarray
            Matrix of metric values, shape (p, q)
        """
        out = np.empty((X.shape[0], Y.shape[0]), dtype=np.float64)
        for i in range(X.shape[0]):
            for j in range(Y.shape[0]):
                out[i, j] = self(X[i], Y[j])
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r})"


class CallableMetric(PairwiseMetric):
    """
    Adapt a plain ``(a, b) -> float`` function to :class:`PairwiseMetric`.

    Parameters
    ----------
    func : Callable[[np.ndarray, np.ndarray], float]
        Comparison function
    kind : str
        'similarity' or 'distance'
    name : str, optional
        Display name used in logs
    """

    def __init__(
        self,
        func: Callable[[np.ndarray, np.ndarray], float],
        kind: str = DISTANCE,
        name: Optional[str] = None,
    ):
        if kind not in METRIC_KINDS:
            raise ValueError(
                f"Invalid metric kind: {kind}. Choose 'similarity' or 'distance'"
            )
        if not callable(func):
            raise TypeError(f"Expected a callable, got {type(func).__name__}")

        self.func = func
        self.kind = kind
        self.name = name or getattr(func, "__name__", "callable")

    def __call__(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(self.func(a, b))
