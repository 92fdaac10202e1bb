"""
Similarity matrix construction.

Turns a data matrix and a pairwise metric into the square similarity matrix
consumed by message passing. Distance metrics are negated so that larger is
always better, and the diagonal is replaced by a single shared preference.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from affinity_clustering.metrics import PairwiseMetric

LOGGER = logging.getLogger(__name__)


def compute_similarity(
    X: np.ndarray,
    metric: PairwiseMetric,
    show_progress: bool = False,
) -> np.ndarray:
    """
    Compute the raw pairwise similarity matrix of ``X``.

    Parameters
    ----------
    X : np.ndarray
        Data matrix, shape (m, n)
    metric : PairwiseMetric
        Comparison capability; distance metrics are negated
    show_progress : bool
        Show a progress bar for non-vectorised metrics

    Returns
    -------
    np.ndarray
        Similarity matrix, shape (m, m)
    """
    pairwise = np.asarray(metric.pairwise(X, show_progress=show_progress), dtype=np.float64)
    if metric.is_similarity:
        return pairwise
    return -pairwise


def median_preference(S: np.ndarray) -> float:
    """
    Median of the strictly upper-triangular entries of ``S``.

    A single point has no pairs; its preference is 0.0.
    """
    m = S.shape[0]
    if m < 2:
        return 0.0
    rows, cols = np.triu_indices(m, k=1)
    return float(np.median(S[rows, cols]))


def build_similarity_matrix(
    X: np.ndarray,
    metric: Optional[PairwiseMetric] = None,
    preference: Optional[float] = None,
    precomputed: bool = False,
    show_progress: bool = False,
) -> Tuple[np.ndarray, float]:
    """
    Build the similarity matrix with the preference on its diagonal.

    Parameters
    ----------
    X : np.ndarray
        Data matrix (m, n), or an (m, m) similarity matrix when ``precomputed``
    metric : PairwiseMetric, optional
        Comparison capability; required unless ``precomputed``
    preference : float, optional
        Diagonal value. ``None`` uses :func:`median_preference`; larger values
        yield more clusters.
    precomputed : bool
        Treat ``X`` as a similarity matrix. Its diagonal is ignored.
    show_progress : bool
        Show a progress bar while evaluating the metric

    Returns
    -------
    Tuple[np.ndarray, float]
        (similarity matrix owned by the caller, preference used)
    """
    if precomputed:
        if X.ndim != 2 or X.shape[0] != X.shape[1]:
            raise ValueError(
                f"Precomputed similarity must be a square matrix, got shape {X.shape}"
            )
        S = np.array(X, dtype=np.float64, copy=True)
    else:
        if metric is None:
            raise ValueError("A metric is required unless the input is precomputed")
        S = compute_similarity(X, metric, show_progress=show_progress)

    pref = median_preference(S) if preference is None else float(preference)
    np.fill_diagonal(S, pref)

    LOGGER.debug(f"Similarity matrix {S.shape} built with preference {pref}")
    return S, pref
