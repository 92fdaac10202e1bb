"""Shared default constants for affinity propagation clustering.

This module is the single source of truth for the estimator defaults and the
numeric constants used by the degeneracy noise injector.

* :data:`DEFAULT_AP_PARAMS`: default hyperparameters consumed by
  :class:`~affinity_clustering.clustering.AffinityPropagationConfig`.
* :data:`EPS` / :data:`TINY`: scale and offset of the noise added to the
  similarity matrix before message passing.

Overriding defaults
-------------------
:data:`DEFAULT_AP_PARAMS` is an instance of a ``frozen=True`` dataclass, so it
cannot be mutated. Build a modified copy with :func:`dataclasses.replace`::

    import dataclasses
    from affinity_clustering.DEFAULT_CONSTS import DEFAULT_AP_PARAMS

    params = dataclasses.replace(DEFAULT_AP_PARAMS, max_iter=500)
"""

from dataclasses import dataclass

import numpy as np

__all__ = [
    "APParams",
    "DEFAULT_AP_PARAMS",
    "DEF_DAMPING",
    "DEF_MAX_ITER",
    "DEF_ITER_BREAK",
    "DEF_ADD_NOISE",
    "MAX_DAMPING",
    "EPS",
    "TINY",
    "NO_CLUSTER",
]


# ---------------------------------------------------------------------------
# Estimator defaults
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class APParams:
    """Default affinity propagation hyperparameters.

    Attributes
    ----------
    damping : float
        Smoothing factor in ``[0.5, 1.0)``; also the lower bound for valid values.
    max_iter : int
        Hard cap on message-passing iterations.
    iter_break : int
        Length of the trailing window used by the convergence test.
    add_noise : bool
        Whether degeneracy noise is added to the similarity matrix.
    metric : str
        Name of the default pairwise metric.
    """

    damping: float = 0.5
    max_iter: int = 200
    iter_break: int = 15
    add_noise: bool = True
    metric: str = "euclidean"


DEFAULT_AP_PARAMS = APParams()

DEF_DAMPING: float = DEFAULT_AP_PARAMS.damping
DEF_MAX_ITER: int = DEFAULT_AP_PARAMS.max_iter
DEF_ITER_BREAK: int = DEFAULT_AP_PARAMS.iter_break
DEF_ADD_NOISE: bool = DEFAULT_AP_PARAMS.add_noise

# Exclusive upper bound for damping
MAX_DAMPING: float = 1.0

# ---------------------------------------------------------------------------
# Noise constants
# ---------------------------------------------------------------------------

# Machine epsilon for float64, multiplies the similarity matrix
EPS: float = float(np.finfo(np.float64).eps)

# Offset added after scaling; 100x the smallest normal float64
TINY: float = float(np.finfo(np.float64).tiny) * 100

# Label assigned to every point when no exemplar emerges
NO_CLUSTER: int = -1
