"""
Affinity Clustering - exemplar-based clustering by message passing.

This package implements affinity propagation: the number of clusters and a
representative point ("exemplar") for each cluster are discovered from a
pairwise similarity matrix. It provides:

- Metrics: pairwise similarity/distance capabilities and a name registry
- Preprocessing: optional feature standardisation
- Clustering: similarity builder, noise injector, message-passing engine,
  convergence monitor, exemplar extractor and the estimator facade
- Clustering ops: JSON persistence of fit results
"""

__version__ = "1.0.0"

from affinity_clustering.DEFAULT_CONSTS import (  # noqa: E402
    APParams,
    DEFAULT_AP_PARAMS,
    NO_CLUSTER,
)
from affinity_clustering.clustering import (  # noqa: E402
    AffinityPropagation,
    AffinityPropagationConfig,
    AffinityPropagationResult,
    FitState,
)

__all__ = [
    "APParams",
    "DEFAULT_AP_PARAMS",
    "NO_CLUSTER",
    "AffinityPropagation",
    "AffinityPropagationConfig",
    "AffinityPropagationResult",
    "FitState",
]
