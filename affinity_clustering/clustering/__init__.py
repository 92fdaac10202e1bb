"""
Affinity propagation clustering components.

This module provides the building blocks of exemplar-based clustering:

- build_similarity_matrix: pairwise similarities with a shared preference
  on the diagonal
- inject_degeneracy_noise: tie-breaking perturbation of the similarities
- run_message_passing: damped responsibility/availability updates
- ConvergenceMonitor: trailing-window stability test
- extract_exemplars: exemplar refinement and gapless label compression
- AffinityPropagation: estimator chaining the components, fit at most once
"""

from .affinity_propagation import (AffinityPropagation,
                                   AffinityPropagationResult, FitState)
from .ap_config import PRECOMPUTED, AffinityPropagationConfig
from .convergence import ConvergenceMonitor
from .exemplars import (ExemplarAssignment, assign_to_exemplars,
                        compress_labels, extract_exemplars, refine_exemplars)
from .message_passing import (MessagePassingOutcome, MessageState,
                              run_message_passing, self_exemplar_mask,
                              update_availability, update_responsibility)
from .noise import inject_degeneracy_noise
from .similarity import (build_similarity_matrix, compute_similarity,
                         median_preference)

__all__ = [
    "AffinityPropagation",
    "AffinityPropagationConfig",
    "AffinityPropagationResult",
    "FitState",
    "PRECOMPUTED",
    "ConvergenceMonitor",
    "ExemplarAssignment",
    "assign_to_exemplars",
    "compress_labels",
    "extract_exemplars",
    "refine_exemplars",
    "MessagePassingOutcome",
    "MessageState",
    "run_message_passing",
    "self_exemplar_mask",
    "update_availability",
    "update_responsibility",
    "inject_degeneracy_noise",
    "build_similarity_matrix",
    "compute_similarity",
    "median_preference",
]
