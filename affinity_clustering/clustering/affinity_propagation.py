"""
Affinity propagation clustering.

This module provides the estimator that chains the clustering components:

    similarity builder -> degeneracy noise -> message passing -> exemplars

Main Components
---------------
AffinityPropagation : class
    Estimator with an explicit ``UNFIT -> FITTING -> FITTED`` lifecycle. A model
    is fit at most once: later calls return the cached result, and concurrent
    calls block until the first fit finishes.
AffinityPropagationResult : class
    Immutable fit outcome (labels, exemplar indices, cluster count,
    convergence flag, iterations elapsed).

Examples
--------
>>> import numpy as np
>>> from affinity_clustering import AffinityPropagation
>>> X = np.array([[0.0, 0.0], [0.1, 0.0], [5.0, 5.0], [5.1, 5.0]])
>>> model = AffinityPropagation(random_seed=0).fit(X)
>>> model.labels_
array([0, 0, 1, 1])

Notes
-----
- The similarity, responsibility and availability matrices exist only while
  ``fit`` runs; peak memory is O(m^2) during fitting only.
- Non-convergence is not an error: the labels found at loop exit are returned
  with ``converged_ == False``.
"""

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from affinity_clustering.DEFAULT_CONSTS import NO_CLUSTER
from affinity_clustering.metrics import METRIC_REGISTRY, PairwiseMetric, get_metric
from affinity_clustering.preprocessing import FeatureScaler

from .ap_config import AffinityPropagationConfig
from .exemplars import extract_exemplars
from .message_passing import run_message_passing
from .noise import inject_degeneracy_noise
from .similarity import build_similarity_matrix

LOGGER = logging.getLogger(__name__)


class FitState(Enum):
    """Lifecycle of an :class:`AffinityPropagation` model."""

    UNFIT = "unfit"
    FITTING = "fitting"
    FITTED = "fitted"


def _frozen_array(values: Any) -> np.ndarray:
    array = np.array(values, dtype=np.int64, copy=True).reshape(-1)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class AffinityPropagationResult:
    """
    Outcome of one affinity propagation fit.

    Attributes
    ----------
    labels : np.ndarray
        Cluster label per point in ``0..n_clusters-1``, or ``-1`` everywhere
        when no cluster emerged
    cluster_centers_indices : np.ndarray
        Exemplar row index per label, ordered by first appearance of the label
    n_clusters : int
        Number of clusters
    converged : bool
        Whether the convergence window was stable before ``max_iter``
    n_iter : int
        Iterations elapsed
    preference : float
        Diagonal value used for the similarity matrix
    """

    labels: np.ndarray
    cluster_centers_indices: np.ndarray
    n_clusters: int
    converged: bool
    n_iter: int
    preference: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "labels", _frozen_array(self.labels))
        object.__setattr__(
            self, "cluster_centers_indices", _frozen_array(self.cluster_centers_indices)
        )
        object.__setattr__(self, "n_clusters", int(self.n_clusters))
        object.__setattr__(self, "converged", bool(self.converged))
        object.__setattr__(self, "n_iter", int(self.n_iter))
        object.__setattr__(self, "preference", float(self.preference))

        if len(self.cluster_centers_indices) != self.n_clusters:
            raise ValueError(
                f"Expected {self.n_clusters} exemplar indices, "
                f"got {len(self.cluster_centers_indices)}"
            )

    @property
    def n_samples(self) -> int:
        return len(self.labels)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to a JSON-serializable dictionary."""
        return {
            "labels": self.labels.tolist(),
            "cluster_centers_indices": self.cluster_centers_indices.tolist(),
            "n_clusters": self.n_clusters,
            "converged": self.converged,
            "n_iter": self.n_iter,
            "preference": self.preference,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AffinityPropagationResult":
        """Rebuild a result from :meth:`to_dict` output."""
        return cls(
            labels=data["labels"],
            cluster_centers_indices=data["cluster_centers_indices"],
            n_clusters=data["n_clusters"],
            converged=data["converged"],
            n_iter=data["n_iter"],
            preference=data.get("preference", 0.0),
        )


class AffinityPropagation:
    """
    Exemplar-based clustering by damped message passing.

    Parameters
    ----------
    config : AffinityPropagationConfig, optional
        Full configuration. Defaults are used when omitted.
    pairwise_metric : PairwiseMetric, optional
        Custom comparison capability used instead of ``config.metric``
    rng : np.random.Generator, optional
        Source of degeneracy noise; takes precedence over ``config.random_seed``
    **overrides
        Configuration fields replacing those of ``config``

    Raises
    ------
    ValueError
        If the configuration is invalid (for example ``damping`` outside
        ``[0.5, 1.0)``)

    Examples
    --------
    >>> model = AffinityPropagation(damping=0.9, metric="haversine")
    >>> labels = model.fit_predict(coordinates)
    """

    def __init__(
        self,
        config: Optional[AffinityPropagationConfig] = None,
        pairwise_metric: Optional[PairwiseMetric] = None,
        rng: Optional[np.random.Generator] = None,
        **overrides,
    ):
        if config is None:
            config = AffinityPropagationConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)

        if pairwise_metric is not None and config.precomputed:
            raise ValueError("pairwise_metric cannot be combined with metric='precomputed'")

        # A registered metric instance is recorded in the config by name and
        # parameters; any other custom metric cannot be rebuilt from a saved file.
        self._metric_in_config = True
        if pairwise_metric is not None:
            registered = METRIC_REGISTRY.get(pairwise_metric.name)
            if registered is not None and type(pairwise_metric) is registered:
                config = dataclasses.replace(
                    config,
                    metric=pairwise_metric.name,
                    metric_params=pairwise_metric.get_params(),
                )
            else:
                self._metric_in_config = False

        self.config = config
        self.metric = (
            None
            if config.precomputed
            else pairwise_metric
            if pairwise_metric is not None
            else get_metric(config.metric, **config.metric_params)
        )
        self._rng = rng

        self._lock = threading.Lock()
        self._state = FitState.UNFIT
        self._result: Optional[AffinityPropagationResult] = None
        self._scaler: Optional[FeatureScaler] = None
        self._centers: Optional[np.ndarray] = None
        self._n_features: Optional[int] = None

        self._log(
            f"Configured affinity propagation: damping={config.damping}, "
            f"max_iter={config.max_iter}, iter_break={config.iter_break}, "
            f"add_noise={config.add_noise}, metric={self.metric or config.metric}"
        )
        if not config.add_noise:
            LOGGER.warning(
                "Degeneracy noise disabled; duplicated points can prevent convergence"
            )

    def _log(self, message: str):
        if self.config.verbose:
            LOGGER.info(message)
        else:
            LOGGER.debug(message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> FitState:
        return self._state

    @property
    def is_fitted(self) -> bool:
        return self._state is FitState.FITTED

    @property
    def reproducible(self) -> bool:
        """
        Whether ``config`` alone is enough to repeat this fit exactly.

        False when a custom metric outside the registry is used, or when noise
        is drawn from a supplied generator or from an unseeded one.
        """
        if not self._metric_in_config:
            return False
        if not self.config.add_noise:
            return True
        return self._rng is None and self.config.random_seed is not None

    def _check_fitted(self):
        """Check if the model has been fitted."""
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")

    def _validate_input(self, X: Any) -> np.ndarray:
        try:
            X = np.asarray(X, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Input must be a numeric matrix: {exc}") from exc

        if X.ndim != 2:
            raise ValueError(f"Input must be 2D (n_samples, n_features), got shape {X.shape}")
        if X.shape[0] < 1 or X.shape[1] < 1:
            raise ValueError(
                f"Input must have at least 1 sample and 1 feature, got shape {X.shape}"
            )
        if not np.all(np.isfinite(X)):
            raise ValueError("Input contains NaN or infinite values")
        if self.config.precomputed and X.shape[0] != X.shape[1]:
            raise ValueError(
                f"Precomputed similarity must be a square matrix, got shape {X.shape}"
            )
        return X

    def fit(self, X: Any) -> "AffinityPropagation":
        """
        Cluster ``X``.

        A fitted model returns immediately without recomputation. A call made
        while another thread is fitting blocks until that fit completes and
        then returns its result.

        Parameters
        ----------
        X : array-like
            Data matrix (m, n), or an (m, m) similarity matrix when
            ``metric='precomputed'``

        Returns
        -------
        AffinityPropagation
            Self for chaining
        """
        with self._lock:
            if self._state is FitState.FITTED:
                LOGGER.debug("Model already fitted; returning cached result")
                return self

            X = self._validate_input(X)
            self._state = FitState.FITTING
            try:
                result = self._fit(X)
            except Exception:
                self._state = FitState.UNFIT
                self._scaler = None
                self._centers = None
                raise

            self._result = result
            self._state = FitState.FITTED

        return self

    def fit_predict(self, X: Any) -> np.ndarray:
        """Fit the model and return the labels."""
        return self.fit(X).labels_

    def _fit(self, X: np.ndarray) -> AffinityPropagationResult:
        config = self.config
        start = time.perf_counter()
        m = X.shape[0]

        if config.scale and not config.precomputed:
            self._scaler = FeatureScaler()
            X = self._scaler.fit_transform(X)
            self._log(f"Scaled {X.shape[1]} features")

        if m == 1:
            result = self._single_point_result()
        else:
            result = self._propagate(X)

        if not config.precomputed:
            self._centers = X[result.cluster_centers_indices].copy()
            self._n_features = X.shape[1]

        self._log(
            f"{result.n_clusters} cluster{'s' if result.n_clusters != 1 else ''} identified "
            f"in {time.perf_counter() - start:.3f}s"
        )
        return result

    def _single_point_result(self) -> AffinityPropagationResult:
        # A lone point has no competing candidate; it is its own exemplar.
        LOGGER.warning("Single sample; it forms its own cluster")
        preference = self.config.preference if self.config.preference is not None else 0.0
        return AffinityPropagationResult(
            labels=[0],
            cluster_centers_indices=[0],
            n_clusters=1,
            converged=True,
            n_iter=1,
            preference=preference,
        )

    def _propagate(self, X: np.ndarray) -> AffinityPropagationResult:
        config = self.config

        sim_start = time.perf_counter()
        if config.precomputed:
            self._log("Using precomputed similarity matrix")
        elif self.metric.is_similarity:
            self._log("Computing similarity matrix")
        else:
            self._log("Computing negative distance (pseudo similarity) matrix")

        S, preference = build_similarity_matrix(
            X,
            metric=self.metric,
            preference=config.preference,
            precomputed=config.precomputed,
            show_progress=config.verbose,
        )
        self._log(
            f"Similarity computed in {time.perf_counter() - sim_start:.3f}s; "
            f"preference={preference}"
        )

        if config.add_noise:
            rng = self._rng if self._rng is not None else np.random.default_rng(config.random_seed)
            self._log("Removing degeneracies with scaled Gaussian noise")
            S = inject_degeneracy_noise(S, rng)

        outcome = run_message_passing(
            S,
            damping=config.damping,
            max_iter=config.max_iter,
            iter_break=config.iter_break,
            log=self._log,
        )

        self._log("Labeling clusters from availability and responsibility matrices")
        assignment = extract_exemplars(S, outcome.state)

        return AffinityPropagationResult(
            labels=assignment.labels,
            cluster_centers_indices=assignment.cluster_centers_indices,
            n_clusters=assignment.n_clusters,
            converged=outcome.converged,
            n_iter=outcome.n_iter,
            preference=preference,
        )

    # ------------------------------------------------------------------
    # Fitted attributes
    # ------------------------------------------------------------------

    @property
    def result_(self) -> AffinityPropagationResult:
        self._check_fitted()
        return self._result

    @property
    def labels_(self) -> np.ndarray:
        return self.result_.labels.copy()

    @property
    def cluster_centers_indices_(self) -> np.ndarray:
        return self.result_.cluster_centers_indices.copy()

    @property
    def n_clusters_(self) -> int:
        return self.result_.n_clusters

    @property
    def converged_(self) -> bool:
        return self.result_.converged

    @property
    def n_iter_(self) -> int:
        return self.result_.n_iter

    @property
    def preference_(self) -> float:
        return self.result_.preference

    @property
    def cluster_centers_(self) -> np.ndarray:
        """Exemplar rows of the (scaled) training data, shape (n_clusters, n_features)."""
        self._check_fitted()
        if self._centers is None:
            raise ValueError("Cluster centers are unavailable for precomputed similarities")
        return self._centers.copy()

    # ------------------------------------------------------------------
    # Prediction and persistence
    # ------------------------------------------------------------------

    def predict(self, X: Any) -> np.ndarray:
        """
        Assign new points to the most similar exemplar.

        Parameters
        ----------
        X : array-like
            New data, shape (p, n_features)

        Returns
        -------
        np.ndarray
            Label per row; ``-1`` for every row when no cluster was found
        """
        self._check_fitted()
        if self.config.precomputed:
            raise ValueError("predict() is not supported with metric='precomputed'")

        X = self._validate_input(X)
        if X.shape[1] != self._n_features:
            raise ValueError(
                f"Expected {self._n_features} features, got {X.shape[1]}"
            )

        if self._result.n_clusters == 0:
            return np.full(X.shape[0], NO_CLUSTER, dtype=np.int64)

        if self._scaler is not None:
            X = self._scaler.transform(X)

        values = np.asarray(self.metric.between(X, self._centers), dtype=np.float64)
        similarity = values if self.metric.is_similarity else -values
        return np.argmax(similarity, axis=1).astype(np.int64)

    def save_results(self, output_path: Union[str, Path]) -> None:
        """
        Save the fit result and configuration to JSON.

        Parameters
        ----------
        output_path : str or Path
            Destination file
        """
        from affinity_clustering.clustering_ops import save_result

        save_result(output_path, self.result_, self.config, reproducible=self.reproducible)

    def __repr__(self) -> str:
        return (
            f"AffinityPropagation(damping={self.config.damping}, "
            f"metric={self.config.metric!r}, state={self._state.value})"
        )
