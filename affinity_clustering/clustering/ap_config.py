"""
Configuration dataclass for affinity propagation.

This module provides the estimator configuration with validation and JSON
serialization support, so a persisted result can be re-fit deterministically.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from affinity_clustering.DEFAULT_CONSTS import DEFAULT_AP_PARAMS, MAX_DAMPING
from affinity_clustering.metrics import METRIC_REGISTRY, get_metric

PRECOMPUTED = "precomputed"


@dataclass
class AffinityPropagationConfig:
    """Configuration for :class:`AffinityPropagation`.

    Parameters
    ----------
    damping : float
        Weight of the previous iteration when blending responsibility and
        availability updates. Must lie in ``[0.5, 1.0)``.
    max_iter : int
        Maximum number of message-passing iterations.
    iter_break : int
        Size of the trailing window over which every point's self-exemplar
        indicator must be constant to declare convergence.
    add_noise : bool
        Whether to add degeneracy-breaking noise to the similarity matrix.
    random_seed : int, optional
        Seed for the noise generator. ``None`` draws fresh entropy.
    scale : bool
        Standardise features before computing similarities.
    verbose : bool
        Log progress at INFO instead of DEBUG.
    metric : str
        Registered metric name, or ``'precomputed'`` when ``fit`` receives a
        similarity matrix.
    metric_params : dict
        Constructor arguments of the named metric, e.g. ``{"sigma": 2.0}``
        for ``"gaussian"`` or ``{"radius": 3958.8}`` for ``"haversine"``.
    preference : float, optional
        Shared diagonal value. ``None`` uses the median of the off-diagonal
        similarities.

    Examples
    --------
    >>> config = AffinityPropagationConfig(damping=0.9, metric="cosine")
    >>> config.save("output/ap_config.json")
    >>> loaded = AffinityPropagationConfig.load("output/ap_config.json")
    """

    damping: float = DEFAULT_AP_PARAMS.damping
    max_iter: int = DEFAULT_AP_PARAMS.max_iter
    iter_break: int = DEFAULT_AP_PARAMS.iter_break
    add_noise: bool = DEFAULT_AP_PARAMS.add_noise
    random_seed: Optional[int] = None
    scale: bool = False
    verbose: bool = False
    metric: str = DEFAULT_AP_PARAMS.metric
    preference: Optional[float] = None
    metric_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration values."""
        if not DEFAULT_AP_PARAMS.damping <= self.damping < MAX_DAMPING:
            raise ValueError(
                f"damping must be between {DEFAULT_AP_PARAMS.damping} and "
                f"{MAX_DAMPING} (exclusive), got {self.damping}"
            )

        if isinstance(self.max_iter, bool) or int(self.max_iter) != self.max_iter:
            raise ValueError(f"max_iter must be an integer, got {self.max_iter}")
        if self.max_iter <= 0:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")

        if isinstance(self.iter_break, bool) or int(self.iter_break) != self.iter_break:
            raise ValueError(f"iter_break must be an integer, got {self.iter_break}")
        if self.iter_break <= 0:
            raise ValueError(f"iter_break must be positive, got {self.iter_break}")

        if self.random_seed is not None and int(self.random_seed) != self.random_seed:
            raise ValueError(
                f"random_seed must be an integer or None, got {self.random_seed}"
            )

        valid_metrics = set(METRIC_REGISTRY) | {PRECOMPUTED}
        if self.metric not in valid_metrics:
            raise ValueError(
                f"metric must be one of {sorted(valid_metrics)}, got {self.metric}"
            )

        if not isinstance(self.metric_params, dict):
            raise ValueError(
                f"metric_params must be a mapping, got {type(self.metric_params).__name__}"
            )
        if self.metric_params:
            if self.precomputed:
                raise ValueError("metric_params cannot be used with metric='precomputed'")
            get_metric(self.metric, **self.metric_params)

        self.max_iter = int(self.max_iter)
        self.iter_break = int(self.iter_break)
        if self.preference is not None:
            self.preference = float(self.preference)

    @property
    def precomputed(self) -> bool:
        return self.metric == PRECOMPUTED

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file.

        Parameters
        ----------
        path : str or Path
            Output path for the configuration
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "AffinityPropagationConfig":
        """Load configuration from JSON file.

        Parameters
        ----------
        path : str or Path
            Path to a configuration saved with :meth:`save`

        Returns
        -------
        AffinityPropagationConfig
            Loaded configuration object
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AffinityPropagationConfig":
        """Build a configuration from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)
