"""
JSON persistence for affinity propagation results.

A saved file holds the five fit outputs (labels, exemplar indices, cluster
count, convergence flag, iterations elapsed), the preference used, the
configuration needed to reproduce the fit, and a ``reproducible`` flag that is
False when the configuration does not capture the metric or the noise source.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from affinity_clustering import __version__
from affinity_clustering.clustering.affinity_propagation import \
    AffinityPropagationResult
from affinity_clustering.clustering.ap_config import AffinityPropagationConfig

LOGGER = logging.getLogger(__name__)

ALGORITHM_NAME = "AffinityPropagation"


def save_result(
    output_path: Union[str, Path],
    result: AffinityPropagationResult,
    config: AffinityPropagationConfig,
    reproducible: bool = True,
) -> None:
    """
    Save a fit result and its configuration to JSON.

    Parameters
    ----------
    output_path : str or Path
        Destination file; parent directories are created
    result : AffinityPropagationResult
        Fit outcome
    config : AffinityPropagationConfig
        Configuration the result was produced with
    reproducible : bool
        Whether ``config`` is enough to repeat the fit exactly. Stored in the
        metadata; a warning is logged when it is False.
    """
    output_data = {
        "metadata": {
            "algorithm": ALGORITHM_NAME,
            "version": __version__,
            "n_samples": result.n_samples,
            "config": config.to_dict(),
            "reproducible": bool(reproducible),
        },
        "result": result.to_dict(),
    }

    if not reproducible:
        LOGGER.warning(
            "Saved configuration cannot reproduce this fit: the metric or the noise "
            "generator is not captured by the config"
        )

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2)

    LOGGER.info(f"Saved clustering results to {output_path}")


def load_result(
    input_path: Union[str, Path],
) -> Tuple[AffinityPropagationResult, AffinityPropagationConfig]:
    """
    Load a result saved with :func:`save_result`.

    Parameters
    ----------
    input_path : str or Path
        Path to results file

    Returns
    -------
    Tuple[AffinityPropagationResult, AffinityPropagationConfig]
        (result, configuration)
    """
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Results file not found: {input_path}")

    with open(input_path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)

    if "result" not in data:
        raise ValueError(f"Results file {input_path} is missing the 'result' field")

    metadata = data.get("metadata", {})
    algorithm = metadata.get("algorithm", ALGORITHM_NAME)
    if algorithm != ALGORITHM_NAME:
        raise ValueError(f"Expected {ALGORITHM_NAME} results, got {algorithm}")
    if not metadata.get("reproducible", True):
        LOGGER.warning(f"Results in {input_path} were marked as not reproducible from config")

    result = AffinityPropagationResult.from_dict(data["result"])
    config = AffinityPropagationConfig.from_dict(metadata.get("config", {}))

    LOGGER.info(
        f"Loaded {result.n_clusters} clusters over {result.n_samples} samples "
        f"from {input_path}"
    )
    return result, config
