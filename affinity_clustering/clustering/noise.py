"""
Degeneracy noise for the similarity matrix.

Many exactly-equal similarities (duplicated points) make the message-passing
fixed point oscillate. A negligible perturbation, scaled to the local
similarity values, breaks the ties.
"""

import logging

import numpy as np

from affinity_clustering.DEFAULT_CONSTS import EPS, TINY

LOGGER = logging.getLogger(__name__)


def inject_degeneracy_noise(S: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """
    Return ``S + (S * EPS + TINY) @ N`` with ``N`` standard Gaussian.

    The perturbation is a true matrix product, not elementwise noise: each cell
    mixes the scaled similarities of its row with a column of ``N``.

    Parameters
    ----------
    S : np.ndarray
        Square similarity matrix, shape (m, m)
    rng : np.random.Generator
        Source of the Gaussian samples

    Returns
    -------
    np.ndarray
        New noisy similarity matrix, shape (m, m)

    Raises
    ------
    RuntimeError
        If the noise product does not match the shape of ``S``
    """
    m = S.shape[0]
    tiny_scaled = S * EPS + TINY
    noise = rng.standard_normal((m, m))

    if tiny_scaled.shape[1] != noise.shape[0]:
        raise RuntimeError(
            f"Similarity matrix {tiny_scaled.shape} cannot be multiplied "
            f"by noise matrix {noise.shape}"
        )

    noise_matrix = tiny_scaled @ noise
    if noise_matrix.shape != S.shape:
        raise RuntimeError(
            f"Noise matrix shape {noise_matrix.shape} does not match "
            f"similarity matrix shape {S.shape}"
        )

    LOGGER.debug(f"Added degeneracy noise to {m}x{m} similarity matrix")
    return S + noise_matrix
