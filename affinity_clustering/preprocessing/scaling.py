"""
Feature standardisation applied before similarity computation.

Wraps scikit-learn's ``StandardScaler`` so the estimator can reuse the fitted
column statistics when predicting on new rows.
"""

import logging
from typing import Optional

import numpy as np
from sklearn.preprocessing import StandardScaler

LOGGER = logging.getLogger(__name__)


class FeatureScaler:
    """
    Column-wise centering and unit-variance scaling.

    Constant columns are left centred but unscaled (``StandardScaler``
    behaviour), so duplicated rows stay duplicated after scaling.
    """

    def __init__(self):
        self._scaler: Optional[StandardScaler] = None

    @property
    def is_fitted(self) -> bool:
        return self._scaler is not None

    def fit_transform(self, X: np.ndarray) -> np.ndarray:
        """
        Learn column statistics from ``X`` and return the scaled copy.

        Parameters
        ----------
        X : np.ndarray
            Data matrix, shape (m, n)

        Returns
        -------
        np.ndarray
            Scaled data, shape (m, n)
        """
        self._scaler = StandardScaler()
        scaled = self._scaler.fit_transform(X)
        LOGGER.debug(f"Standardised {X.shape[1]} features over {X.shape[0]} rows")
        return scaled

    def transform(self, X: np.ndarray) -> np.ndarray:
        """Scale ``X`` with previously learned statistics."""
        if not self.is_fitted:
            raise ValueError("Scaler not fitted. Call fit_transform() first.")
        return self._scaler.transform(X)


def scale_features(X: np.ndarray) -> np.ndarray:
    """Standardise ``X`` in one call, discarding the fitted statistics."""
    return FeatureScaler().fit_transform(X)
