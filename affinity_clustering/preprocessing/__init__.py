"""
Preprocessing utilities applied before clustering.

- FeatureScaler: column standardisation reusable at prediction time
- scale_features: one-shot standardisation
"""

from .scaling import FeatureScaler, scale_features

__all__ = ["FeatureScaler", "scale_features"]
