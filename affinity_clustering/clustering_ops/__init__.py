"""
Operations on affinity propagation results.

- save_result: write a fit result and its configuration to JSON
- load_result: read them back
"""

from .result_io import load_result, save_result

__all__ = ["save_result", "load_result"]
