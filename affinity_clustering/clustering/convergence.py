"""Sliding-window convergence test for message passing."""

import logging

import numpy as np

LOGGER = logging.getLogger(__name__)


class ConvergenceMonitor:
    """
    Track each point's self-exemplar indicator over a trailing window.

    Column ``it % iter_break`` of the history holds the indicator recorded at
    iteration ``it``. A point is stable when it was a self-exemplar in every
    iteration of the window or in none of them.

    Parameters
    ----------
    n_points : int
        Number of points being clustered
    iter_break : int
        Window length
    """

    def __init__(self, n_points: int, iter_break: int):
        if iter_break <= 0:
            raise ValueError(f"iter_break must be positive, got {iter_break}")

        self.n_points = n_points
        self.iter_break = iter_break
        self.history = np.zeros((n_points, iter_break), dtype=np.int64)
        self.n_clusters = 0
        self.converged = False

    def record(self, iteration: int, self_exemplar: np.ndarray) -> int:
        """
        Store the indicator of ``iteration`` and return its exemplar count.

        Parameters
        ----------
        iteration : int
            Zero-based iteration index
        self_exemplar : np.ndarray
            Boolean vector, True where ``A[i, i] + R[i, i] > 0``

        Returns
        -------
        int
            Number of points currently supporting themselves as exemplars
        """
        mask = np.asarray(self_exemplar, dtype=np.int64)
        if mask.shape != (self.n_points,):
            raise RuntimeError(
                f"Indicator shape {mask.shape} does not match {self.n_points} points"
            )

        self.history[:, iteration % self.iter_break] = mask
        self.n_clusters = int(mask.sum())
        return self.n_clusters

    def window_full(self, iteration: int) -> bool:
        return iteration >= self.iter_break

    def check(self, iteration: int) -> bool:
        """
        Evaluate the stability criterion after ``iteration``.

        The check only runs once ``iteration >= iter_break``; before that the
        previous verdict is kept.

        Returns
        -------
        bool
            True when every point is stable over the window
        """
        if not self.window_full(iteration):
            return self.converged

        window_sums = self.history.sum(axis=1)
        stable = (window_sums == 0) | (window_sums == self.iter_break)
        self.converged = bool(stable.all())
        return self.converged

    def should_stop(self, iteration: int) -> bool:
        """True when the window is stable and at least one exemplar exists."""
        return self.check(iteration) and self.n_clusters > 0
