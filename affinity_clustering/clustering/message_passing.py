"""
Damped responsibility/availability message passing.

Each iteration computes candidate responsibility and availability matrices
from the current state and blends them with the previous values::

    R <- damping * R + (1 - damping) * R_candidate
    A <- damping * A + (1 - damping) * A_candidate

The update functions never modify their inputs; each returns a new matrix so
the current and candidate states cannot alias.

Tie-breaking contract
---------------------
Row maxima and argmaxes always resolve to the lowest column index
(``np.argmax`` semantics). Both the trajectory of the iteration and the final
label numbering depend on it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .convergence import ConvergenceMonitor

LOGGER = logging.getLogger(__name__)


@dataclass
class MessageState:
    """Responsibility and availability matrices of one fit."""

    responsibility: np.ndarray
    availability: np.ndarray

    @classmethod
    def zeros(cls, n_points: int) -> "MessageState":
        return cls(
            responsibility=np.zeros((n_points, n_points), dtype=np.float64),
            availability=np.zeros((n_points, n_points), dtype=np.float64),
        )


@dataclass
class MessagePassingOutcome:
    """Final state of the message-passing loop.

    Attributes
    ----------
    state : MessageState
        Responsibility and availability after the last iteration
    n_iter : int
        Iterations executed, between 1 and ``max_iter``
    converged : bool
        True when the loop stopped on a stable window with at least one exemplar
    n_clusters : int
        Self-exemplar count of the last iteration
    window : np.ndarray
        Self-exemplar indicators of the trailing ``iter_break`` iterations,
        shape (m, iter_break)
    """

    state: MessageState
    n_iter: int
    converged: bool
    n_clusters: int
    window: np.ndarray


def update_responsibility(
    S: np.ndarray,
    R: np.ndarray,
    A: np.ndarray,
    damping: float,
) -> np.ndarray:
    """
    Compute the damped responsibility matrix.

    For every row ``i`` the best candidate ``k* = argmax_k (A + S)[i, k]`` is
    found; every other candidate receives ``S[i, k] - best`` and ``k*`` itself
    receives ``S[i, k*] - second_best``.

    Parameters
    ----------
    S : np.ndarray
        Similarity matrix, shape (m, m)
    R : np.ndarray
        Current responsibilities, shape (m, m)
    A : np.ndarray
        Current availabilities, shape (m, m)
    damping : float
        Weight of ``R`` in the blend

    Returns
    -------
    np.ndarray
        New responsibility matrix
    """
    m = S.shape[0]
    rows = np.arange(m)

    scratch = A + S
    best_idx = np.argmax(scratch, axis=1)
    best = scratch[rows, best_idx]

    scratch[rows, best_idx] = -np.inf
    second_best = np.max(scratch, axis=1)

    candidate = S - best[:, np.newaxis]
    candidate[rows, best_idx] = S[rows, best_idx] - second_best

    return damping * R + (1 - damping) * candidate


def update_availability(R: np.ndarray, A: np.ndarray, damping: float) -> np.ndarray:
    """
    Compute the damped availability matrix.

    With ``P = max(R, 0)`` off the diagonal and ``P[k, k] = R[k, k]``, the
    candidate is ``min(0, colsum(P)[k] - P[i, k])`` for ``i != k`` and the
    unclipped ``colsum(P)[k] - P[k, k]`` on the diagonal.

    Parameters
    ----------
    R : np.ndarray
        Responsibilities already updated in this iteration, shape (m, m)
    A : np.ndarray
        Current availabilities, shape (m, m)
    damping : float
        Weight of ``A`` in the blend

    Returns
    -------
    np.ndarray
        New availability matrix
    """
    positive = np.maximum(R, 0)
    np.fill_diagonal(positive, np.diag(R))

    col_sums = positive.sum(axis=0)
    candidate = col_sums[np.newaxis, :] - positive

    diagonal = np.diag(candidate).copy()
    candidate = np.minimum(candidate, 0)
    np.fill_diagonal(candidate, diagonal)

    return damping * A + (1 - damping) * candidate


def self_exemplar_mask(state: MessageState) -> np.ndarray:
    """Boolean vector, True where ``A[i, i] + R[i, i] > 0``."""
    return (np.diag(state.availability) + np.diag(state.responsibility)) > 0


def run_message_passing(
    S: np.ndarray,
    damping: float,
    max_iter: int,
    iter_break: int,
    log: Optional[Callable[[str], None]] = None,
) -> MessagePassingOutcome:
    """
    Run damped message passing until convergence or ``max_iter``.

    The loop stops after iteration ``it`` (zero-based) when ``it >= iter_break``,
    every point's self-exemplar indicator was constant over the last
    ``iter_break`` iterations, and at least one point is its own exemplar.

    Parameters
    ----------
    S : np.ndarray
        Similarity matrix with the preference on the diagonal, shape (m, m)
    damping : float
        Damping factor in ``[0.5, 1.0)``
    max_iter : int
        Maximum number of iterations
    iter_break : int
        Convergence window length
    log : Callable[[str], None], optional
        Sink for progress messages; defaults to ``LOGGER.debug``

    Returns
    -------
    MessagePassingOutcome
        Final matrices, iteration count and convergence flag
    """
    log = log or LOGGER.debug
    m = S.shape[0]
    state = MessageState.zeros(m)
    monitor = ConvergenceMonitor(m, iter_break)

    start = time.perf_counter()
    converged = False
    n_iter = max_iter

    for it in range(max_iter):
        R = update_responsibility(S, state.responsibility, state.availability, damping)
        A = update_availability(R, state.availability, damping)
        state = MessageState(responsibility=R, availability=A)

        n_clusters = monitor.record(it, self_exemplar_mask(state))

        if monitor.should_stop(it):
            converged = True
            n_iter = it + 1
            log(f"Converged after {n_iter} iteration{'s' if n_iter != 1 else ''}")
            break

        LOGGER.debug(f"Iteration {it + 1}: {n_clusters} candidate exemplars, not converged")

    if not converged:
        LOGGER.warning(f"Affinity propagation did not converge within {max_iter} iterations")

    log(f"Message passing finished in {time.perf_counter() - start:.3f}s")

    return MessagePassingOutcome(
        state=state,
        n_iter=n_iter,
        converged=converged,
        n_clusters=monitor.n_clusters,
        window=monitor.history.copy(),
    )
