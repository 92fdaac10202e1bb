"""
Exemplar extraction from the final message-passing state.

Points whose combined self-availability and self-responsibility is positive
become exemplar candidates. Every point joins its most similar candidate, each
cluster's exemplar is then refined to its most central member, and the labels
are compressed to a gapless ``0..K-1`` range ordered by first appearance.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from affinity_clustering.DEFAULT_CONSTS import NO_CLUSTER

from .message_passing import MessageState, self_exemplar_mask

LOGGER = logging.getLogger(__name__)


@dataclass
class ExemplarAssignment:
    """Labels and exemplars produced by :func:`extract_exemplars`.

    Attributes
    ----------
    labels : np.ndarray
        Gapless labels in ``0..n_clusters-1``, or all ``-1`` without clusters
    cluster_centers_indices : np.ndarray
        Row index of the exemplar of label ``j`` at position ``j``
    n_clusters : int
        Number of clusters
    """

    labels: np.ndarray
    cluster_centers_indices: np.ndarray
    n_clusters: int


def assign_to_exemplars(S: np.ndarray, exemplars: np.ndarray) -> np.ndarray:
    """
    Label every point with the rank of its most similar exemplar.

    Ties resolve to the lowest rank. Each exemplar is forced to its own rank.
    """
    ranks = np.argmax(S[:, exemplars], axis=1)
    ranks[exemplars] = np.arange(len(exemplars))
    return ranks


def refine_exemplars(S: np.ndarray, exemplars: np.ndarray, ranks: np.ndarray) -> np.ndarray:
    """
    Replace every exemplar by the most central member of its cluster.

    The central member maximises the column sum of ``S`` restricted to the
    cluster's rows and columns.

    Parameters
    ----------
    S : np.ndarray
        Similarity matrix, shape (m, m)
    exemplars : np.ndarray
        Current exemplar indices, one per rank
    ranks : np.ndarray
        Provisional rank of every point

    Returns
    -------
    np.ndarray
        Refined exemplar indices
    """
    refined = exemplars.copy()
    for k in range(len(exemplars)):
        members = np.flatnonzero(ranks == k)
        block = S[np.ix_(members, members)]
        refined[k] = members[np.argmax(block.sum(axis=0))]
    return refined


def compress_labels(raw_labels: np.ndarray) -> Tuple[np.ndarray, List[int]]:
    """
    Map arbitrary label values to ``0..K-1`` in order of first appearance.

    Parameters
    ----------
    raw_labels : np.ndarray
        Label value per point

    Returns
    -------
    Tuple[np.ndarray, List[int]]
        (compressed labels, distinct raw values ordered by first appearance)

    Examples
    --------
    >>> compress_labels(np.array([7, 2, 7, 5]))
    (array([0, 1, 0, 2]), [7, 2, 5])
    """
    order = {}
    for value in raw_labels.tolist():
        if value not in order:
            order[value] = len(order)

    compressed = np.empty(len(raw_labels), dtype=np.int64)
    for i, value in enumerate(raw_labels.tolist()):
        try:
            compressed[i] = order[value]
        except KeyError:
            raise RuntimeError(f"Label {value} missing from compressed label map")

    return compressed, list(order)


def extract_exemplars(S: np.ndarray, state: MessageState) -> ExemplarAssignment:
    """
    Turn the final message-passing state into labels and exemplars.

    Parameters
    ----------
    S : np.ndarray
        Similarity matrix used during message passing, shape (m, m)
    state : MessageState
        Final responsibilities and availabilities

    Returns
    -------
    ExemplarAssignment
        Gapless labels and exemplar indices
    """
    m = S.shape[0]
    exemplars = np.flatnonzero(self_exemplar_mask(state))
    n_clusters = len(exemplars)

    if n_clusters == 0:
        LOGGER.warning("No exemplars emerged; every point is labeled -1")
        return ExemplarAssignment(
            labels=np.full(m, NO_CLUSTER, dtype=np.int64),
            cluster_centers_indices=np.array([], dtype=np.int64),
            n_clusters=0,
        )

    ranks = assign_to_exemplars(S, exemplars)
    exemplars = refine_exemplars(S, exemplars, ranks)
    ranks = assign_to_exemplars(S, exemplars)

    labels, centers = compress_labels(exemplars[ranks])

    return ExemplarAssignment(
        labels=labels,
        cluster_centers_indices=np.asarray(centers, dtype=np.int64),
        n_clusters=len(centers),
    )
