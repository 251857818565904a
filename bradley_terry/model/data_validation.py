"""
Coverage and identifiability checks for match datasets.

Bradley-Terry likelihoods only depend on ability differences, so abilities
are at best identified up to a common shift. Further problems arise when:
- a player never plays (their ability is determined by the prior alone)
- the comparison graph splits into disconnected groups
- team compositions never vary, leaving a flat ridge in the likelihood

These are modelling conditions rather than errors. They are reported with
IdentifiabilityWarning, unless the caller asks for coverage to be enforced.
"""

from __future__ import annotations

import logging
import warnings
from typing import Literal

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from bradley_terry.model.data import Dataset, DatasetError

logger = logging.getLogger(__name__)

CoveragePolicy = Literal["ignore", "warn", "raise"]


class IdentifiabilityWarning(UserWarning):
    """Data cannot pin down every ability (beyond the global shift)."""


def unplayed_players(dataset: Dataset) -> np.ndarray:
    """1-based indices of players with zero matches."""
    return np.flatnonzero(dataset.player_match_counts() == 0) + 1


def check_player_coverage(
    dataset: Dataset,
    policy: CoveragePolicy = "warn",
) -> np.ndarray:
    """
    Check every player appears in at least one match.

    Args:
        dataset: Match dataset
        policy: 'ignore', 'warn' (IdentifiabilityWarning) or 'raise' (DatasetError)

    Returns:
        1-based indices of players without matches
    """
    if policy not in ("ignore", "warn", "raise"):
        raise ValueError(f"Unknown coverage policy: {policy}")

    missing = unplayed_players(dataset)
    if len(missing) == 0 or policy == "ignore":
        return missing

    message = (
        f"{len(missing)} of {dataset.n_players} players have no matches: "
        f"{missing.tolist()[:20]}"
    )
    if policy == "raise":
        raise DatasetError(message)

    logger.warning(message)
    warnings.warn(message, IdentifiabilityWarning, stacklevel=2)
    return missing


def design_matrix(dataset: Dataset) -> np.ndarray:
    """
    N x K matrix X with X[n] @ α equal to the log-odds of match n.

    Entries are +1 for side1 members and -1 for side0 members.
    """
    X = np.zeros((dataset.n_matches, dataset.n_players))
    side0, side1 = dataset.sides()
    rows = np.arange(dataset.n_matches)
    for j in range(side0.shape[1]):
        X[rows, side1[:, j] - 1] += 1.0
        X[rows, side0[:, j] - 1] -= 1.0
    return X


def comparison_components(dataset: Dataset) -> np.ndarray:
    """
    Connected-component label for each player in the comparison graph.

    Players are linked when they appear in the same match (either side).
    """
    n_players = dataset.n_players
    if n_players == 0:
        return np.zeros(0, dtype=np.int64)

    side0, side1 = dataset.sides()
    members = np.concatenate([side0, side1], axis=1) - 1
    # Link every member to the first member of the match
    anchor = np.repeat(members[:, :1], members.shape[1], axis=1).ravel()
    other = members.ravel()
    graph = coo_matrix(
        (np.ones(len(other)), (anchor, other)),
        shape=(n_players, n_players),
    )
    _, labels = connected_components(graph, directed=False)
    return labels


def identifiable_rank_deficit(dataset: Dataset) -> int:
    """
    How far the design falls short of identifying abilities up to a shift.

    Returns 0 when rank(X) == K - 1, the best achievable for a
    difference-only likelihood.
    """
    if dataset.n_players <= 1:
        return 0
    X = design_matrix(dataset)
    rank = np.linalg.matrix_rank(X) if dataset.n_matches else 0
    return (dataset.n_players - 1) - int(rank)


def check_identifiability(dataset: Dataset, warn: bool = True) -> dict:
    """
    Summarise identifiability of individual abilities.

    Returns:
        Dictionary with:
            - unplayed_players: players with no matches
            - n_components: connected groups in the comparison graph
            - rank_deficit: directions of the likelihood that are flat
              beyond the global shift
            - identifiable: True if rank_deficit == 0
    """
    missing = unplayed_players(dataset)
    labels = comparison_components(dataset)
    n_components = int(len(np.unique(labels))) if len(labels) else 0
    deficit = identifiable_rank_deficit(dataset)

    result = {
        "unplayed_players": missing,
        "n_components": n_components,
        "rank_deficit": deficit,
        "identifiable": deficit == 0,
    }

    if warn and deficit > 0:
        message = (
            f"Likelihood has {deficit} flat direction(s) beyond the global shift "
            f"({n_components} connected group(s), {len(missing)} unplayed player(s)); "
            "individual abilities are determined only by the prior along them"
        )
        logger.warning(message)
        warnings.warn(message, IdentifiabilityWarning, stacklevel=2)

    return result
