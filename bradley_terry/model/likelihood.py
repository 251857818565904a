"""
Bradley-Terry match likelihood.

    P(side1 beats side0) = logit⁻¹(Σ α[side1] − Σ α[side0])

For individual matches each side is a single player. Log-likelihoods are
computed directly from the log-odds with a sign-branched log-sigmoid, so
large ability gaps never produce log(0) or overflow.

All functions are pure and take 1-based player indices at the interface.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from bradley_terry.model.data import Dataset


def inv_logit(v):
    """Logistic function 1 / (1 + exp(-v)), overflow-safe."""
    v = np.asarray(v, dtype=float)
    z = np.exp(-np.abs(v))
    out = np.where(v >= 0, 1.0 / (1.0 + z), z / (1.0 + z))
    return out if out.ndim else float(out)


def log_inv_logit(v):
    """
    log(logit⁻¹(v)) without forming the probability.

    v >= 0: -log1p(exp(-v))
    v <  0:  v - log1p(exp(v))
    """
    v = np.asarray(v, dtype=float)
    log1p_term = np.log1p(np.exp(-np.abs(v)))
    out = np.where(v >= 0, -log1p_term, v - log1p_term)
    return out if out.ndim else float(out)


def bernoulli_logit_logpmf(y, v):
    """log Bernoulli(y | logit⁻¹(v)) = y·logσ(v) + (1−y)·logσ(−v)."""
    y = np.asarray(y)
    v = np.asarray(v, dtype=float)
    return log_inv_logit(np.where(y == 1, v, -v))


def _check_alpha(alpha, n_players: int) -> np.ndarray:
    alpha = np.asarray(alpha, dtype=float)
    if alpha.ndim != 1 or len(alpha) != n_players:
        raise ValueError(
            f"Expected {n_players} abilities, got array of shape {alpha.shape}"
        )
    return alpha


def _lookup(alpha: np.ndarray, players: Sequence[int]) -> np.ndarray:
    players = np.atleast_1d(np.asarray(players))
    if players.dtype == bool or not np.issubdtype(players.dtype, np.number) \
            or not np.all(np.mod(players, 1) == 0):
        raise IndexError(f"Player indices must be whole numbers: {players.tolist()}")
    players = players.astype(np.int64)
    if players.size and (players.min() < 1 or players.max() > len(alpha)):
        raise IndexError(f"Player index out of range 1..{len(alpha)}: {players.tolist()}")
    return alpha[players - 1]


def win_probability(alpha, winner: int, loser: int) -> float:
    """P(winner beats loser) for two players given by 1-based index."""
    alpha = np.asarray(alpha, dtype=float)
    a_win = _lookup(alpha, [winner])[0]
    a_lose = _lookup(alpha, [loser])[0]
    return inv_logit(a_win - a_lose)


def team_win_probability(alpha, team1: Sequence[int], team0: Sequence[int]) -> float:
    """P(team1 beats team0) where team ability is the sum of member abilities."""
    alpha = np.asarray(alpha, dtype=float)
    return inv_logit(_lookup(alpha, team1).sum() - _lookup(alpha, team0).sum())


def match_log_odds(alpha, dataset: Dataset) -> np.ndarray:
    """Log-odds that side1 wins, one value per match."""
    alpha = _check_alpha(alpha, dataset.n_players)
    side0, side1 = dataset.sides()
    if dataset.n_matches == 0:
        return np.zeros(0)
    return alpha[side1 - 1].sum(axis=1) - alpha[side0 - 1].sum(axis=1)


def pointwise_log_likelihood(alpha, dataset: Dataset) -> np.ndarray:
    """Per-match log-likelihood contributions."""
    v = match_log_odds(alpha, dataset)
    return bernoulli_logit_logpmf(dataset.y, v)


def log_likelihood(alpha, dataset: Dataset) -> float:
    """Total log-likelihood, summed over matches in dataset order."""
    return float(np.sum(pointwise_log_likelihood(alpha, dataset)))


def grad_log_likelihood(alpha, dataset: Dataset) -> np.ndarray:
    """
    Gradient of log_likelihood with respect to alpha.

    d/dv log p(y | v) = y − σ(v), which flows with + to every member of
    side1 and with − to every member of side0.
    """
    v = match_log_odds(alpha, dataset)
    residual = dataset.y - inv_logit(v)
    side0, side1 = dataset.sides()
    n_players = dataset.n_players
    width = side0.shape[1]

    weights = np.repeat(residual, width)
    grad = np.bincount(side1.ravel() - 1, weights=weights, minlength=n_players)
    grad -= np.bincount(side0.ravel() - 1, weights=weights, minlength=n_players)
    return grad
