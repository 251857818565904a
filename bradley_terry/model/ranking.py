"""
Rankings from ability estimates and posterior draws.

Tie-break: equal abilities are ordered by player index, lower index first
(stable sort). Under continuous priors ties have probability zero, but they
are handled deterministically.

A point estimate gives one ranking. Posterior draws give a distribution over
rankings, represented by RankDistribution (one rank per player per draw).
"""

from __future__ import annotations

from dataclasses import dataclass

import arviz as az
import numpy as np
import pandas as pd


def _check_abilities(alpha, n_players: int | None, ndim: int) -> np.ndarray:
    alpha = np.asarray(alpha, dtype=float)
    if alpha.ndim != ndim:
        raise ValueError(f"Expected {ndim}-dimensional abilities, got shape {alpha.shape}")
    if n_players is not None and alpha.shape[-1] != n_players:
        raise ValueError(f"Expected {n_players} abilities, got {alpha.shape[-1]}")
    return alpha


def point_ranking(alpha, n_players: int | None = None) -> np.ndarray:
    """
    Player indices (1-based) in descending order of ability.

    Returns:
        ranked where ranked[0] is the best player
    """
    alpha = _check_abilities(alpha, n_players, 1)
    return np.argsort(-alpha, kind="stable") + 1


def ranks_from_abilities(alpha, n_players: int | None = None) -> np.ndarray:
    """
    Rank of each player (1 = best), the inverse of point_ranking().

    ranking[k] = 1 + #{j: α_j > α_k} + #{j < k: α_j == α_k}
    """
    alpha = _check_abilities(alpha, n_players, 1)
    order = np.argsort(-alpha, kind="stable")
    ranking = np.empty(len(alpha), dtype=np.int64)
    ranking[order] = np.arange(1, len(alpha) + 1)
    return ranking


def posterior_ranks(draws, n_players: int | None = None) -> np.ndarray:
    """Per-draw ranks for an (M, K) table of ability draws."""
    draws = _check_abilities(draws, n_players, 2)
    order = np.argsort(-draws, axis=1, kind="stable")
    ranks = np.empty(draws.shape, dtype=np.int64)
    np.put_along_axis(
        ranks,
        order,
        np.broadcast_to(np.arange(1, draws.shape[1] + 1), draws.shape),
        axis=1,
    )
    return ranks


@dataclass(frozen=True, eq=False)
class RankDistribution:
    """
    Posterior distribution over player ranks.

    Attributes:
        ranks: (M, K) table, ranks[m, k] is the rank of player k+1 in draw m
    """

    ranks: np.ndarray

    @property
    def n_draws(self) -> int:
        return self.ranks.shape[0]

    @property
    def n_players(self) -> int:
        return self.ranks.shape[1]

    def mean_rank(self) -> np.ndarray:
        return self.ranks.mean(axis=0)

    def rank_probabilities(self) -> np.ndarray:
        """K x K matrix, entry [k, r-1] is P(rank of player k+1 == r)."""
        K = self.n_players
        probs = np.zeros((K, K))
        for k in range(K):
            probs[k] = np.bincount(self.ranks[:, k] - 1, minlength=K) / self.n_draws
        return probs

    def credible_interval(self, prob: float = 0.9) -> tuple[np.ndarray, np.ndarray]:
        """Equal-tailed interval of each player's rank."""
        if not 0 < prob < 1:
            raise ValueError(f"prob must be in (0, 1), got {prob}")
        tail = 100 * (1 - prob) / 2
        lower = np.percentile(self.ranks, tail, axis=0, method="lower")
        upper = np.percentile(self.ranks, 100 - tail, axis=0, method="higher")
        return lower, upper

    def to_dataframe(self, prob: float = 0.9) -> pd.DataFrame:
        """Per-player summary sorted by mean rank."""
        lower, upper = self.credible_interval(prob)
        probs = self.rank_probabilities()
        summary = pd.DataFrame({
            "player": np.arange(1, self.n_players + 1),
            "mean_rank": self.mean_rank(),
            "median_rank": np.median(self.ranks, axis=0),
            "rank_lower": lower,
            "rank_upper": upper,
            "prob_best": probs[:, 0] if self.n_players else np.zeros(0),
        })
        return summary.sort_values(["mean_rank", "player"]).reset_index(drop=True)


def rank_distribution(draws, n_players: int | None = None) -> RankDistribution:
    return RankDistribution(ranks=posterior_ranks(draws, n_players))


def posterior_ability_draws(trace: az.InferenceData, var_name: str = "alpha") -> np.ndarray:
    """Flatten (chain, draw, player) posterior draws to an (M, K) table."""
    values = trace.posterior[var_name].values
    return values.reshape(-1, values.shape[-1])


def attach_posterior_ranking(trace: az.InferenceData) -> az.InferenceData:
    """Add the per-draw 'ranking' generated quantity to the posterior group."""
    values = trace.posterior["alpha"].values
    n_chains, n_draws, n_players = values.shape
    ranks = posterior_ranks(values.reshape(-1, n_players)).reshape(n_chains, n_draws, n_players)
    player_dim = trace.posterior["alpha"].dims[-1]
    trace.posterior["ranking"] = (("chain", "draw", player_dim), ranks)
    return trace
