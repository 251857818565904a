"""
Synthetic tournaments for testing and demonstration.

Ground-truth abilities are drawn i.i.d. Normal(0, 1) and centered so they
sum to zero. Centering is a deterministic transform applied to simulated
truth only; inference never centers, it relies on the prior instead.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from bradley_terry.model.data import Dataset, MatchDataset, TeamMatchDataset
from bradley_terry.model.likelihood import inv_logit


@dataclass(frozen=True, eq=False)
class SimulatedTournament:
    """Simulated ground truth together with the observed matches."""

    abilities: np.ndarray
    dataset: Dataset
    random_seed: int | None = None

    @property
    def n_players(self) -> int:
        return self.dataset.n_players


def center_abilities(alpha) -> np.ndarray:
    """Shift abilities so they sum to zero."""
    alpha = np.asarray(alpha, dtype=float)
    if len(alpha) == 0:
        return alpha.copy()
    return alpha - alpha.mean()


def simulate_abilities(
    n_players: int,
    rng: np.random.Generator,
    sigma: float = 1.0,
) -> np.ndarray:
    """Draw centered abilities, scaled by sigma."""
    if n_players < 0:
        raise ValueError(f"n_players must be non-negative, got {n_players}")
    if not np.isfinite(sigma) or sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    return sigma * center_abilities(rng.normal(0.0, 1.0, size=n_players))


def _resolve_abilities(abilities, n_players, rng, sigma) -> np.ndarray:
    if abilities is None:
        return simulate_abilities(n_players, rng, sigma=sigma)
    abilities = np.asarray(abilities, dtype=float)
    if abilities.shape != (n_players,):
        raise ValueError(f"Expected {n_players} abilities, got shape {abilities.shape}")
    return abilities


def simulate_matches(
    n_players: int,
    n_matches: int,
    random_seed: int | None = None,
    abilities=None,
    sigma: float = 1.0,
) -> SimulatedTournament:
    """
    Simulate individual matches between uniformly chosen distinct players.

    Args:
        n_players: Number of players K (at least 2)
        n_matches: Number of matches N
        random_seed: Seed for numpy's default_rng
        abilities: Optional fixed true abilities (length K); drawn if None
        sigma: Scale applied to drawn abilities

    Returns:
        SimulatedTournament with the true abilities and a MatchDataset
    """
    if n_players < 2:
        raise ValueError(f"Need at least 2 players, got {n_players}")
    if n_matches < 0:
        raise ValueError(f"n_matches must be non-negative, got {n_matches}")

    rng = np.random.default_rng(random_seed)
    alpha = _resolve_abilities(abilities, n_players, rng, sigma)

    pairs = np.empty((n_matches, 2), dtype=np.int64)
    for n in range(n_matches):
        pairs[n] = rng.choice(n_players, size=2, replace=False)

    p_win = inv_logit(alpha[pairs[:, 1]] - alpha[pairs[:, 0]])
    y = rng.binomial(1, p_win) if n_matches else np.zeros(0, dtype=np.int64)

    dataset = MatchDataset(
        n_players=n_players,
        player0=pairs[:, 0] + 1,
        player1=pairs[:, 1] + 1,
        y=y,
    )
    return SimulatedTournament(abilities=alpha, dataset=dataset, random_seed=random_seed)


def simulate_team_matches(
    n_players: int,
    team_size: int,
    n_matches: int,
    random_seed: int | None = None,
    abilities=None,
    sigma: float = 1.0,
) -> SimulatedTournament:
    """
    Simulate team matches with disjoint teams of team_size players.

    Each match draws 2J distinct players without replacement; the first J
    form team0 and the remaining J form team1.
    """
    if team_size < 1:
        raise ValueError(f"team_size must be at least 1, got {team_size}")
    if n_players < 2 * team_size:
        raise ValueError(
            f"Need at least {2 * team_size} players for teams of {team_size}, got {n_players}"
        )
    if n_matches < 0:
        raise ValueError(f"n_matches must be non-negative, got {n_matches}")

    rng = np.random.default_rng(random_seed)
    alpha = _resolve_abilities(abilities, n_players, rng, sigma)

    lineups = np.empty((n_matches, 2 * team_size), dtype=np.int64)
    for n in range(n_matches):
        lineups[n] = rng.choice(n_players, size=2 * team_size, replace=False)
    team0 = lineups[:, :team_size]
    team1 = lineups[:, team_size:]

    p_win = inv_logit(alpha[team1].sum(axis=1) - alpha[team0].sum(axis=1))
    y = rng.binomial(1, p_win) if n_matches else np.zeros(0, dtype=np.int64)

    dataset = TeamMatchDataset(
        n_players=n_players,
        team_size=team_size,
        team0=team0 + 1,
        team1=team1 + 1,
        y=y,
    )
    return SimulatedTournament(abilities=alpha, dataset=dataset, random_seed=random_seed)
