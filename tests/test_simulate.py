"""Unit tests for bradley_terry.model.simulate module."""

import numpy as np
import pytest

from bradley_terry.model.data import MatchDataset, TeamMatchDataset
from bradley_terry.model.simulate import (
    center_abilities,
    simulate_abilities,
    simulate_matches,
    simulate_team_matches,
)


class TestAbilities:
    """Test ground-truth ability generation."""

    def test_centering(self):
        centered = center_abilities([1.0, 2.0, 6.0])
        assert centered.tolist() == [-2.0, -1.0, 3.0]
        assert center_abilities([]).shape == (0,)

    def test_simulated_abilities_sum_to_zero(self):
        rng = np.random.default_rng(0)
        alpha = simulate_abilities(50, rng)
        assert alpha.shape == (50,)
        assert abs(alpha.sum()) < 1e-10

    def test_sigma_scales(self):
        base = simulate_abilities(20, np.random.default_rng(5))
        scaled = simulate_abilities(20, np.random.default_rng(5), sigma=2.0)
        assert np.allclose(scaled, 2.0 * base)

    def test_invalid_sigma(self):
        with pytest.raises(ValueError):
            simulate_abilities(5, np.random.default_rng(0), sigma=0.0)
        with pytest.raises(ValueError):
            simulate_abilities(5, np.random.default_rng(0), sigma=float("nan"))
        with pytest.raises(ValueError):
            simulate_matches(5, 10, random_seed=0, sigma=float("inf"))


class TestSimulateMatches:
    """Test individual tournament simulation."""

    def test_reproducible(self):
        a = simulate_matches(10, 200, random_seed=42)
        b = simulate_matches(10, 200, random_seed=42)
        assert np.array_equal(a.abilities, b.abilities)
        assert a.dataset.to_dict() == b.dataset.to_dict()

    def test_different_seeds_differ(self):
        a = simulate_matches(10, 200, random_seed=1)
        b = simulate_matches(10, 200, random_seed=2)
        assert a.dataset.to_dict() != b.dataset.to_dict()

    def test_valid_matches(self):
        sim = simulate_matches(12, 300, random_seed=3)
        dataset = sim.dataset
        assert isinstance(dataset, MatchDataset)
        assert dataset.n_matches == 300
        assert dataset.player0.min() >= 1 and dataset.player0.max() <= 12
        assert dataset.player1.min() >= 1 and dataset.player1.max() <= 12
        assert np.all(dataset.player0 != dataset.player1)
        assert set(np.unique(dataset.y)) <= {0, 1}
        assert abs(sim.abilities.sum()) < 1e-10

    def test_stronger_player_wins_more(self):
        sim = simulate_matches(2, 400, random_seed=9, abilities=[0.0, 4.0])
        dataset = sim.dataset
        player2_won = np.where(dataset.player1 == 2, dataset.y == 1, dataset.y == 0)
        assert player2_won.mean() > 0.9

    def test_zero_matches(self):
        sim = simulate_matches(5, 0, random_seed=0)
        assert sim.dataset.n_matches == 0
        assert sim.abilities.shape == (5,)

    def test_too_few_players(self):
        with pytest.raises(ValueError):
            simulate_matches(1, 10)

    def test_fixed_abilities_shape(self):
        with pytest.raises(ValueError):
            simulate_matches(3, 10, abilities=[0.0, 1.0])


class TestSimulateTeamMatches:
    """Test team tournament simulation."""

    def test_disjoint_teams(self):
        sim = simulate_team_matches(20, 3, 150, random_seed=4)
        dataset = sim.dataset
        assert isinstance(dataset, TeamMatchDataset)
        assert dataset.team0.shape == (150, 3)
        for t0, t1 in zip(dataset.team0, dataset.team1):
            assert not set(t0) & set(t1)
            assert len(set(t0)) == 3 and len(set(t1)) == 3

    def test_reproducible(self):
        a = simulate_team_matches(12, 2, 80, random_seed=8, sigma=0.5)
        b = simulate_team_matches(12, 2, 80, random_seed=8, sigma=0.5)
        assert a.dataset.to_dict() == b.dataset.to_dict()
        assert np.array_equal(a.abilities, b.abilities)

    def test_needs_enough_players(self):
        with pytest.raises(ValueError):
            simulate_team_matches(5, 3, 10)

    def test_team_size_positive(self):
        with pytest.raises(ValueError):
            simulate_team_matches(10, 0, 10)
