"""Unit tests for bradley_terry.model.likelihood module."""

import numpy as np
import pytest

from bradley_terry.model.data import MatchDataset, TeamMatchDataset
from bradley_terry.model.likelihood import (
    bernoulli_logit_logpmf,
    grad_log_likelihood,
    inv_logit,
    log_inv_logit,
    log_likelihood,
    match_log_odds,
    pointwise_log_likelihood,
    team_win_probability,
    win_probability,
)


@pytest.fixture
def abilities():
    rng = np.random.default_rng(7)
    return rng.normal(0, 1.5, size=8)


@pytest.fixture
def matches():
    """Small individual dataset over 8 players."""
    rng = np.random.default_rng(11)
    pairs = np.array([rng.choice(8, size=2, replace=False) for _ in range(40)]) + 1
    y = rng.integers(0, 2, size=40)
    return MatchDataset(n_players=8, player0=pairs[:, 0], player1=pairs[:, 1], y=y)


def naive_logpmf(y, v):
    """Bernoulli log-pmf through exp-then-log of the probabilities."""
    p = 1.0 / (1.0 + np.exp(-v))
    q = 1.0 / (1.0 + np.exp(v))
    return y * np.log(p) + (1 - y) * np.log(q)


class TestWinProbability:
    """Test pairwise win probabilities."""

    def test_probabilities_sum_to_one(self, abilities):
        """P(i beats j) + P(j beats i) = 1 for every pair."""
        for i in range(1, 9):
            for j in range(1, 9):
                if i == j:
                    continue
                total = win_probability(abilities, i, j) + win_probability(abilities, j, i)
                assert total == pytest.approx(1.0, abs=1e-12)

    def test_matches_logistic_formula(self, abilities):
        """P(i beats j) is the logistic function of the ability gap."""
        for i, j in [(1, 2), (3, 8), (5, 4)]:
            expected = 1.0 / (1.0 + np.exp(-(abilities[i - 1] - abilities[j - 1])))
            assert win_probability(abilities, i, j) == pytest.approx(expected, abs=1e-12)

    def test_shift_invariance(self, abilities):
        """Adding a constant to every ability leaves probabilities unchanged."""
        shifted = abilities + 3.7
        for i, j in [(1, 2), (6, 7), (8, 1)]:
            assert win_probability(shifted, i, j) == pytest.approx(
                win_probability(abilities, i, j), abs=1e-12
            )

    def test_team_of_one_equals_individual(self, abilities):
        """Teams of size 1 reduce to the individual formula."""
        for i, j in [(1, 2), (4, 7)]:
            assert team_win_probability(abilities, [i], [j]) == pytest.approx(
                win_probability(abilities, i, j), abs=1e-15
            )

    def test_team_sums_abilities(self):
        """Team ability is the sum of member abilities."""
        alpha = np.array([0.3, -0.2, 0.5, 0.1])
        expected = 1.0 / (1.0 + np.exp(-((0.5 + 0.1) - (0.3 - 0.2))))
        assert team_win_probability(alpha, [3, 4], [1, 2]) == pytest.approx(expected)

    def test_out_of_range_index(self, abilities):
        """Indices outside 1..K are rejected."""
        with pytest.raises(IndexError):
            win_probability(abilities, 0, 1)
        with pytest.raises(IndexError):
            win_probability(abilities, 1, 9)
        with pytest.raises(IndexError):
            team_win_probability(abilities, [1, 2], [3, 99])

    def test_fractional_index_rejected(self, abilities):
        with pytest.raises(IndexError):
            win_probability(abilities, 1.7, 2)
        with pytest.raises(IndexError):
            team_win_probability(abilities, [1, 2.5], [3, 4])
        assert win_probability(abilities, 2.0, 1) == pytest.approx(win_probability(abilities, 2, 1))


class TestStableLogSigmoid:
    """Test numerically stable log-sigmoid computations."""

    def test_inv_logit_values(self):
        assert inv_logit(0.0) == 0.5
        assert inv_logit(800.0) == 1.0
        assert inv_logit(-800.0) == pytest.approx(0.0, abs=1e-300)

    def test_log_inv_logit_large_arguments(self):
        """log σ(v) stays finite far beyond the overflow point of exp."""
        v = np.array([-1e4, -750.0, -700.0, 700.0, 750.0, 1e4])
        out = log_inv_logit(v)
        assert np.all(np.isfinite(out))
        assert out[0] == pytest.approx(-1e4)
        assert out[2] == pytest.approx(-700.0)
        assert out[3] == pytest.approx(0.0, abs=1e-300)

    def test_matches_naive_for_moderate_values(self):
        """Stable and naive Bernoulli log-pmf agree for |v| < 20."""
        v = np.linspace(-19.9, 19.9, 401)
        for y in (0, 1):
            stable = bernoulli_logit_logpmf(np.full_like(v, y, dtype=int), v)
            assert np.allclose(stable, naive_logpmf(y, v), rtol=0, atol=1e-9)

    def test_finite_where_naive_overflows(self):
        """Stable form survives |v| = 710, where exp overflows."""
        v = np.array([-710.0, 710.0])
        with np.errstate(over="ignore", divide="ignore"):
            naive = naive_logpmf(1, v)
        assert not np.all(np.isfinite(naive))

        for y in (0, 1):
            stable = bernoulli_logit_logpmf(np.array([y, y]), v)
            assert np.all(np.isfinite(stable))

    def test_bernoulli_symmetry(self):
        """log p(y=1 | v) == log p(y=0 | -v)."""
        v = np.array([-5.0, -0.3, 0.0, 2.0, 40.0])
        assert np.allclose(
            bernoulli_logit_logpmf(np.ones(5, dtype=int), v),
            bernoulli_logit_logpmf(np.zeros(5, dtype=int), -v),
        )


class TestLogLikelihood:
    """Test aggregated log-likelihood and gradient."""

    def test_empty_dataset(self):
        """No matches (and no players) gives zero log-likelihood."""
        empty = MatchDataset(n_players=0, player0=[], player1=[], y=[])
        assert log_likelihood(np.zeros(0), empty) == 0.0

        no_matches = MatchDataset(n_players=3, player0=[], player1=[], y=[])
        assert log_likelihood(np.zeros(3), no_matches) == 0.0
        assert np.array_equal(grad_log_likelihood(np.zeros(3), no_matches), np.zeros(3))

    def test_sum_of_pointwise(self, abilities, matches):
        pointwise = pointwise_log_likelihood(abilities, matches)
        assert pointwise.shape == (matches.n_matches,)
        assert log_likelihood(abilities, matches) == pytest.approx(pointwise.sum())

    def test_log_odds_direction(self, abilities, matches):
        """Log-odds favour player1 when player1 is stronger."""
        v = match_log_odds(abilities, matches)
        expected = abilities[matches.player1 - 1] - abilities[matches.player0 - 1]
        assert np.allclose(v, expected)

    def test_shift_invariance(self, abilities, matches):
        assert log_likelihood(abilities + 10.0, matches) == pytest.approx(
            log_likelihood(abilities, matches), abs=1e-9
        )

    def test_wrong_alpha_length(self, matches):
        with pytest.raises(ValueError):
            log_likelihood(np.zeros(7), matches)

    def test_gradient_matches_finite_differences(self, abilities, matches):
        grad = grad_log_likelihood(abilities, matches)
        eps = 1e-6
        for k in range(len(abilities)):
            step = np.zeros_like(abilities)
            step[k] = eps
            numeric = (
                log_likelihood(abilities + step, matches)
                - log_likelihood(abilities - step, matches)
            ) / (2 * eps)
            assert grad[k] == pytest.approx(numeric, abs=1e-5)

    def test_gradient_sums_to_zero(self, abilities, matches):
        """A global shift is a flat direction of the likelihood."""
        assert grad_log_likelihood(abilities, matches).sum() == pytest.approx(0.0, abs=1e-10)


class TestTeamLikelihood:
    """Test the team-additive likelihood."""

    def test_two_versus_two(self):
        """Team1 [3,4] beating team0 [1,2] contributes log σ(Δ)."""
        alpha = np.array([0.3, -0.2, 0.5, 0.1])
        dataset = TeamMatchDataset(
            n_players=4, team_size=2, team0=[[1, 2]], team1=[[3, 4]], y=[1]
        )
        delta = (alpha[2] + alpha[3]) - (alpha[0] + alpha[1])
        expected = np.log(1.0 / (1.0 + np.exp(-delta)))
        assert log_likelihood(alpha, dataset) == pytest.approx(expected, abs=1e-12)

    def test_team_of_one_equals_individual(self, abilities, matches):
        teams = TeamMatchDataset(
            n_players=matches.n_players,
            team_size=1,
            team0=matches.player0[:, None],
            team1=matches.player1[:, None],
            y=matches.y,
        )
        assert log_likelihood(abilities, teams) == pytest.approx(
            log_likelihood(abilities, matches), abs=1e-12
        )
        assert np.allclose(
            grad_log_likelihood(abilities, teams),
            grad_log_likelihood(abilities, matches),
        )

    def test_team_gradient_matches_finite_differences(self):
        rng = np.random.default_rng(3)
        lineups = np.array([rng.choice(10, size=6, replace=False) for _ in range(30)]) + 1
        dataset = TeamMatchDataset(
            n_players=10,
            team_size=3,
            team0=lineups[:, :3],
            team1=lineups[:, 3:],
            y=rng.integers(0, 2, size=30),
        )
        alpha = rng.normal(size=10)
        grad = grad_log_likelihood(alpha, dataset)
        eps = 1e-6
        for k in range(10):
            step = np.zeros(10)
            step[k] = eps
            numeric = (
                log_likelihood(alpha + step, dataset) - log_likelihood(alpha - step, dataset)
            ) / (2 * eps)
            assert grad[k] == pytest.approx(numeric, abs=1e-5)

    def test_fixed_lineups_leave_flat_ridge(self):
        """Moving ability between teammates never changes the likelihood."""
        dataset = TeamMatchDataset(
            n_players=4,
            team_size=2,
            team0=[[1, 2]] * 5,
            team1=[[3, 4]] * 5,
            y=[1, 0, 1, 1, 0],
        )
        alpha = np.array([0.2, 0.4, -0.1, 0.3])
        ridge = np.array([1.0, -1.0, 0.0, 0.0])
        for t in (-2.0, 0.5, 5.0):
            assert log_likelihood(alpha + t * ridge, dataset) == pytest.approx(
                log_likelihood(alpha, dataset), abs=1e-12
            )
