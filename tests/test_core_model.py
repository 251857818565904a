"""Unit tests for bradley_terry.model.core module."""

import numpy as np
import pytest

from bradley_terry.model.core import BradleyTerryModel, ModelConfig
from bradley_terry.model.data import DatasetError, MatchDataset
from bradley_terry.model.data_validation import IdentifiabilityWarning
from bradley_terry.model.likelihood import log_likelihood
from bradley_terry.model.simulate import simulate_matches, simulate_team_matches


@pytest.fixture
def dataset():
    return simulate_matches(6, 60, random_seed=11).dataset


@pytest.fixture
def team_dataset():
    return simulate_team_matches(8, 2, 60, random_seed=12).dataset


def finite_difference(f, x, eps=1e-6):
    grad = np.zeros_like(x)
    for i in range(len(x)):
        step = np.zeros_like(x)
        step[i] = eps
        grad[i] = (f(x + step) - f(x - step)) / (2 * eps)
    return grad


class TestModelBuild:
    """Test PyMC model construction."""

    @pytest.mark.parametrize("prior", ["none", "normal", "hierarchical"])
    def test_build_each_prior(self, dataset, prior):
        bt = BradleyTerryModel(ModelConfig(prior=prior))
        model = bt.build(dataset)

        names = {rv.name for rv in model.free_RVs}
        assert "alpha" in names
        assert ("sigma" in names) == (prior == "hierarchical")
        assert [rv.name for rv in model.observed_RVs] == ["y"]
        assert len(model.coords["player"]) == 6
        assert len(model.coords["match"]) == 60
        assert bt.dataset is dataset

    def test_build_team_model(self, team_dataset):
        model = BradleyTerryModel().build(team_dataset)
        assert len(model.coords["slot"]) == 2
        assert model["side0_idx"].eval().shape == (60, 2)

    def test_default_config(self):
        bt = BradleyTerryModel()
        assert bt.config.prior == "normal"
        assert bt.config.coverage_policy == "warn"
        assert bt.model is None

    def test_unknown_prior(self):
        with pytest.raises(ValueError):
            BradleyTerryModel(ModelConfig(prior="laplace"))


class TestLogPosterior:
    """The numpy log-posterior must agree with PyMC's joint log-density."""

    def test_normal_matches_pymc(self, dataset):
        bt = BradleyTerryModel(ModelConfig(prior="normal"))
        model = bt.build(dataset)
        logp = model.compile_logp()

        alpha = np.linspace(-1.0, 1.0, 6)
        assert bt.log_posterior(alpha) == pytest.approx(float(logp({"alpha": alpha})), rel=1e-6)

    def test_hierarchical_matches_pymc(self, dataset):
        bt = BradleyTerryModel(ModelConfig(prior="hierarchical"))
        model = bt.build(dataset)
        logp = model.compile_logp()

        alpha = np.array([0.4, -0.3, 1.2, -0.8, 0.1, 0.0])
        s = np.log(0.7)
        theta = np.concatenate([alpha, [s]])
        expected = float(logp({"alpha": alpha, "sigma_log__": np.array(s)}))
        assert bt.log_posterior(theta) == pytest.approx(expected, rel=1e-6)

    def test_team_matches_pymc(self, team_dataset):
        bt = BradleyTerryModel(ModelConfig(prior="normal"))
        model = bt.build(team_dataset)
        logp = model.compile_logp()

        alpha = np.linspace(0.5, -0.5, 8)
        assert bt.log_posterior(alpha) == pytest.approx(float(logp({"alpha": alpha})), rel=1e-6)

    def test_flat_prior_is_likelihood(self, dataset):
        bt = BradleyTerryModel(ModelConfig(prior="none"))
        bt.set_data(dataset)
        alpha = np.arange(6) * 0.2
        assert bt.log_posterior(alpha) == pytest.approx(log_likelihood(alpha, dataset))

    @pytest.mark.parametrize("prior", ["none", "normal", "hierarchical"])
    def test_gradient(self, dataset, prior):
        bt = BradleyTerryModel(ModelConfig(prior=prior))
        bt.set_data(dataset)
        rng = np.random.default_rng(0)
        theta = rng.normal(0.0, 0.5, size=bt.n_parameters())

        numeric = finite_difference(bt.log_posterior, theta)
        assert np.allclose(bt.grad_log_posterior(theta), numeric, atol=1e-5)

    def test_objective_is_negated(self, dataset):
        bt = BradleyTerryModel(ModelConfig(prior="hierarchical"))
        bt.set_data(dataset)
        theta = bt.initial_point()
        value, grad = bt.negative_log_posterior_and_grad(theta)
        assert value == pytest.approx(-bt.log_posterior(theta))
        assert np.allclose(grad, -bt.grad_log_posterior(theta))


class TestParameterLayout:
    """Test the unconstrained parameter vector."""

    def test_n_parameters(self, dataset):
        normal = BradleyTerryModel(ModelConfig(prior="normal"))
        hier = BradleyTerryModel(ModelConfig(prior="hierarchical"))
        assert normal.n_parameters(dataset) == 6
        assert hier.n_parameters(dataset) == 7

    def test_unpack(self, dataset):
        bt = BradleyTerryModel(ModelConfig(prior="hierarchical"))
        bt.set_data(dataset)
        alpha, hyper = bt.unpack(np.arange(7.0))
        assert alpha.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
        assert hyper.tolist() == [6.0]

    def test_unpack_wrong_length(self, dataset):
        bt = BradleyTerryModel()
        bt.set_data(dataset)
        with pytest.raises(ValueError):
            bt.unpack(np.zeros(4))

    def test_initial_point(self, dataset):
        bt = BradleyTerryModel(ModelConfig(prior="hierarchical", sigma_prior_mu=0.3))
        bt.set_data(dataset)
        assert bt.initial_point().tolist() == [0.0] * 6 + [0.3]

    def test_requires_data(self):
        bt = BradleyTerryModel()
        with pytest.raises(ValueError, match="No dataset"):
            bt.log_posterior(np.zeros(3))


class TestCoveragePolicy:
    """Test handling of players without matches."""

    @pytest.fixture
    def sparse(self):
        return MatchDataset(n_players=4, player0=[1, 2], player1=[2, 1], y=[1, 0])

    def test_warn(self, sparse):
        bt = BradleyTerryModel(ModelConfig(coverage_policy="warn"))
        with pytest.warns(IdentifiabilityWarning):
            bt.set_data(sparse)
        assert bt.dataset is sparse

    def test_raise(self, sparse):
        bt = BradleyTerryModel(ModelConfig(coverage_policy="raise"))
        with pytest.raises(DatasetError):
            bt.build(sparse)

    def test_ignore(self, sparse, recwarn):
        bt = BradleyTerryModel(ModelConfig(coverage_policy="ignore"))
        bt.set_data(sparse)
        assert not [w for w in recwarn if issubclass(w.category, IdentifiabilityWarning)]


class TestPlayerRankings:
    """Test posterior ranking summaries."""

    def test_requires_trace(self):
        with pytest.raises(ValueError, match="No trace"):
            BradleyTerryModel().get_player_rankings()

    def test_from_posterior(self):
        from types import SimpleNamespace

        import xarray as xr

        rng = np.random.default_rng(3)
        values = np.array([-1.0, 2.0, 0.5]) + 0.2 * rng.normal(size=(2, 100, 3))
        trace = SimpleNamespace(
            posterior=xr.Dataset(
                {"alpha": (("chain", "draw", "player"), values)},
                coords={"chain": [0, 1], "draw": np.arange(100), "player": [1, 2, 3]},
            )
        )

        rankings = BradleyTerryModel().get_player_rankings(trace=trace)
        assert rankings["player"].tolist() == [2, 3, 1]
        assert rankings["mean_rank"].tolist()[0] == pytest.approx(1.0)
        assert len(BradleyTerryModel().get_player_rankings(trace=trace, top_n=2)) == 2
