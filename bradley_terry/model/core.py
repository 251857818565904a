"""
Core Bradley-Terry model definition.

The model structure:
    v_n = Σ α[side1_n] − Σ α[side0_n]      (single players or summed teams)
    y_n ~ Bernoulli(logit⁻¹(v_n))

with one of three ability priors:
    none:          flat (maximum likelihood)
    normal:        α_k ~ Normal(0, 1)
    hierarchical:  σ ~ LogNormal(0, 0.5), α_k ~ Normal(0, σ)

The same model is exposed two ways: as a PyMC model (build) for the
sampler, and as a pure log-posterior over the unconstrained parameter
vector θ = [α_1..α_K, (log σ)] for gradient-based optimisers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
import pandas as pd
import pymc as pm
import pytensor.tensor as pt

from bradley_terry.model.data import Dataset
from bradley_terry.model.data_validation import CoveragePolicy, check_player_coverage
from bradley_terry.model.likelihood import grad_log_likelihood, log_likelihood
from bradley_terry.model.priors import AbilityPrior, make_prior
from bradley_terry.model.ranking import (
    point_ranking,
    posterior_ability_draws,
    rank_distribution,
)
from bradley_terry.utils.constants import ABILITY_PRIOR_SD, SIGMA_PRIOR_MU, SIGMA_PRIOR_SD


@dataclass
class ModelConfig:
    """Configuration for the Bradley-Terry model."""

    # Ability prior: "none" (MLE), "normal" or "hierarchical"
    prior: Literal["none", "normal", "hierarchical"] = "normal"

    # Prior scales
    ability_sd: float = ABILITY_PRIOR_SD
    sigma_prior_mu: float = SIGMA_PRIOR_MU
    sigma_prior_sd: float = SIGMA_PRIOR_SD

    # What to do when some players have no matches
    coverage_policy: CoveragePolicy = "warn"


class BradleyTerryModel:
    """
    Bradley-Terry paired-comparison model for individual or team matches.

    Usage:
        model = BradleyTerryModel(ModelConfig(prior="hierarchical"))
        pm_model = model.build(dataset)
        theta = np.zeros(model.n_parameters())
        model.log_posterior(theta)
    """

    def __init__(self, config: ModelConfig | None = None):
        self.config = config or ModelConfig()
        self.prior: AbilityPrior = make_prior(
            self.config.prior,
            ability_sd=self.config.ability_sd,
            sigma_mu=self.config.sigma_prior_mu,
            sigma_sd=self.config.sigma_prior_sd,
        )
        self.model: pm.Model | None = None
        self.dataset: Dataset | None = None
        self.trace = None

    def set_data(self, dataset: Dataset) -> None:
        """Attach a dataset, applying the configured coverage policy."""
        check_player_coverage(dataset, policy=self.config.coverage_policy)
        self.dataset = dataset

    def build(self, dataset: Dataset) -> pm.Model:
        """
        Build the PyMC model for a dataset.

        Args:
            dataset: MatchDataset or TeamMatchDataset

        Returns:
            PyMC model ready for sampling
        """
        self.set_data(dataset)

        side0, side1 = dataset.sides()
        coords = {
            "player": np.arange(1, dataset.n_players + 1),
            "match": np.arange(1, dataset.n_matches + 1),
            "slot": np.arange(1, side0.shape[1] + 1),
        }

        with pm.Model(coords=coords) as model:
            # === Data ===
            side0_idx = pm.Data("side0_idx", side0 - 1, dims=("match", "slot"))
            side1_idx = pm.Data("side1_idx", side1 - 1, dims=("match", "slot"))
            observed = pm.Data("observed", dataset.y, dims="match")

            # === Prior ===
            alpha = self.prior.build(dataset.n_players)

            # === Likelihood ===
            log_odds = pt.sum(alpha[side1_idx], axis=1) - pt.sum(alpha[side0_idx], axis=1)
            pm.Bernoulli("y", logit_p=log_odds, observed=observed, dims="match")

        self.model = model
        return model

    # === Unconstrained log-posterior ===

    def require_data(self, dataset: Dataset | None) -> Dataset:
        dataset = dataset if dataset is not None else self.dataset
        if dataset is None:
            raise ValueError("No dataset attached. Call model.set_data() or model.build() first.")
        return dataset

    def n_parameters(self, dataset: Dataset | None = None) -> int:
        dataset = self.require_data(dataset)
        return dataset.n_players + self.prior.n_hyperparameters

    def unpack(self, theta, dataset: Dataset | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Split θ into (alpha, unconstrained hyperparameters)."""
        dataset = self.require_data(dataset)
        theta = np.asarray(theta, dtype=float)
        if theta.shape != (self.n_parameters(dataset),):
            raise ValueError(
                f"Expected {self.n_parameters(dataset)} parameters, got shape {theta.shape}"
            )
        K = dataset.n_players
        return theta[:K], theta[K:]

    def initial_point(self, dataset: Dataset | None = None) -> np.ndarray:
        dataset = self.require_data(dataset)
        return np.concatenate([np.zeros(dataset.n_players), self.prior.initial_hyper()])

    def log_posterior(self, theta, dataset: Dataset | None = None) -> float:
        """Prior log-density plus log-likelihood (unnormalised)."""
        dataset = self.require_data(dataset)
        alpha, hyper = self.unpack(theta, dataset)
        return self.prior.log_density(alpha, hyper) + log_likelihood(alpha, dataset)

    def grad_log_posterior(self, theta, dataset: Dataset | None = None) -> np.ndarray:
        dataset = self.require_data(dataset)
        alpha, hyper = self.unpack(theta, dataset)
        d_alpha, d_hyper = self.prior.grad_log_density(alpha, hyper)
        d_alpha = d_alpha + grad_log_likelihood(alpha, dataset)
        return np.concatenate([d_alpha, d_hyper])

    def negative_log_posterior_and_grad(
        self, theta, dataset: Dataset | None = None
    ) -> tuple[float, np.ndarray]:
        """Objective for scipy.optimize.minimize(..., jac=True)."""
        return (
            -self.log_posterior(theta, dataset),
            -self.grad_log_posterior(theta, dataset),
        )

    # === Summaries ===

    def get_player_rankings(self, trace=None, top_n: int | None = None) -> pd.DataFrame:
        """
        Extract player rankings from posterior draws.

        Args:
            trace: ArviZ InferenceData (uses self.trace if None)
            top_n: Number of top players to return (all if None)

        Returns:
            DataFrame with ability summaries and rank distribution per player
        """
        if trace is None:
            trace = self.trace
        if trace is None:
            raise ValueError("No trace available. Run inference first.")

        draws = posterior_ability_draws(trace)
        ranks = rank_distribution(draws)
        lower, upper = ranks.credible_interval(0.9)

        rankings = pd.DataFrame({
            "player": np.arange(1, draws.shape[1] + 1),
            "ability_mean": draws.mean(axis=0),
            "ability_std": draws.std(axis=0),
            "ability_lower": np.percentile(draws, 2.5, axis=0),
            "ability_upper": np.percentile(draws, 97.5, axis=0),
            "mean_rank": ranks.mean_rank(),
            "rank_lower": lower,
            "rank_upper": upper,
        })

        order = point_ranking(rankings["ability_mean"].to_numpy()) - 1
        rankings = rankings.iloc[order].reset_index(drop=True)
        return rankings.head(top_n) if top_n is not None else rankings
