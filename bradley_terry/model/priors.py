"""
Population priors over player abilities.

Three variants share the AbilityPrior interface:
- FlatPrior: no prior term (maximum likelihood)
- NormalPrior: α_k ~ Normal(0, sd)
- HierarchicalPrior: σ ~ LogNormal(μ, τ), α_k ~ Normal(0, σ)

Each prior can both build its PyMC random variables and evaluate its own
log-density (with gradient) on the unconstrained parameter scale used by
gradient-based optimisers. For the hierarchical prior the free parameter is
log σ, and the density on log σ includes the +log σ Jacobian term.
"""

from __future__ import annotations

import math
from typing import Literal

import numpy as np
import pymc as pm

from bradley_terry.utils.constants import (
    ABILITY_PRIOR_SD,
    SIGMA_PRIOR_MU,
    SIGMA_PRIOR_SD,
)

PriorKind = Literal["none", "normal", "hierarchical"]

_LOG_SQRT_2PI = 0.5 * math.log(2 * math.pi)


class AbilityPrior:
    """Base class for ability priors."""

    kind: str = ""
    #: Number of unconstrained hyperparameters appended after alpha
    n_hyperparameters: int = 0
    #: Names of hyperparameters on the interface (constrained) scale
    hyperparameter_names: tuple[str, ...] = ()

    def log_density(self, alpha: np.ndarray, hyper: np.ndarray | None = None) -> float:
        raise NotImplementedError

    def grad_log_density(
        self, alpha: np.ndarray, hyper: np.ndarray | None = None
    ) -> tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def build(self, n_players: int):
        """Create prior random variables in the active pm.Model; returns alpha."""
        raise NotImplementedError

    def constrain(self, hyper: np.ndarray | None) -> dict[str, float]:
        """Map unconstrained hyperparameters to their interface values."""
        return {}

    def initial_hyper(self) -> np.ndarray:
        return np.zeros(self.n_hyperparameters)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FlatPrior(AbilityPrior):
    """Improper uniform prior; the posterior mode is the MLE."""

    kind = "none"

    def log_density(self, alpha, hyper=None):
        return 0.0

    def grad_log_density(self, alpha, hyper=None):
        return np.zeros(len(alpha)), np.zeros(0)

    def build(self, n_players):
        return pm.Flat("alpha", dims="player")


class NormalPrior(AbilityPrior):
    """Independent Normal(0, sd) abilities."""

    kind = "normal"

    def __init__(self, sd: float = ABILITY_PRIOR_SD):
        if not np.isfinite(sd) or sd <= 0:
            raise ValueError(f"Prior sd must be positive, got {sd}")
        self.sd = float(sd)

    def log_density(self, alpha, hyper=None):
        alpha = np.asarray(alpha, dtype=float)
        return float(
            -0.5 * np.sum((alpha / self.sd) ** 2)
            - len(alpha) * (math.log(self.sd) + _LOG_SQRT_2PI)
        )

    def grad_log_density(self, alpha, hyper=None):
        alpha = np.asarray(alpha, dtype=float)
        return -alpha / self.sd**2, np.zeros(0)

    def build(self, n_players):
        return pm.Normal("alpha", mu=0.0, sigma=self.sd, dims="player")

    def __repr__(self):
        return f"NormalPrior(sd={self.sd})"


class HierarchicalPrior(AbilityPrior):
    """
    Hierarchical prior with an estimated population scale.

        σ ~ LogNormal(sigma_mu, sigma_sd)
        α_k ~ Normal(0, σ)

    Unconstrained parameter s = log σ, so log p(s) is a Normal(sigma_mu,
    sigma_sd) density once the Jacobian is included.
    """

    kind = "hierarchical"
    n_hyperparameters = 1
    hyperparameter_names = ("sigma",)

    def __init__(self, sigma_mu: float = SIGMA_PRIOR_MU, sigma_sd: float = SIGMA_PRIOR_SD):
        if not np.isfinite(sigma_sd) or sigma_sd <= 0:
            raise ValueError(f"sigma_sd must be positive, got {sigma_sd}")
        self.sigma_mu = float(sigma_mu)
        self.sigma_sd = float(sigma_sd)

    def _log_sigma(self, hyper) -> float:
        if hyper is None or len(hyper) != 1:
            raise ValueError("Hierarchical prior needs exactly one hyperparameter (log sigma)")
        return float(hyper[0])

    def log_density(self, alpha, hyper=None):
        alpha = np.asarray(alpha, dtype=float)
        s = self._log_sigma(hyper)
        z = (s - self.sigma_mu) / self.sigma_sd
        log_p_s = -0.5 * z**2 - math.log(self.sigma_sd) - _LOG_SQRT_2PI
        log_p_alpha = (
            -0.5 * np.sum(alpha**2) * math.exp(-2 * s)
            - len(alpha) * (s + _LOG_SQRT_2PI)
        )
        return float(log_p_s + log_p_alpha)

    def grad_log_density(self, alpha, hyper=None):
        alpha = np.asarray(alpha, dtype=float)
        s = self._log_sigma(hyper)
        inv_var = math.exp(-2 * s)
        d_alpha = -alpha * inv_var
        d_s = (
            -(s - self.sigma_mu) / self.sigma_sd**2
            - len(alpha)
            + np.sum(alpha**2) * inv_var
        )
        return d_alpha, np.array([d_s])

    def build(self, n_players):
        # PyMC samples LogNormal on the log scale automatically
        sigma = pm.LogNormal("sigma", mu=self.sigma_mu, sigma=self.sigma_sd)
        return pm.Normal("alpha", mu=0.0, sigma=sigma, dims="player")

    def constrain(self, hyper):
        return {"sigma": math.exp(self._log_sigma(hyper))}

    def initial_hyper(self):
        return np.array([self.sigma_mu])

    def __repr__(self):
        return f"HierarchicalPrior(sigma_mu={self.sigma_mu}, sigma_sd={self.sigma_sd})"


def make_prior(
    kind: PriorKind,
    ability_sd: float = ABILITY_PRIOR_SD,
    sigma_mu: float = SIGMA_PRIOR_MU,
    sigma_sd: float = SIGMA_PRIOR_SD,
) -> AbilityPrior:
    """Construct a prior by name: 'none', 'normal' or 'hierarchical'."""
    if kind == "none":
        return FlatPrior()
    if kind == "normal":
        return NormalPrior(sd=ability_sd)
    if kind == "hierarchical":
        return HierarchicalPrior(sigma_mu=sigma_mu, sigma_sd=sigma_sd)
    raise ValueError(f"Unknown prior: {kind}")
