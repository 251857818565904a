"""
Inference machinery for Bradley-Terry models.

Supports:
- Point estimation (MLE or posterior mode) with scipy's L-BFGS-B
- Full MCMC sampling with PyMC's NUTS sampler
- Variational inference (ADVI) for fast approximate posteriors
- Caching of fitted models

Neither the optimiser nor the sampler is trusted blindly: non-convergence is
reported with ConvergenceWarning and diagnostic values, never retried.
"""

from __future__ import annotations

import logging
import pickle
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm
from scipy.optimize import minimize

from bradley_terry.model.core import BradleyTerryModel
from bradley_terry.model.data import Dataset, dataset_from_dict
from bradley_terry.model.priors import FlatPrior
from bradley_terry.model.ranking import (
    attach_posterior_ranking,
    point_ranking,
    ranks_from_abilities,
)
from bradley_terry.utils.constants import CACHE_DIR, ESS_THRESHOLD, R_HAT_THRESHOLD

logger = logging.getLogger(__name__)


class ConvergenceWarning(UserWarning):
    """An optimiser or sampler result should not be trusted as-is."""


@dataclass
class InferenceConfig:
    """Configuration for model inference."""

    # MCMC settings
    mcmc_draws: int = 1000
    mcmc_tune: int = 1000
    mcmc_chains: int = 4
    mcmc_cores: int = 4
    mcmc_target_accept: float = 0.9

    # VI settings
    vi_n_iterations: int = 20000
    vi_method: Literal["advi", "fullrank_advi"] = "advi"
    vi_n_samples: int = 2000

    # Point estimation
    optimizer_method: str = "L-BFGS-B"
    optimizer_max_iter: int = 1000
    optimizer_gtol: float = 1e-6

    # Diagnostics
    r_hat_threshold: float = R_HAT_THRESHOLD
    ess_threshold: float = ESS_THRESHOLD

    # Caching
    cache_dir: Path = field(default_factory=lambda: Path(CACHE_DIR).expanduser())


@dataclass
class PointEstimate:
    """
    Result of point estimation.

    Attributes:
        alpha: Estimated abilities (length K)
        sigma: Population scale (hierarchical prior only)
        ranked: Player indices in descending ability (1-based)
        ranking: Rank of each player (1 = best)
        log_posterior: Objective value at the estimate
        converged: Whether the optimiser reported success
        n_iterations: Optimiser iterations used
        message: Optimiser status message
    """

    alpha: np.ndarray
    sigma: float | None
    ranked: np.ndarray
    ranking: np.ndarray
    log_posterior: float
    converged: bool
    n_iterations: int
    message: str

    def to_dict(self) -> dict[str, float]:
        """Flat mapping like {'alpha[1]': ..., 'sigma': ..., 'ranked[1]': ...}."""
        result = {f"alpha[{k + 1}]": float(a) for k, a in enumerate(self.alpha)}
        if self.sigma is not None:
            result["sigma"] = float(self.sigma)
        result.update({f"ranked[{i + 1}]": int(p) for i, p in enumerate(self.ranked)})
        result.update({f"ranking[{k + 1}]": int(r) for k, r in enumerate(self.ranking)})
        return result

    def to_dataframe(self) -> pd.DataFrame:
        """One row per player, sorted best first."""
        return pd.DataFrame({
            "rank": np.arange(1, len(self.ranked) + 1),
            "player": self.ranked,
            "ability": self.alpha[self.ranked - 1],
        })

    def summary(self) -> str:
        lines = [
            f"Point estimate ({'converged' if self.converged else 'NOT converged'}, "
            f"{self.n_iterations} iterations, log posterior {self.log_posterior:.3f})"
        ]
        if self.sigma is not None:
            lines.append(f"  sigma = {self.sigma:.3f}")
        for rank, player in enumerate(self.ranked[:10], start=1):
            lines.append(f"  {rank:3d}. player {player:<5d} {self.alpha[player - 1]:+.3f}")
        return "\n".join(lines)


class ModelFitter:
    """
    Fits a BradleyTerryModel by optimisation or sampling.

    Usage:
        fitter = ModelFitter(model, config)

        # Posterior mode / MLE
        estimate = fitter.fit_point(dataset)

        # Full posterior
        trace = fitter.fit_mcmc(dataset)
        fitter.diagnostics()

        # Save/load for persistence
        fitter.save("model_checkpoint")
        fitter = ModelFitter.load("model_checkpoint")
    """

    def __init__(
        self,
        model: BradleyTerryModel,
        config: InferenceConfig | None = None,
    ):
        self.bt_model = model
        self.config = config or InferenceConfig()
        self.trace: az.InferenceData | None = None
        self.point_estimate: PointEstimate | None = None
        self._last_fit_time: datetime | None = None
        self._fit_method: str | None = None

    def fit_point(
        self,
        dataset: Dataset | None = None,
        initial: np.ndarray | None = None,
        random_seed: int | None = None,
    ) -> PointEstimate:
        """
        Maximise the log-posterior (the log-likelihood under a flat prior).

        Args:
            dataset: Data to fit (uses the model's attached dataset if None)
            initial: Starting θ (zeros / prior centre if None)
            random_seed: If given, start from a small random jitter instead

        Returns:
            PointEstimate; check .converged before trusting it
        """
        if dataset is not None:
            self.bt_model.set_data(dataset)
        self.bt_model.require_data(None)

        if initial is None:
            initial = self.bt_model.initial_point()
            if random_seed is not None:
                rng = np.random.default_rng(random_seed)
                initial = initial + rng.normal(0.0, 0.1, size=len(initial))

        result = minimize(
            self.bt_model.negative_log_posterior_and_grad,
            np.asarray(initial, dtype=float),
            jac=True,
            method=self.config.optimizer_method,
            options={
                "maxiter": self.config.optimizer_max_iter,
                "gtol": self.config.optimizer_gtol,
            },
        )

        alpha, hyper = self.bt_model.unpack(result.x)
        constrained = self.bt_model.prior.constrain(hyper)
        log_post = -float(result.fun)
        converged = bool(result.success and np.isfinite(log_post) and np.all(np.isfinite(result.x)))

        estimate = PointEstimate(
            alpha=alpha.copy(),
            sigma=constrained.get("sigma"),
            ranked=point_ranking(alpha),
            ranking=ranks_from_abilities(alpha),
            log_posterior=log_post,
            converged=converged,
            n_iterations=int(result.nit),
            message=str(result.message),
        )

        if not converged:
            message = (
                f"Point estimation did not converge after {estimate.n_iterations} "
                f"iterations: {estimate.message}"
            )
            logger.warning(message)
            warnings.warn(message, ConvergenceWarning, stacklevel=2)
        else:
            logger.info(
                "Point estimate converged in %d iterations (log posterior %.3f)",
                estimate.n_iterations,
                log_post,
            )

        self.point_estimate = estimate
        self._last_fit_time = datetime.now()
        self._fit_method = "point"
        return estimate

    def _ensure_built(self, dataset: Dataset | None) -> pm.Model:
        if dataset is not None:
            self.bt_model.build(dataset)
        if self.bt_model.model is None:
            raise ValueError("Model not built. Call model.build() first.")
        if isinstance(self.bt_model.prior, FlatPrior):
            logger.warning(
                "Sampling with a flat prior: the posterior may be improper "
                "if any player wins or loses every match"
            )
        return self.bt_model.model

    def fit_mcmc(
        self,
        dataset: Dataset | None = None,
        random_seed: int | None = None,
        progressbar: bool = False,
        **kwargs,
    ) -> az.InferenceData:
        """
        Fit model using MCMC (NUTS sampler).

        Args:
            dataset: Data to fit (uses the already-built model if None)
            random_seed: Random seed for reproducibility
            progressbar: Show sampling progress
            **kwargs: Additional arguments to pm.sample()

        Returns:
            ArviZ InferenceData with posterior samples and per-draw rankings
        """
        model = self._ensure_built(dataset)

        logger.info(
            "Starting MCMC: %d draws x %d chains (+ %d tuning)",
            self.config.mcmc_draws,
            self.config.mcmc_chains,
            self.config.mcmc_tune,
        )

        with model:
            trace = pm.sample(
                draws=self.config.mcmc_draws,
                tune=self.config.mcmc_tune,
                chains=self.config.mcmc_chains,
                cores=self.config.mcmc_cores,
                target_accept=self.config.mcmc_target_accept,
                random_seed=random_seed,
                progressbar=progressbar,
                **kwargs,
            )

        attach_posterior_ranking(trace)
        self._store_trace(trace, "mcmc")
        return trace

    def fit_vi(
        self,
        dataset: Dataset | None = None,
        random_seed: int | None = None,
        progressbar: bool = False,
        **kwargs,
    ) -> az.InferenceData:
        """
        Fit model using Variational Inference.

        Much faster than MCMC but may underestimate posterior uncertainty.
        The returned draws have a single chain, so R-hat is unavailable.
        """
        model = self._ensure_built(dataset)

        with model:
            logger.info("Starting VI optimization (%d iterations)", self.config.vi_n_iterations)
            approx = pm.fit(
                n=self.config.vi_n_iterations,
                method=self.config.vi_method,
                random_seed=random_seed,
                progressbar=progressbar,
                **kwargs,
            )
            trace = approx.sample(self.config.vi_n_samples, random_seed=random_seed)

        attach_posterior_ranking(trace)
        self._store_trace(trace, "vi")
        return trace

    def _store_trace(self, trace: az.InferenceData, method: str) -> None:
        self.trace = trace
        self.bt_model.trace = trace
        self._last_fit_time = datetime.now()
        self._fit_method = method

    def diagnostics(self) -> dict:
        """
        Compute convergence diagnostics for the fitted posterior.

        Returns:
            Dictionary with R-hat/ESS extremes, divergence count, a
            'converged' flag and the per-parameter summary table
        """
        if self.trace is None:
            raise ValueError("No trace available. Run inference first.")

        var_names = [v for v in ("alpha", "sigma") if v in self.trace.posterior]
        summary = az.summary(self.trace, var_names=var_names)

        divergences = 0
        if hasattr(self.trace, "sample_stats") and "diverging" in self.trace.sample_stats:
            divergences = int(self.trace.sample_stats["diverging"].values.sum())

        diagnostics = {
            "r_hat_max": float(summary["r_hat"].max()),
            "ess_bulk_min": float(summary["ess_bulk"].min()),
            "ess_tail_min": float(summary["ess_tail"].min()),
            "divergences": divergences,
            "fit_method": self._fit_method,
            "fit_time": self._last_fit_time,
            "summary": summary,
        }

        problems = []
        if np.isnan(diagnostics["r_hat_max"]):
            logger.info("R-hat unavailable (single chain or %s fit)", self._fit_method)
        elif diagnostics["r_hat_max"] > self.config.r_hat_threshold:
            problems.append(f"High R-hat detected ({diagnostics['r_hat_max']:.3f})")
        if diagnostics["ess_bulk_min"] < self.config.ess_threshold:
            problems.append(f"Low ESS detected ({diagnostics['ess_bulk_min']:.0f})")
        if divergences:
            problems.append(f"{divergences} divergent transitions")

        for problem in problems:
            logger.warning(problem)
            warnings.warn(problem, ConvergenceWarning, stacklevel=2)

        diagnostics["converged"] = not problems
        return diagnostics

    def save(self, name: str) -> Path:
        """
        Save fitted model to cache.

        Saves:
        - Trace (posterior samples), if any
        - Point estimate, if any
        - Model config and dataset
        - Metadata

        Args:
            name: Name for this checkpoint

        Returns:
            Path to saved checkpoint
        """
        checkpoint_dir = self.config.cache_dir / name
        checkpoint_dir.mkdir(parents=True, exist_ok=True)

        trace_path = checkpoint_dir / "trace.nc"
        if self.trace is not None:
            self.trace.to_netcdf(str(trace_path))
        else:
            # A posterior from an earlier fit must not outlive this one
            trace_path.unlink(missing_ok=True)

        dataset = self.bt_model.dataset
        metadata = {
            "model_config": self.bt_model.config,
            "dataset": dataset.to_dict() if dataset is not None else None,
            "point_estimate": self.point_estimate,
            "last_fit_time": self._last_fit_time,
            "fit_method": self._fit_method,
            "config": self.config,
        }

        with open(checkpoint_dir / "metadata.pkl", "wb") as f:
            pickle.dump(metadata, f)

        logger.info("Saved checkpoint to %s", checkpoint_dir)
        return checkpoint_dir

    @classmethod
    def load(
        cls,
        name: str,
        model: BradleyTerryModel | None = None,
        cache_dir: Path | None = None,
    ) -> "ModelFitter":
        """
        Load a previously saved model checkpoint.

        Args:
            name: Checkpoint name
            model: BradleyTerryModel to populate (rebuilt from saved config if None)
            cache_dir: Override default cache directory

        Returns:
            ModelFitter with restored state
        """
        cache_dir = cache_dir or Path(CACHE_DIR).expanduser()
        checkpoint_dir = Path(cache_dir) / name

        if not checkpoint_dir.exists():
            raise ValueError(f"Checkpoint not found: {checkpoint_dir}")

        with open(checkpoint_dir / "metadata.pkl", "rb") as f:
            metadata = pickle.load(f)

        if model is None:
            model = BradleyTerryModel(metadata["model_config"])
        if metadata.get("dataset") is not None:
            model.dataset = dataset_from_dict(metadata["dataset"])

        config = metadata.get("config") or InferenceConfig()
        config.cache_dir = Path(cache_dir)
        fitter = cls(model, config)
        fitter.point_estimate = metadata.get("point_estimate")
        fitter._last_fit_time = metadata.get("last_fit_time")
        fitter._fit_method = metadata.get("fit_method")

        trace_path = checkpoint_dir / "trace.nc"
        if trace_path.exists():
            fitter.trace = az.from_netcdf(str(trace_path))
            model.trace = fitter.trace

        logger.info("Loaded checkpoint from %s", checkpoint_dir)
        return fitter


def compare_vi_to_mcmc(
    mcmc_trace: az.InferenceData,
    vi_trace: az.InferenceData,
) -> dict:
    """
    Compare a VI approximation to MCMC ground truth.

    Returns:
        Dictionary with per-variable correlation of posterior means and the
        average ratio of posterior standard deviations (< 1 means VI
        underestimates uncertainty)
    """
    results = {}

    for var in ["alpha", "sigma"]:
        if var in mcmc_trace.posterior and var in vi_trace.posterior:
            mcmc_mean = mcmc_trace.posterior[var].mean(dim=["chain", "draw"]).values
            vi_mean = vi_trace.posterior[var].mean(dim=["chain", "draw"]).values

            mcmc_std = mcmc_trace.posterior[var].std(dim=["chain", "draw"]).values
            vi_std = vi_trace.posterior[var].std(dim=["chain", "draw"]).values

            corr = (
                float(np.corrcoef(mcmc_mean.ravel(), vi_mean.ravel())[0, 1])
                if mcmc_mean.size > 1 else float("nan")
            )

            results[var] = {
                "mean_correlation": corr,
                "std_ratio": float((vi_std / mcmc_std).mean()),
            }

    return results
