"""
Example: Bradley-Terry Walkthrough

Demonstrates how to:
1. Simulate a tournament with known abilities
2. Recover abilities by maximum likelihood
3. Fit the Bayesian model (Normal prior) with NUTS
4. Let the data choose the ability scale (hierarchical prior)
5. Rank players in team matches
"""

import warnings

import numpy as np

from bradley_terry.model.core import BradleyTerryModel, ModelConfig
from bradley_terry.model.data import MatchDataset
from bradley_terry.model.data_validation import check_identifiability
from bradley_terry.model.inference import ConvergenceWarning, InferenceConfig, ModelFitter
from bradley_terry.model.simulate import simulate_matches, simulate_team_matches
from bradley_terry.model.validation import (
    baseline_metrics,
    compute_validation_metrics,
    random_match_split,
    recovery_metrics,
)

SEED = 1234

# Short sampler runs so the walkthrough finishes in a few minutes
QUICK_MCMC = InferenceConfig(mcmc_draws=500, mcmc_tune=500, mcmc_chains=2, mcmc_cores=1)


# ============================================================================
# Example 1: Simulated tournament + maximum likelihood
# ============================================================================

def example_maximum_likelihood():
    """Recover simulated abilities with no prior at all."""

    print("=" * 70)
    print("Example 1: Maximum likelihood on a simulated tournament")
    print("=" * 70)
    print()

    sim = simulate_matches(n_players=50, n_matches=2500, random_seed=SEED)
    print(f"Simulated {sim.dataset.n_matches} matches between {sim.n_players} players")
    print(f"Identifiability: {check_identifiability(sim.dataset, warn=False)['identifiable']}")

    fitter = ModelFitter(BradleyTerryModel(ModelConfig(prior="none")))
    estimate = fitter.fit_point(sim.dataset)
    print(estimate.summary())

    recovery = recovery_metrics(sim.abilities, estimate.alpha)
    print(f"\nCorrelation with truth: {recovery['pearson']:.3f}")
    print(f"RMSE (after centering):  {recovery['rmse']:.3f}")
    print()

    return sim


# ============================================================================
# Example 2: Why a prior helps
# ============================================================================

def example_single_match():
    """One match, two players: the MLE runs off to infinity, the prior does not."""

    print("=" * 70)
    print("Example 2: A single match")
    print("=" * 70)
    print()

    dataset = MatchDataset(n_players=2, player0=[1], player1=[2], y=[1])

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        mle = ModelFitter(BradleyTerryModel(ModelConfig(prior="none"))).fit_point(dataset)
    mode = ModelFitter(BradleyTerryModel(ModelConfig(prior="normal"))).fit_point(dataset)

    print(f"MLE gap (alpha2 - alpha1):            {mle.alpha[1] - mle.alpha[0]:8.2f}")
    print(f"Posterior mode gap, Normal(0,1) prior: {mode.alpha[1] - mode.alpha[0]:8.2f}")
    print()


# ============================================================================
# Example 3: Bayesian model with NUTS
# ============================================================================

def example_bayesian(sim):
    """Posterior draws give a distribution over rankings, not just one."""

    print("=" * 70)
    print("Example 3: Bayesian Bradley-Terry with NUTS")
    print("=" * 70)
    print()

    split = random_match_split(sim.dataset, test_fraction=0.2, random_seed=SEED)

    model = BradleyTerryModel(ModelConfig(prior="normal"))
    fitter = ModelFitter(model, QUICK_MCMC)
    trace = fitter.fit_mcmc(split.train, random_seed=SEED)

    diag = fitter.diagnostics()
    print(f"R-hat max: {diag['r_hat_max']:.3f}   ESS min: {diag['ess_bulk_min']:.0f}")

    rankings = model.get_player_rankings(top_n=10)
    print("\nTop 10 by posterior mean:")
    print(rankings[["player", "ability_mean", "ability_std", "mean_rank", "rank_lower", "rank_upper"]]
          .to_string(index=False, float_format="%.2f"))

    draws = trace.posterior["alpha"].values.reshape(-1, sim.n_players)
    held_out = compute_validation_metrics(draws, split.test)
    coin_flip = baseline_metrics(split.test)
    print(f"\nHeld-out log loss: {held_out.log_loss:.3f} (coin flip {coin_flip.log_loss:.3f})")
    print(f"Held-out accuracy: {held_out.accuracy:.3f}")
    print()


# ============================================================================
# Example 4: Hierarchical prior
# ============================================================================

def example_hierarchical():
    """Estimate the spread of abilities instead of fixing it at 1."""

    print("=" * 70)
    print("Example 4: Hierarchical prior")
    print("=" * 70)
    print()

    sim = simulate_matches(n_players=30, n_matches=1500, random_seed=SEED + 1, sigma=2.0)

    model = BradleyTerryModel(ModelConfig(prior="hierarchical"))
    fitter = ModelFitter(model, QUICK_MCMC)
    trace = fitter.fit_mcmc(sim.dataset, random_seed=SEED)

    sigma = trace.posterior["sigma"].values.ravel()
    print(f"True ability sd:  {np.std(sim.abilities):.2f}")
    print(f"Posterior sigma:  {sigma.mean():.2f} "
          f"(90% interval {np.percentile(sigma, 5):.2f}-{np.percentile(sigma, 95):.2f})")
    print()


# ============================================================================
# Example 5: Team matches
# ============================================================================

def example_teams():
    """Rank individuals who only ever play in teams of three."""

    print("=" * 70)
    print("Example 5: Team matches (J = 3)")
    print("=" * 70)
    print()

    sim = simulate_team_matches(n_players=30, team_size=3, n_matches=2000, random_seed=SEED + 2)
    print(f"Identifiability: {check_identifiability(sim.dataset, warn=False)}")

    fitter = ModelFitter(BradleyTerryModel(ModelConfig(prior="normal")))
    estimate = fitter.fit_point(sim.dataset)

    recovery = recovery_metrics(sim.abilities, estimate.alpha)
    print(f"Spearman correlation with truth: {recovery['spearman']:.3f}")
    print(estimate.to_dataframe().head(5).to_string(index=False))
    print()


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    sim = example_maximum_likelihood()
    print("\n\n")

    example_single_match()
    print("\n\n")

    example_bayesian(sim)
    print("\n\n")

    example_hierarchical()
    print("\n\n")

    example_teams()

    print("\n" + "=" * 70)
    print("Examples complete!")
    print("=" * 70)
