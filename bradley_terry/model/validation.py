"""
Validation and testing infrastructure for Bradley-Terry models.

Includes:
- Train/test match splits and k-fold cross-validation
- Held-out match prediction metrics (log loss, Brier score, accuracy)
- Recovery of simulated ground-truth abilities
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import stats

from bradley_terry.model.data import Dataset
from bradley_terry.model.likelihood import inv_logit, match_log_odds, pointwise_log_likelihood
from bradley_terry.model.simulate import center_abilities


@dataclass
class ValidationSplit:
    """
    Container for train/test split.

    Attributes:
        train: Training matches
        test: Held-out matches
        split_type: Type of split used
        metadata: Additional split information
    """

    train: Dataset
    test: Dataset
    split_type: str
    metadata: dict


def random_match_split(
    dataset: Dataset,
    test_fraction: float = 0.2,
    random_seed: int = 42,
) -> ValidationSplit:
    """
    Randomly split matches into train/test.

    Args:
        dataset: Full match dataset
        test_fraction: Fraction of matches to hold out
        random_seed: Random seed for reproducibility

    Returns:
        ValidationSplit with train/test datasets over the same K players
    """
    if not 0 <= test_fraction < 1:
        raise ValueError(f"test_fraction must be in [0, 1), got {test_fraction}")

    rng = np.random.default_rng(random_seed)
    n_test = int(dataset.n_matches * test_fraction)
    shuffled = rng.permutation(dataset.n_matches)
    test_idx = np.sort(shuffled[:n_test])
    train_idx = np.sort(shuffled[n_test:])

    return ValidationSplit(
        train=dataset.subset(train_idx),
        test=dataset.subset(test_idx),
        split_type="random_match",
        metadata={
            "n_train_matches": len(train_idx),
            "n_test_matches": n_test,
            "random_seed": random_seed,
        },
    )


def cross_validation(
    dataset: Dataset,
    n_folds: int = 5,
    random_seed: int = 42,
) -> list[ValidationSplit]:
    """
    Create random k-fold splits over matches.

    Returns:
        List of ValidationSplit objects (one per fold)
    """
    if n_folds < 2:
        raise ValueError(f"n_folds must be at least 2, got {n_folds}")

    rng = np.random.default_rng(random_seed)
    match_ids = rng.permutation(dataset.n_matches)
    fold_size = len(match_ids) // n_folds

    folds = []
    for i in range(n_folds):
        test_start = i * fold_size
        test_end = (i + 1) * fold_size if i < n_folds - 1 else len(match_ids)

        test_idx = np.sort(match_ids[test_start:test_end])
        train_idx = np.sort(np.concatenate([match_ids[:test_start], match_ids[test_end:]]))

        folds.append(
            ValidationSplit(
                train=dataset.subset(train_idx),
                test=dataset.subset(test_idx),
                split_type=f"random_cv_fold_{i}",
                metadata={"fold": i, "n_folds": n_folds},
            )
        )

    return folds


@dataclass
class ValidationMetrics:
    """
    Container for held-out prediction results.

    Attributes:
        log_loss: Mean negative log-likelihood per match
        brier_score: Mean squared error of the win probability
        accuracy: Fraction of matches where the favourite won
        metadata: Additional information
    """

    log_loss: float
    brier_score: float
    accuracy: float
    metadata: dict


def predicted_win_probabilities(alpha_or_draws, dataset: Dataset) -> np.ndarray:
    """
    P(side1 wins) per match.

    Accepts a single ability vector (K,) or posterior draws (M, K); draws
    are averaged on the probability scale.
    """
    alpha_or_draws = np.asarray(alpha_or_draws, dtype=float)
    if alpha_or_draws.ndim == 1:
        return inv_logit(match_log_odds(alpha_or_draws, dataset))
    probs = np.stack([inv_logit(match_log_odds(a, dataset)) for a in alpha_or_draws])
    return probs.mean(axis=0)


def compute_validation_metrics(alpha_or_draws, test: Dataset) -> ValidationMetrics:
    """
    Evaluate predictions on held-out matches.

    Args:
        alpha_or_draws: Point estimate (K,) or posterior draws (M, K)
        test: Held-out matches

    Returns:
        ValidationMetrics
    """
    n = test.n_matches
    if n == 0:
        nan = float("nan")
        return ValidationMetrics(nan, nan, nan, {"n_matches": 0})

    alpha_or_draws = np.asarray(alpha_or_draws, dtype=float)
    p = predicted_win_probabilities(alpha_or_draws, test)

    if alpha_or_draws.ndim == 1:
        log_loss = -float(np.mean(pointwise_log_likelihood(alpha_or_draws, test)))
    else:
        # Posterior predictive: log of draw-averaged probability
        p_obs = np.where(test.y == 1, p, 1 - p)
        log_loss = -float(np.mean(np.log(np.clip(p_obs, 1e-300, None))))

    brier = float(np.mean((p - test.y) ** 2))
    accuracy = float(np.mean((p > 0.5) == (test.y == 1)))

    return ValidationMetrics(
        log_loss=log_loss,
        brier_score=brier,
        accuracy=accuracy,
        metadata={
            "n_matches": n,
            "n_draws": 1 if alpha_or_draws.ndim == 1 else len(alpha_or_draws),
        },
    )


def baseline_metrics(test: Dataset) -> ValidationMetrics:
    """Metrics for the coin-flip predictor (all abilities equal)."""
    return compute_validation_metrics(np.zeros(test.n_players), test)


def recovery_metrics(true_alpha, estimated_alpha) -> dict[str, float]:
    """
    Compare estimated abilities with simulated truth.

    Both vectors are centered first, since abilities are only identified
    up to a common shift.

    Returns:
        Dictionary with pearson, spearman and rmse
    """
    true_alpha = np.asarray(true_alpha, dtype=float)
    estimated_alpha = np.asarray(estimated_alpha, dtype=float)
    if true_alpha.shape != estimated_alpha.shape:
        raise ValueError(
            f"Shape mismatch: {true_alpha.shape} vs {estimated_alpha.shape}"
        )

    true_c = center_abilities(true_alpha)
    est_c = center_abilities(estimated_alpha)

    return {
        "pearson": float(stats.pearsonr(true_c, est_c)[0]),
        "spearman": float(stats.spearmanr(true_c, est_c)[0]),
        "rmse": float(np.sqrt(np.mean((true_c - est_c) ** 2))),
    }
