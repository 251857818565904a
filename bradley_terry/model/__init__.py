"""
Bradley-Terry modelling components.
"""

from bradley_terry.model.data import (
    DatasetError,
    MatchDataset,
    TeamMatchDataset,
    dataset_from_dict,
    load_dataset,
    save_dataset,
)
from bradley_terry.model.likelihood import (
    inv_logit,
    log_inv_logit,
    bernoulli_logit_logpmf,
    win_probability,
    team_win_probability,
    log_likelihood,
    grad_log_likelihood,
)
from bradley_terry.model.priors import (
    AbilityPrior,
    FlatPrior,
    NormalPrior,
    HierarchicalPrior,
    make_prior,
)
from bradley_terry.model.simulate import (
    SimulatedTournament,
    center_abilities,
    simulate_matches,
    simulate_team_matches,
)
from bradley_terry.model.core import BradleyTerryModel, ModelConfig
from bradley_terry.model.inference import (
    ModelFitter,
    InferenceConfig,
    PointEstimate,
    ConvergenceWarning,
)
from bradley_terry.model.ranking import (
    RankDistribution,
    point_ranking,
    ranks_from_abilities,
    posterior_ranks,
    rank_distribution,
)
from bradley_terry.model.data_validation import (
    IdentifiabilityWarning,
    check_player_coverage,
    check_identifiability,
)
from bradley_terry.model.validation import (
    ValidationSplit,
    ValidationMetrics,
    random_match_split,
    cross_validation,
    compute_validation_metrics,
    recovery_metrics,
)

__all__ = [
    "DatasetError",
    "MatchDataset",
    "TeamMatchDataset",
    "dataset_from_dict",
    "load_dataset",
    "save_dataset",
    "inv_logit",
    "log_inv_logit",
    "bernoulli_logit_logpmf",
    "win_probability",
    "team_win_probability",
    "log_likelihood",
    "grad_log_likelihood",
    "AbilityPrior",
    "FlatPrior",
    "NormalPrior",
    "HierarchicalPrior",
    "make_prior",
    "SimulatedTournament",
    "center_abilities",
    "simulate_matches",
    "simulate_team_matches",
    "BradleyTerryModel",
    "ModelConfig",
    "ModelFitter",
    "InferenceConfig",
    "PointEstimate",
    "ConvergenceWarning",
    "RankDistribution",
    "point_ranking",
    "ranks_from_abilities",
    "posterior_ranks",
    "rank_distribution",
    "IdentifiabilityWarning",
    "check_player_coverage",
    "check_identifiability",
    "ValidationSplit",
    "ValidationMetrics",
    "random_match_split",
    "cross_validation",
    "compute_validation_metrics",
    "recovery_metrics",
]
