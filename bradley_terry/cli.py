"""
Command-line interface for Bradley-Terry ranking.

Typical workflow:
    bradley-terry simulate --players 50 --matches 2500 --seed 1 --output data.json
    bradley-terry fit --data data.json --prior hierarchical --method mcmc --checkpoint demo
    bradley-terry rankings --checkpoint demo --top 10
    bradley-terry predict --checkpoint demo --side1 3 --side0 7
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np


def _player_list(value: str) -> list[int]:
    try:
        return [int(v) for v in value.split(",") if v.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected comma-separated player indices: {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bradley-Terry paired-comparison ranking"
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Checkpoint directory (default: ~/.cache/bradley_terry)"
    )
    parser.add_argument("--quiet", action="store_true", help="Only log warnings")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Simulate command
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Simulate a synthetic tournament"
    )
    simulate_parser.add_argument("--players", type=int, required=True, help="Number of players K")
    simulate_parser.add_argument("--matches", type=int, required=True, help="Number of matches N")
    simulate_parser.add_argument(
        "--team-size",
        type=int,
        default=None,
        help="Players per team J (individual matches if omitted)"
    )
    simulate_parser.add_argument("--sigma", type=float, default=1.0, help="Ability scale")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    simulate_parser.add_argument("--output", type=Path, required=True, help="Dataset JSON path")
    simulate_parser.add_argument(
        "--truth-output",
        type=Path,
        default=None,
        help="Optional JSON path for the true abilities"
    )

    # Fit command
    fit_parser = subparsers.add_parser(
        "fit",
        help="Fit a model to a dataset"
    )
    fit_parser.add_argument("--data", type=Path, required=True, help="Dataset JSON path")
    fit_parser.add_argument(
        "--prior",
        choices=["none", "normal", "hierarchical"],
        default="normal",
        help="Ability prior (none = maximum likelihood)"
    )
    fit_parser.add_argument(
        "--method",
        choices=["map", "mcmc", "vi"],
        default="map",
        help="Inference method (default: map)"
    )
    fit_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    fit_parser.add_argument("--draws", type=int, default=None, help="MCMC draws per chain")
    fit_parser.add_argument("--chains", type=int, default=None, help="MCMC chains")
    fit_parser.add_argument(
        "--checkpoint",
        type=str,
        default=None,
        help="Checkpoint name to save"
    )
    fit_parser.add_argument("--top", type=int, default=20, help="Number of players to show")

    # Rankings command
    rankings_parser = subparsers.add_parser(
        "rankings",
        help="Display rankings from a checkpoint"
    )
    rankings_parser.add_argument("--checkpoint", type=str, default="latest", help="Checkpoint to load")
    rankings_parser.add_argument("--top", type=int, default=20, help="Number of entries to show")

    # Predict command
    predict_parser = subparsers.add_parser(
        "predict",
        help="Win probability for side1 against side0"
    )
    predict_parser.add_argument("--checkpoint", type=str, default="latest", help="Checkpoint to load")
    predict_parser.add_argument("--side1", type=_player_list, required=True, help="e.g. 3 or 3,4")
    predict_parser.add_argument("--side0", type=_player_list, required=True, help="e.g. 1 or 1,2")

    return parser


def main(argv: list[str] | None = None) -> int:
    from bradley_terry.utils.logging import setup_logging

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=not args.quiet)

    if args.command == "simulate":
        return run_simulate(args)
    elif args.command == "fit":
        return run_fit(args)
    elif args.command == "rankings":
        return run_rankings(args)
    elif args.command == "predict":
        return run_predict(args)
    parser.print_help()
    return 1


def run_simulate(args) -> int:
    """Simulate a tournament and write it to disk."""
    import json

    from bradley_terry.model.data import save_dataset
    from bradley_terry.model.simulate import simulate_matches, simulate_team_matches
    from bradley_terry.utils.logging import print_success

    if args.team_size is None:
        sim = simulate_matches(args.players, args.matches, random_seed=args.seed, sigma=args.sigma)
    else:
        sim = simulate_team_matches(
            args.players, args.team_size, args.matches, random_seed=args.seed, sigma=args.sigma
        )

    save_dataset(sim.dataset, args.output)
    print_success(f"Wrote {sim.dataset.n_matches} matches for {sim.n_players} players to {args.output}")

    if args.truth_output is not None:
        args.truth_output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.truth_output, "w") as f:
            json.dump({"alpha": sim.abilities.tolist(), "seed": args.seed}, f)
        print_success(f"Wrote true abilities to {args.truth_output}")
    return 0


def run_fit(args) -> int:
    """Fit a model and optionally save a checkpoint."""
    from bradley_terry.model.core import BradleyTerryModel, ModelConfig
    from bradley_terry.model.inference import InferenceConfig, ModelFitter
    from bradley_terry.utils.cli_helpers import setup_data
    from bradley_terry.utils.logging import print_metric, print_section, print_success, print_warning

    dataset = setup_data(args.data)

    model = BradleyTerryModel(ModelConfig(prior=args.prior))
    config = InferenceConfig()
    if args.cache_dir is not None:
        config.cache_dir = args.cache_dir
    if args.draws is not None:
        config.mcmc_draws = args.draws
    if args.chains is not None:
        config.mcmc_chains = args.chains
    fitter = ModelFitter(model, config)

    print_section(f"FITTING ({args.method.upper()}, prior={args.prior})")
    if args.method == "map":
        estimate = fitter.fit_point(dataset, random_seed=args.seed)
        print(estimate.summary())
        if not estimate.converged:
            print_warning("Optimiser did not converge; inspect before using these estimates")
    else:
        if args.method == "mcmc":
            fitter.fit_mcmc(dataset, random_seed=args.seed)
        else:
            fitter.fit_vi(dataset, random_seed=args.seed)

        diag = fitter.diagnostics()
        print_metric("R-hat max", diag["r_hat_max"])
        print_metric("ESS min", diag["ess_bulk_min"], ".0f")
        print_metric("Divergences", diag["divergences"], "d")
        if not diag["converged"]:
            print_warning("Convergence diagnostics flagged problems; do not trust these draws yet")
        _print_posterior_rankings(model, args.top)

    if args.checkpoint:
        path = fitter.save(args.checkpoint)
        print_success(f"Saved checkpoint: {path}")
    return 0


def _print_posterior_rankings(model, top: int) -> None:
    rankings = model.get_player_rankings(top_n=top)
    print(f"\nTop {len(rankings)} Players:")
    print("=" * 60)
    for i, row in rankings.iterrows():
        print(
            f"{i+1:2d}. player {int(row['player']):<6d} "
            f"Ability: {row['ability_mean']:+.3f} "
            f"(±{row['ability_std']:.3f}) "
            f"rank {row['mean_rank']:.1f} [{int(row['rank_lower'])}-{int(row['rank_upper'])}]"
        )


def run_rankings(args) -> int:
    """Display rankings from saved checkpoint."""
    from bradley_terry.utils.cli_helpers import load_checkpoint
    from bradley_terry.utils.logging import print_error

    try:
        model, fitter = load_checkpoint(args.checkpoint, cache_dir=args.cache_dir)
    except (ValueError, OSError):
        return 1

    if fitter.trace is not None:
        _print_posterior_rankings(model, args.top)
    elif fitter.point_estimate is not None:
        table = fitter.point_estimate.to_dataframe().head(args.top)
        print(f"\nTop {len(table)} Players:")
        print("=" * 60)
        for _, row in table.iterrows():
            print(f"{int(row['rank']):2d}. player {int(row['player']):<6d} Ability: {row['ability']:+.3f}")
    else:
        print_error("Checkpoint has neither posterior draws nor a point estimate")
        return 1
    return 0


def run_predict(args) -> int:
    """Predict the probability that side1 beats side0."""
    from bradley_terry.model.likelihood import team_win_probability
    from bradley_terry.model.ranking import posterior_ability_draws
    from bradley_terry.utils.cli_helpers import load_checkpoint
    from bradley_terry.utils.logging import print_error

    try:
        model, fitter = load_checkpoint(args.checkpoint, cache_dir=args.cache_dir, verbose=False)
    except (ValueError, OSError) as e:
        print_error(f"Failed to load checkpoint: {e}")
        return 1

    try:
        if fitter.trace is not None:
            draws = posterior_ability_draws(fitter.trace)
            probs = np.array([team_win_probability(a, args.side1, args.side0) for a in draws])
            print(
                f"P({args.side1} beats {args.side0}) = {probs.mean():.3f} "
                f"(90% CI {np.percentile(probs, 5):.3f}-{np.percentile(probs, 95):.3f})"
            )
        elif fitter.point_estimate is not None:
            p = team_win_probability(fitter.point_estimate.alpha, args.side1, args.side0)
            print(f"P({args.side1} beats {args.side0}) = {p:.3f}")
        else:
            print_error("Checkpoint has neither posterior draws nor a point estimate")
            return 1
    except IndexError as e:
        print_error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
