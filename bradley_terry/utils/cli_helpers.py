"""CLI helper functions shared across commands."""

from pathlib import Path
from typing import Optional, Tuple

from bradley_terry.model.core import BradleyTerryModel
from bradley_terry.model.data import Dataset, load_dataset
from bradley_terry.model.inference import ModelFitter
from bradley_terry.utils.logging import print_section, print_success, print_error, print_info


def load_checkpoint(
    checkpoint_name: str,
    cache_dir: Optional[Path] = None,
    verbose: bool = True,
) -> Tuple[BradleyTerryModel, ModelFitter]:
    """
    Load a fitted model checkpoint.

    Args:
        checkpoint_name: Name of checkpoint (e.g., "league_2024")
        cache_dir: Override default cache directory
        verbose: Print loading status

    Returns:
        (model, fitter) tuple

    Raises:
        ValueError: If checkpoint cannot be loaded
    """
    if verbose:
        print_info(f"Loading checkpoint: {checkpoint_name}")

    try:
        fitter = ModelFitter.load(checkpoint_name, cache_dir=cache_dir)
    except (ValueError, OSError) as e:
        if verbose:
            print_error(f"Failed to load checkpoint: {e}")
        raise

    model = fitter.bt_model
    if verbose:
        print_success("Loaded successfully")
        print_info(f"  Prior: {model.config.prior}")
        if model.dataset is not None:
            print_info(f"  Players: {model.dataset.n_players:,}")
            print_info(f"  Matches: {format_large_number(model.dataset.n_matches)}")

    return model, fitter


def setup_data(path: Path, verbose: bool = True) -> Dataset:
    """
    Load a match dataset from JSON.

    Args:
        path: JSON file following the K/N/player0/player1/y (or team) schema
        verbose: Print status messages

    Returns:
        MatchDataset or TeamMatchDataset
    """
    if verbose:
        print_section("LOADING DATA")

    dataset = load_dataset(path)

    if verbose:
        kind = f"team (J={dataset.team_size})" if dataset.is_team else "individual"
        print_success(f"Loaded: {dataset.n_matches:,} {kind} matches")
        print_info(f"  Players: {dataset.n_players:,}")
        print_info(f"  Side-1 win rate: {dataset.y.mean():.3f}" if dataset.n_matches else "  No matches")

    return dataset


def format_large_number(n: int, precision: int = 1) -> str:
    """Format large numbers with K, M, B suffixes."""
    if n >= 1_000_000_000:
        return f"{n / 1_000_000_000:.{precision}f}B"
    elif n >= 1_000_000:
        return f"{n / 1_000_000:.{precision}f}M"
    elif n >= 1_000:
        return f"{n / 1_000:.{precision}f}K"
    return str(n)
