"""Logging setup and console output helpers for the bradley-terry CLI."""

import logging

# Libraries that log every sampler/optimiser step at INFO
_CHATTY_LOGGERS = ("pymc", "pytensor", "arviz")

SECTION_WIDTH = 60


def setup_logging(verbose: bool = True) -> None:
    """
    Configure root logging for command-line use.

    verbose=False keeps warnings only, which also silences PyMC's progress
    messages; ConvergenceWarning and IdentifiabilityWarning are still logged.
    """
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def print_section(title: str) -> None:
    print("=" * SECTION_WIDTH)
    print(title)
    print("=" * SECTION_WIDTH)


def print_metric(label: str, value: float, fmt: str = ".3f") -> None:
    """Aligned 'label: value' line used for diagnostics."""
    print(f"  {label + ':':<12} {value:{fmt}}")


def print_success(message: str) -> None:
    print(f"✓ {message}")


def print_error(message: str) -> None:
    print(f"✗ {message}")


def print_warning(message: str) -> None:
    print(f"⚠️  {message}")


def print_info(message: str) -> None:
    print(f"ℹ  {message}")
