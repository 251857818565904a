"""Shared utilities for the bradley-terry project."""

from .logging import (
    setup_logging,
    print_section,
    print_metric,
    print_success,
    print_error,
    print_warning,
    print_info,
)
from .constants import (
    ABILITY_PRIOR_SD,
    SIGMA_PRIOR_MU,
    SIGMA_PRIOR_SD,
)

__all__ = [
    "setup_logging",
    "print_section",
    "print_metric",
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
    "ABILITY_PRIOR_SD",
    "SIGMA_PRIOR_MU",
    "SIGMA_PRIOR_SD",
]
