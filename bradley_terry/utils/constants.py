"""Shared constants for Bradley-Terry models."""

# Ability prior scale for the simple Bayesian model
ABILITY_PRIOR_SD = 1.0

# Hierarchical population scale: sigma ~ LogNormal(mu, sd)
SIGMA_PRIOR_MU = 0.0
SIGMA_PRIOR_SD = 0.5

# Convergence thresholds for posterior diagnostics
R_HAT_THRESHOLD = 1.01
ESS_THRESHOLD = 400

# Default checkpoint location
CACHE_DIR = "~/.cache/bradley_terry"
