"""
Bradley-Terry: paired-comparison ranking models.

This package provides:
- Individual and team Bradley-Terry likelihoods with stable log-odds maths
- Flat, Normal and hierarchical ability priors
- Seeded tournament simulation
- Point estimation (scipy) and posterior sampling (PyMC)
- Point rankings and posterior rank distributions
"""

__version__ = "0.1.0"
