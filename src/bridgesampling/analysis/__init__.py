"""Analysis tools for bridge sampling results.

This module provides consumers of finished bridge sampling runs:

- Relative mean-squared error and percentage error of an estimate
- Bayes factors between two models, with propagated error
- Posterior model probabilities across several models
"""

from .comparison import BayesFactor, bayes_factor, posterior_model_probabilities
from .error_measures import ErrorEstimate, EssMethod, error_measures

__all__ = [
    "BayesFactor",
    "ErrorEstimate",
    "EssMethod",
    "bayes_factor",
    "error_measures",
    "posterior_model_probabilities",
]
