"""Bayes factors and posterior model probabilities from bridge sampling runs."""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from ..bridge.bridge_sampler import BridgeResult
from ..utils.exceptions import InputError, InvalidPriorError
from ..utils.numerics import log_normalize
from ..utils.types import FloatArray
from .error_measures import error_measures

PRIOR_SUM_TOLERANCE = 1e-8


@dataclass(frozen=True)
class BayesFactor:
    """Bayes factor of model A over model B.

    Attributes
    ----------
    log_bf : float
        ``logml_A - logml_B``.
    re2 : float
        Relative mean-squared error of the Bayes factor, the sum of the
        relative mean-squared errors of the two independent estimates.
    logarithm : bool
        Whether `value` reports the log or the natural scale.
    """

    log_bf: float
    re2: float = 0.0
    logarithm: bool = False

    @property
    def bf(self) -> float:
        """Bayes factor on the natural scale."""
        return float(np.exp(self.log_bf))

    @property
    def value(self) -> float:
        """The Bayes factor on the requested scale."""
        return self.log_bf if self.logarithm else self.bf

    @property
    def percentage(self) -> float:
        """Approximate percentage error of the Bayes factor."""
        return 100.0 * float(np.sqrt(self.re2))

    def reverse(self) -> "BayesFactor":
        """Bayes factor of model B over model A."""
        return BayesFactor(log_bf=-self.log_bf, re2=self.re2, logarithm=self.logarithm)


def _log_marginal_likelihood(result: BridgeResult | float) -> float:
    if isinstance(result, BridgeResult):
        return result.log_marginal_likelihood
    logml = float(result)
    if not np.isfinite(logml):
        raise InputError(f"Log marginal likelihood must be finite, got {logml}.")
    return logml


def _relative_mse(result: BridgeResult | float) -> float:
    if isinstance(result, BridgeResult):
        return error_measures(result).re2
    return 0.0


def bayes_factor(
    result_a: BridgeResult | float,
    result_b: BridgeResult | float,
    log: bool = False,
) -> BayesFactor:
    """Bayes factor in favour of model A over model B.

    Parameters
    ----------
    result_a, result_b : BridgeResult or float
        Bridge sampling results, or bare log marginal likelihoods whose error
        is taken to be zero.
    log : bool, optional
        Whether `BayesFactor.value` reports the log Bayes factor.
        Default is False.

    Returns
    -------
    BayesFactor
        The Bayes factor with its propagated relative mean-squared error. Use
        `BayesFactor.reverse` for model B over model A.
    """
    log_bf = _log_marginal_likelihood(result_a) - _log_marginal_likelihood(result_b)
    re2 = _relative_mse(result_a) + _relative_mse(result_b)
    return BayesFactor(log_bf=log_bf, re2=re2, logarithm=log)


def _validate_prior(prior_prob: npt.ArrayLike | None, n_models: int) -> FloatArray:
    if prior_prob is None:
        return np.full(n_models, 1.0 / n_models)
    prior = np.asarray(prior_prob, dtype=float).ravel()
    if len(prior) != n_models:
        raise InvalidPriorError(
            f"Got {len(prior)} prior probabilities for {n_models} models."
        )
    if not np.all(np.isfinite(prior)) or np.any(prior < 0):
        raise InvalidPriorError("Prior probabilities must be finite and non-negative.")
    if abs(prior.sum() - 1.0) > PRIOR_SUM_TOLERANCE:
        raise InvalidPriorError(
            f"Prior probabilities must sum to one, got {prior.sum():.10g}."
        )
    return prior


def posterior_model_probabilities(
    results: Sequence[BridgeResult | float],
    prior_prob: npt.ArrayLike | None = None,
) -> FloatArray:
    """Posterior probabilities of a set of models.

    Computes ``prior_i * exp(logml_i)`` normalized to one in log space, with
    the maximum subtracted before exponentiating.

    Parameters
    ----------
    results : sequence of BridgeResult or float
        One result (or log marginal likelihood) per model.
    prior_prob : array_like, optional
        Prior model probabilities aligned with `results`. Default is uniform.

    Returns
    -------
    FloatArray
        Posterior model probabilities aligned with `results`.

    Raises
    ------
    InvalidPriorError
        If `prior_prob` has the wrong length, negative entries, or does not
        sum to one.
    """
    if len(results) == 0:
        raise InvalidPriorError("At least one model is required.")
    logml = np.array([_log_marginal_likelihood(r) for r in results])
    prior = _validate_prior(prior_prob, len(logml))
    with np.errstate(divide="ignore"):
        log_prior = np.log(prior)
    return log_normalize(logml + log_prior)
