"""Approximate relative mean-squared error of a bridge sampling estimate.

Implements the approximation of Fruhwirth-Schnatter (2004) for the optimal
bridge function. With ``s1, s2`` the mixture weights of the iterative scheme,

    f1_j = 1 / (s1 + s2 * exp(logml - l2_j))   (proposal draws)
    f2_i = 1 / (s1 * exp(l1_i - logml) + s2)   (posterior draws)

and

    RE^2 = Var(f1) / (N2 E[f1]^2) + tau_f2 * Var(f2) / (N1 E[f2]^2)

where ``tau_f2`` is the normalized spectral density at zero of ``f2``. Only
the posterior-draw sequence is corrected for autocorrelation; the proposal
draws are independent by construction. Both ``f1`` and ``f2`` are bounded,
so the computation cannot overflow however large the log densities are.

References
----------
Fruhwirth-Schnatter, S. (2004). Estimating marginal likelihoods for mixture and
Markov switching models using bridge sampling techniques. The Econometrics
Journal, 7, 143-167.
"""

from dataclasses import dataclass
from enum import StrEnum, auto

import numpy as np

from ..bridge.bridge_sampler import BridgeResult
from ..utils.autocorr import batch_means_time, integrated_time
from ..utils.exceptions import InputError
from ..utils.types import FloatArray


class EssMethod(StrEnum):
    """Estimators of the autocorrelation correction."""

    AUTOCORR = auto()
    BATCH_MEANS = auto()


@dataclass(frozen=True)
class ErrorEstimate:
    """Relative error of the marginal likelihood (not of its logarithm).

    Attributes
    ----------
    re2 : float
        Approximate relative mean-squared error.
    cv : float
        Coefficient of variation, ``sqrt(re2)``.
    percentage : float
        ``100 * cv``.
    """

    re2: float

    @property
    def cv(self) -> float:
        return float(np.sqrt(self.re2))

    @property
    def percentage(self) -> float:
        return 100.0 * self.cv


def _relative_variance(f: FloatArray) -> float:
    return float(np.var(f, ddof=1) / np.mean(f) ** 2)


def error_measures(
    result: BridgeResult,
    ess_method: EssMethod | str = EssMethod.AUTOCORR,
) -> ErrorEstimate:
    """Estimate the relative mean-squared error of a bridge sampling result.

    Parameters
    ----------
    result : BridgeResult
        Output of `run_bridge_sampler`.
    ess_method : EssMethod or str, optional
        ``autocorr`` (default) uses the FFT integrated autocorrelation time
        averaged over chains; ``batch_means`` uses non-overlapping batch means.

    Returns
    -------
    ErrorEstimate
        Relative mean-squared error and the derived percentage error.

    Raises
    ------
    InputError
        If `ess_method` is not a known estimator.
    """
    try:
        ess_method = EssMethod(ess_method)
    except ValueError as e:
        raise InputError(str(e)) from e
    weights = result.weights
    logml = result.log_marginal_likelihood
    log_s1, log_s2 = np.log(weights.s1), np.log(weights.s2)

    f1 = np.exp(-np.logaddexp(log_s1, log_s2 + logml - weights.log_weights_proposal))
    f2 = np.exp(-np.logaddexp(log_s1 + weights.log_weights_posterior - logml, log_s2))

    chains = f2.reshape(weights.n_chains, -1)
    if ess_method is EssMethod.BATCH_MEANS:
        tau_f2 = batch_means_time(chains)
    else:
        tau_f2 = integrated_time(chains)

    term1 = _relative_variance(f1) / weights.n2
    term2 = tau_f2 * _relative_variance(f2) / weights.n1
    return ErrorEstimate(re2=float(term1 + term2))
