"""Iterative scheme of Meng & Wong (1996) for the optimal bridge function.

The scheme alternates between the posterior draws and the proposal draws to
update an estimate of the ratio of normalizing constants until the estimate
stops changing. All sums are computed in log space.

References
----------
Meng, X.-L. & Wong, W. H. (1996). Simulating ratios of normalizing constants
via a simple identity: a theoretical exploration. Statistica Sinica, 6, 831-860.

Gronau, Q. F. et al. (2017). A tutorial on bridge sampling. Journal of
Mathematical Psychology, 81, 80-97.
"""

import logging
from dataclasses import dataclass, replace
from enum import StrEnum, auto

import numpy as np
import numpy.typing as npt

from ..utils.exceptions import (
    IterationCancelledError,
    NumericalInstabilityError,
)
from ..utils.numerics import log_sum_exp, relative_change
from ..utils.types import CancellationToken, FloatArray
from .config import ConvergenceCriterion

logger = logging.getLogger(__name__)


class IterationStatus(StrEnum):
    """States of the iterative scheme."""

    INITIALIZING = auto()
    ITERATING = auto()
    CONVERGED = auto()
    MAX_ITER_REACHED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class BridgeIteration:
    """Immutable state of the iterative scheme after some number of iterations.

    `log_r` is the log ratio estimate relative to the centring constant
    `lstar`, so the log marginal likelihood is ``log_r + lstar``.
    """

    status: IterationStatus
    iteration: int
    log_r: float
    previous_log_r: float
    criterion_value: float = np.inf


@dataclass(frozen=True)
class IterationResult:
    """Outcome of the iterative scheme."""

    log_marginal_likelihood: float
    n_iter: int
    converged: bool
    status: IterationStatus


@dataclass(frozen=True)
class _Weights:
    """Centred log weights and log mixture coefficients, fixed for a run."""

    l1: FloatArray
    l2: FloatArray
    log_s1: float
    log_s2: float
    log_n_ratio: float
    lstar: float


def _prepare_weights(l1: FloatArray, l2: FloatArray, n_eff: float) -> _Weights:
    n1, n2 = len(l1), len(l2)
    lstar = float(np.median(l1))
    return _Weights(
        l1=l1 - lstar,
        l2=l2 - lstar,
        log_s1=float(np.log(n_eff) - np.log(n_eff + n2)),
        log_s2=float(np.log(n2) - np.log(n_eff + n2)),
        log_n_ratio=float(np.log(n1) - np.log(n2)),
        lstar=lstar,
    )


def _iteration_step(
    state: BridgeIteration,
    weights: _Weights,
    criterion: ConvergenceCriterion,
    tol: float,
) -> BridgeIteration:
    """Compute the next ratio estimate from the current one."""
    log_s2_r = weights.log_s2 + state.log_r
    log_num = weights.l2 - np.logaddexp(weights.log_s1 + weights.l2, log_s2_r)
    log_den = -np.logaddexp(weights.log_s1 + weights.l1, log_s2_r)
    log_r = float(weights.log_n_ratio + log_sum_exp(log_num) - log_sum_exp(log_den))

    if not np.isfinite(log_r):
        return replace(state, status=IterationStatus.FAILED)

    if criterion is ConvergenceCriterion.R:
        # |r_new - r_old| / r_new
        value = abs(float(np.expm1(state.log_r - log_r)))
    else:
        value = relative_change(log_r + weights.lstar, state.log_r + weights.lstar)

    return BridgeIteration(
        status=IterationStatus.CONVERGED if value < tol else IterationStatus.ITERATING,
        iteration=state.iteration + 1,
        log_r=log_r,
        previous_log_r=state.log_r,
        criterion_value=value,
    )


def _iterate(
    weights: _Weights,
    log_r0: float,
    criterion: ConvergenceCriterion,
    tol: float,
    maxiter: int,
    cancel_event: CancellationToken | None,
    iteration_offset: int = 0,
) -> BridgeIteration:
    state = BridgeIteration(
        status=IterationStatus.INITIALIZING,
        iteration=0,
        log_r=log_r0,
        previous_log_r=log_r0,
    )
    while state.iteration < maxiter:
        if cancel_event is not None and cancel_event.is_set():
            raise IterationCancelledError(iteration_offset + state.iteration)
        state = _iteration_step(state, weights, criterion, tol)
        if state.status is IterationStatus.FAILED:
            raise NumericalInstabilityError(
                "Non-finite value in the iterative scheme after "
                f"{iteration_offset + state.iteration} stable iterations",
                n_iter=iteration_offset + state.iteration,
            )
        logger.debug(
            "iteration %d: logml = %.10g, criterion = %.3g",
            iteration_offset + state.iteration,
            state.log_r + weights.lstar,
            state.criterion_value,
        )
        if state.status is IterationStatus.CONVERGED:
            return state
    return replace(state, status=IterationStatus.MAX_ITER_REACHED)


def run_iterative_scheme(
    log_weights_posterior: npt.ArrayLike,
    log_weights_proposal: npt.ArrayLike,
    n_eff: float | None = None,
    r0: float = 0.5,
    tol1: float = 1e-10,
    tol2: float = 1e-4,
    maxiter: int = 1000,
    criterion: ConvergenceCriterion | str = ConvergenceCriterion.R,
    cancel_event: CancellationToken | None = None,
) -> IterationResult:
    """Estimate the log marginal likelihood with the iterative bridge scheme.

    Parameters
    ----------
    log_weights_posterior : array_like
        ``log p(theta) - log g(theta)`` at the posterior draws, where p is the
        corrected unnormalized posterior and g the proposal.
    log_weights_proposal : array_like
        The same log ratio at the proposal draws. -inf entries (zero
        posterior density) are allowed.
    n_eff : float, optional
        Effective size of the posterior draws, used for the mixture weights.
        Default is the number of posterior draws.
    r0 : float, optional
        Starting ratio relative to the median posterior log weight.
        Default is 0.5.
    tol1 : float, optional
        Tolerance of the relative change of the ratio. Default is 1e-10.
    tol2 : float, optional
        Tolerance of the relative change of the log marginal likelihood.
        Default is 1e-4.
    maxiter : int, optional
        Maximum number of iterations per pass. Default is 1000.
    criterion : ConvergenceCriterion or str, optional
        Convergence criterion of the first pass. Default is ``r``.
    cancel_event : CancellationToken, optional
        Checked between iterations; when set the scheme stops.

    Returns
    -------
    IterationResult
        Log marginal likelihood, iterations used, and convergence status.

    Raises
    ------
    NumericalInstabilityError
        If the inputs or an intermediate estimate are not finite.
    IterationCancelledError
        If `cancel_event` is set between iterations.

    Notes
    -----
    If the ``r`` criterion does not converge within `maxiter` iterations the
    scheme is restarted once from the geometric mean of the last two ratio
    estimates, monitoring the log marginal likelihood with `tol2`. A result
    that still has not converged is returned with ``converged=False``.
    """
    l1 = np.asarray(log_weights_posterior, dtype=float).ravel()
    l2 = np.asarray(log_weights_proposal, dtype=float).ravel()
    criterion = ConvergenceCriterion(criterion)

    if len(l1) == 0 or len(l2) == 0:
        raise NumericalInstabilityError("The iterative scheme needs draws on both sides.")
    if not np.all(np.isfinite(l1)):
        raise NumericalInstabilityError("Non-finite log weights at the posterior draws.")
    if np.any(np.isnan(l2) | np.isposinf(l2)):
        raise NumericalInstabilityError("Invalid log weights at the proposal draws.")

    if n_eff is None:
        n_eff = len(l1)
    weights = _prepare_weights(l1, l2, n_eff)
    tol = tol1 if criterion is ConvergenceCriterion.R else tol2

    state = _iterate(weights, float(np.log(r0)), criterion, tol, maxiter, cancel_event)
    n_iter = state.iteration

    if state.status is IterationStatus.MAX_ITER_REACHED and criterion is ConvergenceCriterion.R:
        logger.warning(
            "logml could not be estimated within maxiter = %d iterations, rerunning "
            "with adjusted starting value. Estimate might be more variable than usual.",
            maxiter,
        )
        log_r0 = 0.5 * (state.log_r + state.previous_log_r)
        state = _iterate(
            weights,
            log_r0,
            ConvergenceCriterion.LOGML,
            tol2,
            maxiter,
            cancel_event,
            iteration_offset=n_iter,
        )
        n_iter += state.iteration

    converged = state.status is IterationStatus.CONVERGED
    if not converged:
        logger.warning(
            "Iterative scheme did not converge after %d iterations (criterion %.3g).",
            n_iter,
            state.criterion_value,
        )

    return IterationResult(
        log_marginal_likelihood=state.log_r + weights.lstar,
        n_iter=n_iter,
        converged=converged,
        status=state.status,
    )
