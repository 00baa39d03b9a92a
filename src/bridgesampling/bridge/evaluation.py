"""Generate proposal draws and evaluate densities at both sets of draws."""

import logging
import multiprocessing
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any

import numpy as np
import numpy.typing as npt
from tqdm import tqdm

from ..utils.exceptions import NumericalInstabilityError
from ..utils.types import Draw, DrawMatrix, FloatArray, LogPosterior
from .proposal import Proposal
from .transforms import ParameterSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DensityEvaluations:
    """Log densities at the posterior draws and at the proposal draws.

    Attributes
    ----------
    q11 : FloatArray
        Corrected log posterior at the posterior draws.
    q12 : FloatArray
        Log proposal density at the posterior draws.
    q21 : FloatArray
        Corrected log posterior at the proposal draws.
    q22 : FloatArray
        Log proposal density at the proposal draws.
    """

    q11: FloatArray
    q12: FloatArray
    q21: FloatArray
    q22: FloatArray

    @property
    def log_weights_posterior(self) -> FloatArray:
        """Log ratio of posterior to proposal density at the posterior draws."""
        return self.q11 - self.q12

    @property
    def log_weights_proposal(self) -> FloatArray:
        """Log ratio of posterior to proposal density at the proposal draws."""
        return self.q21 - self.q22


def generate_proposal_draws(
    proposal: Proposal, n: int, rng: np.random.Generator
) -> DrawMatrix:
    """Draw `n` independent samples from the fitted proposal."""
    return proposal.rvs(n, rng)


def _log_posterior_at(draw: Draw, log_posterior: LogPosterior, data: Any) -> float:
    """Evaluate the log posterior at one natural-scale draw."""
    return float(log_posterior(draw, data))


def evaluate_log_posterior(
    transformed: npt.ArrayLike,
    parameters: ParameterSet,
    log_posterior: LogPosterior,
    data: Any = None,
    pool: Any | None = None,
    parallel: bool = False,
    n_processors: int = 1,
    progress: bool = False,
    desc: str | None = None,
) -> FloatArray:
    """Evaluate the Jacobian-corrected log posterior at transformed draws.

    Each row is mapped back to the natural scale, passed to `log_posterior`
    as a name -> value mapping and corrected by the log Jacobian of the
    transformation. Draws are independent, so the evaluations can be spread
    over a pool.

    Parameters
    ----------
    transformed : array_like
        Draws on the unconstrained scale, shape ``(n_draws, n_params)``.
    parameters : ParameterSet
        Parameter specifications defining the transformation.
    log_posterior : LogPosterior
        Unnormalized log posterior ``log_posterior(draw, data) -> float``.
    data : Any, optional
        Opaque model data forwarded to `log_posterior`.
    pool : Any | None, optional
        User-provided pool for parallelizing the evaluations. The pool must
        implement a map() method compatible with the standard library's map()
        function. Takes precedence over `parallel`. Default is None.
    parallel : bool, optional
        Whether to use a ProcessPoolExecutor. `log_posterior` and `data` must
        then be picklable. Default is False.
    n_processors : int, optional
        Number of processes if parallel=True. 1 means all available cores.
    progress : bool, optional
        Whether to display a progress bar. Default is False.
    desc : str, optional
        Label of the progress bar.

    Returns
    -------
    FloatArray
        Corrected log posterior of each draw, shape ``(n_draws,)``.
    """
    values, log_jacobian = parameters.inverse(transformed)
    draws = [parameters.to_draw(row) for row in values]
    func = partial(_log_posterior_at, log_posterior=log_posterior, data=data)

    if pool is not None:
        log_post = list(tqdm(pool.map(func, draws), total=len(draws), disable=not progress, desc=desc))
    elif parallel:
        if n_processors == 1:
            # set number of processors equal to those available
            n_processors = multiprocessing.cpu_count()
        with ProcessPoolExecutor(max_workers=n_processors) as executor:
            log_post = list(
                tqdm(executor.map(func, draws), total=len(draws), disable=not progress, desc=desc)
            )
    else:
        log_post = [func(draw) for draw in tqdm(draws, disable=not progress, desc=desc)]

    return np.asarray(log_post, dtype=float) + log_jacobian


def check_log_densities(
    values: npt.ArrayLike, label: str, allow_neg_inf: bool = True
) -> None:
    """Reject log densities that would poison the weighted sums.

    NaN and +inf are never valid. -inf (zero density) is valid at proposal
    draws but not at posterior draws.

    Raises
    ------
    NumericalInstabilityError
        If an invalid value is found.
    """
    values = np.asarray(values, dtype=float)
    bad = np.isnan(values) | np.isposinf(values)
    if not allow_neg_inf:
        bad |= np.isneginf(values)
    if np.any(bad):
        i = int(np.argmax(bad))
        raise NumericalInstabilityError(
            f"Invalid {label} at draw {i}: {values[i]!r} ({int(bad.sum())} invalid values)"
        )


def evaluate_normal_bridge(
    posterior_draws: npt.ArrayLike,
    proposal: Proposal,
    parameters: ParameterSet,
    log_posterior: LogPosterior,
    n_proposal: int,
    rng: np.random.Generator,
    data: Any = None,
    **eval_kwargs,
) -> DensityEvaluations:
    """Evaluate all four densities needed by the normal-proposal bridge.

    Parameters
    ----------
    posterior_draws : array_like
        Transformed posterior draws reserved for the iterative scheme,
        shape ``(n1, n_params)``.
    proposal : Proposal
        Proposal fitted to the other half of the posterior draws.
    parameters : ParameterSet
        Parameter specifications defining the transformation.
    log_posterior : LogPosterior
        Unnormalized log posterior on the natural scale.
    n_proposal : int
        Number of proposal draws to generate.
    rng : numpy.random.Generator
        Source of the proposal draws.
    data : Any, optional
        Opaque model data forwarded to `log_posterior`.
    **eval_kwargs
        Parallelism and progress options for `evaluate_log_posterior`.

    Returns
    -------
    DensityEvaluations
        The four log-density vectors.
    """
    posterior_draws = np.asarray(posterior_draws, dtype=float)
    proposal_draws = generate_proposal_draws(proposal, n_proposal, rng)
    logger.debug("Generated %d proposal draws", n_proposal)

    q11 = evaluate_log_posterior(
        posterior_draws, parameters, log_posterior, data, desc="posterior draws", **eval_kwargs
    )
    q12 = proposal.logpdf(posterior_draws)
    q21 = evaluate_log_posterior(
        proposal_draws, parameters, log_posterior, data, desc="proposal draws", **eval_kwargs
    )
    q22 = proposal.logpdf(proposal_draws)

    check_log_densities(q11, "log posterior at posterior draws", allow_neg_inf=False)
    check_log_densities(q21, "log posterior at proposal draws")
    check_log_densities(q12, "log proposal density at posterior draws", allow_neg_inf=False)
    check_log_densities(q22, "log proposal density at proposal draws", allow_neg_inf=False)

    return DensityEvaluations(q11=q11, q12=q12, q21=q21, q22=q22)
