"""Bridge sampling estimate of the log marginal likelihood."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
from scipy.linalg import solve_triangular

from ..utils.autocorr import effective_sample_size
from ..utils.exceptions import InputError
from ..utils.types import DrawMatrix, FloatArray, LogPosterior
from .config import BridgeMethod, BridgeSamplerConfig
from .evaluation import (
    DensityEvaluations,
    check_log_densities,
    evaluate_log_posterior,
    evaluate_normal_bridge,
    generate_proposal_draws,
)
from .iterative import IterationStatus, run_iterative_scheme
from .proposal import Proposal, ProposalFamily, fit_proposal
from .samples import PosteriorSample
from .transforms import ParameterSet

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class WeightSample:
    """Log importance-weight terms used by the iterative scheme.

    Attributes
    ----------
    log_weights_posterior : FloatArray
        ``log p - log g`` at the posterior draws, in chain order.
    log_weights_proposal : FloatArray
        ``log p - log g`` at the proposal draws.
    n_eff : float
        Effective size of the posterior draws.
    n_chains : int
        Number of chains the posterior draws come from, each contributing an
        equal, contiguous block of `log_weights_posterior`.
    """

    log_weights_posterior: FloatArray
    log_weights_proposal: FloatArray
    n_eff: float
    n_chains: int = 1

    @property
    def n1(self) -> int:
        return len(self.log_weights_posterior)

    @property
    def n2(self) -> int:
        return len(self.log_weights_proposal)

    @property
    def s1(self) -> float:
        """Mixture weight of the posterior draws."""
        return self.n_eff / (self.n_eff + self.n2)

    @property
    def s2(self) -> float:
        """Mixture weight of the proposal draws."""
        return self.n2 / (self.n_eff + self.n2)


@dataclass(frozen=True, eq=False)
class BridgeResult:
    """Outcome of one bridge sampling run."""

    log_marginal_likelihood: float
    n_iter: int
    converged: bool
    status: IterationStatus
    method: BridgeMethod
    weights: WeightSample = field(repr=False)
    proposal: Proposal = field(repr=False)


def _as_posterior_sample(samples) -> PosteriorSample:
    if isinstance(samples, PosteriorSample):
        return samples
    if isinstance(samples, Mapping):
        return PosteriorSample.from_dict(samples)
    if isinstance(samples, Sequence):
        return PosteriorSample.from_draws(samples)
    raise InputError(
        "samples must be a PosteriorSample, a mapping of parameter name to draws, "
        f"or a sequence of draws, got {type(samples).__name__}."
    )


def run_bridge_sampler(
    samples: PosteriorSample | Mapping[str, Any] | Sequence[Mapping[str, float]],
    log_posterior: LogPosterior,
    data: Any = None,
    parameters: ParameterSet | None = None,
    lower: Mapping[str, float] | None = None,
    upper: Mapping[str, float] | None = None,
    config: BridgeSamplerConfig | None = None,
    **config_kwargs,
) -> BridgeResult:
    """Estimate the log marginal likelihood of a model by bridge sampling.

    The posterior draws are transformed to the real line and split per chain:
    the first half of every chain is used to fit the proposal, the second half
    enters the iterative scheme together with an equal number (by default) of
    proposal draws.

    Parameters
    ----------
    samples : PosteriorSample, mapping or sequence of mappings
        Posterior draws from an external sampler, chains merged.
    log_posterior : LogPosterior
        Unnormalized log posterior, ``log_posterior(draw, data) -> float``,
        where `draw` maps parameter names to natural-scale values.
    data : Any, optional
        Opaque model data forwarded to `log_posterior`.
    parameters : ParameterSet, optional
        Parameter names and supports. Built from `lower` and `upper` if not
        given.
    lower, upper : mapping of str to float, optional
        Bounds per parameter; parameters not listed are unbounded on that side.
    config : BridgeSamplerConfig, optional
        Run options. Keyword arguments override individual fields.
    **config_kwargs
        Fields of `BridgeSamplerConfig`.

    Returns
    -------
    BridgeResult
        Log marginal likelihood, iterations used and convergence status,
        together with the weights needed by the error measures.

    Raises
    ------
    InputError
        If an option is unknown or invalid, or the bounds are inconsistent.
    OutOfBoundsError
        If a posterior draw lies outside its parameter's support.
    DegenerateProposalError
        If the proposal covariance is not positive-definite.
    NumericalInstabilityError
        If a log density or an intermediate estimate is not finite.

    Examples
    --------
    >>> def log_posterior(draw, data):
    ...     return -0.5 * draw["mu"] ** 2
    >>> samples = {"mu": np.random.default_rng(1).normal(size=4000)}
    >>> result = run_bridge_sampler(samples, log_posterior, silent=True)
    >>> round(result.log_marginal_likelihood, 2)  # 0.5 * log(2 pi)
    0.92
    """
    try:
        if config is None:
            config = BridgeSamplerConfig(**config_kwargs)
        elif config_kwargs:
            config = replace(config, **config_kwargs)
    except TypeError as e:
        raise InputError(f"Unknown bridge sampler option: {e}") from e

    samples = _as_posterior_sample(samples)
    if parameters is None:
        parameters = ParameterSet.from_bounds(samples.names, lower=lower, upper=upper)
    elif lower is not None or upper is not None:
        raise InputError("Give bounds either through parameters or through lower/upper.")
    samples = samples.reorder(parameters.names)

    fit_draws, iter_chains = samples.split()
    n_chains, n_half, n_params = iter_chains.shape
    fit_transformed, _ = parameters.transform(fit_draws)
    iter_transformed, _ = parameters.transform(iter_chains.reshape(-1, n_params))
    n1 = len(iter_transformed)
    n2 = config.n_proposal if config.n_proposal is not None else n1

    if not config.silent:
        logger.info("\nRunning bridge sampler (%s)", config.method)
        logger.info("Number of parameters            : %d", n_params)
        logger.info("Number of chains                : %d", n_chains)
        logger.info("Draws for proposal fit          : %d", len(fit_transformed))
        logger.info("Draws for iterative scheme      : %d", n1)
        logger.info("Proposal draws                  : %d", n2)

    rng = np.random.default_rng(config.seed)
    eval_kwargs = dict(
        pool=config.pool,
        parallel=config.parallel,
        n_processors=config.n_processors,
        progress=config.progress and not config.silent,
    )

    if config.method is BridgeMethod.WARP3:
        proposal, evaluations = _bridge_sampler_warp3(
            fit_transformed, iter_transformed, parameters, log_posterior, data, n2, rng, eval_kwargs
        )
    else:
        df = config.df if config.family is ProposalFamily.STUDENT_T else None
        proposal = fit_proposal(fit_transformed, family=config.family, df=df)
        evaluations = evaluate_normal_bridge(
            iter_transformed, proposal, parameters, log_posterior, n2, rng, data, **eval_kwargs
        )

    if config.use_neff:
        n_eff = effective_sample_size(iter_transformed.reshape(n_chains, n_half, n_params))
    else:
        n_eff = float(n1)

    weights = WeightSample(
        log_weights_posterior=evaluations.log_weights_posterior,
        log_weights_proposal=evaluations.log_weights_proposal,
        n_eff=n_eff,
        n_chains=n_chains,
    )
    iteration = run_iterative_scheme(
        weights.log_weights_posterior,
        weights.log_weights_proposal,
        n_eff=n_eff,
        r0=config.r0,
        tol1=config.tol1,
        tol2=config.tol2,
        maxiter=config.maxiter,
        criterion=config.criterion,
        cancel_event=config.cancel_event,
    )

    if not config.silent:
        logger.info("Effective posterior draws       : %.1f", n_eff)
        logger.info("Iterations                      : %d", iteration.n_iter)
        logger.info("Log marginal likelihood         : %.6f", iteration.log_marginal_likelihood)

    return BridgeResult(
        log_marginal_likelihood=iteration.log_marginal_likelihood,
        n_iter=iteration.n_iter,
        converged=iteration.converged,
        status=iteration.status,
        method=config.method,
        weights=weights,
        proposal=proposal,
    )


def _bridge_sampler_warp3(
    fit_transformed: DrawMatrix,
    iter_transformed: DrawMatrix,
    parameters: ParameterSet,
    log_posterior: LogPosterior,
    data: Any,
    n_proposal: int,
    rng: np.random.Generator,
    eval_kwargs: dict[str, Any],
) -> tuple[Proposal, DensityEvaluations]:
    """Warp-III bridge: standardize the posterior and symmetrize it about its mean.

    With fitted mean ``m`` and Cholesky factor ``L`` the warped target density
    of ``z`` is ``|L| * (p(m + L z) + p(m - L z)) / 2`` and the proposal is a
    standard normal.
    """
    fitted = fit_proposal(fit_transformed)
    mean, chol = fitted.mean, fitted.cholesky
    n_params = len(mean)
    log_det = float(np.sum(np.log(np.diag(chol))))
    standard = Proposal(mean=np.zeros(n_params), covariance=np.eye(n_params))

    def evaluate(transformed: DrawMatrix, desc: str) -> FloatArray:
        return evaluate_log_posterior(
            transformed, parameters, log_posterior, data, desc=desc, **eval_kwargs
        )

    at_posterior = evaluate(iter_transformed, "posterior draws")
    check_log_densities(at_posterior, "log posterior at posterior draws", allow_neg_inf=False)
    offsets = iter_transformed - mean
    reflected = evaluate(mean - offsets, "reflected posterior draws")
    q11 = log_det + np.logaddexp(at_posterior, reflected) - np.log(2.0)
    q12 = standard.logpdf(solve_triangular(chol, offsets.T, lower=True).T)

    z = generate_proposal_draws(standard, n_proposal, rng)
    warped = z @ chol.T
    plus = evaluate(mean + warped, "proposal draws")
    minus = evaluate(mean - warped, "reflected proposal draws")
    q21 = log_det + np.logaddexp(plus, minus) - np.log(2.0)
    q22 = standard.logpdf(z)

    check_log_densities(q11, "warped log posterior at posterior draws", allow_neg_inf=False)
    check_log_densities(q21, "warped log posterior at proposal draws")

    return fitted, DensityEvaluations(q11=q11, q12=q12, q21=q21, q22=q22)
