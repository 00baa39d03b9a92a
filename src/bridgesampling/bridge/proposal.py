"""Fit a tractable proposal distribution to transformed posterior draws."""

import logging
from dataclasses import dataclass
from enum import StrEnum, auto
from functools import cached_property

import numpy as np
import numpy.typing as npt
from scipy import stats

from ..utils.exceptions import DegenerateProposalError, InputError
from ..utils.types import DrawMatrix, FloatArray

logger = logging.getLogger(__name__)

MAX_CONDITION_NUMBER = 1e15


class ProposalFamily(StrEnum):
    """Enum for available proposal distribution families."""

    NORMAL = auto()
    STUDENT_T = auto()


@dataclass(frozen=True)
class Proposal:
    """Multivariate normal or Student-t proposal on the transformed scale.

    For the Student-t family `covariance` is the shape matrix of the
    distribution, not its variance.
    """

    mean: FloatArray
    covariance: FloatArray
    family: ProposalFamily = ProposalFamily.NORMAL
    df: float | None = None

    def __post_init__(self):
        """Post-initialization checks."""
        family = ProposalFamily(self.family)
        object.__setattr__(self, "family", family)
        if family is ProposalFamily.STUDENT_T and (self.df is None or self.df <= 0):
            raise InputError("A Student-t proposal needs positive degrees of freedom.")

    @property
    def n_params(self) -> int:
        return len(self.mean)

    @cached_property
    def cholesky(self) -> FloatArray:
        """Lower triangular factor of `covariance`."""
        return np.linalg.cholesky(self.covariance)

    @cached_property
    def _distribution(self):
        if self.family is ProposalFamily.STUDENT_T:
            return stats.multivariate_t(loc=self.mean, shape=self.covariance, df=self.df)
        return stats.multivariate_normal(mean=self.mean, cov=self.covariance)

    def logpdf(self, x: npt.ArrayLike) -> FloatArray:
        """Evaluate the log proposal density at each row of `x`."""
        x = np.asarray(x, dtype=float).reshape(-1, self.n_params)
        return np.atleast_1d(self._distribution.logpdf(x))

    def rvs(self, n: int, rng: np.random.Generator) -> DrawMatrix:
        """Draw `n` independent samples, shape ``(n, n_params)``."""
        draws = self._distribution.rvs(size=n, random_state=rng)
        return np.asarray(draws, dtype=float).reshape(n, self.n_params)


def fit_proposal(
    transformed: npt.ArrayLike,
    family: ProposalFamily | str = ProposalFamily.NORMAL,
    df: float | None = None,
) -> Proposal:
    """Fit a proposal to a batch of transformed posterior draws.

    The location and scale are the sample mean and covariance of the draws.
    For the Student-t family the covariance is multiplied by ``(df - 2) / df``
    so that the proposal's variance matches the sample covariance.

    Parameters
    ----------
    transformed : array_like
        Draws on the unconstrained scale, shape ``(m, n_params)``.
    family : ProposalFamily or str, optional
        Distribution family. Default is normal.
    df : float, optional
        Degrees of freedom for the Student-t family; must exceed 2.

    Returns
    -------
    Proposal
        The fitted proposal.

    Raises
    ------
    DegenerateProposalError
        If the sample covariance is singular, ill-conditioned or not finite.
    InputError
        If the Student-t degrees of freedom are missing or not above 2.
    """
    family = ProposalFamily(family)
    transformed = np.asarray(transformed, dtype=float)
    if transformed.ndim == 1:
        transformed = transformed[:, np.newaxis]
    m, n_params = transformed.shape

    if family is ProposalFamily.STUDENT_T and (df is None or df <= 2):
        raise InputError(
            f"Student-t proposal requires degrees of freedom above 2 to match "
            f"the posterior variance, got {df}."
        )

    if m <= n_params:
        raise DegenerateProposalError(
            f"Cannot fit a {n_params}-dimensional proposal from {m} draws; "
            "supply more posterior draws."
        )

    mean = np.mean(transformed, axis=0)
    covariance = np.atleast_2d(np.cov(transformed, rowvar=False))
    if not (np.all(np.isfinite(mean)) and np.all(np.isfinite(covariance))):
        raise DegenerateProposalError("Sample moments of the posterior draws are not finite.")

    try:
        np.linalg.cholesky(covariance)
    except np.linalg.LinAlgError as e:
        raise DegenerateProposalError(
            "Sample covariance is not positive-definite; enlarge the sample or "
            "switch proposal family."
        ) from e

    condition = np.linalg.cond(covariance)
    if not condition < MAX_CONDITION_NUMBER:
        raise DegenerateProposalError(
            f"Sample covariance is ill-conditioned (condition number {condition:.3g})."
        )

    if family is ProposalFamily.STUDENT_T:
        covariance = covariance * (df - 2.0) / df

    logger.debug("Fitted %s proposal to %d draws of %d parameters", family, m, n_params)
    return Proposal(mean=mean, covariance=covariance, family=family, df=df)
