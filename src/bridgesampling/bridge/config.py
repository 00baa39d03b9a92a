"""Configuration of a bridge sampling run."""

from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Any

from ..utils.exceptions import InputError
from ..utils.types import CancellationToken
from .proposal import ProposalFamily


class BridgeMethod(StrEnum):
    """Enum for available bridge sampling methods."""

    NORMAL = auto()
    WARP3 = auto()


class ConvergenceCriterion(StrEnum):
    """Quantity monitored by the iterative scheme."""

    R = auto()
    LOGML = auto()


@dataclass
class BridgeSamplerConfig:
    """Options recognised by `run_bridge_sampler`.

    Attributes
    ----------
    method : BridgeMethod
        ``normal`` fits the proposal directly; ``warp3`` warps the posterior
        onto a standard normal proposal.
    family : ProposalFamily
        Proposal family for the normal method.
    df : float
        Degrees of freedom of the Student-t proposal.
    n_proposal : int or None
        Number of proposal draws. None uses the number of posterior draws
        reserved for the iterative scheme.
    tol1, tol2 : float
        Tolerances for the ``r`` and ``logml`` convergence criteria.
    maxiter : int
        Iteration cap of the iterative scheme.
    criterion : ConvergenceCriterion
        Criterion of the first pass of the iterative scheme.
    r0 : float
        Starting value of the iterative scheme, relative to the median
        log weight of the posterior draws.
    use_neff : bool
        Weight the posterior draws by their effective sample size.
    seed : int or None
        Seed of the only random number generator used by the run.
    silent : bool
        Suppress INFO logging of the run.
    progress : bool
        Show tqdm progress bars while evaluating the log posterior.
    parallel, n_processors, pool
        Per-draw parallelism of the log-posterior evaluations.
    cancel_event : CancellationToken or None
        Checked between iterations of the iterative scheme.
    """

    method: BridgeMethod = BridgeMethod.NORMAL
    family: ProposalFamily = ProposalFamily.NORMAL
    df: float = 5.0
    n_proposal: int | None = None
    tol1: float = 1e-10
    tol2: float = 1e-4
    maxiter: int = 1000
    criterion: ConvergenceCriterion = ConvergenceCriterion.R
    r0: float = 0.5
    use_neff: bool = True
    seed: int | None = 61254557
    silent: bool = False
    progress: bool = False
    parallel: bool = False
    n_processors: int = 1
    pool: Any | None = None
    cancel_event: CancellationToken | None = None

    def __post_init__(self):
        """Post-initialization checks."""
        try:
            self.method = BridgeMethod(self.method)
            self.family = ProposalFamily(self.family)
            self.criterion = ConvergenceCriterion(self.criterion)
        except ValueError as e:
            raise InputError(str(e)) from e

        if self.method is BridgeMethod.WARP3 and self.family is not ProposalFamily.NORMAL:
            raise InputError("The warp3 method only supports a normal proposal.")
        if self.family is ProposalFamily.STUDENT_T and not self.df > 2:
            raise InputError(f"df must be greater than 2, got {self.df}.")
        if self.n_proposal is not None and (
            not isinstance(self.n_proposal, int) or self.n_proposal < 2
        ):
            raise InputError("n_proposal must be an integer of at least 2.")
        if not (self.tol1 > 0 and self.tol2 > 0):
            raise InputError("Tolerances must be positive.")
        if not isinstance(self.maxiter, int) or self.maxiter < 1:
            raise InputError("maxiter must be a positive integer.")
        if not self.r0 > 0:
            raise InputError("r0 must be positive.")
        if not isinstance(self.n_processors, int) or self.n_processors < 1:
            raise InputError("n_processors must be a positive integer.")
        if self.pool is not None and not hasattr(self.pool, "map"):
            raise InputError("pool must have a 'map' method.")
        if self.cancel_event is not None and not hasattr(self.cancel_event, "is_set"):
            raise InputError("cancel_event must have an 'is_set' method.")
