"""Custom exceptions for bridgesampling.

This module defines the exception hierarchy for the bridgesampling package,
providing specific error types for the different failure modes of the
estimator.
"""


class BridgeSamplingError(Exception):
    """Base exception class for all bridgesampling-specific errors.

    This is the root exception class from which all other bridgesampling
    exceptions inherit. It can be used to catch any estimator-related
    error in a general exception handler.
    """

    pass


class InputError(BridgeSamplingError):
    """Raised when required inputs are missing or invalid.

    This exception is raised when:
    - Parameter bounds are inconsistent (lower >= upper)
    - Posterior draws have incompatible shapes or non-finite values
    - Configuration options are outside acceptable ranges

    Parameters
    ----------
    msg : str, optional
        Human-readable error message describing the input problem.
    """

    def __init__(self, msg="Invalid or missing input parameters"):
        super().__init__(msg)


class OutOfBoundsError(BridgeSamplingError):
    """Raised when a raw draw value violates its declared parameter bound."""

    def __init__(self, name: str, value: float, lower: float, upper: float):
        self.name = name
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"Value {value!r} of parameter '{name}' lies outside its support "
            f"({lower}, {upper})"
        )


class DegenerateProposalError(BridgeSamplingError):
    """Raised when the proposal covariance is not positive-definite.

    The caller can recover by supplying more posterior draws or by switching
    the proposal family.
    """

    pass


class NumericalInstabilityError(BridgeSamplingError):
    """Raised when a non-finite quantity appears during estimation.

    Parameters
    ----------
    msg : str
        Description of the offending quantity.
    n_iter : int, optional
        Number of iterations completed before the failure. Default is 0.
    """

    def __init__(self, msg: str, n_iter: int = 0):
        self.n_iter = n_iter
        super().__init__(msg)


class IterationCancelledError(BridgeSamplingError):
    """Raised when the iterative scheme is cancelled between iterations."""

    def __init__(self, n_iter: int):
        self.n_iter = n_iter
        super().__init__(f"Iterative scheme cancelled after {n_iter} iterations")


class InvalidPriorError(BridgeSamplingError):
    """Raised when a vector of prior model probabilities is malformed."""

    pass
