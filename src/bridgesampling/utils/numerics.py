"""Log-space reductions shared by every stage that aggregates density ratios."""

import numpy as np
import numpy.typing as npt
from scipy.special import logsumexp

from .types import FloatArray


def log_sum_exp(a: npt.ArrayLike, axis: int | None = None) -> float | FloatArray:
    """Compute ``log(sum(exp(a)))`` without overflow.

    Parameters
    ----------
    a : array_like
        Values in log space. ``-inf`` entries contribute zero.
    axis : int, optional
        Axis to reduce over. Default reduces over all entries.

    Returns
    -------
    float or FloatArray
        The reduced value(s).
    """
    return logsumexp(np.asarray(a, dtype=float), axis=axis)


def log_normalize(a: npt.ArrayLike) -> FloatArray:
    """Normalize log weights so that their exponentials sum to one.

    The maximum is subtracted before exponentiating, so arbitrarily large
    log values are handled.
    """
    a = np.asarray(a, dtype=float)
    return np.exp(a - logsumexp(a))


def relative_change(new: float, old: float) -> float:
    """Relative change ``|new - old| / |new|``, falling back to ``|new - old|`` at zero."""
    diff = abs(new - old)
    if new == 0.0:
        return diff
    return diff / abs(new)
