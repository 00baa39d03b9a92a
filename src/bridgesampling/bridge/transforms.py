"""Transformation of bounded parameters to the real line.

Every parameter is mapped from its natural support to an unconstrained scale
before the proposal is fitted:

- unbounded parameters are left unchanged,
- parameters bounded on one side are log-transformed distances to the bound,
- parameters bounded on both sides are logit-transformed positions within
  the interval.

The log Jacobian ``log|dx/dy|`` of the inverse mapping is returned alongside
each transformation so that the log posterior stays a valid density on the
transformed scale.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum, auto

import numpy as np
import numpy.typing as npt
from scipy.special import expit, logit

from ..utils.exceptions import InputError, OutOfBoundsError
from ..utils.types import DrawMatrix, FloatArray


class BoundKind(StrEnum):
    """Kinds of parameter support."""

    UNBOUNDED = auto()
    LOWER = auto()
    UPPER = auto()
    DOUBLE = auto()


@dataclass(frozen=True)
class ParameterSpec:
    """Name and support of a single parameter."""

    name: str
    lower: float = -math.inf
    upper: float = math.inf

    def __post_init__(self):
        """Post-initialization checks."""
        if not isinstance(self.name, str) or not self.name:
            raise InputError("Parameter name must be a non-empty string.")
        lower, upper = float(self.lower), float(self.upper)
        if math.isnan(lower) or math.isnan(upper):
            raise InputError(f"Bounds of parameter '{self.name}' must not be NaN.")
        if not lower < upper:
            raise InputError(
                f"Lower bound of parameter '{self.name}' must be smaller than its "
                f"upper bound, got ({lower}, {upper})."
            )
        object.__setattr__(self, "lower", lower)
        object.__setattr__(self, "upper", upper)

    @property
    def kind(self) -> BoundKind:
        """Which sides of the support are bounded."""
        has_lower = math.isfinite(self.lower)
        has_upper = math.isfinite(self.upper)
        if has_lower and has_upper:
            return BoundKind.DOUBLE
        if has_lower:
            return BoundKind.LOWER
        if has_upper:
            return BoundKind.UPPER
        return BoundKind.UNBOUNDED

    def check(self, x: npt.ArrayLike) -> None:
        """Raise OutOfBoundsError if any value lies outside the open support."""
        x = np.atleast_1d(np.asarray(x, dtype=float))
        bad = np.isnan(x) | (x <= self.lower) | (x >= self.upper)
        # infinite values are only acceptable on an unbounded side, and even
        # then they cannot be transformed
        bad |= np.isinf(x)
        if np.any(bad):
            value = float(x[np.argmax(bad)])
            raise OutOfBoundsError(self.name, value, self.lower, self.upper)

    def transform(self, x: npt.ArrayLike) -> FloatArray:
        """Map values from the natural support to the real line."""
        x = np.asarray(x, dtype=float)
        self.check(x)
        kind = self.kind
        if kind is BoundKind.LOWER:
            return np.log(x - self.lower)
        if kind is BoundKind.UPPER:
            return np.log(self.upper - x)
        if kind is BoundKind.DOUBLE:
            return logit((x - self.lower) / (self.upper - self.lower))
        return x.copy()

    def inverse(self, y: npt.ArrayLike) -> FloatArray:
        """Map values from the real line back to the natural support."""
        y = np.asarray(y, dtype=float)
        kind = self.kind
        if kind is BoundKind.LOWER:
            return self.lower + np.exp(y)
        if kind is BoundKind.UPPER:
            return self.upper - np.exp(y)
        if kind is BoundKind.DOUBLE:
            return self.lower + (self.upper - self.lower) * expit(y)
        return y.copy()

    def log_jacobian(self, y: npt.ArrayLike) -> FloatArray:
        """Log derivative of the inverse mapping at transformed values ``y``."""
        y = np.asarray(y, dtype=float)
        kind = self.kind
        if kind in (BoundKind.LOWER, BoundKind.UPPER):
            # log of the distance to the bound
            return y.copy()
        if kind is BoundKind.DOUBLE:
            # log p = -log(1 + e^-y), log(1 - p) = -log(1 + e^y)
            return (
                np.log(self.upper - self.lower)
                - np.logaddexp(0.0, -y)
                - np.logaddexp(0.0, y)
            )
        return np.zeros_like(y)


@dataclass(frozen=True)
class TransformedDraw:
    """A single draw on the unconstrained scale and its log Jacobian."""

    values: FloatArray
    log_jacobian: float


class ParameterSet:
    """Ordered collection of parameter specifications keyed by name.

    Parameters
    ----------
    specs : iterable of ParameterSpec
        One specification per parameter. Names must be unique.
    """

    def __init__(self, specs: Iterable[ParameterSpec]):
        self._specs = tuple(specs)
        if not self._specs:
            raise InputError("At least one parameter is required.")
        names = [spec.name for spec in self._specs]
        if len(set(names)) != len(names):
            raise InputError(f"Parameter names must be unique, got {names}.")
        self._index = {name: k for k, name in enumerate(names)}

    @classmethod
    def from_bounds(
        cls,
        names: Sequence[str],
        lower: Mapping[str, float] | None = None,
        upper: Mapping[str, float] | None = None,
    ) -> "ParameterSet":
        """Build a parameter set from optional per-parameter bound overrides.

        Parameters
        ----------
        names : sequence of str
            Parameter names in draw order.
        lower, upper : mapping of str to float, optional
            Bounds keyed by parameter name. Parameters not listed are
            unbounded on that side.

        Raises
        ------
        InputError
            If a bound refers to an unknown parameter or is inconsistent.
        """
        lower = dict(lower or {})
        upper = dict(upper or {})
        unknown = (set(lower) | set(upper)) - set(names)
        if unknown:
            raise InputError(
                f"Bounds supplied for unknown parameters: {sorted(unknown)}."
            )
        return cls(
            ParameterSpec(
                name,
                lower=lower.get(name, -math.inf),
                upper=upper.get(name, math.inf),
            )
            for name in names
        )

    @property
    def names(self) -> tuple[str, ...]:
        """Parameter names in draw order."""
        return tuple(spec.name for spec in self._specs)

    @property
    def specs(self) -> tuple[ParameterSpec, ...]:
        return self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self):
        return iter(self._specs)

    def __getitem__(self, name: str) -> ParameterSpec:
        return self._specs[self._index[name]]

    def _as_matrix(self, values: npt.ArrayLike) -> DrawMatrix:
        values = np.asarray(values, dtype=float)
        if values.ndim == 1:
            values = values.reshape(1, -1)
        if values.ndim != 2 or values.shape[1] != len(self):
            raise InputError(
                f"Expected draws with {len(self)} columns, got shape {values.shape}."
            )
        return values

    def transform(self, values: npt.ArrayLike) -> tuple[DrawMatrix, FloatArray]:
        """Transform raw draws to the unconstrained scale.

        Parameters
        ----------
        values : array_like
            Raw draws of shape ``(n_draws, n_params)``.

        Returns
        -------
        transformed : FloatArray
            Draws of shape ``(n_draws, n_params)`` on the real line.
        log_jacobian : FloatArray
            Total log Jacobian of each draw, shape ``(n_draws,)``.

        Raises
        ------
        OutOfBoundsError
            If any value lies outside its parameter's support.
        """
        values = self._as_matrix(values)
        transformed = np.column_stack(
            [spec.transform(values[:, k]) for k, spec in enumerate(self._specs)]
        )
        return transformed, self.log_jacobian(transformed)

    def inverse(self, transformed: npt.ArrayLike) -> tuple[DrawMatrix, FloatArray]:
        """Map unconstrained draws back to the natural scale.

        Returns
        -------
        values : FloatArray
            Draws of shape ``(n_draws, n_params)`` on the natural scale.
        log_jacobian : FloatArray
            Total log Jacobian of each draw, shape ``(n_draws,)``.
        """
        transformed = self._as_matrix(transformed)
        values = np.column_stack(
            [spec.inverse(transformed[:, k]) for k, spec in enumerate(self._specs)]
        )
        return values, self.log_jacobian(transformed)

    def log_jacobian(self, transformed: npt.ArrayLike) -> FloatArray:
        """Summed log Jacobian of each transformed draw."""
        transformed = self._as_matrix(transformed)
        terms = np.column_stack(
            [spec.log_jacobian(transformed[:, k]) for k, spec in enumerate(self._specs)]
        )
        return terms.sum(axis=1)

    def transform_draw(self, draw: Mapping[str, float]) -> TransformedDraw:
        """Transform a single name -> value draw."""
        missing = set(self.names) - set(draw)
        if missing:
            raise InputError(f"Draw is missing parameters {sorted(missing)}.")
        transformed, log_jacobian = self.transform([draw[name] for name in self.names])
        return TransformedDraw(values=transformed[0], log_jacobian=float(log_jacobian[0]))

    def to_draw(self, values: npt.ArrayLike) -> dict[str, float]:
        """Label a natural-scale vector with parameter names."""
        return {name: float(v) for name, v in zip(self.names, np.ravel(values))}

    def inverse_draw(self, transformed: npt.ArrayLike) -> dict[str, float]:
        """Map a single unconstrained vector back to a name -> value draw."""
        values, _ = self.inverse(transformed)
        return self.to_draw(values[0])
