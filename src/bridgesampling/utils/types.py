"""Custom types for bridgesampling."""

from collections.abc import Mapping
from typing import Annotated, Any, Protocol, TypeAlias

import numpy as np
import numpy.typing as npt

# These types are for documentation purposes: current numpy type annotations
# only specify the dtype, not the shape.
FloatArray: TypeAlias = npt.NDArray[np.floating]
DrawMatrix: TypeAlias = Annotated[FloatArray, "(n_draws, n_params)"]
ChainArray: TypeAlias = Annotated[FloatArray, "(n_chains, n_draws, n_params)"]
Draw: TypeAlias = Mapping[str, float]


class LogPosterior(Protocol):
    """Protocol for the unnormalized joint log-density of a model.

    The function is treated as an opaque, deterministic callback. It is
    evaluated on the natural (untransformed) scale of every parameter.
    """

    def __call__(self, draw: Draw, data: Any) -> float:
        """Evaluate the unnormalized log posterior.

        Parameters
        ----------
        draw : Mapping[str, float]
            Parameter values keyed by parameter name.
        data : Any
            Opaque model data passed through unchanged.

        Returns
        -------
        float
            Log prior plus log likelihood at `draw`.
        """
        ...


class CancellationToken(Protocol):
    """Anything exposing ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...
