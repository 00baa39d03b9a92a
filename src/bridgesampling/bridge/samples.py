"""Container for posterior draws produced by an external sampler."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from ..utils.exceptions import InputError
from ..utils.types import ChainArray, DrawMatrix


@dataclass(frozen=True)
class PosteriorSample:
    """Posterior draws of one model, possibly from several chains.

    Parameters
    ----------
    names : tuple of str
        Parameter names, in the column order of `chains`.
    chains : ChainArray
        Draws of shape ``(n_chains, n_draws, n_params)``.
    """

    names: tuple[str, ...]
    chains: ChainArray

    def __post_init__(self):
        """Post-initialization checks."""
        names = tuple(self.names)
        chains = np.array(self.chains, dtype=float)
        if chains.ndim != 3:
            raise InputError(
                f"chains must have shape (n_chains, n_draws, n_params), got {chains.shape}."
            )
        if len(set(names)) != len(names):
            raise InputError(f"Parameter names must be unique, got {list(names)}.")
        if chains.shape[2] != len(names):
            raise InputError(
                f"Got {len(names)} parameter names for {chains.shape[2]} columns of draws."
            )
        if chains.shape[0] < 1 or chains.shape[1] < 2:
            raise InputError("At least two draws per chain are required.")
        if not np.all(np.isfinite(chains)):
            raise InputError("Posterior draws must be finite.")
        chains.setflags(write=False)
        object.__setattr__(self, "names", names)
        object.__setattr__(self, "chains", chains)

    @classmethod
    def from_array(cls, values: npt.ArrayLike, names: Sequence[str]) -> "PosteriorSample":
        """Build from a ``(n_draws, n_params)`` or ``(n_chains, n_draws, n_params)`` array."""
        values = np.asarray(values, dtype=float)
        if values.ndim == 1 and len(names) == 1:
            values = values[:, np.newaxis]
        if values.ndim == 2:
            values = values[np.newaxis]
        return cls(tuple(names), values)

    @classmethod
    def from_draws(cls, draws: Sequence[Mapping[str, float]]) -> "PosteriorSample":
        """Build a single chain from a sequence of name -> value draws."""
        if len(draws) == 0:
            raise InputError("No posterior draws supplied.")
        names = tuple(draws[0])
        for i, draw in enumerate(draws):
            if set(draw) != set(names):
                raise InputError(
                    f"Draw {i} has parameters {sorted(draw)}, expected {sorted(names)}."
                )
        values = np.array([[draw[name] for name in names] for draw in draws], dtype=float)
        return cls.from_array(values, names)

    @classmethod
    def from_dict(cls, samples: Mapping[str, npt.ArrayLike]) -> "PosteriorSample":
        """Build from a mapping of parameter name to draws.

        Each entry has shape ``(n_draws,)`` or ``(n_chains, n_draws)``; all
        entries must share the same shape.
        """
        if not samples:
            raise InputError("No posterior draws supplied.")
        names = tuple(samples)
        arrays = [np.atleast_2d(np.asarray(samples[name], dtype=float)) for name in names]
        shapes = {a.shape for a in arrays}
        if len(shapes) != 1:
            raise InputError(f"Inconsistent draw shapes across parameters: {shapes}.")
        return cls(names, np.stack(arrays, axis=-1))

    @classmethod
    def from_emcee(
        cls, sampler, names: Sequence[str], discard: int = 0, thin: int = 1
    ) -> "PosteriorSample":
        """Build from an ``emcee.EnsembleSampler``, one chain per walker."""
        chain = sampler.get_chain(discard=discard, thin=thin)  # (n_steps, n_walkers, n_dim)
        return cls(tuple(names), np.swapaxes(np.asarray(chain), 0, 1))

    @property
    def n_chains(self) -> int:
        return self.chains.shape[0]

    @property
    def n_draws(self) -> int:
        """Number of draws per chain."""
        return self.chains.shape[1]

    @property
    def n_params(self) -> int:
        return self.chains.shape[2]

    @property
    def values(self) -> DrawMatrix:
        """All draws with chains merged, shape ``(n_chains * n_draws, n_params)``."""
        return self.chains.reshape(-1, self.n_params)

    def __len__(self) -> int:
        return self.n_chains * self.n_draws

    def draw(self, i: int) -> dict[str, float]:
        """Draw `i` of the merged sample as a name -> value mapping."""
        return {name: float(v) for name, v in zip(self.names, self.values[i])}

    def reorder(self, names: Sequence[str]) -> "PosteriorSample":
        """Return the same draws with columns in the order of `names`."""
        names = tuple(names)
        if set(names) != set(self.names) or len(names) != len(self.names):
            raise InputError(
                f"Parameters {list(names)} do not match sampled parameters {list(self.names)}."
            )
        order = [self.names.index(name) for name in names]
        return PosteriorSample(names, self.chains[:, :, order])

    def split(self) -> tuple[DrawMatrix, ChainArray]:
        """Split every chain in half.

        Returns
        -------
        fit : DrawMatrix
            First half of every chain, merged, for fitting the proposal.
        iterate : ChainArray
            Second half of every chain, for the iterative scheme.
        """
        half = self.n_draws // 2
        fit = self.chains[:, :half, :].reshape(-1, self.n_params)
        iterate = self.chains[:, half:, :]
        return fit, iterate
