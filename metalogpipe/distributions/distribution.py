# distributions/distribution.py
from __future__ import annotations

from typing import Generic, Callable, Any
from abc import ABC, abstractmethod

import numpy as np

from ..custom_types import Array, ArrayLike, PRNG, T, Float
from ..errors import InvalidArgument
from ..array_backend.utils import _as_array, _ensure_vector, _ensure_probabilities

__all__ = [
    "Distribution",
    "EmpiricalDistribution",
]

# -------------------------- Abstract Classes ----------------------------


class Distribution(Generic[T], ABC):
    """
    Abstract base class for any distribution class.
    """

    def sample(self, n_samples: int = 1) -> Array[T]:
        """
        Optional. If a subclass can’t sample, it may leave this unimplemented.

        Sample n_samples items from the distribution.
        Returns a ndarray of T.
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")

    def density(self, data: Array[T]) -> Array[Float]:
        """
        Optional. If a subclass can’t evaluate densities, it may leave this unimplemented.

        Quantile-parameterized distributions (see `QuantileDistribution`)
        take probabilities here and return f(Q(p)).
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")

    def log_density(self, data: Array[T]) -> Array[Float]:
        """
        Optional. If a subclass can’t evaluate densities, it may leave this unimplemented.

        Log of `density`, same argument convention.
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")

    def expectation(self, func: Callable[[Array[T]], Array]) -> Any:
        """
        Optional. If a subclass can’t integrate, it may leave this unimplemented.

        Expected value of func(X) under this distribution.
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")

    @classmethod
    @abstractmethod
    def from_distribution(cls, other: Distribution, **fit_kwargs: Any) -> Distribution[T]:
        """
        Convert the distribution `other` into a distribution of type `cls`. This will
        typically be an approximation, e.g. fitting a parametric family to
        quantiles of `other`.
        """
        raise NotImplementedError("This method should be implemented by subclasses")


class EmpiricalDistribution(Distribution):
    """ Container for (weighted) empirical samples on the real line.

    The discrete distribution defined by a set of `n`, potentially weighted,
    scalar samples. Mostly used as the source of quantile points when a
    metalog is fitted to data or to another distribution.

    Args:
        x: array-like, shape (n,) or (n, 1)
            The samples defining the empirical distribution.
        weights: array-like, shape (n,), optional
            Nonnegative weights; will be normalized to sum to 1. If None,
            uniform weights are assigned.
        rng: np.random.Generator, optional
            Random number generator for sampling.
    """

    def __init__(
        self,
        x: ArrayLike,
        weights: ArrayLike | None = None,
        *,
        rng: PRNG | None = None,
    ):
        X = _ensure_vector(x, name="samples")
        n = X.shape[0]
        if n < 1:
            raise InvalidArgument("EmpiricalDistribution requires at least one sample.")
        if not np.all(np.isfinite(X)):
            raise InvalidArgument("samples must be finite.")

        if weights is None:
            w = np.full(n, 1.0 / n, dtype=float)
        else:
            w = _ensure_vector(weights, length=n, name="weights")
            if np.any(w < 0):
                raise InvalidArgument("weights must be nonnegative.")
            s = w.sum()
            if s <= 0:
                raise InvalidArgument("weights cannot all be zero.")
            w = w / s

        order = np.argsort(X, kind="stable")
        self._X = X[order]
        self._w = w[order]
        self._n = int(n)
        self._rng = rng or np.random.default_rng()

        self._mean = float(np.sum(self._w * self._X))
        self._var = float(np.sum(self._w * (self._X - self._mean) ** 2))

        # cumulative weights for the empirical quantile function
        self._cw = np.cumsum(self._w)

    @property
    def n(self) -> int:
        """Number of stored samples."""
        return self._n

    @property
    def samples(self) -> Array:
        """The stored samples in ascending order, shape (n,)."""
        return self._X

    @property
    def weights(self) -> Array:
        """Normalized weights aligned with `samples`, shape (n,)."""
        return self._w

    def mean(self) -> float:
        """Weighted mean."""
        return self._mean

    def var(self) -> float:
        """Weighted *population* variance."""
        return self._var

    def std(self) -> float:
        return float(np.sqrt(max(self._var, 0.0)))

    def quantile(self, p: ArrayLike):
        """Weighted empirical quantile: smallest sample whose cumulative weight reaches p."""
        parr = _ensure_probabilities(p)
        idx = np.searchsorted(self._cw, parr, side="left")
        out = self._X[np.minimum(idx, self._n - 1)]
        return float(out) if parr.ndim == 0 else out

    def sample(self, n_samples: int, *, replace: bool = True) -> Array:
        """
        Resample draws from the empirical distribution using the stored
        weights. Returns shape (n_samples,).
        """
        n_samples = int(n_samples)
        if not replace and n_samples > self._n:
            raise InvalidArgument("Cannot sample more than n without replacement.")
        idx = self._rng.choice(self._n, size=n_samples, replace=replace, p=self._w)
        return self._X[idx]

    rvs = sample

    def expectation(self, func: Callable[[Array], Array]) -> float:
        """Weighted average of func over the stored samples."""
        Y = _as_array(func(self._X)).reshape(-1)
        if Y.shape[0] != self._n:
            raise InvalidArgument("func must return one value per sample.")
        return float(np.sum(self._w * Y))

    @classmethod
    def from_distribution(
        cls,
        other: Distribution,
        **fit_kwargs: Any,
    ) -> EmpiricalDistribution:
        samples = other.sample(fit_kwargs.get("num_samples", 2048))
        return cls(_ensure_vector(samples, name="samples"), rng=fit_kwargs.get("rng"))
