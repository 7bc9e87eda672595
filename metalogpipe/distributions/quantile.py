# distributions/quantile.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Callable

import numpy as np
from scipy import integrate, optimize

from ..custom_types import Array, ArrayLike, Float
from ..errors import InvalidArgument, ModelInvalid
from ..basis import DEFAULT_GRID_MARGIN, clip_probabilities
from ..array_backend.utils import _as_array, _ensure_probabilities
from .distribution import Distribution

__all__ = [
    "QuantileDistribution",
]

# probabilities used when fitting to another distribution without explicit ones
_DEFAULT_FIT_PROBABILITIES = (0.01, 0.05, 0.1, 0.25, 0.5, 0.75, 0.9, 0.95, 0.99)


def _check_slope(p: Array, slope: Array) -> None:
    """Raise ModelInvalid unless every quantile slope is strictly positive."""
    bad = ~(np.asarray(slope) > 0.0)
    if np.any(bad):
        p_bad = np.asarray(p)[bad] if np.ndim(p) else np.asarray([p])
        s_bad = np.asarray(slope)[bad] if np.ndim(slope) else np.asarray([slope])
        raise ModelInvalid(
            f"Quantile slope Q'(p) <= 0 at p={p_bad[:5]} (slope={s_bad[:5]}); "
            f"the coefficients do not define an increasing quantile function there.",
            p=p_bad,
            slope=s_bad,
        )


class QuantileDistribution(Distribution[Float]):
    """
    Univariate distribution specified through its quantile function Q(p).

    Subclasses provide `quantile` and `quantile_derivative`; everything else
    (density, cdf, sampling, moments) follows from those two. Densities are
    quantile-parameterized: ``density(p)`` is f(x) evaluated at x = Q(p),
    which equals 1 / Q'(p).

    Subclasses must set ``self._rng``.
    """

    _rng: np.random.Generator

    @abstractmethod
    def quantile(self, p: ArrayLike):
        """Q(p) for p strictly inside (0, 1). Scalar in, float out."""

    @abstractmethod
    def quantile_derivative(self, p: ArrayLike):
        """dQ/dp for p strictly inside (0, 1)."""

    def density(self, p: ArrayLike):
        """Density f(Q(p)) = 1 / Q'(p).

        Raises:
            InvalidArgument: if p is outside (0, 1).
            ModelInvalid: if Q'(p) <= 0 at any requested p.
        """
        parr = _ensure_probabilities(p)
        slope = _as_array(self.quantile_derivative(parr))
        _check_slope(parr, slope)
        out = 1.0 / slope
        return float(out) if parr.ndim == 0 else out

    def log_density(self, p: ArrayLike):
        """log f(Q(p))."""
        dens = self.density(p)
        return float(np.log(dens)) if np.ndim(dens) == 0 else np.log(dens)

    def is_feasible(self, grid: ArrayLike | None = None) -> bool:
        """True when Q'(p) > 0 at every grid probability.

        The default grid is 999 evenly spaced points from 0.001 to 0.999.
        """
        grid = np.linspace(0.001, 0.999, 999) if grid is None else grid
        slope = _as_array(self.quantile_derivative(_ensure_probabilities(grid)))
        return bool(np.all(slope > 0.0))

    def cdf(self, x: ArrayLike, *, margin: float = DEFAULT_GRID_MARGIN, xtol: float = 1e-14):
        """Invert the quantile function numerically: F(x) = p with Q(p) = x.

        Values at or below Q(margin) map to 0, at or above Q(1 - margin) to 1.
        Uses Brent's method, so Q only needs to change sign across the bracket.
        """
        xarr = _as_array(x)
        if not np.all(np.isfinite(xarr)):
            raise InvalidArgument("cdf arguments must be finite.")
        lo, hi = margin, 1.0 - margin
        q_lo, q_hi = self.quantile(lo), self.quantile(hi)

        def _one(value: float) -> float:
            if value <= q_lo:
                return 0.0
            if value >= q_hi:
                return 1.0
            return optimize.brentq(lambda p: self.quantile(p) - value, lo, hi, xtol=xtol)

        out = np.array([_one(v) for v in xarr.reshape(-1)], dtype=float)
        return float(out[0]) if xarr.ndim == 0 else out.reshape(xarr.shape)

    def sample(self, n_samples: int = 1, *, uniforms: ArrayLike | None = None) -> Array:
        """
        Draw samples by inverse transform, x = Q(u).

        By default u comes from the distribution's random generator. Callers
        with their own uniform source (e.g. a counter-based generator keyed on
        trial and variable ids) pass the draws as `uniforms`; they are clamped
        away from 0 and 1 before evaluation.

        Returns an array of shape (n_samples,), or the shape of `uniforms`.
        """
        if uniforms is None:
            n_samples = int(n_samples)
            if n_samples < 0:
                raise InvalidArgument("n_samples must be nonnegative.")
            u = self._rng.uniform(size=n_samples)
        else:
            u = _as_array(uniforms)
            if np.any((u < 0.0) | (u > 1.0)) or not np.all(np.isfinite(u)):
                raise InvalidArgument("uniforms must lie in [0, 1].")
        u = clip_probabilities(u)
        return _as_array(self.quantile(u)).reshape(np.shape(u))

    rvs = sample

    def expectation(self, func: Callable[[Array], Array], **quad_kwargs) -> float:
        """E[func(X)] = integral of func(Q(p)) over (0, 1), by adaptive quadrature."""
        quad_kwargs.setdefault("limit", 200)
        value, _ = integrate.quad(lambda p: float(func(self.quantile(p))), 0.0, 1.0, **quad_kwargs)
        return float(value)

    def mean(self) -> float:
        return self.expectation(lambda x: x)

    def var(self) -> float:
        m = self.mean()
        return self.expectation(lambda x: (x - m) ** 2)

    def std(self) -> float:
        return float(np.sqrt(max(self.var(), 0.0)))

    @classmethod
    def from_distribution(cls, other: Distribution, **fit_kwargs: Any) -> QuantileDistribution:
        """
        Fit a metalog to quantiles of `other`.

        If `other` exposes ``quantile`` it is evaluated directly; otherwise
        ``num_samples`` draws (default 2048) are turned into an
        `EmpiricalDistribution` first.

        Keyword Args:
            terms (int): Number of metalog terms (default 5).
            probabilities (ArrayLike): Probabilities at which quantiles of
                `other` are matched (default 0.01, 0.05, ..., 0.99).
            lower, upper (float): Optional support bounds.
            epsilon, grid, ordering: Forwarded to `FitRequest`.
            num_samples (int): Sample size when `other` has no quantile method.
        """
        from ..fitting import ConstrainedFitter, FitRequest
        from .distribution import EmpiricalDistribution

        probabilities = _ensure_probabilities(
            np.asarray(fit_kwargs.pop("probabilities", _DEFAULT_FIT_PROBABILITIES), dtype=float)
        ).reshape(-1)
        terms = fit_kwargs.pop("terms", 5)
        lower = fit_kwargs.pop("lower", None)
        upper = fit_kwargs.pop("upper", None)
        num_samples = fit_kwargs.pop("num_samples", 2048)

        if not callable(getattr(other, "quantile", None)):
            other = EmpiricalDistribution.from_distribution(other, num_samples=num_samples)
        values = _as_array(other.quantile(probabilities)).reshape(-1)

        request = FitRequest(probabilities, values, terms, **fit_kwargs).with_bounds(lower, upper)
        return ConstrainedFitter().fit(request)
