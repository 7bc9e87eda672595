# distributions/bounds.py
"""
Support transforms for bounded metalogs.

A metalog is always fitted in an unconstrained space z; a transform maps z
onto the target support x. Every forward map below is strictly increasing,
so a quantile function that is increasing in z stays increasing in x, and the
bounds hold by construction instead of by clipping.

=============  ===========================  ========================  ======================
variant        forward  z -> x              inverse  x -> z           dx/dz
=============  ===========================  ========================  ======================
Unbounded      x = z                        z = x                     1
LowerBounded   x = L + exp(z)               z = ln(x - L)             x - L
UpperBounded   x = U - exp(-z)              z = -ln(U - x)            U - x
FullyBounded   x = L + (U - L) sigmoid(z)   z = ln((x - L)/(U - x))   (x - L)(U - x)/(U - L)
=============  ===========================  ========================  ======================

The density of the transformed model is f_x(p) = 1 / (dx/dz * Q_z'(p)).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
from scipy.special import expit

from ..custom_types import Array, ArrayLike
from ..errors import InvalidArgument
from ..array_backend.utils import _as_array, _ensure_real_scalar

__all__ = [
    "BoundTransform",
    "Unbounded",
    "LowerBounded",
    "UpperBounded",
    "FullyBounded",
    "bound_transform",
]


def _like_input(x, out: Array):
    return float(out) if np.ndim(x) == 0 else out


class BoundTransform(ABC):
    """Strictly increasing map from the fitting space z to the support of x."""

    @property
    def lower(self) -> float | None:
        return None

    @property
    def upper(self) -> float | None:
        return None

    @property
    def support(self) -> tuple[float, float]:
        lo = -np.inf if self.lower is None else self.lower
        hi = np.inf if self.upper is None else self.upper
        return (lo, hi)

    @property
    def is_bounded(self) -> bool:
        return self.lower is not None or self.upper is not None

    def forward(self, z: ArrayLike):
        """Map z-values to x-values."""
        return _like_input(z, self._forward(_as_array(z)))

    def inverse(self, x: ArrayLike):
        """Map observed x-values to z-values.

        Raises:
            InvalidArgument: if any x lies outside the open support.
        """
        arr = _as_array(x)
        self.validate(arr)
        return _like_input(x, self._inverse(arr))

    def derivative(self, z: ArrayLike):
        """dx/dz evaluated at z."""
        return _like_input(z, self._derivative(_as_array(z)))

    def validate(self, x: ArrayLike) -> None:
        """Check that every x lies strictly inside the support."""
        arr = _as_array(x)
        if not np.all(np.isfinite(arr)):
            raise InvalidArgument("observed quantiles must be finite.")

    @abstractmethod
    def _forward(self, z: Array) -> Array: ...

    @abstractmethod
    def _inverse(self, x: Array) -> Array: ...

    @abstractmethod
    def _derivative(self, z: Array) -> Array: ...


@dataclass(frozen=True)
class Unbounded(BoundTransform):
    """Identity transform; support is the whole real line."""

    def _forward(self, z):
        return z.copy()

    def _inverse(self, x):
        return x.copy()

    def _derivative(self, z):
        return np.ones_like(z)


@dataclass(frozen=True)
class LowerBounded(BoundTransform):
    """Support (L, inf) via x = L + exp(z)."""
    lower_bound: float

    def __post_init__(self):
        object.__setattr__(self, "lower_bound", _ensure_real_scalar(self.lower_bound, name="lower bound"))

    @property
    def lower(self) -> float:
        return self.lower_bound

    def validate(self, x):
        super().validate(x)
        if np.any(_as_array(x) <= self.lower_bound):
            raise InvalidArgument(f"observed quantile not above lower bound {self.lower_bound}.")

    def _forward(self, z):
        return self.lower_bound + np.exp(z)

    def _inverse(self, x):
        return np.log(x - self.lower_bound)

    def _derivative(self, z):
        return np.exp(z)


@dataclass(frozen=True)
class UpperBounded(BoundTransform):
    """Support (-inf, U) via x = U - exp(-z)."""
    upper_bound: float

    def __post_init__(self):
        object.__setattr__(self, "upper_bound", _ensure_real_scalar(self.upper_bound, name="upper bound"))

    @property
    def upper(self) -> float:
        return self.upper_bound

    def validate(self, x):
        super().validate(x)
        if np.any(_as_array(x) >= self.upper_bound):
            raise InvalidArgument(f"observed quantile not below upper bound {self.upper_bound}.")

    def _forward(self, z):
        return self.upper_bound - np.exp(-z)

    def _inverse(self, x):
        return -np.log(self.upper_bound - x)

    def _derivative(self, z):
        return np.exp(-z)


@dataclass(frozen=True)
class FullyBounded(BoundTransform):
    """Support (L, U) via x = L + (U - L) * sigmoid(z)."""
    lower_bound: float
    upper_bound: float

    def __post_init__(self):
        lo = _ensure_real_scalar(self.lower_bound, name="lower bound")
        hi = _ensure_real_scalar(self.upper_bound, name="upper bound")
        if not hi > lo:
            raise InvalidArgument(f"upper bound must exceed lower bound; got L={lo}, U={hi}.")
        object.__setattr__(self, "lower_bound", lo)
        object.__setattr__(self, "upper_bound", hi)

    @property
    def lower(self) -> float:
        return self.lower_bound

    @property
    def upper(self) -> float:
        return self.upper_bound

    @property
    def width(self) -> float:
        return self.upper_bound - self.lower_bound

    def validate(self, x):
        super().validate(x)
        arr = _as_array(x)
        if np.any((arr <= self.lower_bound) | (arr >= self.upper_bound)):
            raise InvalidArgument(
                f"observed quantile not strictly inside ({self.lower_bound}, {self.upper_bound})."
            )

    def _forward(self, z):
        return self.lower_bound + self.width * expit(z)

    def _inverse(self, x):
        return np.log((x - self.lower_bound) / (self.upper_bound - x))

    def _derivative(self, z):
        # sigmoid'(z) = sigmoid(z) * sigmoid(-z), accurate in both tails
        return self.width * expit(z) * expit(-z)


def bound_transform(lower: float | None = None, upper: float | None = None) -> BoundTransform:
    """Pick the transform matching the supplied bounds."""
    if lower is None and upper is None:
        return Unbounded()
    if upper is None:
        return LowerBounded(lower)
    if lower is None:
        return UpperBounded(upper)
    return FullyBounded(lower, upper)
