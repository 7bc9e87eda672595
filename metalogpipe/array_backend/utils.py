# array_backend/utils.py
"""
Array canonicalization and validation helpers used by metalogpipe.

Every public entry point funnels user input through one of these helpers so
that shape and domain problems surface as `InvalidArgument` before any basis
evaluation or solver call happens.

All functions that return arrays accept `copy: bool = True`. When `copy=True`
the returned array is guaranteed to be a different object from the input.
"""

from __future__ import annotations

import numpy as np
from typing import Any

from ..custom_types import Array, ArrayLike
from ..errors import InvalidArgument


def _as_array(x: Any, dtype=float) -> Array:
    try:
        return np.asarray(x, dtype=dtype)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(
            f"Could not convert input to a {np.dtype(dtype).name} array.\n"
            f"Input type: {type(x).__name__}\n"
            f"Input value: {repr(x)}\n"
            f"Original error: {e}"
        ) from e


def _is_numpy_scalar(x: Any) -> bool:
    """Return true if object is a numpy generic or Python scalar"""
    return np.isscalar(x) or isinstance(x, np.generic)


def _ensure_real_scalar(x: Any, *, name: str = "value", finite: bool = True) -> float:
    """
    Return a Python float for inputs that contain a single real value.

    Accepts Python scalars, numpy scalar types and 0-D / single-element arrays.

    Raises:
      InvalidArgument if the input holds more than one element, is complex,
      or (when `finite` is True) is nan or infinite.
    """
    if _is_numpy_scalar(x) and np.iscomplexobj(x):
        raise InvalidArgument(f"{name} is complex-valued: {x!r}")

    arr = _as_array(x)
    if arr.size != 1:
        raise InvalidArgument(f"{name} must contain exactly one element; got size={arr.size}, shape={arr.shape}")

    out = float(arr.reshape(()))
    if finite and not np.isfinite(out):
        raise InvalidArgument(f"{name} must be finite; got {out}.")
    return out


def _ensure_vector(x: ArrayLike, *, length: int | None = None,
                   name: str = "values", copy: bool = True) -> Array:
    """
    Ensure input is returned as a 1-D float vector of shape (n,).

    Accepts:
      - 0D scalar -> (1,)
      - 1D arrays -> (n,)
      - 2D arrays shaped (n,1) or (1,n) -> (n,)

    Raises:
      InvalidArgument for other shapes, or if `length` is given and does not match.
    """
    arr = _as_array(x)

    if arr.ndim == 0:
        out = arr.reshape((1,))
    elif arr.ndim == 1:
        out = arr
    elif arr.ndim == 2 and 1 in arr.shape:
        out = np.ravel(arr)
    else:
        raise InvalidArgument(f"{name} must be a scalar or a vector; got shape {arr.shape}.")

    if length is not None and out.size != length:
        raise InvalidArgument(f"{name} must have length {length}; got {out.size}.")

    return out.copy() if copy else out


def _ensure_finite_vector(x: ArrayLike, *, length: int | None = None,
                          name: str = "values", copy: bool = True) -> Array:
    """`_ensure_vector` that additionally rejects nan and infinite entries."""
    out = _ensure_vector(x, length=length, name=name, copy=copy)
    if not np.all(np.isfinite(out)):
        raise InvalidArgument(f"{name} must be finite.")
    return out


def _ensure_probabilities(p: ArrayLike, *, name: str = "p") -> Array:
    """
    Return `p` as a float array (shape preserved) after checking that every
    entry lies strictly inside (0, 1).

    Raises:
      InvalidArgument if any entry is <= 0, >= 1 or nan.
    """
    arr = _as_array(p)
    # nan fails both comparisons, so it is rejected too
    inside = (arr > 0.0) & (arr < 1.0)
    if not np.all(inside):
        bad = arr[~inside] if arr.ndim else arr
        raise InvalidArgument(f"{name} must lie strictly in (0,1); got {np.ravel(bad)[:5]}.")
    return arr


def _clip_unit_interval(x: ArrayLike, eps: float = 0.0) -> Array:
    """Clips values to the [0, 1] interval, optionally padding to an open range.

    Args:
        x (ArrayLike): Values to clip.
        eps (float, optional): If 0, clips to [0, 1]. If >0, clips to
            [eps, 1 - eps] using `np.nextafter` to avoid exact endpoints.
            Defaults to 0.0.

    Returns:
        Array: Array with clipped values.
    """
    x = _as_array(x)
    if eps <= 0.0:
        return np.clip(x, 0.0, 1.0)
    lo = np.nextafter(0.0 + eps, 1.0)
    hi = np.nextafter(1.0 - eps, 0.0)
    return np.clip(x, lo, hi)


def _ensure_matrix(x: ArrayLike, *, num_rows: int | None = None, num_cols: int | None = None,
                   name: str = "matrix", copy: bool = True) -> Array:
    """ Ensure input is a 2D float matrix

    - Scalar inputs (0D) become arrays of shape (1, 1)
    - 1D inputs become row matrices of shape (1, n)
    - 2D inputs are passed through as is
    - Other shapes raise an error
    """
    arr = _as_array(x)

    if arr.ndim == 2:
        out = arr
    elif arr.ndim == 1:
        out = arr.reshape(1, -1)
    elif arr.ndim == 0:
        out = arr.reshape(1, 1)
    else:
        raise InvalidArgument(f"{name} cannot be converted to a 2D matrix. Shape {arr.shape}")

    if num_rows is not None and out.shape[0] != num_rows:
        raise InvalidArgument(f"{name}: required {num_rows} rows. Got {out.shape[0]}.")

    if num_cols is not None and out.shape[1] != num_cols:
        raise InvalidArgument(f"{name}: required {num_cols} columns. Got {out.shape[1]}.")

    return out.copy() if copy else out


def _ensure_square_matrix(x: ArrayLike, n: int | None = None, *,
                          name: str = "matrix", copy: bool = True) -> Array:
    """Ensure input is a 2d square matrix"""
    matrix = _ensure_matrix(x, name=name, copy=copy)
    num_rows, num_cols = matrix.shape
    if num_rows != num_cols:
        raise InvalidArgument(f"{name} is not square. Shape {matrix.shape}")

    if n is not None and matrix.shape[0] != n:
        raise InvalidArgument(f"{name}: required dimension {n}. Got {matrix.shape[0]}.")

    return matrix


def _readonly(x: Array) -> Array:
    """Return a read-only copy of `x`."""
    out = np.array(x, dtype=float, copy=True)
    out.setflags(write=False)
    return out
