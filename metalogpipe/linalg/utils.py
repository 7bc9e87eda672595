# linalg/utils.py

from __future__ import annotations

import numpy as np

from ..custom_types import Array, ArrayLike
from ..array_backend.utils import _ensure_matrix, _ensure_square_matrix


def symmetrize(matrix: ArrayLike, *, copy: bool = True) -> Array:
    """
    Return (matrix + matrix.T) / 2.

    Quadratic-program back ends expect an exactly symmetric objective; Gram
    matrices assembled in floating point can differ from their transpose in
    the last bits.

    Args:
        matrix: 2D square array-like.
        copy: if True (default) never return the input object.

    Raises:
        InvalidArgument if the matrix is not square.
    """
    C = _ensure_square_matrix(matrix, copy=copy)
    return 0.5 * (C + C.T)


def gram(design: ArrayLike) -> Array:
    """
    Gram matrix Y^T Y of a design matrix Y, symmetrized.

    The result is positive semi-definite by construction, which is what makes
    the least-squares objective 1/2 a^T (Y^T Y) a - (Y^T x)^T a convex.
    """
    Y = _ensure_matrix(design, name="design", copy=False)
    return symmetrize(Y.T @ Y, copy=False)


def normalize_rows(rows: ArrayLike, bounds: ArrayLike) -> tuple[Array, Array]:
    """
    Scale each inequality row r_k . a (>=|<=) b_k to unit Euclidean norm.

    The feasible set is unchanged; only the conditioning seen by the solver
    improves. All-zero rows are returned unscaled.

    Returns:
        (scaled_rows, scaled_bounds)
    """
    R = _ensure_matrix(rows, name="rows")
    b = np.asarray(bounds, dtype=float).reshape(-1)
    if b.shape[0] != R.shape[0]:
        raise ValueError(f"normalize_rows: {R.shape[0]} rows but {b.shape[0]} bounds.")
    norms = np.linalg.norm(R, axis=1)
    norms[norms == 0.0] = 1.0
    return R / norms[:, np.newaxis], b / norms
