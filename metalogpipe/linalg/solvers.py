# linalg/solvers.py
"""
Adapters around the numerical back ends used by the fitters.

- `lstsq`: linear least squares through `scipy.linalg`, either a pivoted QR
  factorization (full column rank required) or the SVD-based LAPACK driver
  `gelsd`, which returns the minimum-norm solution for rank-deficient or
  under-determined systems.
- `solve_qp`: convex quadratic programs

      minimize    1/2 a^T P a + q^T a
      subject to  r_k . a  (>= | <= | ==)  b_k

  solved with `cvxpy`. Inequality rows are rescaled to unit norm before they
  reach the solver and, optionally, the returned point is polished by
  solving the KKT system of its active set exactly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import cvxpy as cp
import numpy as np
import scipy.linalg

from ..custom_types import Array, ArrayLike
from ..errors import (
    InvalidArgument,
    QPInfeasibleError,
    QPUnboundedError,
    RankDeficiencyError,
    SolverError,
)
from ..array_backend.utils import _ensure_matrix, _ensure_square_matrix, _ensure_vector
from .utils import normalize_rows, symmetrize

__all__ = [
    "LinearConstraint",
    "lstsq",
    "solve_qp",
]

logger = logging.getLogger(__name__)

LSTSQ_METHODS = ("auto", "qr", "svd")
RELATIONS = (">=", "<=", "==")


# ------------------------------------------------------------------------------
# Linear least squares
# ------------------------------------------------------------------------------

def _qr_solve(A: Array, b: Array) -> Array:
    num_rows, num_cols = A.shape
    if num_rows < num_cols:
        raise RankDeficiencyError(
            f"QR least squares needs at least as many rows as columns; got shape {A.shape}."
        )
    Q, R, perm = scipy.linalg.qr(A, mode="economic", pivoting=True)
    diag = np.abs(np.diag(R))
    tol = max(A.shape) * np.finfo(float).eps * (diag[0] if diag.size else 0.0)
    rank = int(np.sum(diag > tol))
    if rank < num_cols:
        raise RankDeficiencyError(
            f"Design matrix has rank {rank} < {num_cols} columns."
        )
    x = np.empty(num_cols, dtype=float)
    x[perm] = scipy.linalg.solve_triangular(R, Q.T @ b, lower=False)
    return x


def _svd_solve(A: Array, b: Array, rcond: float | None) -> Array:
    x, _, rank, _ = scipy.linalg.lstsq(A, b, cond=rcond, lapack_driver="gelsd")
    if rank < A.shape[1]:
        logger.debug("lstsq: rank %d < %d columns, returning minimum-norm solution", rank, A.shape[1])
    return x


def lstsq(design: ArrayLike, target: ArrayLike, *, method: str = "auto",
          rcond: float | None = None) -> Array:
    """Solve min_a ||design @ a - target||_2.

    Args:
        design: (K, n) matrix.
        target: length-K vector.
        method: "qr" (pivoted QR; raises on rank deficiency), "svd"
            (minimum-norm solution via LAPACK gelsd) or "auto" (QR when the
            matrix is tall and of full column rank, SVD otherwise).
        rcond: Relative singular-value cutoff for the SVD path.

    Returns:
        Coefficient vector of length n.

    Raises:
        InvalidArgument: on dimension mismatch or unknown method.
        RankDeficiencyError: when method="qr" and the design is rank deficient.
    """
    if method not in LSTSQ_METHODS:
        raise InvalidArgument(f"Unknown least-squares method {method!r}; expected one of {LSTSQ_METHODS}.")
    A = _ensure_matrix(design, name="design")
    b = _ensure_vector(target, name="target")
    if b.shape[0] != A.shape[0]:
        raise InvalidArgument(
            f"Dimension mismatch: design has {A.shape[0]} rows but target has length {b.shape[0]}."
        )

    if method == "svd":
        return _svd_solve(A, b, rcond)
    try:
        return _qr_solve(A, b)
    except RankDeficiencyError:
        if method == "qr":
            raise
        logger.debug("lstsq: QR path rejected for shape %s, falling back to SVD", A.shape)
    return _svd_solve(A, b, rcond)


# ------------------------------------------------------------------------------
# Quadratic programming
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class LinearConstraint:
    """A block of linear constraints  rows @ a  (relation)  bounds.

    Args:
        rows: (m, n) matrix, or a single length-n row.
        relation: One of ">=", "<=", "==".
        bounds: Scalar (broadcast to every row) or length-m vector.
        name: Label used in log messages.
    """
    rows: Array
    relation: str
    bounds: Array
    name: str = field(default="constraint", compare=False)

    def __post_init__(self):
        if self.relation not in RELATIONS:
            raise InvalidArgument(f"relation must be one of {RELATIONS}; got {self.relation!r}.")
        rows = _ensure_matrix(self.rows, name=f"{self.name} rows")
        bounds = np.asarray(self.bounds, dtype=float)
        if bounds.ndim == 0:
            bounds = np.full(rows.shape[0], float(bounds))
        bounds = _ensure_vector(bounds, length=rows.shape[0], name=f"{self.name} bounds")
        object.__setattr__(self, "rows", rows)
        object.__setattr__(self, "bounds", bounds)

    @property
    def size(self) -> int:
        return self.rows.shape[0]


def _stack(constraints: Sequence[LinearConstraint], n: int) -> tuple[Array, Array, Array, Array]:
    """Split constraints into  G a >= h  and  E a == f."""
    G_blocks, h_blocks, E_blocks, f_blocks = [], [], [], []
    for con in constraints:
        if con.rows.shape[1] != n:
            raise InvalidArgument(
                f"Constraint {con.name!r} has {con.rows.shape[1]} columns; expected {n}."
            )
        if con.relation == ">=":
            G_blocks.append(con.rows)
            h_blocks.append(con.bounds)
        elif con.relation == "<=":
            G_blocks.append(-con.rows)
            h_blocks.append(-con.bounds)
        else:
            E_blocks.append(con.rows)
            f_blocks.append(con.bounds)

    G = np.vstack(G_blocks) if G_blocks else np.zeros((0, n))
    h = np.concatenate(h_blocks) if h_blocks else np.zeros(0)
    E = np.vstack(E_blocks) if E_blocks else np.zeros((0, n))
    f = np.concatenate(f_blocks) if f_blocks else np.zeros(0)
    if G.shape[0]:
        G, h = normalize_rows(G, h)
    if E.shape[0]:
        E, f = normalize_rows(E, f)
    return G, h, E, f


def _objective(P: Array, q: Array, x: Array) -> float:
    return float(0.5 * x @ P @ x + q @ x)


def _polish(P: Array, q: Array, G: Array, h: Array, E: Array, f: Array,
            x0: Array, *, max_passes: int = 5) -> Array:
    """Re-solve the KKT system on the active set of `x0`.

    Stationarity with multipliers lam >= 0 for the inequalities reads
    P x - A^T lam = -q, together with A x = b for the active rows A. Rows
    whose multiplier comes out negative are released and the system is
    solved again. The refined point replaces `x0` only if it is feasible and
    its objective is no worse.
    """
    n = P.shape[0]
    scale = max(1.0, float(np.max(np.abs(x0))))
    active_tol = 1e-6 * scale
    feas_tol = 1e-9 * scale

    active = (G @ x0 - h) <= active_tol if G.shape[0] else np.zeros(0, dtype=bool)
    x = None
    for _ in range(max_passes):
        A = np.vstack([G[active], E])
        b = np.concatenate([h[active], f])
        m = A.shape[0]
        kkt = np.block([[P, -A.T], [A, np.zeros((m, m))]])
        rhs = np.concatenate([-q, b])
        sol = scipy.linalg.lstsq(kkt, rhs, lapack_driver="gelsd")[0]
        x, lam = sol[:n], sol[n:n + int(active.sum())]
        negative = lam < -feas_tol
        if not np.any(negative):
            break
        idx = np.flatnonzero(active)
        active[idx[negative]] = False
    else:
        logger.debug("polish: active set did not settle after %d passes", max_passes)
        return x0

    if G.shape[0] and np.any(G @ x - h < -feas_tol):
        logger.debug("polish: refined point violates an inequality, keeping solver point")
        return x0
    if E.shape[0] and np.any(np.abs(E @ x - f) > feas_tol):
        logger.debug("polish: refined point violates an equality, keeping solver point")
        return x0

    obj0, obj = _objective(P, q, x0), _objective(P, q, x)
    if obj > obj0 + 1e-6 * max(1.0, abs(obj0)):
        logger.debug("polish: refined objective %.12g worse than %.12g, keeping solver point", obj, obj0)
        return x0

    logger.debug("polish: accepted refined point with %d active inequalities", int(active.sum()))
    return x


def solve_qp(P: ArrayLike, q: ArrayLike, constraints: Sequence[LinearConstraint] = (),
             *, solver: str | None = None, polish: bool = True, **solver_kwargs) -> Array:
    """Minimize 1/2 a^T P a + q^T a subject to linear constraints.

    Args:
        P: Symmetric positive semi-definite (n, n) matrix.
        q: Length-n linear term.
        constraints: `LinearConstraint` blocks.
        solver: Optional cvxpy solver name (e.g. "CLARABEL", "OSQP").
        polish: Refine the solver's point on its active set (see `_polish`).
        **solver_kwargs: Forwarded to `cvxpy.Problem.solve`.

    Returns:
        Optimal variable assignment, shape (n,).

    Raises:
        QPInfeasibleError: no point satisfies the constraints.
        QPUnboundedError: the objective is unbounded below.
        SolverError: the back end failed or returned no solution.
    """
    P = symmetrize(_ensure_square_matrix(P, name="P"))
    n = P.shape[0]
    q = _ensure_vector(q, length=n, name="q")
    G, h, E, f = _stack(constraints, n)

    a = cp.Variable(n)
    objective = cp.Minimize(0.5 * cp.quad_form(a, cp.psd_wrap(P)) + q @ a)
    cons = []
    if G.shape[0]:
        cons.append(G @ a >= h)
    if E.shape[0]:
        cons.append(E @ a == f)
    problem = cp.Problem(objective, cons)

    logger.debug("solve_qp: n=%d, %d inequalities, %d equalities", n, G.shape[0], E.shape[0])
    try:
        problem.solve(solver=solver, **solver_kwargs)
    except cp.error.SolverError as e:
        raise SolverError(f"QP solver failed: {e}") from e

    status = problem.status
    logger.debug("solve_qp: status=%s, objective=%s", status, problem.value)
    if status in (cp.INFEASIBLE, cp.INFEASIBLE_INACCURATE):
        raise QPInfeasibleError(f"QP is infeasible (status={status}).")
    if status in (cp.UNBOUNDED, cp.UNBOUNDED_INACCURATE):
        raise QPUnboundedError(f"QP is unbounded (status={status}).")
    if a.value is None:
        raise SolverError(f"QP solver returned no solution (status={status}).")
    if status == cp.OPTIMAL_INACCURATE:
        logger.warning("solve_qp: solver reported an inaccurate optimum")

    x = np.asarray(a.value, dtype=float).reshape(n)
    if polish:
        x = _polish(P, q, G, h, E, f, x)
    return x
