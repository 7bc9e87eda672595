from .utils import gram, normalize_rows, symmetrize
from .solvers import LinearConstraint, lstsq, solve_qp
