import logging

from metalogpipe.errors import (
    MetalogError,
    InvalidArgument,
    ModelInvalid,
    FitInfeasible,
    SolverError,
)
from metalogpipe.basis import MAX_TERMS, basis_matrix, derivative_matrix
from metalogpipe.distributions import (
    Distribution,
    EmpiricalDistribution,
    QuantileDistribution,
    Metalog,
    BoundedMetalog,
    BoundTransform,
    Unbounded,
    LowerBounded,
    UpperBounded,
    FullyBounded,
    bound_transform,
)
from metalogpipe.fitting import (
    DEFAULT_EPSILON,
    FitRequest,
    LeastSquaresFitter,
    ConstrainedFitter,
    fit_metalog,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
