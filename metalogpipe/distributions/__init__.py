from .distribution import Distribution, EmpiricalDistribution
from .bounds import (
    BoundTransform,
    Unbounded,
    LowerBounded,
    UpperBounded,
    FullyBounded,
    bound_transform,
)
from .quantile import QuantileDistribution
from .metalog import Metalog, BoundedMetalog
