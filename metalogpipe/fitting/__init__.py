from .request import DEFAULT_EPSILON, FitRequest
from .least_squares import LeastSquaresFitter
from .constrained import ConstrainedFitter, fit_metalog
