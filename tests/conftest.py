
import pytest
import numpy as np
from metalogpipe.distributions import Metalog, EmpiricalDistribution

@pytest.fixture
def rng():
    return np.random.default_rng(42)

@pytest.fixture
def scenario_p():
    return np.array([0.10, 0.50, 0.90])

@pytest.fixture
def scenario_x():
    return np.array([17.0, 24.0, 35.0])

@pytest.fixture
def interior_grid():
    return np.linspace(0.01, 0.99, 99)

@pytest.fixture
def logistic():
    # a = [0, 1]: Q(p) = ln(p / (1 - p))
    return Metalog([0.0, 1.0], rng=np.random.default_rng(0))

@pytest.fixture
def four_term():
    return Metalog([0.3, 1.2, 0.1, 0.2])

@pytest.fixture
def simple_samples():
    return np.array([3.0, 1.0, 2.0])

@pytest.fixture
def empirical(simple_samples, rng):
    return EmpiricalDistribution(simple_samples, rng=rng)

@pytest.fixture
def simple_weights():
    return np.array([0.2, 0.3, 0.5])
