# tests/fitting/test_least_squares.py
import logging

import numpy as np
import pytest
from scipy.special import logit

from metalogpipe.fitting import FitRequest, LeastSquaresFitter
from metalogpipe.distributions import BoundedMetalog, FullyBounded, LowerBounded, Metalog
from metalogpipe.errors import InvalidArgument, RankDeficiencyError


def test_three_point_scenario_interpolates(scenario_p, scenario_x):
    m = LeastSquaresFitter().fit(scenario_p, scenario_x, 3, ordering="keelin")
    assert isinstance(m, Metalog)
    assert m.ordering == "keelin"
    assert m.quantile(0.5) == pytest.approx(24.0, abs=1e-9)
    assert np.allclose(m.quantile(scenario_p), scenario_x, atol=1e-9)
    # a_0 is the median, a_1 the half-spread over the logit distance
    assert np.allclose(m.coefficients[:2], [24.0, 18.0 / (2 * logit(0.9))], atol=1e-9)


def test_recovers_logistic_coefficients():
    p = np.linspace(0.05, 0.95, 9)
    a = LeastSquaresFitter().fit_coefficients(p, logit(p), 5)
    assert np.allclose(a, [0.0, 1.0, 0.0, 0.0, 0.0], atol=1e-9)


@pytest.mark.parametrize("method", ["qr", "svd", "auto"])
def test_methods_agree_on_well_posed_data(method):
    p = np.array([0.05, 0.2, 0.4, 0.6, 0.8, 0.95])
    x = np.array([1.0, 2.5, 3.1, 3.6, 4.9, 7.0])
    a = LeastSquaresFitter(method).fit_coefficients(p, x, 4)
    Y = LeastSquaresFitter().design_matrix(p, 4)
    assert np.allclose(a, np.linalg.lstsq(Y, x, rcond=None)[0], atol=1e-9)


def test_underdetermined_fit_uses_minimum_norm():
    p, x = [0.25, 0.75], [1.0, 3.0]
    a = LeastSquaresFitter().fit_coefficients(p, x, 4)
    m = Metalog(a)
    assert np.allclose(m.quantile(np.asarray(p)), x, atol=1e-9)

    with pytest.raises(RankDeficiencyError):
        LeastSquaresFitter("qr").fit_coefficients(p, x, 4)


def test_bounded_fit_happens_in_z_space(scenario_p, scenario_x):
    m = LeastSquaresFitter().fit(scenario_p, scenario_x, 3, bound=FullyBounded(16.0, 40.0), ordering="keelin")
    assert isinstance(m, BoundedMetalog)
    assert np.allclose(m.quantile(scenario_p), scenario_x, atol=1e-9)
    z = np.log((scenario_x - 16.0) / (40.0 - scenario_x))
    assert np.allclose(m.inner.quantile(scenario_p), z, atol=1e-9)


def test_fit_request_and_linear_constraints(scenario_p, scenario_x):
    fitter = LeastSquaresFitter()
    req = FitRequest(scenario_p, scenario_x, 3, ordering="keelin").with_bounds(lower=16.0)
    m = fitter.fit_request(req)
    assert isinstance(m, BoundedMetalog)
    assert isinstance(m.transform, LowerBounded)

    with pytest.raises(InvalidArgument):
        fitter.fit_request(FitRequest(scenario_p, scenario_x, 3).with_constraints(0.0, 100.0))


def test_term_ceiling(scenario_p, scenario_x):
    with pytest.raises(InvalidArgument):
        LeastSquaresFitter().fit_coefficients(scenario_p, scenario_x, 21)
    with pytest.raises(InvalidArgument):
        LeastSquaresFitter(max_terms=4).fit_coefficients(scenario_p, scenario_x, 5)
    with pytest.raises(InvalidArgument):
        LeastSquaresFitter("lu")


def test_nonmonotone_fit_is_returned_and_logged(caplog):
    p = np.array([0.1, 0.3, 0.5, 0.7, 0.9])
    x = np.array([1.0, 3.0, 2.0, 4.0, 5.0])
    with caplog.at_level(logging.DEBUG, logger="metalogpipe.fitting.least_squares"):
        m = LeastSquaresFitter().fit(p, x, 5)
    assert not m.is_feasible()
    assert any("not increasing" in rec.getMessage() for rec in caplog.records)
