# tests/test_basis.py
import numpy as np
import pytest

from metalogpipe import basis as B
from metalogpipe.errors import InvalidArgument


# ------------------------------- Values ---------------------------------

def test_basis_at_median_is_unit_vector():
    for ordering in B.ORDERINGS:
        t = B.basis(0.5, 6, ordering=ordering)
        assert np.allclose(t, [1.0, 0.0, 0.0, 0.0, 0.0, 0.0], atol=0)


def test_centered_and_keelin_values_at_three_quarters():
    ell, phi = np.log(3.0), 0.25

    centered = B.basis(0.75, 5)
    assert np.allclose(centered, [1.0, ell, phi, phi * ell, phi ** 2], rtol=0, atol=1e-15)

    keelin = B.basis(0.75, 5, ordering="keelin")
    assert np.allclose(keelin, [1.0, ell, phi * ell, phi, phi ** 2], rtol=0, atol=1e-15)


def test_orderings_agree_for_two_terms():
    ps = np.array([0.01, 0.2, 0.7, 0.99])
    assert np.array_equal(
        B.basis_matrix(ps, 2, ordering="centered"),
        B.basis_matrix(ps, 2, ordering="keelin"),
    )


def test_keelin_three_terms_uses_phi_logit_column():
    ps = np.array([0.1, 0.5, 0.9])
    Y = B.basis_matrix(ps, 3, ordering="keelin")
    phi, ell = ps - 0.5, np.log(ps / (1 - ps))
    assert Y.shape == (3, 3)
    assert np.allclose(Y[:, 2], phi * ell, atol=1e-15)


def test_matrix_shape_and_row_consistency():
    ps = np.linspace(0.05, 0.95, 7)
    Y = B.basis_matrix(ps, 9)
    D = B.derivative_matrix(ps, 9)
    assert Y.shape == (7, 9)
    assert D.shape == (7, 9)
    for i, p in enumerate(ps):
        assert np.allclose(Y[i], B.basis(p, 9))
        assert np.allclose(D[i], B.basis_derivative(p, 9))


# ----------------------------- Derivatives ------------------------------

@pytest.mark.parametrize("ordering", ["centered", "keelin"])
@pytest.mark.parametrize("terms", [2, 3, 4, 5, 8, 13, 20])
def test_derivative_matches_finite_differences(ordering, terms):
    ps = np.linspace(0.05, 0.95, 19)
    h = 1e-6
    fd = (B.basis_matrix(ps + h, terms, ordering=ordering)
          - B.basis_matrix(ps - h, terms, ordering=ordering)) / (2 * h)
    D = B.derivative_matrix(ps, terms, ordering=ordering)
    assert np.allclose(D, fd, rtol=1e-5, atol=1e-7)


def test_constant_term_has_zero_derivative_and_logit_term_matches():
    ps = np.array([1e-12, 0.3, 1 - 1e-12])
    D = B.derivative_matrix(ps, 2)
    assert np.all(D[:, 0] == 0.0)
    assert np.allclose(D[:, 1], 1.0 / (ps * (1 - ps)))


# ------------------------------- Errors ---------------------------------

@pytest.mark.parametrize("terms", [0, 1, 21, 2.0, True])
def test_bad_term_counts_rejected(terms):
    with pytest.raises(InvalidArgument):
        B.basis_matrix([0.5], terms)


def test_max_terms_is_configurable():
    ps = np.linspace(0.05, 0.95, 30)
    assert B.basis_matrix(ps, 22, max_terms=25).shape == (30, 22)
    with pytest.raises(InvalidArgument):
        B.basis_matrix(ps, 22)


@pytest.mark.parametrize("p", [0.0, 1.0, -0.1, 1.5, np.nan])
def test_probabilities_outside_open_interval_rejected(p):
    with pytest.raises(InvalidArgument):
        B.basis(p, 3)
    with pytest.raises(InvalidArgument):
        B.derivative_matrix([0.2, p], 3)


def test_unknown_ordering_rejected():
    with pytest.raises(InvalidArgument):
        B.basis(0.5, 3, ordering="reversed")


def test_invalid_argument_is_a_value_error():
    with pytest.raises(ValueError):
        B.basis(0.0, 3)


# -------------------------------- Grid ----------------------------------

def test_default_grid():
    g = B.default_grid()
    assert g.shape[0] > B.DEFAULT_GRID_SIZE
    assert np.all(np.isin(B.default_grid(tail_step=None), g))
    assert g[0] == 1e-12
    assert g[-1] == 1 - 1e-12
    assert np.all(np.diff(g) > 0)
    # every point is a valid basis argument
    assert np.all(np.isfinite(B.derivative_matrix(g, 20)))


def test_default_grid_rejects_bad_arguments():
    with pytest.raises(InvalidArgument):
        B.default_grid(1)
    with pytest.raises(InvalidArgument):
        B.default_grid(10, margin=0.0)


def test_clip_probabilities():
    out = B.clip_probabilities(np.array([0.0, 0.5, 1.0]))
    assert out[0] > 0.0 and out[-1] < 1.0
    assert out[1] == 0.5
    assert np.all(np.isfinite(B.basis_matrix(out, 4)))
    with pytest.raises(InvalidArgument):
        B.clip_probabilities([0.5], eps=0.0)


def test_default_grid_covers_the_tails():
    g = B.default_grid()
    z = np.log(g / (1 - g))
    # no gap wider than the tail step in logit space
    assert np.max(np.diff(z)) <= B.DEFAULT_TAIL_STEP + 1e-9
    assert np.sum(g > 0.99) > 10
    assert np.sum(g < 0.01) > 10

    uniform = B.default_grid(tail_step=None)
    assert uniform.shape == (B.DEFAULT_GRID_SIZE,)
    assert np.max(np.diff(np.log(uniform / (1 - uniform)))) > 10.0

    with pytest.raises(InvalidArgument):
        B.default_grid(tail_step=0.0)


def test_basis_module_is_reachable_from_package():
    import sys
    import metalogpipe
    import metalogpipe.basis as mod

    assert mod is sys.modules["metalogpipe.basis"]
    assert metalogpipe.basis is mod
    assert callable(mod.basis) and mod.MAX_TERMS == 20
