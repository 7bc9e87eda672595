# tests/array_backend/test_array_backend_utils.py
import numpy as np
import pytest

from metalogpipe.array_backend import utils as U
from metalogpipe.errors import InvalidArgument


def test_as_array_rejects_unconvertible_input():
    with pytest.raises(InvalidArgument):
        U._as_array("not a number")
    with pytest.raises(InvalidArgument):
        U._as_array([1.0, [2.0, 3.0]])


def test_ensure_real_scalar_from_python_scalar():
    assert U._ensure_real_scalar(3) == 3
    assert U._ensure_real_scalar(3.5) == 3.5
    assert isinstance(U._ensure_real_scalar(3), float)


def test_ensure_real_scalar_from_numpy_scalar_and_0d():
    a = np.float32(2.0)
    assert isinstance(U._ensure_real_scalar(a), float)
    assert U._ensure_real_scalar(np.array(4.0)) == 4.0
    assert U._ensure_real_scalar(np.array([5.0])) == 5.0


@pytest.mark.parametrize(
    "non_scalar_input",
    [[1,2], np.arange(2), np.identity(2)]
)
def test_ensure_real_scalar_rejects_multiple_elements(non_scalar_input):
    with pytest.raises(ValueError):
        U._ensure_real_scalar(non_scalar_input)


def test_ensure_real_scalar_rejects_complex_and_nonfinite():
    with pytest.raises(ValueError):
        U._ensure_real_scalar(1 + 2j)
    with pytest.raises(InvalidArgument):
        U._ensure_real_scalar(np.inf, name="epsilon")
    assert np.isnan(U._ensure_real_scalar(np.nan, finite=False))


def test_ensure_vector_scalar_and_1d_and_2d():
    v0 = U._ensure_vector(5)
    assert v0.shape == (1,)
    v1 = U._ensure_vector([1, 2, 3])
    assert v1.shape == (3,)
    v2 = U._ensure_vector(np.array([[1, 2, 3]]), length=3)
    assert v2.shape == (3,)
    v3 = U._ensure_vector(np.array([[1], [2]]))
    assert v3.shape == (2,)

    with pytest.raises(InvalidArgument):
        U._ensure_vector(np.zeros((2, 2)))


def test_ensure_vector_length_check():
    with pytest.raises(ValueError):
        U._ensure_vector([1, 2, 3], length=2)


def test_ensure_finite_vector():
    assert np.allclose(U._ensure_finite_vector([1.0, 2.0]), [1.0, 2.0])
    with pytest.raises(InvalidArgument):
        U._ensure_finite_vector([1.0, np.nan])
    with pytest.raises(InvalidArgument):
        U._ensure_finite_vector([1.0, -np.inf])


def test_ensure_probabilities_keeps_shape_and_checks_range():
    p = np.array([[0.1, 0.2], [0.3, 0.4]])
    assert U._ensure_probabilities(p).shape == (2, 2)
    assert U._ensure_probabilities(0.5).shape == ()

    for bad in ([0.0, 0.5], [0.5, 1.0], [np.nan], 2.0):
        with pytest.raises(InvalidArgument):
            U._ensure_probabilities(bad)


def test_clip_unit_interval():
    x = np.array([-1.0, 0.0, 0.5, 1.0, 2.0])
    assert np.allclose(U._clip_unit_interval(x), [0.0, 0.0, 0.5, 1.0, 1.0])
    padded = U._clip_unit_interval(x, eps=1e-3)
    assert padded.min() > 1e-3 - 1e-15
    assert padded.max() < 1 - 1e-3 + 1e-15
    assert padded[2] == 0.5


def test_ensure_matrix_scalar_1d_2d():
    m0 = U._ensure_matrix(2)
    assert m0.shape == (1, 1)
    m1 = U._ensure_matrix([1, 2])
    assert m1.shape == (1, 2)
    m3 = U._ensure_matrix(np.array([[1, 2], [3, 4]]))
    assert m3.shape == (2, 2)


def test_ensure_matrix_rejects_ndim_gt2():
    with pytest.raises(ValueError):
        U._ensure_matrix(np.zeros((2, 2, 2)))


def test_ensure_matrix_dim_checks():
    with pytest.raises(ValueError):
        U._ensure_matrix(2, num_rows=1, num_cols=2)
    with pytest.raises(ValueError):
        U._ensure_matrix([1, 2], num_rows=2)


def test_ensure_square_matrix():
    M = np.eye(3)
    out = U._ensure_square_matrix(M)
    assert out.shape == (3, 3)
    with pytest.raises(ValueError):
        U._ensure_square_matrix(np.array([[1, 2], [3, 4]]), n=3)
    with pytest.raises(ValueError):
        U._ensure_square_matrix(np.array([1, 2, 3]))


def test_readonly_returns_frozen_copy():
    x = np.array([1.0, 2.0])
    ro = U._readonly(x)
    assert ro is not x
    with pytest.raises(ValueError):
        ro[0] = 5.0
    x[0] = 5.0
    assert ro[0] == 1.0


def test_copy_semantics_ensure_vector_matrix():
    arr = np.array([1.0, 2.0, 3.0])
    v_copy = U._ensure_vector(arr, copy=True)
    assert not v_copy is arr
    v_view = U._ensure_vector(arr, copy=False)
    assert np.allclose(np.ravel(v_view), arr)

    mat = np.array([[1.0, 0.0], [0.0, 1.0]])
    m_copy = U._ensure_matrix(mat, copy=True)
    assert not m_copy is mat
    m_nocopy = U._ensure_matrix(mat, copy=False)
    assert np.allclose(m_nocopy, mat)
