import warnings

import numpy as np
import pytest

from mrrt.espirit.calib import (
    DirectEigenSolver,
    OrthogonalIteration,
    caltwo,
    ecalib_defaults,
    eigenmaps,
    get_eigensolver,
    orthiter,
    pack_tri_matrix,
)


_evals = np.array([10.0, 5.0, 2.0, 1.0, 0.5, 0.1])


def _random_hermitian(shape, evals=_evals, seed=0):
    """Stack of Hermitian matrices with the given eigenvalues."""
    n = len(evals)
    rstate = np.random.RandomState(seed)
    a = rstate.randn(*(shape + (n, n))) + 1j * rstate.randn(*(shape + (n, n)))
    u = np.linalg.qr(a)[0]
    return np.matmul(u * evals, np.conj(np.swapaxes(u, -1, -2)))


@pytest.mark.parametrize(
    "solver", [OrthogonalIteration(), DirectEigenSolver()]
)
def test_solvers_diagonal(solver):
    cov = np.diag([1.0, 5.0, 2.0, 0.5]).astype(np.complex128)
    vals, vecs = solver(cov, 2)
    np.testing.assert_allclose(vals, [5.0, 2.0], rtol=1e-6)
    np.testing.assert_allclose(np.abs(vecs[:, 0]), [0, 1, 0, 0], atol=1e-6)
    np.testing.assert_allclose(np.abs(vecs[:, 1]), [0, 0, 1, 0], atol=1e-6)


def test_solvers_agree():
    cov = _random_hermitian((16,))
    vals_o, vecs_o = OrthogonalIteration()(cov, 2)
    vals_d, vecs_d = DirectEigenSolver()(cov, 2)
    assert vals_d.shape == (16, 2)
    assert vecs_d.shape == (16, 6, 2)
    assert np.all(vals_d[:, 0] >= vals_d[:, 1])
    np.testing.assert_allclose(vals_o[:, 0], vals_d[:, 0], rtol=1e-6)
    overlap = np.abs(np.sum(vecs_o[..., 0].conj() * vecs_d[..., 0], axis=-1))
    np.testing.assert_allclose(overlap, 1, rtol=1e-6)


def test_solvers_close_eigenvalues():
    # nearly degenerate leading pair, as found inside the object
    evals = np.array([1.0, 0.995, 0.02, 0.01, 0.005])
    cov = _random_hermitian((32,), evals=evals, seed=3)
    vals_o, vecs_o = OrthogonalIteration()(cov, 2)
    vals_d, _ = DirectEigenSolver()(cov, 2)
    assert np.all(vals_o[:, 0] >= vals_o[:, 1])
    np.testing.assert_allclose(vals_o, vals_d, rtol=1e-8)
    np.testing.assert_allclose(vals_o, np.tile(evals[:2], (32, 1)))
    # columns are eigenvectors
    resid = np.matmul(cov, vecs_o) - vecs_o * vals_o[:, np.newaxis, :]
    np.testing.assert_allclose(resid, 0, atol=1e-8)


def test_orthiter():
    cov = _random_hermitian((4,), seed=2)
    vals, vecs = orthiter(cov, 3)
    # ascending order with the dominant vector last
    assert np.all(np.diff(vals, axis=-1) >= 0)
    np.testing.assert_allclose(vals, np.tile([2.0, 5.0, 10.0], (4, 1)))
    gram = np.matmul(np.conj(np.swapaxes(vecs, -1, -2)), vecs)
    eye = np.broadcast_to(np.eye(3), gram.shape)
    np.testing.assert_allclose(gram, eye, atol=1e-10)

    with pytest.raises(ValueError):
        orthiter(cov, 6)


def test_get_eigensolver():
    assert isinstance(get_eigensolver(True, niter=10), OrthogonalIteration)
    assert get_eigensolver(True, niter=10).niter == 10
    assert isinstance(get_eigensolver(False), DirectEigenSolver)
    with pytest.warns(UserWarning):
        solver = get_eigensolver(False, usegpu=True)
    assert isinstance(solver, DirectEigenSolver)


@pytest.mark.parametrize("orthiter", [True, False])
def test_eigenmaps(orthiter):
    shape = (4, 3, 2)
    cov = _random_hermitian(shape, evals=_evals[:4])
    imgcov = pack_tri_matrix(cov)
    sens, emaps = eigenmaps(imgcov, 2, orthiter=orthiter)
    assert sens.shape == shape + (4, 2)
    assert emaps.shape == shape + (2,)
    assert emaps.dtype == np.float64
    np.testing.assert_allclose(emaps[..., 0], 10)
    np.testing.assert_allclose(emaps[..., 1], 5)

    # small batches give the same result
    sens2, emaps2 = eigenmaps(imgcov, 2, orthiter=orthiter, batch_size=5)
    np.testing.assert_allclose(emaps2, emaps)
    np.testing.assert_allclose(sens2, sens)


def test_eigenmaps_mask():
    shape = (4, 3, 2)
    imgcov = pack_tri_matrix(_random_hermitian(shape, evals=_evals[:3]))
    mask = np.zeros(shape, dtype=bool)
    mask[1:3, :, 0] = True
    sens, emaps = eigenmaps(imgcov, 1, mask=mask)
    assert np.all(sens[~mask] == 0)
    assert np.all(emaps[~mask] == 0)
    assert np.all(emaps[mask] > 0)

    with pytest.raises(ValueError):
        eigenmaps(imgcov, 1, mask=mask[:, :, :1])
    with pytest.raises(ValueError):
        eigenmaps(imgcov, 4)


def test_caltwo_identity():
    # identity covariance on the small grid (scaled as computed by calone)
    channels = 3
    cov_shape = (4, 4, 1)
    cov = np.broadcast_to(np.eye(channels), cov_shape + (channels, channels))
    imgcov = pack_tri_matrix(cov) / np.prod(cov_shape)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        sens, emaps = caltwo(imgcov, (8, 6, 1), 2, ecalib_defaults)
    assert sens.shape == (8, 6, 1, channels, 2)
    assert emaps.shape == (8, 6, 1, 2)
    np.testing.assert_allclose(emaps, 1, rtol=1e-6)


def test_caltwo_errors():
    imgcov = np.zeros((4, 4, 1, 6), dtype=np.complex64)
    with pytest.raises(ValueError):
        # output grid smaller than the covariance grid
        caltwo(imgcov, (2, 8, 1), 2)
    with pytest.raises(ValueError):
        # odd covariance grid
        caltwo(np.zeros((3, 4, 1, 6)), (8, 8, 1), 2)
    with pytest.raises(ValueError):
        # more maps than channels
        caltwo(imgcov, (8, 8, 1), 4)
    with pytest.raises(ValueError):
        caltwo(imgcov, (8, 8, 1, 4), 2)
    with pytest.raises(ValueError):
        caltwo(np.zeros((4, 4, 1, 7)), (8, 8, 1), 2)
