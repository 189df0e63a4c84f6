import numpy as np
import pytest

from mrrt.espirit.coils import apply_pca_weights, coil_pca_matrix, scc_rotation


def _low_rank_data(nsamples=512, ncoils=8, rank=2, seed=0):
    rstate = np.random.RandomState(seed)
    t = rstate.randn(nsamples, rank) + 1j * rstate.randn(nsamples, rank)
    mix = rstate.randn(rank, ncoils) + 1j * rstate.randn(rank, ncoils)
    return np.dot(t, mix)


def test_coil_pca_matrix():
    data = _low_rank_data()
    v = coil_pca_matrix(data, coil_axis=-1)
    assert v.shape == (8, 8)
    np.testing.assert_allclose(np.dot(v.conj().T, v), np.eye(8), atol=1e-10)

    # all energy is in the first two components
    comp = apply_pca_weights(data, v, 8)
    energy = np.sum(np.abs(comp) ** 2, axis=0)
    assert np.all(np.diff(energy) <= 1e-8 * energy[0])
    np.testing.assert_allclose(energy[2:], 0, atol=1e-8 * energy[0])

    v2, neig = coil_pca_matrix(data, percentile=99)
    assert neig == 2
    np.testing.assert_allclose(np.abs(v2), np.abs(v))

    with pytest.warns(UserWarning):
        coil_pca_matrix(data, percentile=50)
    with pytest.raises(ValueError):
        coil_pca_matrix(data, neig=9)


def test_coil_axis():
    data = _low_rank_data().reshape((16, 32, 8))
    v = coil_pca_matrix(data, coil_axis=-1)
    v0 = coil_pca_matrix(np.moveaxis(data, -1, 0), coil_axis=0)
    # the signal components do not depend on the coil axis
    np.testing.assert_allclose(np.abs(v0[:, :2]), np.abs(v[:, :2]), atol=1e-8)

    comp = apply_pca_weights(data, v, 3, coil_axis=-1)
    assert comp.shape == (16, 32, 3)
    comp0 = apply_pca_weights(np.swapaxes(data, 0, -1), v, 3, coil_axis=0)
    assert comp0.shape == (3, 32, 16)
    np.testing.assert_allclose(np.swapaxes(comp0, 0, -1), comp)


def test_scc_rotation():
    rstate = np.random.RandomState(1)
    u = rstate.randn(6) + 1j * rstate.randn(6)
    u /= np.linalg.norm(u)
    t = rstate.randn(100) + 1j * rstate.randn(100)
    calreg = (t[:, np.newaxis] * u).reshape((10, 10, 1, 6))
    rot = scc_rotation(calreg)
    assert rot.shape == (6, 6)
    eye = np.eye(6)
    np.testing.assert_allclose(np.dot(rot, rot.conj().T), eye, atol=1e-10)
    # the first row points along the only signal direction
    np.testing.assert_allclose(np.abs(np.vdot(rot[0], u)), 1, rtol=1e-8)
