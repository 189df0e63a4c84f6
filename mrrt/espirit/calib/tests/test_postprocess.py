import numpy as np
import pytest

from mrrt.espirit.calib import (
    crop_sens,
    crop_thresh_function,
    crop_weight_function,
    fixphase,
    normalize_l1,
    scurve,
)


def _random_sens(shape=(6, 5, 2, 4, 2), seed=0):
    rstate = np.random.RandomState(seed)
    return rstate.randn(*shape) + 1j * rstate.randn(*shape)


def test_scurve():
    x = np.linspace(-3, 3, 601)
    y = scurve(x)
    np.testing.assert_array_equal(y[x <= -1], 0)
    np.testing.assert_array_equal(y[x >= 1], 1)
    assert np.all(np.diff(y) >= 0)
    np.testing.assert_allclose(scurve(0), 0.5)


@pytest.mark.parametrize("crth", [0.5, 0.8, 0.95])
def test_crop_weight_function(crth):
    val = np.linspace(0, 1.5, 301)
    w = crop_weight_function(crth, val)
    assert np.all(w >= 0)
    assert np.all(w <= 1)
    assert np.all(np.diff(w) >= 0)
    x = (np.sqrt(val) - crth) / (1 - crth)
    np.testing.assert_array_equal(w[x <= -1], 0)
    np.testing.assert_array_equal(w[x >= 1], 1)


def test_crop_thresh_function():
    crth = 0.8
    val = np.array([0.0, 0.5, 0.8, 0.80001, 1.0])
    np.testing.assert_array_equal(
        crop_thresh_function(crth, val), [0, 0, 0, 1, 1]
    )


@pytest.mark.parametrize("softcrop", [False, True])
def test_crop_sens(softcrop):
    sens = _random_sens()
    emaps = np.zeros(sens.shape[:3] + sens.shape[4:])
    emaps[..., 0] = 1.0
    emaps[:3, ..., 1] = 0.95
    emaps[3:, ..., 1] = 0.1
    out = crop_sens(sens, emaps, softcrop, 0.8)
    assert out.shape == sens.shape
    # maps with large eigenvalues are kept
    np.testing.assert_allclose(out[..., 0], sens[..., 0])
    np.testing.assert_array_equal(out[3:, ..., 1], 0)
    if softcrop:
        w = crop_weight_function(0.8, 0.95)
        assert 0 < w < 1
        np.testing.assert_allclose(out[:3, ..., 1], w * sens[:3, ..., 1])
    else:
        np.testing.assert_allclose(out[:3, ..., 1], sens[:3, ..., 1])

    with pytest.raises(ValueError):
        crop_sens(sens, emaps[..., :1], softcrop, 0.8)
    with pytest.raises(ValueError):
        crop_sens(sens[..., 0], emaps[..., 0], softcrop, 0.8)


@pytest.mark.parametrize("rescale", [False, True])
def test_normalize_l1(rescale):
    sens = _random_sens()
    sens[0, 0, 0] = 0
    out = normalize_l1(sens, coil_axis=3, rescale=rescale)
    l1 = np.sum(np.abs(out), axis=3)
    expected = np.sqrt(sens.shape[3]) if rescale else 1.0
    np.testing.assert_allclose(l1[1:], expected)
    # all-zero voxels stay zero
    np.testing.assert_array_equal(out[0, 0, 0], 0)
    # phase is unchanged
    np.testing.assert_allclose(np.angle(out[1:]), np.angle(sens[1:]))


def test_fixphase():
    sens = _random_sens()
    out = fixphase(sens)
    np.testing.assert_allclose(np.abs(out), np.abs(sens))
    ref = out[:, :, :, 0]
    np.testing.assert_allclose(ref.imag, 0, atol=1e-12)
    assert np.all(ref.real >= 0)

    rstate = np.random.RandomState(4)
    rot = rstate.randn(4) + 1j * rstate.randn(4)
    out = fixphase(sens, rot=rot, coil_axis=3)
    proj = np.sum(np.conj(rot)[:, np.newaxis] * out, axis=3)
    np.testing.assert_allclose(proj.imag, 0, atol=1e-12)
    assert np.all(proj.real >= 0)

    with pytest.raises(ValueError):
        fixphase(sens, rot=rot[:3])
