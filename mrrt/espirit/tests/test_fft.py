import numpy as np
import pytest
from mrrt.utils import fftnc

from mrrt.espirit._fft import resize_center, sinc_zeropad, unscaled_ifftnc


def test_fftnc_center():
    # a constant image maps to a single sample at the k-space center
    x = np.ones((8, 6))
    k = fftnc(x)
    assert np.argmax(np.abs(k)) == np.ravel_multi_index((4, 3), k.shape)
    np.testing.assert_allclose(k[4, 3], x.size)


@pytest.mark.parametrize("shape", [(16,), (8, 6), (8, 9, 1)])
def test_unscaled_ifftnc(shape):
    rstate = np.random.RandomState(5)
    x = rstate.randn(*shape) + 1j * rstate.randn(*shape)
    y = unscaled_ifftnc(fftnc(x))
    np.testing.assert_allclose(y, x * x.size, atol=1e-10 * x.size)

    # only the listed axes count towards the scaling
    y = unscaled_ifftnc(fftnc(x, axes=(0,)), axes=(0,))
    np.testing.assert_allclose(y, x * shape[0], atol=1e-10 * x.size)


def test_resize_center():
    x = np.arange(1, 6)
    y = resize_center(x, (8,))
    np.testing.assert_array_equal(y, [0, 0, 1, 2, 3, 4, 5, 0])
    # the center sample stays at index n // 2
    assert y[4] == x[2]
    np.testing.assert_array_equal(resize_center(y, (5,)), x)

    x = np.arange(16).reshape((4, 4))
    y = resize_center(x, (8, 2))
    assert y.shape == (8, 2)
    np.testing.assert_array_equal(y[2:6], x[:, 1:3])

    with pytest.raises(ValueError):
        resize_center(x, (8,))


def test_sinc_zeropad():
    x = np.ones((4, 4, 3), dtype=np.complex64)
    y = sinc_zeropad(x, (8, 8, 3), axes=(0, 1))
    assert y.shape == (8, 8, 3)
    # values are scaled by the number of interpolated input samples
    np.testing.assert_allclose(y, 16, rtol=1e-5)

    # band-limited signal is interpolated exactly
    n = np.arange(8)
    x = np.exp(2j * np.pi * n / 8)
    y = sinc_zeropad(x, (16,))
    m = np.arange(16)
    np.testing.assert_allclose(y, 8 * np.exp(2j * np.pi * m / 16), atol=1e-10)

    with pytest.raises(ValueError):
        sinc_zeropad(np.ones((4, 4)), (2, 4))
    with pytest.raises(ValueError):
        sinc_zeropad(np.ones((4, 4)), (8, 8), axes=(0,))
