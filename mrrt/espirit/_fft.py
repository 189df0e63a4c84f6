"""Centered resizing and Fourier interpolation used by the calibration.

The centered transforms come from ``mrrt.utils``.  They assume the DC
component sits at index ``n // 2`` along each transformed axis, which is the
convention used for k-space throughout this package.  The forward transform
is unnormalized and the inverse is scaled by ``1 / n``.
"""
import numpy as np
from mrrt.utils import fftnc, ifftnc


__all__ = ["resize_center", "sinc_zeropad", "unscaled_ifftnc"]


def _normalize_axes(x, axes):
    if axes is None:
        return tuple(range(x.ndim))
    if np.isscalar(axes):
        axes = (axes,)
    return tuple(a % x.ndim for a in axes)


def unscaled_ifftnc(x, axes=None):
    """Centered inverse FFT without the ``1 / n`` scaling."""
    axes = _normalize_axes(x, axes)
    n = int(np.prod([x.shape[a] for a in axes]))
    return ifftnc(x, axes=axes) * n


def resize_center(x, shape):
    """Zero-pad or crop ``x`` to ``shape`` keeping the centers aligned.

    The center of an axis of length ``n`` is taken to be at index ``n // 2``
    for both the input and the output.

    Parameters
    ----------
    x : ndarray
        Input array.
    shape : tuple of int
        Output shape.  Must have ``x.ndim`` entries.

    Returns
    -------
    y : ndarray
        Resized array with the dtype of ``x``.
    """
    shape = tuple(int(s) for s in shape)
    if len(shape) != x.ndim:
        raise ValueError("shape must have one entry per array dimension")
    y = np.zeros(shape, dtype=x.dtype)
    src = []
    dst = []
    for n_in, n_out in zip(x.shape, shape):
        offset_in = n_in // 2
        offset_out = n_out // 2
        n = min(n_in, n_out)
        start_in = offset_in - n // 2
        start_out = offset_out - n // 2
        src.append(slice(start_in, start_in + n))
        dst.append(slice(start_out, start_out + n))
    y[tuple(dst)] = x[tuple(src)]
    return y


def sinc_zeropad(x, shape, axes=None):
    """Fourier interpolation of a centered image onto a larger grid.

    The input is transformed to the frequency domain, zero-padded to the
    target grid and transformed back.  Neither transform is scaled, so the
    interpolated values are scaled by the number of input samples along
    ``axes``.

    Parameters
    ----------
    x : ndarray
        Input image.
    shape : tuple of int
        Output shape (``len(shape) == x.ndim``).  Axes not listed in ``axes``
        must keep their size.
    axes : sequence of int, optional
        Spatial axes to interpolate.  All axes by default.

    Returns
    -------
    y : ndarray
        The interpolated image.
    """
    axes = _normalize_axes(x, axes)
    shape = tuple(shape)
    for d in range(x.ndim):
        if d in axes:
            if shape[d] < x.shape[d]:
                raise ValueError(
                    "sinc_zeropad cannot shrink axis {}".format(d)
                )
        elif shape[d] != x.shape[d]:
            raise ValueError(
                "non-interpolated axis {} must keep its size".format(d)
            )
    k = resize_center(fftnc(x, axes=axes), shape)
    return unscaled_ifftnc(k, axes=axes)
