"""Image-space covariance of the ESPIRiT kernels.

The point-wise covariance matrices are Hermitian (coil x coil), so only the
lower triangle is stored.  Entries are packed in row-major order of the lower
triangle: (0, 0), (1, 0), (1, 1), (2, 0), ...
"""
import numpy as np

from .._fft import resize_center, unscaled_ifftnc
from ._config import ecalib_defaults
from ._kernels import compute_kernels


__all__ = [
    "calone",
    "calone_shape",
    "channels_from_cosize",
    "compute_imgcov",
    "pack_tri_matrix",
    "unpack_tri_matrix",
]


def pack_tri_matrix(mat):
    """Pack the lower triangle of a stack of square matrices.

    Parameters
    ----------
    mat : (..., n, n) ndarray
        Square matrices in the last two axes.

    Returns
    -------
    packed : (..., n * (n + 1) // 2) ndarray
    """
    n = mat.shape[-1]
    if mat.shape[-2] != n:
        raise ValueError("matrices must be square")
    rows, cols = np.tril_indices(n)
    return mat[..., rows, cols]


def unpack_tri_matrix(packed, n=None):
    """Unpack a lower triangle into full Hermitian matrices.

    Parameters
    ----------
    packed : (..., n * (n + 1) // 2) ndarray
        Packed lower triangles.
    n : int, optional
        Matrix size.  Inferred from the packed size if not given.

    Returns
    -------
    mat : (..., n, n) ndarray
        Hermitian matrices.  The upper triangle is filled with the complex
        conjugate of the lower triangle.
    """
    if n is None:
        n = channels_from_cosize(packed.shape[-1])
    elif packed.shape[-1] != n * (n + 1) // 2:
        raise ValueError("packed size does not match n={}".format(n))
    rows, cols = np.tril_indices(n)
    mat = np.zeros(packed.shape[:-1] + (n, n), dtype=packed.dtype)
    mat[..., cols, rows] = packed.conj()
    mat[..., rows, cols] = packed
    return mat


def channels_from_cosize(cosize):
    """Number of channels of a packed ``channels * (channels + 1) / 2``."""
    channels = int(round((np.sqrt(8 * cosize + 1) - 1) / 2))
    if channels * (channels + 1) // 2 != cosize:
        raise ValueError(
            "{} is not a valid packed covariance size".format(cosize)
        )
    return channels


def calone_shape(kernel_shape, channels):
    """Shape of the packed image covariance computed by ``calone``.

    The covariance is band-limited to twice the kernel size, so it is
    computed on a grid of size ``2 * k`` along each axis with ``k > 1``.
    """
    return tuple(1 if k == 1 else 2 * k for k in kernel_shape) + (
        channels * (channels + 1) // 2,
    )


def compute_imgcov(kernels, nkernels, cov_shape, kernel_order="signal"):
    """Point-wise image-space covariance of the leading kernels.

    Parameters
    ----------
    kernels : (kx, ky, kz, coil, N) ndarray
        Kernels as returned by ``compute_kernels``.
    nkernels : int
        Number of leading kernels to use.
    cov_shape : tuple of int
        Spatial grid (xh, yh, zh) on which to compute the covariance.  A
        fourth entry, if present, must equal the packed size.
    kernel_order : {"signal", "flip"}, optional
        With "flip" the kernels are null-space kernels and the covariance is
        formed from ``kx * ky * kz * I`` minus their Gram matrix.

    Returns
    -------
    imgcov : (xh, yh, zh, coil * (coil + 1) // 2) ndarray
        Packed covariance scaled by ``1 / (kx * ky * kz * xh * yh * zh)``.
    """
    kx, ky, kz, channels, N = kernels.shape
    if nkernels < 0 or nkernels > N:
        raise ValueError("nkernels must be between 0 and {}".format(N))
    cosize = channels * (channels + 1) // 2
    if len(cov_shape) == 4 and cov_shape[3] != cosize:
        raise ValueError(
            "covariance shape does not match the number of channels"
        )
    xh, yh, zh = cov_shape[:3]
    for k, n in zip((kx, ky, kz), (xh, yh, zh)):
        if n < k:
            raise ValueError(
                "covariance grid must not be smaller than the kernel"
            )

    imgkern = resize_center(
        kernels[..., :nkernels], (xh, yh, zh, channels, nkernels)
    )
    # the scaling is applied below
    imgkern = unscaled_ifftnc(imgkern, axes=(0, 1, 2))

    gram = np.einsum("xyzin,xyzjn->xyzij", imgkern, imgkern.conj())
    kvol = kx * ky * kz
    if kernel_order == "flip":
        gram = kvol * np.eye(channels, dtype=gram.dtype) - gram
    elif kernel_order != "signal":
        raise ValueError("unknown kernel_order: {}".format(kernel_order))

    scalesq = kvol * (xh * yh * zh)
    return pack_tri_matrix(gram) / scalesq


def calone(calreg, config=ecalib_defaults, rstate=None, verbose=False):
    """First part of the ESPIRiT calibration.

    Parameters
    ----------
    calreg : (x, y, z, coil) ndarray
        Fully sampled calibration region.
    config : EcalibConfig, optional
        Calibration options.
    rstate : numpy.random.RandomState, optional
        Random number generator used when ``config.perturb > 0``.
    verbose : bool, optional
        Print progress information.

    Returns
    -------
    imgcov : ndarray
        Packed image covariance on the grid given by ``calone_shape``.
    svals : ndarray
        Singular values of the calibration matrix in descending order.
    """
    calreg = np.asarray(calreg)
    channels = calreg.shape[-1]
    kernels, svals, nkernels = compute_kernels(
        calreg, config, rstate=rstate, verbose=verbose
    )
    cov_shape = calone_shape(config.kernel_shape, channels)
    if verbose:
        print("Zeropad...")
        print("Calculate Gram matrix...")
    imgcov = compute_imgcov(
        kernels, nkernels, cov_shape, kernel_order=config.kernel_order
    )
    return imgcov, svals
