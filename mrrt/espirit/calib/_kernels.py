"""Calibration matrix and k-space kernel computation for ESPIRiT.

The calibration matrix holds one row per position of the kernel window
inside the calibration region.  Its right singular vectors split into a
signal space (large singular values) and a null space.  The signal space
kernels are later transformed to image space to form the point-wise
covariance matrices whose leading eigenvectors are the coil sensitivities.

References
----------
.. [1] Uecker M, Lai P, Murphy MJ, Virtue P, Elad M, Pauly JM, Vasanawala SS,
    Lustig M.  ESPIRiT - An Eigenvalue Approach to Autocalibrating Parallel
    MRI: Where SENSE meets GRAPPA.  Magn Reson Med, 71:990-1001 (2014).
"""
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ._config import ecalib_defaults


__all__ = [
    "calibration_matrix",
    "compute_kernels",
    "covariance_function",
    "number_of_kernels",
    "perturb_kernels",
    "soft_weight_singular_vectors",
]


def _check_calreg(calreg, kernel_shape):
    if calreg.ndim != 4:
        raise ValueError(
            "calibration region must be a 4D array (x, y, z, coil)"
        )
    if len(kernel_shape) != 3:
        raise ValueError("kernel_shape must have 3 elements")
    for d, (k, n) in enumerate(zip(kernel_shape, calreg.shape[:3])):
        if k < 1 or k > n:
            raise ValueError(
                "kernel size {} along axis {} does not fit in the "
                "calibration region of size {}".format(k, d, n)
            )


def calibration_matrix(calreg, kernel_shape):
    """Build the calibration (Casorati) matrix.

    Parameters
    ----------
    calreg : (x, y, z, coil) ndarray
        Fully sampled calibration region of k-space.
    kernel_shape : tuple of int
        Kernel window size (kx, ky, kz).

    Returns
    -------
    calmat : (nwin, kx * ky * kz * coil) ndarray
        Each row holds the k-space samples within one window position.  The
        columns are ordered as a C-order flattening of (kx, ky, kz, coil).
    """
    calreg = np.asarray(calreg)
    kernel_shape = tuple(int(k) for k in kernel_shape)
    _check_calreg(calreg, kernel_shape)

    ncoils = calreg.shape[-1]
    # (nx - kx + 1, ny - ky + 1, nz - kz + 1, coil, kx, ky, kz)
    patches = sliding_window_view(calreg, kernel_shape, axis=(0, 1, 2))
    patches = np.moveaxis(patches, 3, -1)
    return patches.reshape((-1, np.prod(kernel_shape) * ncoils))


def covariance_function(calreg, kernel_shape):
    """Gram matrix of the calibration matrix.

    The matrix is oriented so that its eigenvectors span the row space of
    the calibration matrix (``calmat.T @ calmat.conj()``).

    Returns
    -------
    cov : (N, N) ndarray
        Hermitian matrix with ``N = kx * ky * kz * coil``.
    """
    calmat = calibration_matrix(calreg, kernel_shape)
    return np.dot(calmat.T, calmat.conj())


def soft_weight_singular_vectors(svals, kernel_shape, cal_shape):
    """Wiener-type weights for the calibration matrix singular values.

    The noise variance per matrix entry is estimated from the lower half of
    the singular value spectrum.  Singular values close to the noise level
    receive weights close to 0, those well above it receive weights close
    to 1.

    Parameters
    ----------
    svals : ndarray
        Singular values in descending order.
    kernel_shape : tuple of int
        Kernel window size (kx, ky, kz).
    cal_shape : tuple of int
        Spatial shape of the calibration region.

    Returns
    -------
    weights : ndarray
        Weights in [0, 1], same length as `svals`.
    """
    svals = np.asarray(svals, dtype=np.float64)
    nrows = np.prod(
        [c - k + 1 for c, k in zip(cal_shape[:3], kernel_shape)]
    )
    ssq = svals * svals
    noise_var = np.median(ssq[ssq.size // 2 :]) / nrows
    weights = np.zeros_like(ssq)
    nz = ssq > 0
    weights[nz] = np.maximum(1 - nrows * noise_var / ssq[nz], 0)
    return weights


def perturb_kernels(kernels, amount, rstate=None):
    """Add random perturbations of norm `amount` to each kernel.

    Parameters
    ----------
    kernels : (M, N) ndarray
        Kernels stored as columns.
    amount : float
        Norm of the noise added to each column.
    rstate : numpy.random.RandomState, optional
        Random number generator.

    Returns
    -------
    kernels : (M, N) ndarray
        Perturbed kernels, each renormalized to unit norm.
    """
    if rstate is None:
        rstate = np.random.RandomState()
    noise = rstate.standard_normal(kernels.shape)
    noise = noise + 1j * rstate.standard_normal(kernels.shape)
    noise *= amount / np.linalg.norm(noise, axis=0, keepdims=True)
    kernels = kernels + noise
    kernels /= np.linalg.norm(kernels, axis=0, keepdims=True)
    return kernels


def number_of_kernels(config, svals, verbose=False):
    """Number of kernels selected by the configuration.

    Exactly one of ``config.numsv`` (fixed count), ``config.percentsv``
    (percentage of all kernels) or ``config.threshold`` (singular values
    with ``val / val[0] > sqrt(threshold)``) must be set.

    Parameters
    ----------
    config : EcalibConfig
        Calibration options.
    svals : ndarray
        Singular values (or weights) in descending order.
    verbose : bool, optional
        Print a summary of the selection.

    Returns
    -------
    n : int
        Number of selected kernels, ``0 <= n <= len(svals)``.
    """
    config.validate()
    svals = np.asarray(svals)
    N = svals.size

    if svals[0] <= 0:
        raise ValueError("No signal.")

    if config.numsv != -1:
        n = int(config.numsv)
    elif config.percentsv != -1:
        n = int(N * config.percentsv / 100.0)
    else:
        n = int(np.count_nonzero(svals / svals[0] > np.sqrt(config.threshold)))

    if n < 0 or n > N:
        raise ValueError(
            "number of kernels ({}) must be between 0 and {}".format(n, N)
        )

    if verbose:
        last = svals[n - 1] / svals[0] if n > 0 else 1.0
        print(
            "Using {}/{} kernels ({:.2f}%, last SV: {:f}{}).".format(
                n,
                N,
                100.0 * n / N,
                last,
                ", weighted" if config.weighting else "",
            )
        )
        tr = np.sum(svals.astype(np.float64) ** 2)
        print("TRACE: {:f} ({:f})".format(tr, tr / N))
    return n


def compute_kernels(
    calreg, config=ecalib_defaults, rstate=None, verbose=False
):
    """Compute the k-space kernels from the calibration region.

    Parameters
    ----------
    calreg : (x, y, z, coil) ndarray
        Fully sampled calibration region.
    config : EcalibConfig, optional
        Calibration options.  ``kernel_shape``, ``kernel_method``,
        ``kernel_order``, ``weighting``, ``perturb`` and the kernel count
        selectors are used.
    rstate : numpy.random.RandomState, optional
        Random number generator used when ``config.perturb > 0``.
    verbose : bool, optional
        Print progress information.

    Returns
    -------
    kernels : (kx, ky, kz, coil, N) ndarray
        All ``N = kx * ky * kz * coil`` kernels.  With
        ``kernel_order="signal"`` they are sorted by descending singular
        value; with ``kernel_order="flip"`` by ascending singular value.
    svals : (N,) ndarray
        Singular values in descending order (soft weights if
        ``config.weighting``).
    nkernels : int
        Number of leading kernels to use.  For ``kernel_order="flip"`` this
        is the size of the null space, ``N - number_of_kernels``.
    """
    config.validate()
    calreg = np.asarray(calreg)
    kernel_shape = tuple(int(k) for k in config.kernel_shape)
    _check_calreg(calreg, kernel_shape)
    ncoils = calreg.shape[-1]
    N = np.prod(kernel_shape) * ncoils

    if config.kernel_method == "svd":
        if verbose:
            print("Build calibration matrix and SVD...")
        calmat = calibration_matrix(calreg, kernel_shape)
        # the full vh is only needed to complete a rank-deficient null space
        full = calmat.shape[0] < N
        _, s, vh = np.linalg.svd(calmat, full_matrices=full)
        svals = np.zeros(N, dtype=s.real.dtype)
        svals[: s.size] = s
        # rows of vh span the row space of the calibration matrix
        vecs = vh.T
    else:
        if verbose:
            print("Build calibration matrix and Gram matrix...")
        cov = covariance_function(calreg, kernel_shape)
        if verbose:
            print("Eigen decomposition... (size: {})".format(N))
        w, v = np.linalg.eigh(cov)
        # reverse and square root, clamping small negative values
        svals = np.sqrt(np.maximum(w[::-1], 0))
        vecs = v[:, ::-1]

    if config.weighting:
        svals = soft_weight_singular_vectors(
            svals, kernel_shape, calreg.shape[:3]
        )

    if config.kernel_order == "flip":
        order = np.arange(N)[::-1]
    else:
        order = np.arange(N)
    vecs = vecs[:, order]
    if config.weighting:
        vecs = vecs * svals[order]

    if config.perturb > 0:
        vecs = perturb_kernels(vecs, config.perturb, rstate=rstate)

    nkernels = number_of_kernels(config, svals, verbose=verbose)
    if config.kernel_order == "flip":
        nkernels = N - nkernels

    kernels = vecs.reshape(kernel_shape + (ncoils, N))
    return kernels, svals, nkernels
