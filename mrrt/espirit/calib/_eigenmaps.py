"""Point-wise eigendecomposition of the ESPIRiT image covariance."""
import warnings

import numpy as np

from .._fft import sinc_zeropad
from ._config import ecalib_defaults
from ._imgcov import channels_from_cosize, unpack_tri_matrix


__all__ = [
    "DirectEigenSolver",
    "OrthogonalIteration",
    "caltwo",
    "eigenmaps",
    "get_eigensolver",
    "orthiter",
]


def _gram_schmidt(vecs):
    """Orthonormalize the columns of a stack of matrices.

    The last column is normalized first and each preceding column is made
    orthogonal to all columns after it.  The norms of the projected columns
    are returned in the same column order.
    """
    q, r = np.linalg.qr(vecs[..., ::-1])
    d = np.diagonal(r, axis1=-2, axis2=-1)
    vals = np.abs(d)
    phase = np.ones_like(d)
    nz = vals > 0
    phase[nz] = d[nz] / vals[nz]
    # match the column phases of classical Gram-Schmidt
    q = q * phase[..., np.newaxis, :]
    return q[..., ::-1], vals[..., ::-1]


def orthiter(cov, maps, niter=30):
    """Orthogonal (subspace) iteration for the leading eigenvectors.

    The iteration starts from the columns of `cov` with the largest diagonal
    entries.  A final Rayleigh-Ritz step diagonalizes `cov` within the
    converged subspace, which keeps the eigenvalues ordered when the leading
    ones are nearly equal.

    Parameters
    ----------
    cov : (..., n, n) ndarray
        Stack of Hermitian matrices.
    maps : int
        Number of eigenvectors to compute.
    niter : int, optional
        Number of iterations.

    Returns
    -------
    vals : (..., maps) ndarray
        Approximate eigenvalues in ascending order.  The last entry
        corresponds to the largest eigenvalue.
    vecs : (..., n, maps) ndarray
        Approximate eigenvectors stored as columns, ordered like `vals`.
    """
    n = cov.shape[-1]
    if maps > n:
        raise ValueError("maps must not exceed the matrix size")
    # start from the columns with the largest diagonal, the largest last
    diag = np.real(np.diagonal(cov, axis1=-2, axis2=-1))
    idx = np.argsort(diag, axis=-1, kind="stable")[..., n - maps :]
    vecs = np.take_along_axis(cov, idx[..., np.newaxis, :], axis=-1)
    vecs = _gram_schmidt(vecs)[0]
    for _ in range(niter):
        vecs = _gram_schmidt(np.matmul(cov, vecs))[0]

    # Rayleigh-Ritz step: eigh returns the projected eigenvalues ascending
    vecs_h = np.conj(np.swapaxes(vecs, -1, -2))
    vals, w = np.linalg.eigh(np.matmul(vecs_h, np.matmul(cov, vecs)))
    return vals, np.matmul(vecs, w)


class OrthogonalIteration(object):
    """Eigensolver based on a fixed number of orthogonal iterations.

    Parameters
    ----------
    niter : int, optional
        Number of iterations.
    """

    def __init__(self, niter=30):
        self.niter = niter

    def __call__(self, cov, maps):
        """Leading eigenpairs of ``cov``, largest first.

        Returns
        -------
        vals : (..., maps) ndarray
        vecs : (..., n, maps) ndarray
        """
        vals, vecs = orthiter(cov, maps, self.niter)
        # orthiter leaves the dominant vector last
        return vals[..., ::-1], vecs[..., ::-1]


class DirectEigenSolver(object):
    """Eigensolver using a dense Hermitian eigendecomposition (LAPACK)."""

    def __call__(self, cov, maps):
        """Leading eigenpairs of ``cov``, largest first.

        Returns
        -------
        vals : (..., maps) ndarray
        vecs : (..., n, maps) ndarray
        """
        vals, vecs = np.linalg.eigh(cov)
        # eigh returns ascending eigenvalues
        return vals[..., ::-1][..., :maps], vecs[..., ::-1][..., :maps]


def get_eigensolver(orthiter=True, niter=30, usegpu=False):
    """Return the point-wise eigensolver to use.

    Parameters
    ----------
    orthiter : bool, optional
        If True, use ``OrthogonalIteration``, otherwise ``DirectEigenSolver``.
    niter : int, optional
        Number of orthogonal iterations.
    usegpu : bool, optional
        GPU eigensolvers are not available.  A warning is raised and the CPU
        solver is returned.
    """
    if usegpu:
        warnings.warn(
            "GPU eigensolver not available: using the CPU implementation"
        )
    if orthiter:
        return OrthogonalIteration(niter)
    return DirectEigenSolver()


def eigenmaps(
    imgcov,
    maps,
    orthiter=True,
    mask=None,
    niter=30,
    solver=None,
    batch_size=4096,
):
    """Point-wise eigendecomposition of a packed image covariance.

    Parameters
    ----------
    imgcov : (x, y, z, coil * (coil + 1) // 2) ndarray
        Packed lower-triangular covariance at every voxel.
    maps : int
        Number of eigenvectors to keep per voxel (``maps <= coil``).
    orthiter : bool, optional
        Use orthogonal iteration instead of a dense eigensolver.  Ignored if
        `solver` is given.
    mask : (x, y, z) ndarray of bool, optional
        Only voxels within the mask are processed.  The output is zero
        elsewhere.
    niter : int, optional
        Number of orthogonal iterations.
    solver : callable, optional
        Eigensolver with the ``OrthogonalIteration`` call signature.
    batch_size : int, optional
        Number of voxels decomposed at once.

    Returns
    -------
    sens : (x, y, z, coil, maps) ndarray
        Eigenvectors.  ``sens[..., 0]`` corresponds to the largest
        eigenvalue.
    emaps : (x, y, z, maps) ndarray
        Eigenvalues in descending order.
    """
    imgcov = np.asarray(imgcov)
    if imgcov.ndim != 4:
        raise ValueError("imgcov must be a 4D array (x, y, z, cosize)")
    xx, yy, zz, cosize = imgcov.shape
    channels = channels_from_cosize(cosize)
    if maps < 1 or maps > channels:
        raise ValueError(
            "maps must be between 1 and the number of channels "
            "({})".format(channels)
        )
    if solver is None:
        solver = get_eigensolver(orthiter, niter=niter)

    nvox = xx * yy * zz
    if mask is None:
        idx = np.arange(nvox)
    else:
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (xx, yy, zz):
            raise ValueError(
                "mask shape {} does not match {}".format(
                    mask.shape, (xx, yy, zz)
                )
            )
        idx = np.flatnonzero(mask)

    dtype = np.result_type(imgcov.dtype, np.complex64)
    sens = np.zeros((nvox, channels, maps), dtype=dtype)
    emaps = np.zeros((nvox, maps), dtype=np.finfo(dtype).dtype)
    cov_flat = imgcov.reshape((nvox, cosize))
    for start in range(0, idx.size, batch_size):
        sl = idx[start : start + batch_size]
        cov = unpack_tri_matrix(cov_flat[sl].astype(dtype), channels)
        vals, vecs = solver(cov, maps)
        sens[sl] = vecs
        emaps[sl] = vals
    sens = sens.reshape((xx, yy, zz, channels, maps))
    emaps = emaps.reshape((xx, yy, zz, maps))
    return sens, emaps


def caltwo(
    imgcov, out_shape, maps, config=ecalib_defaults, mask=None, verbose=False
):
    """Second part of the ESPIRiT calibration.

    The packed covariance computed on the small grid of ``calone`` is
    interpolated onto the output grid and decomposed point-wise.

    Parameters
    ----------
    imgcov : (xh, yh, zh, cosize) ndarray
        Packed image covariance from ``calone``.
    out_shape : tuple of int
        Output grid (x, y, z).  A fourth entry, if present, must equal the
        number of channels.
    maps : int
        Number of sets of maps to compute.
    config : EcalibConfig, optional
        Calibration options (``orthiter``, ``orthiter_iterations`` and
        ``usegpu`` are used).
    mask : (x, y, z) ndarray of bool, optional
        Restrict the eigendecomposition to these voxels.
    verbose : bool, optional
        Print progress information.

    Returns
    -------
    sens : (x, y, z, coil, maps) ndarray
        Sensitivity maps, largest eigenvalue first.
    emaps : (x, y, z, maps) ndarray
        Eigenvalue maps.
    """
    imgcov = np.asarray(imgcov)
    if imgcov.ndim != 4:
        raise ValueError("imgcov must be a 4D array (x, y, z, cosize)")
    xh, yh, zh, cosize = imgcov.shape
    channels = channels_from_cosize(cosize)
    if len(out_shape) > 3 and out_shape[3] != channels:
        raise ValueError("out_shape does not match the number of channels")
    xx, yy, zz = out_shape[:3]

    for n, h in zip((xx, yy, zz), (xh, yh, zh)):
        if n < h:
            raise ValueError(
                "output grid {} is smaller than the covariance grid "
                "{}".format((xx, yy, zz), (xh, yh, zh))
            )
        if h != 1 and h % 2:
            raise ValueError(
                "non-singleton covariance dimensions must have even size"
            )
    if maps > channels:
        raise ValueError("maps must not exceed the number of channels")

    if verbose:
        print("Resize...")
    imgcov_big = sinc_zeropad(imgcov, (xx, yy, zz, cosize), axes=(0, 1, 2))

    if verbose:
        print("Point-wise eigen-decomposition...")
    solver = get_eigensolver(
        config.orthiter, niter=config.orthiter_iterations, usegpu=config.usegpu
    )
    return eigenmaps(imgcov_big, maps, mask=mask, solver=solver)
