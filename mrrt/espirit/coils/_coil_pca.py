"""Coil compression via principal component analysis.

The principal components of the calibration data are used by the ESPIRiT
calibration as a reference direction for the phase of the sensitivity maps
and can also be used to compress the data to fewer virtual coils.

Much of this code is modified from idmrmrd-python-tools
https://github.com/ismrmrd/ismrmrd-python-tools
"""

import warnings
import numpy as np


__all__ = ["apply_pca_weights", "coil_pca_matrix", "scc_rotation"]


def coil_pca_matrix(
    caldata, coil_axis=-1, neig=None, percentile=None, verbose=False
):
    """Principal components of multi-coil calibration data.

    Parameters
    ----------
    caldata : ndarray
        Calibration data.  All axes other than `coil_axis` are treated as
        samples.
    coil_axis : int, optional
        The axis of `caldata` corresponding to coils.
    neig : int, optional
        Number of virtual coils.  Defaults to the number of coils.
    percentile : float, optional
        If given, also return the number of components needed to retain
        this percentage of the signal energy.
    verbose : bool, optional
        Print the normalized eigenvalue spectrum.

    Returns
    -------
    pca_matrix : (ncoils, ncoils) ndarray
        Eigenvectors of the coil covariance (as columns), sorted by
        descending eigenvalue.  ``numpy.dot(data, pca_matrix[:, :neig])``
        compresses (nsamples, ncoils) data to `neig` virtual coils.
    neig : int
        Only returned when `percentile` is given.
    """
    caldata = np.asarray(caldata)
    ncoils = caldata.shape[coil_axis]
    if neig is None:
        neig = ncoils
    elif neig > ncoils:
        raise ValueError(
            "number of eigencoils cannot exceed the number of original coils"
        )
    # caldata must be shape (ncal, ncoils)
    caldata = np.moveaxis(caldata, coil_axis, -1).reshape((-1, ncoils))

    cov_mat = np.dot(np.conj(caldata.T), caldata)
    # cov_mat is Hermitian symmetric so use the faster eigh instead of eig
    w, v = np.linalg.eigh(cov_mat)
    w = w.real
    si = np.argsort(w)[::-1]  # largest to smallest
    w = w[si]
    v = v[:, si]  # eigenvectors sorted

    wsum = np.sum(w)
    if verbose:
        if wsum > 0:
            print("normalized eigenvalues: {}".format(w / wsum))
        else:
            print("calibration data is all zero")

    if percentile is None:
        return v
    if percentile < 90:
        warnings.warn("percentile < 90%: was this intentional?")
    if wsum <= 0:
        return v, ncoils
    cumulative = np.cumsum(w / wsum)
    neig = int(np.flatnonzero(cumulative >= percentile / 100 - 1e-12)[0]) + 1
    return v, neig


def apply_pca_weights(data, pca_matrix, neig, coil_axis=-1):
    """Compress `data` to `neig` virtual coils."""
    data = np.asarray(data)
    if coil_axis != -1:
        # coil axis must come last
        data = np.swapaxes(data, -1, coil_axis)
    data = np.dot(data, pca_matrix[:, :neig])
    if coil_axis != -1:
        # swap coil axis back to original location
        data = np.swapaxes(data, -1, coil_axis)
    return data


def scc_rotation(calreg, coil_axis=-1):
    """Coil rotation of software channel compression.

    Parameters
    ----------
    calreg : ndarray
        Calibration data.
    coil_axis : int, optional
        The axis of `calreg` corresponding to coils.

    Returns
    -------
    rot : (ncoils, ncoils) ndarray
        Row ``i`` is the coil-space direction of the ``i``-th principal
        component, i.e. ``sum(conj(rot[i]) * x)`` is the ``i``-th virtual
        coil of a coil vector ``x``.
    """
    pca_matrix = coil_pca_matrix(calreg, coil_axis=coil_axis)
    return pca_matrix.conj().T
