"""Intensity normalization, cropping and phase fixing of ESPIRiT maps.

Intensity and phase are normalized per voxel in the manner of the adaptive
coil combination of [1]_.

References
----------
.. [1] Griswold MA, Walsh D, Heidemann RM, Haase A, Jakob PM.  The Use of an
    Adaptive Reconstruction for Array Coil Sensitivity Mapping and
    Intensity Normalization.  Proc. ISMRM 10:2410 (2002).
"""
import numpy as np


__all__ = [
    "crop_sens",
    "crop_thresh_function",
    "crop_weight_function",
    "fixphase",
    "normalize_l1",
    "scurve",
]


def scurve(x):
    """Smooth monotonic step from 0 (``x <= -1``) to 1 (``x >= 1``)."""
    x = np.asarray(x, dtype=np.float64)
    ramp = 0.5 * (1 + 2 * x / (1 + x * x))
    return np.where(x <= -1, 0.0, np.where(x >= 1, 1.0, ramp))


def crop_weight_function(crth, val):
    """Soft crop weight for eigenvalue(s) `val` and crop threshold `crth`."""
    val = np.asarray(val, dtype=np.float64)
    return scurve((np.sqrt(val) - crth) / (1.0 - crth))


def crop_thresh_function(crth, val):
    """Hard crop weight: 0 where ``val <= crth``, 1 elsewhere."""
    val = np.asarray(val)
    return np.where(val <= crth, 0.0, 1.0)


def crop_sens(sens, emaps, softcrop, crth):
    """Crop sensitivity maps based on their eigenvalue maps.

    Parameters
    ----------
    sens : (x, y, z, coil, maps) ndarray
        Sensitivity maps.
    emaps : (x, y, z, maps) ndarray
        Eigenvalue maps.  Each set of maps is weighted based on the
        magnitude of its own eigenvalue.
    softcrop : bool
        Use the smooth ``crop_weight_function`` instead of the hard
        ``crop_thresh_function``.
    crth : float
        Crop threshold.

    Returns
    -------
    sens : (x, y, z, coil, maps) ndarray
        The cropped maps.
    """
    sens = np.asarray(sens)
    emaps = np.asarray(emaps)
    if sens.ndim != 5:
        raise ValueError("sens must be a 5D array (x, y, z, coil, maps)")
    if emaps.shape != sens.shape[:3] + sens.shape[4:]:
        raise ValueError("emaps shape does not match the sensitivity maps")
    fun = crop_weight_function if softcrop else crop_thresh_function
    weights = fun(crth, np.abs(emaps)).astype(sens.real.dtype)
    return sens * weights[..., np.newaxis, :]


def normalize_l1(sens, coil_axis=3, rescale=False):
    """Normalize the l1-norm across coils to one at every voxel.

    Parameters
    ----------
    sens : ndarray
        Sensitivity maps.
    coil_axis : int, optional
        The axis in `sens` corresponding to coils.
    rescale : bool, optional
        If True, scale the result by ``sqrt(ncoils)``.

    Returns
    -------
    sens : ndarray
        Normalized maps.  Voxels where all coils are zero stay zero.
    """
    sens = np.asarray(sens)
    norm = np.sum(np.abs(sens), axis=coil_axis, keepdims=True)
    out = np.zeros_like(sens)
    np.divide(sens, norm, out=out, where=norm > 0)
    if rescale:
        out *= np.sqrt(sens.shape[coil_axis])
    return out


def fixphase(sens, rot=None, coil_axis=3):
    """Remove the phase of a reference channel from the maps.

    Parameters
    ----------
    sens : ndarray
        Sensitivity maps.
    rot : (ncoils,) array-like, optional
        Reference direction in coil space.  The phase removed at each voxel
        is that of the projection ``sum(conj(rot) * sens)`` over coils.  If
        None, the first coil is used as the reference.
    coil_axis : int, optional
        The axis in `sens` corresponding to coils.

    Returns
    -------
    sens : ndarray
        Maps whose reference projection is real and non-negative.
    """
    sens = np.asarray(sens)
    coil_axis = coil_axis % sens.ndim
    ncoils = sens.shape[coil_axis]
    if rot is None:
        ref = np.take(sens, [0], axis=coil_axis)
    else:
        rot = np.asarray(rot)
        if rot.shape != (ncoils,):
            raise ValueError("rot must have one entry per coil")
        bshape = [1] * sens.ndim
        bshape[coil_axis] = ncoils
        rot = rot.reshape(bshape)
        ref = np.sum(np.conj(rot) * sens, axis=coil_axis, keepdims=True)
    mag = np.abs(ref)
    phase = np.ones_like(ref)
    np.divide(ref, mag, out=phase, where=mag > 0)
    return sens * np.conj(phase)
