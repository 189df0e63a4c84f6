"""ESPIRiT calibration of coil sensitivity maps.

The calibration is split into two parts.  ``calone`` computes the kernels
from the calibration region and their point-wise image covariance on a
small grid.  ``caltwo`` interpolates the covariance to the output grid and
computes its eigenvectors at every voxel.  ``calib`` runs both and
post-processes the maps (intensity normalization, cropping, phase fixing).

References
----------
.. [1] Uecker M, Lai P, Murphy MJ, Virtue P, Elad M, Pauly JM, Vasanawala SS,
    Lustig M.  ESPIRiT - An Eigenvalue Approach to Autocalibrating Parallel
    MRI: Where SENSE meets GRAPPA.  Magn Reson Med, 71:990-1001 (2014).
"""
import numpy as np

from .._fft import resize_center
from ..coils import scc_rotation
from ._config import ecalib_defaults
from ._eigenmaps import caltwo
from ._imgcov import calone, channels_from_cosize
from ._postprocess import crop_sens, fixphase, normalize_l1


__all__ = ["calib", "ecaltwo", "espirit_maps", "extract_calib_region"]


def extract_calib_region(kspace, cal_shape):
    """Extract the central calibration region from k-space.

    Parameters
    ----------
    kspace : (x, y, z, coil) ndarray
        Centered multi-coil k-space.
    cal_shape : tuple of int
        Spatial size (x, y, z) of the calibration region.

    Returns
    -------
    calreg : (cx, cy, cz, coil) ndarray
    """
    kspace = np.asarray(kspace)
    if kspace.ndim != 4:
        raise ValueError("kspace must be a 4D array (x, y, z, coil)")
    cal_shape = tuple(cal_shape)[:3]
    if len(cal_shape) != 3:
        raise ValueError("cal_shape must have 3 elements")
    for c, n in zip(cal_shape, kspace.shape[:3]):
        if c < 1 or c > n:
            raise ValueError(
                "calibration region {} does not fit in k-space of shape "
                "{}".format(cal_shape, kspace.shape[:3])
            )
    return resize_center(kspace, cal_shape + kspace.shape[3:])


def _postprocess(sens, emaps, config, rescale, rot=None, verbose=False):
    if config.intensity:
        if verbose:
            print("Normalize...")
        sens = normalize_l1(sens, coil_axis=3, rescale=rescale)

    if verbose:
        print("Crop maps... ({:.2f})".format(config.crop))
    sens = crop_sens(sens, emaps, config.softcrop, config.crop)

    if verbose:
        print("Fix phase...")
    return fixphase(sens, rot=rot, coil_axis=3)


def calib(
    calreg,
    out_shape,
    maps=2,
    config=ecalib_defaults,
    mask=None,
    rstate=None,
    verbose=False,
):
    """ESPIRiT calibration of coil sensitivity maps.

    Parameters
    ----------
    calreg : (x, y, z, coil) ndarray
        Fully sampled calibration region of (centered) k-space.
    out_shape : tuple of int
        Output grid (x, y, z).  A fourth entry, if present, must equal the
        number of coils.
    maps : int, optional
        Number of sets of maps to compute.
    config : EcalibConfig, optional
        Calibration options.
    mask : (x, y, z) ndarray of bool, optional
        Only compute the maps within this mask.
    rstate : numpy.random.RandomState, optional
        Random number generator used when ``config.perturb > 0``.
    verbose : bool, optional
        Print progress information.

    Returns
    -------
    sens : (x, y, z, coil, maps) ndarray
        Sensitivity maps.  ``sens[..., 0]`` corresponds to the largest
        eigenvalue.
    emaps : (x, y, z, maps) ndarray
        Eigenvalue maps.
    svals : ndarray
        Singular values of the calibration matrix.
    """
    config.validate()
    calreg = np.asarray(calreg)
    if calreg.ndim != 4:
        raise ValueError(
            "calibration region must be a 4D array (x, y, z, coil)"
        )
    channels = calreg.shape[-1]
    if len(out_shape) > 3 and out_shape[3] != channels:
        raise ValueError("out_shape does not match the number of channels")
    if maps < 1 or maps > channels:
        raise ValueError("maps must be between 1 and {}".format(channels))

    if config.rotphase:
        # rotate the phase with respect to the first principal component
        rot = scc_rotation(calreg)[0]
    else:
        rot = None

    imgcov, svals = calone(calreg, config, rstate=rstate, verbose=verbose)
    sens, emaps = caltwo(
        imgcov, out_shape, maps, config, mask=mask, verbose=verbose
    )
    sens = _postprocess(
        sens, emaps, config, rescale=True, rot=rot, verbose=verbose
    )
    return sens, emaps, svals


def ecaltwo(imgcov, out_shape, maps=2, config=ecalib_defaults, verbose=False):
    """Second part of the ESPIRiT calibration from a stored covariance.

    Parameters
    ----------
    imgcov : (xh, yh, zh, cosize) ndarray
        Packed image covariance as computed by ``calone``.
    out_shape : tuple of int
        Output grid (x, y, z).
    maps : int, optional
        Number of sets of maps to compute.
    config : EcalibConfig, optional
        Calibration options.
    verbose : bool, optional
        Print progress information.

    Returns
    -------
    sens : (x, y, z, coil, maps) ndarray
        Sensitivity maps with the phase of the first coil removed.  With
        ``config.intensity`` they are L1 normalized without the
        ``sqrt(ncoils)`` rescaling.
    emaps : (x, y, z, maps) ndarray
        Eigenvalue maps.
    """
    imgcov = np.asarray(imgcov)
    channels = channels_from_cosize(imgcov.shape[-1])
    if verbose:
        print("Channels: {}".format(channels))
    if maps > channels:
        raise ValueError("maps must not exceed the number of channels")
    sens, emaps = caltwo(imgcov, out_shape, maps, config, verbose=verbose)
    sens = _postprocess(sens, emaps, config, rescale=False, verbose=verbose)
    if verbose:
        print("Done.")
    return sens, emaps


def espirit_maps(
    kspace,
    calib_width=24,
    maps=2,
    config=ecalib_defaults,
    mask=None,
    verbose=False,
):
    """Sensitivity maps on the full grid of a multi-coil k-space.

    Parameters
    ----------
    kspace : (x, y, z, coil) ndarray
        Centered multi-coil k-space with a fully sampled center.
    calib_width : int, optional
        Width of the calibration region along each non-singleton axis.
    maps : int, optional
        Number of sets of maps to compute.
    config : EcalibConfig, optional
        Calibration options.  Kernel sizes along singleton axes of `kspace`
        are set to 1.
    mask : (x, y, z) ndarray of bool, optional
        Only compute the maps within this mask.
    verbose : bool, optional
        Print progress information.

    Returns
    -------
    sens : (x, y, z, coil, maps) ndarray
    emaps : (x, y, z, maps) ndarray
    """
    kspace = np.asarray(kspace)
    if kspace.ndim != 4:
        raise ValueError("kspace must be a 4D array (x, y, z, coil)")
    spatial_shape = kspace.shape[:3]
    cal_shape = tuple(
        1 if n == 1 else min(calib_width, n) for n in spatial_shape
    )
    kernel_shape = tuple(
        1 if n == 1 else k for n, k in zip(spatial_shape, config.kernel_shape)
    )
    config = config._replace(kernel_shape=kernel_shape)
    calreg = extract_calib_region(kspace, cal_shape)
    sens, emaps, _ = calib(
        calreg, spatial_shape, maps, config, mask=mask, verbose=verbose
    )
    return sens, emaps
