"""Simulated multi-coil data for testing the sensitivity calibration.

The coil model is a cylindrical array of circular loops whose fields are
evaluated with the analytical Biot-Savart expressions of [1]_.

References
----------
.. [1] Grivich MI, Jackson DP.  The magnetic field of current-carrying
    polygons: An application of vector field rotations.
    Am. J. Phys. 68, 469 (2000).  doi:10.1119/1.19461
"""
import numpy as np
from mrrt.utils import fftnc
from scipy.special import ellipk, ellipe

__all__ = ["multicoil_kspace", "sensemap_sim"]


def _loop_field(x, y, z, a):
    """Field of a circular loop of radius `a` in its own x-y plane.

    The loop x-y plane is not the same as the object x-y plane.
    """
    x = x / a
    y = y / a
    z = z / a
    r = np.sqrt(x * x + y * y)
    r[r == 0] = 1e-7  # avoid divide by zero

    zsq = z * z
    rp1sq = (r + 1) ** 2

    # elliptic integrals of the first and second kind
    M = 4 * r / (rp1sq + zsq)
    K, E = ellipk(M), ellipe(M)

    # B_z in eqn (18) of Grivich & Jackson
    tmp = (rp1sq + zsq) ** (-0.5)
    tmp2 = (1 - r) ** 2 + zsq
    rsq = r * r
    b_z = 2 * tmp * (K + (1 - rsq - zsq) / tmp2 * E)
    b_z /= a

    # B_r in eqn (17)
    b_r = 2 * z / r * tmp * ((1 + rsq + zsq) / tmp2 * E - K)

    near_axis = np.abs(r) < 1e-6
    b_r[near_axis] = (
        3
        * np.pi
        * z[near_axis]
        / ((1 + z[near_axis] ** 2) ** 2.5)
        * r[near_axis]
    )
    b_r /= a

    if np.any(np.isnan(b_r)) or np.any(np.isnan(b_z)):
        raise ValueError("NaN found in the simulated coil field")

    phi = np.arctan2(y, x)
    return b_r * np.cos(phi), b_r * np.sin(phi), b_z


def sensemap_sim(
    shape=(64, 64, 1),
    spacings=(3, 3, 3),
    ncoil=8,
    rcoil=None,
    orbit=360,
    orbit_start=None,
    coil_distance=1.5,
    nring=1,
    dz_coil=None,
    scale="default",
    dtype=np.complex128,
):
    """Simulate coil sensitivity maps of a cylindrical array.

    Parameters
    ----------
    shape : tuple of int
        The image or volume size.  Must have either 2 or 3 elements.
    spacings : tuple of float or float
        The voxel dimensions.  If a scalar is provided, the same value is
        assumed for all axes.
    ncoil : int, optional
        Total number of coils (for all rings).
    rcoil : float, optional
        The radius of an individual coil element.  Defaults to
        ``shape[0] * spacings[0] / 4``.
    orbit : float, optional
        Angular range around the cylinder covered (degrees).
    orbit_start : float or list of float, optional
        Offsets to the start of each ring in degrees.
    coil_distance : float, optional
        Distance of the coil centers from isocenter as a multiple of half
        the largest in-plane field of view.
    nring : int, optional
        Number of rings of coils (along the cylinder axis z).
    dz_coil : float, optional
        Ring spacing in z (defaults to ``shape[2] * spacings[2] / nring``).
    scale : {'default', 'ssos'}, optional
        If ``'ssos'``, scale so that the root sum of squares at the center
        voxel equals 1.
    dtype : {np.complex64, np.complex128}, optional
        Data type for the generated sensitivity maps.

    Returns
    -------
    smap : (nx, ny, nz, ncoil) ndarray
        The simulated sensitivity maps.  For 2D `shape`, ``nz = 1``.

    Notes
    -----
    Adapted from Matlab code by Jeff Fessler, Amanda Funai and Mei Le
    (Michigan Image Reconstruction Toolbox).
    """
    shape = tuple(shape)
    if np.isscalar(spacings):
        spacings = (spacings,) * len(shape)
    spacings = tuple(spacings)
    if len(shape) == 2:
        shape = shape + (1,)
        if len(spacings) == 2:
            spacings = spacings + (1,)
    if len(shape) != 3 or len(spacings) != 3:
        raise ValueError("shape and spacings must have length 2 or 3")

    nx, ny, nz = shape
    dx, dy, dz = spacings
    if rcoil is None:
        rcoil = dx * nx / 4
    if dz_coil is None:
        dz_coil = dz * nz / nring

    coils_per_ring = int(np.round(ncoil / nring))
    if nring * coils_per_ring != ncoil:
        raise ValueError("nring must be a divisor of ncoil")

    if dtype == np.complex128:
        real_dtype = np.float64
    elif dtype == np.complex64:
        real_dtype = np.float32
    else:
        raise ValueError("unsupported dtype")

    if orbit_start is None:
        orbit_start = [0] * nring
    elif np.isscalar(orbit_start):
        orbit_start = [orbit_start] * nring
    elif len(orbit_start) == 1:
        orbit_start = [orbit_start[0]] * nring
    elif len(orbit_start) != nring:
        raise ValueError(
            "orbit_start should be a single value or a list of length nring"
        )

    # object coordinates
    x = (np.arange(1, nx + 1, dtype=real_dtype) - (nx + 1) / 2) * dx
    y = (np.arange(1, ny + 1, dtype=real_dtype) - (ny + 1) / 2) * dy
    z = (np.arange(1, nz + 1, dtype=real_dtype) - (nz + 1) / 2) * dz
    xx, yy, zz = np.meshgrid(x, y, z, indexing="ij")

    angles = np.deg2rad(orbit) * np.linspace(0, 1, coils_per_ring + 1)[:-1]
    z_ring = (np.arange(1, nring + 1) - (nring + 1) / 2) * dz_coil
    rad = max(nx / 2 * dx, ny / 2 * dy) * coil_distance

    smap = np.zeros((nx, ny, nz, ncoil), dtype=dtype)
    for ir in range(nring):
        for ic, phi in enumerate(angles + np.deg2rad(orbit_start[ir])):
            cp = np.cos(phi)
            sp = np.sin(phi)
            # coil center and inward normal (coils lie on a cylinder)
            center = (rad * cp, rad * sp, z_ring[ir])
            normal = (-cp, -sp)

            # rotate coordinates to correspond to the coil orientation
            zr = (xx - center[0]) * normal[0] + (yy - center[1]) * normal[1]
            xr = xx * normal[1] - yy * normal[0]
            yr = zz - center[2]

            sx, _, sz = _loop_field(xr, yr, zr, rcoil)

            # only the transverse field components contribute
            bx = sz * normal[0] - sx * sp
            by = sz * normal[1] + sx * cp
            smap[..., ir * coils_per_ring + ic] = bx + 1j * by

    # scale to near unity maximum
    smap *= rcoil / (2 * np.pi)

    if scale.lower() == "ssos":
        center_val = smap[nx // 2, ny // 2, nz // 2, :]
        smap /= np.sqrt(np.sum(np.abs(center_val) ** 2))
    elif scale != "default":
        raise ValueError("unrecognized scale: {}".format(scale))

    return smap


def multicoil_kspace(image, smap, noise_std=0.0, rstate=None):
    """Centered multi-coil k-space of an image.

    The transform is scaled to be orthonormal, so `noise_std` is relative to
    the image intensity.

    Parameters
    ----------
    image : (nx, ny, nz) ndarray
        Object.
    smap : (nx, ny, nz, ncoil) ndarray
        Coil sensitivities.
    noise_std : float, optional
        Standard deviation of complex Gaussian noise added to k-space.
    rstate : numpy.random.RandomState, optional
        Random number generator for the noise.

    Returns
    -------
    kspace : (nx, ny, nz, ncoil) ndarray
    """
    image = np.asarray(image)
    smap = np.asarray(smap)
    if smap.shape[:3] != image.shape:
        raise ValueError("image and smap shapes do not match")
    kspace = fftnc(image[..., np.newaxis] * smap, axes=(0, 1, 2))
    kspace = kspace / np.sqrt(image.size)
    if noise_std > 0:
        if rstate is None:
            rstate = np.random.RandomState()
        noise = rstate.standard_normal(kspace.shape)
        noise = noise + 1j * rstate.standard_normal(kspace.shape)
        kspace = kspace + noise_std / np.sqrt(2) * noise
    return kspace
