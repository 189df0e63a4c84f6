"""Poisson-disc undersampling patterns for Cartesian k-space.

Points are generated by dart throwing in the unit square: new candidates
are drawn in an annulus around a randomly chosen active point and accepted
if no accepted point lies closer than the minimum distance.  An active point
is retired once all of its candidates have been rejected.  The neighbor
search uses a background grid with at most one point per cell.

References
----------
.. [1] Bridson R.  Fast Poisson disk sampling in arbitrary dimensions.  ACM
    SIGGRAPH 2007 sketches.
.. [2] Wei LY.  Multi-class blue noise sampling.  ACM Trans Graph, 29(4):79
    (2010).
.. [3] Vasanawala SS, Murphy MJ, Alley MT, Lai P, Keutzer K, Pauly JM,
    Lustig M.  Practical parallel imaging compressed sensing MRI: summary of
    two years of experience in accelerating body MRI of pediatric patients.
    IEEE ISBI 2011, pp. 1039-1043.
"""
import warnings

import numpy as np


__all__ = [
    "mc_poisson_rmatrix",
    "poisson_pattern",
    "poissondisc",
    "poissondisc_mc",
]


def _density_scale(p, vardensity):
    """Factor applied to the minimum distance at position(s) `p`."""
    return 1 + vardensity * np.sum((p - 0.5) ** 2, axis=-1)


def _throw_darts(
    npoints, rmatrix, vardensity, init, init_kind, rstate, ncandidates=30
):
    rmatrix = np.atleast_2d(np.asarray(rmatrix, dtype=np.float64))
    nclasses = rmatrix.shape[0]
    if rmatrix.shape != (nclasses, nclasses):
        raise ValueError("rmatrix must be square")
    if np.any(rmatrix <= 0):
        raise ValueError("minimum distances must be positive")
    if vardensity < 0:
        raise ValueError("vardensity must be non-negative")
    if rstate is None:
        rstate = np.random.RandomState()

    if init is None:
        init = [[0.5, 0.5]]
    init = np.atleast_2d(np.asarray(init, dtype=np.float64))
    if init.ndim != 2 or init.shape[1] != 2:
        raise ValueError("init must be an array of 2D points")
    if np.any(init < 0) or np.any(init >= 1):
        raise ValueError("init points must lie within [0, 1)")
    if init_kind is None:
        init_kind = np.zeros(len(init), dtype=np.intp)
    init_kind = np.asarray(init_kind, dtype=np.intp)
    if init_kind.shape != (len(init),):
        raise ValueError("init_kind must have one entry per init point")
    if np.any(init_kind < 0) or np.any(init_kind >= nclasses):
        raise ValueError("init_kind entries must be valid class indices")
    if npoints < len(init):
        raise ValueError("npoints must be at least the number of init points")

    # cells are small enough to hold at most one point each
    cell = rmatrix.min() / 2
    gsize = int(np.ceil(1 / cell))
    grid = np.full((gsize, gsize), -1, dtype=np.intp)

    points = np.zeros((npoints, 2))
    kind = np.zeros(npoints, dtype=np.intp)
    counts = np.zeros(nclasses, dtype=np.intp)

    n = len(init)
    points[:n] = init
    kind[:n] = init_kind
    for i in range(n):
        grid[tuple((init[i] // cell).astype(np.intp))] = i
        counts[init_kind[i]] += 1
    active = list(range(n))

    while active and n < npoints:
        a = rstate.randint(len(active))
        p = points[active[a]]
        # the new point joins the class with the fewest points
        k = int(np.argmin(counts))
        r = rmatrix[k, k] * _density_scale(p, vardensity)

        # uniform in the annulus between r and 2 * r
        rad = r * np.sqrt(1 + 3 * rstate.random_sample(ncandidates))
        ang = 2 * np.pi * rstate.random_sample(ncandidates)
        cand = p + rad[:, np.newaxis] * np.stack(
            (np.cos(ang), np.sin(ang)), axis=-1
        )
        cand = cand[np.all((cand >= 0) & (cand < 1), axis=-1)]

        good = np.zeros(0, dtype=np.intp)
        if len(cand):
            cscale = _density_scale(cand, vardensity)
            rmax = rmatrix[k].max() * cscale.max()
            lo = np.maximum(np.floor((cand.min(0) - rmax) / cell), 0)
            hi = np.minimum(np.floor((cand.max(0) + rmax) / cell) + 1, gsize)
            lo = lo.astype(np.intp)
            hi = hi.astype(np.intp)
            nb = grid[lo[0] : hi[0], lo[1] : hi[1]]
            nb = nb[nb >= 0]
            if nb.size:
                d = np.linalg.norm(
                    cand[:, np.newaxis, :] - points[nb][np.newaxis], axis=-1
                )
                req = rmatrix[k, kind[nb]] * cscale[:, np.newaxis]
                good = np.flatnonzero(np.all(d >= req, axis=1))
            else:
                good = np.arange(len(cand))

        if good.size == 0:
            # retire the active point
            active[a] = active[-1]
            active.pop()
            continue

        q = cand[good[0]]
        points[n] = q
        kind[n] = k
        counts[k] += 1
        grid[tuple((q // cell).astype(np.intp))] = n
        active.append(n)
        n += 1

    return points[:n], kind[:n]


def poissondisc(npoints, mindist, vardensity=0.0, init=None, rstate=None):
    """Poisson-disc distributed points in the unit square.

    Parameters
    ----------
    npoints : int
        Size of the point buffer.  Generation stops early once it is full.
    mindist : float
        Minimum distance between points.
    vardensity : float, optional
        Variable density factor.  At position ``p`` the minimum distance is
        ``mindist * (1 + vardensity * |p - c|**2)`` where ``c`` is the
        center of the square.
    init : (n, 2) array-like, optional
        Initial points.  Defaults to the center of the square.
    rstate : numpy.random.RandomState, optional
        Random number generator.

    Returns
    -------
    points : (P, 2) ndarray
        Accepted points (including `init`), ``P <= npoints``.  If
        ``P == npoints`` the buffer was exhausted and the square is not
        necessarily covered.
    """
    points, _ = _throw_darts(
        npoints, [[mindist]], vardensity, init, None, rstate
    )
    return points


def mc_poisson_rmatrix(dd, ndim=2):
    """Minimum distance matrix for multi-class Poisson-disc sampling.

    Classes are processed in order of decreasing distance.  When class
    ``k`` is added, its distance to all classes added before it is the
    distance of the union of these classes,
    ``(sum_j dd[j]**-ndim) ** (-1 / ndim)``.

    Parameters
    ----------
    dd : (T,) array-like
        Minimum distance within each class.
    ndim : int, optional
        Number of spatial dimensions.

    Returns
    -------
    rmatrix : (T, T) ndarray
        Symmetric matrix of minimum distances between points of each pair of
        classes.  The diagonal equals `dd`.
    """
    dd = np.asarray(dd, dtype=np.float64)
    if dd.ndim != 1 or np.any(dd <= 0):
        raise ValueError("dd must be a 1D array of positive distances")
    order = np.argsort(-dd, kind="stable")
    rmatrix = np.zeros((dd.size, dd.size))
    density = 0.0
    for n, k in enumerate(order):
        density += dd[k] ** -ndim
        rmatrix[k, k] = dd[k]
        for j in order[:n]:
            rmatrix[k, j] = rmatrix[j, k] = density ** (-1.0 / ndim)
    return rmatrix


def poissondisc_mc(
    npoints, rmatrix, vardensity=0.0, init=None, init_kind=None, rstate=None
):
    """Multi-class Poisson-disc distributed points in the unit square.

    Each new point is assigned to the class that currently has the fewest
    points.  Points of classes ``i`` and ``j`` are at least
    ``rmatrix[i, j]`` apart (scaled by the variable density factor).

    Parameters
    ----------
    npoints : int
        Size of the point buffer.
    rmatrix : (T, T) array-like
        Minimum distances between classes (see ``mc_poisson_rmatrix``).
    vardensity : float, optional
        Variable density factor (see ``poissondisc``).
    init : (n, 2) array-like, optional
        Initial points.  Defaults to the center of the square.
    init_kind : (n,) array-like, optional
        Classes of the initial points.  Defaults to class 0.
    rstate : numpy.random.RandomState, optional
        Random number generator.

    Returns
    -------
    points : (P, 2) ndarray
        Accepted points, ``P <= npoints``.
    kind : (P,) ndarray
        Class of each point.
    """
    return _throw_darts(npoints, rmatrix, vardensity, init, init_kind, rstate)


def poisson_pattern(
    yy=128,
    zz=128,
    y_accel=1.0,
    z_accel=1.0,
    calreg=0,
    vardensity=0.0,
    elliptical=False,
    mindist=1 / 1.275,
    classes=1,
    random_points=None,
    as_mask=True,
    seed=None,
    max_doublings=16,
    verbose=False,
):
    """Poisson-disc sampling pattern for two phase encoding dimensions.

    Parameters
    ----------
    yy, zz : int, optional
        Grid size along the two phase encoding dimensions.
    y_accel, z_accel : float, optional
        Acceleration along each dimension (>= 1).
    calreg : int, optional
        Size of a fully sampled square calibration region in the center of
        the mask.
    vardensity : float, optional
        Variable density factor.  0 gives uniform density.
    elliptical : bool, optional
        Only keep samples within the ellipse inscribed in the grid.
    mindist : float, optional
        Minimum distance between samples in grid units (before
        acceleration).
    classes : int, optional
        Number of interleaved sample classes (e.g. time frames).
    random_points : int, optional
        If given, place this many uniformly random points instead of a
        Poisson-disc pattern.
    as_mask : bool, optional
        Return a boolean mask.  Otherwise the sample coordinates are
        returned.
    seed : int, optional
        Seed of the random number generator.
    max_doublings : int, optional
        The point buffer starts at an estimate of the required number of
        points and is doubled whenever it is exhausted.  A RuntimeError is
        raised after this many doublings.
    verbose : bool, optional
        Print a summary of the generated pattern.

    Returns
    -------
    pattern : ndarray
        If `as_mask`, a ``(yy, zz, classes)`` boolean mask.  Otherwise a
        ``(P, 3)`` array of coordinates ``(0, y, z)`` in grid units relative
        to the center of k-space.
    npoints : int
        Number of sampled locations (set mask entries or coordinates).
    """
    if y_accel < 1 or z_accel < 1:
        raise ValueError("accelerations must be >= 1")
    if yy < 1 or zz < 1:
        raise ValueError("grid sizes must be positive")
    if classes < 1:
        raise ValueError("classes must be >= 1")
    if calreg < 0 or calreg > min(yy, zz):
        raise ValueError(
            "calibration region ({}) must fit within the {}x{} "
            "grid".format(calreg, yy, zz)
        )
    if calreg > 0 and not as_mask:
        raise ValueError("a calibration region requires mask output")
    if random_points is not None and random_points < 0:
        raise ValueError("random_points must be non-negative")
    if classes > 1 and not as_mask:
        warnings.warn("class labels are not part of the coordinate output")

    rstate = np.random.RandomState(seed)

    kspext = max(yy, zz)
    pest = classes * int(1.2 * kspext ** 2 / (y_accel * z_accel))
    dmin = mindist / kspext
    scale = np.array([y_accel * kspext / yy, z_accel * kspext / zz])

    if random_points is None:
        capacity = max(pest, 1)
        rmatrix = mc_poisson_rmatrix(np.full(classes, dmin))
    else:
        capacity = random_points + 1

    doublings = 0
    while True:
        if random_points is not None:
            points = rstate.random_sample((random_points, 2))
            kind = np.arange(random_points) % classes
        elif classes == 1:
            points = poissondisc(capacity, dmin, vardensity, rstate=rstate)
            kind = np.zeros(len(points), dtype=np.intp)
        else:
            points, kind = poissondisc_mc(
                capacity, rmatrix, vardensity, rstate=rstate
            )
        if len(points) < capacity:
            break
        if doublings == max_doublings:
            raise RuntimeError(
                "point buffer still full after {} doublings".format(
                    max_doublings
                )
            )
        doublings += 1
        capacity *= 2
        if verbose:
            print("Point buffer full, retrying with {}...".format(capacity))

    points = (points - 0.5) * scale + 0.5

    # discard points outside the sampled region
    offset = np.abs(points - 0.5)
    if elliptical:
        keep = np.sqrt(np.sum(offset ** 2, axis=-1)) <= 0.5
    else:
        keep = np.max(offset, axis=-1) <= 0.5
    points = points[keep]
    kind = kind[keep]

    if not as_mask:
        coords = np.zeros((len(points), 3))
        coords[:, 1] = (points[:, 0] - 0.5) * yy
        coords[:, 2] = (points[:, 1] - 0.5) * zz
        if verbose:
            print("points: {}".format(len(coords)))
        return coords, len(coords)

    mask = np.zeros((yy, zz, classes), dtype=bool)
    iy = np.floor(points[:, 0] * yy).astype(np.intp)
    iz = np.floor(points[:, 1] * zz).astype(np.intp)
    valid = (iy >= 0) & (iy < yy) & (iz >= 0) & (iz < zz)
    mask[iy[valid], iz[valid], kind[valid]] = True

    if calreg > 0:
        y0 = (yy - calreg) // 2
        z0 = (zz - calreg) // 2
        mask[y0 : y0 + calreg, z0 : z0 + calreg, :] = True

    npoints = int(np.count_nonzero(mask))
    if verbose:
        area = (np.pi / 4 if elliptical else 1.0) * yy * zz
        msg = "points: {}".format(npoints)
        if classes > 1:
            msg += ", classes: {}".format(classes)
        msg += ", grid size: {}x{}{} = {} (R = {:f})".format(
            yy,
            zz,
            "x(pi/4)" if elliptical else "",
            int(area),
            classes * area / max(npoints, 1),
        )
        print(msg)
    return mask, npoints
