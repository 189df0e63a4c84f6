"""Configuration record for ESPIRiT calibration."""
from collections import namedtuple


__all__ = ["EcalibConfig", "ecalib_defaults"]


_fields = (
    "kernel_shape",
    "threshold",
    "numsv",
    "percentsv",
    "weighting",
    "softcrop",
    "crop",
    "intensity",
    "rotphase",
    "perturb",
    "orthiter",
    "usegpu",
    "kernel_method",
    "kernel_order",
    "orthiter_iterations",
)

_defaults = (
    (6, 6, 6),
    0.001,
    -1,
    -1.0,
    False,
    False,
    0.8,
    False,
    True,
    -1.0,
    True,
    False,
    "gram",
    "signal",
    30,
)


class EcalibConfig(namedtuple("EcalibConfig", _fields, defaults=_defaults)):
    """Immutable set of ESPIRiT calibration options.

    Attributes
    ----------
    kernel_shape : tuple of int
        Size of the k-space kernel window (kx, ky, kz).  Use 1 along axes
        that are not used (e.g. ``(6, 6, 1)`` for 2D data).
    threshold : float
        Relative threshold used to select the number of kernels.  Kernels
        whose singular value ratio to the largest singular value exceeds
        ``sqrt(threshold)`` are kept (-1 = unset).  Exactly one of
        `threshold`, `numsv` and `percentsv` may be set, so set
        ``threshold=-1`` when selecting by count or percentage.
    numsv : int
        Fixed number of kernels to keep (-1 = unset).
    percentsv : float
        Percentage of the kernels to keep (-1 = unset).
    weighting : bool
        Soft-weight the kernels by their singular values.
    softcrop : bool
        Use a smooth S-curve instead of a hard threshold when cropping.
    crop : float
        Crop threshold applied to the eigenvalue maps.
    intensity : bool
        Apply L1 intensity normalization across channels (off by default).
    rotphase : bool
        Fix the phase relative to the first principal component of the
        calibration data instead of the first channel (on by default).
    perturb : float
        Magnitude of random perturbations added to the kernels (<= 0
        disables).
    orthiter : bool
        Use orthogonal iteration for the point-wise eigendecomposition.  If
        False a dense Hermitian eigensolver is used instead.
    usegpu : bool
        Request a GPU eigensolver.  Not supported; ignored with a warning.
    kernel_method : {"gram", "svd"}
        Obtain the kernels from an eigendecomposition of the Gram matrix of
        the calibration matrix or from an SVD of the calibration matrix
        itself.
    kernel_order : {"signal", "flip"}
        "signal" keeps the leading (signal space) kernels.  "flip" keeps the
        complementary null-space kernels and forms the image covariance from
        the identity minus their Gram matrix.
    orthiter_iterations : int
        Number of orthogonal iterations.
    """

    __slots__ = ()

    def validate(self):
        """Check option consistency, raising ValueError on conflicts."""
        if len(self.kernel_shape) != 3:
            raise ValueError("kernel_shape must have 3 elements")
        if any(k < 1 for k in self.kernel_shape):
            raise ValueError("kernel_shape entries must be positive")
        nselect = sum(
            (self.numsv != -1, self.percentsv != -1, self.threshold != -1)
        )
        if nselect != 1:
            raise ValueError(
                "exactly one of numsv, percentsv and threshold must be set "
                "(unset selectors are -1)"
            )
        if self.kernel_method not in ("gram", "svd"):
            raise ValueError(
                "unknown kernel_method: {}".format(self.kernel_method)
            )
        if self.kernel_order not in ("signal", "flip"):
            raise ValueError(
                "unknown kernel_order: {}".format(self.kernel_order)
            )
        if self.orthiter_iterations < 1:
            raise ValueError("orthiter_iterations must be positive")
        return self


ecalib_defaults = EcalibConfig()
