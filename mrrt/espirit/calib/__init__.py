"""ESPIRiT calibration of coil sensitivity maps.

The calibration proceeds in the following steps:

1. ``compute_kernels``: calibration matrix, its singular value spectrum and
   the kernels spanning its row space.
2. ``compute_imgcov``: point-wise image-space covariance of the selected
   kernels on a small grid (``calone`` runs steps 1 and 2).
3. ``caltwo``: interpolation of the covariance to the output grid and
   point-wise eigendecomposition (``eigenmaps``).
4. ``normalize_l1``, ``crop_sens`` and ``fixphase`` post-processing
   (``calib`` runs all of the above).

"""

from ._config import *  # noqa
from ._kernels import *  # noqa
from ._imgcov import *  # noqa
from ._eigenmaps import *  # noqa
from ._postprocess import *  # noqa
from ._espirit import *  # noqa
