"""Coil compression utilities.

Much of this code is modified from idmrmrd-python-tools
https://github.com/ismrmrd/ismrmrd-python-tools

The principal components of the calibration data also serve as the phase
reference of the ESPIRiT sensitivity maps.

"""

from ._coil_pca import *  # noqa
