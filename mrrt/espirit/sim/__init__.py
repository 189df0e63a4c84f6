from ._mri_sensemap_sim import *  # noqa
