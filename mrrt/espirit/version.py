from os.path import join as pjoin

# Format expected by setup.py and doc/source/conf.py: string of form "X.Y.Z"
_version_major = 0
_version_minor = 1
_version_micro = 0  # use '' for first of series, number for 1 and above
_version_extra = "dev"
# _version_extra = ""  # Uncomment this for full releases

# Construct full version string from these.
_ver = [_version_major, _version_minor]
if _version_micro:
    _ver.append(_version_micro)
if _version_extra:
    _ver.append(_version_extra)

__version__ = ".".join(map(str, _ver))

CLASSIFIERS = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "License :: OSI Approved :: BSD License",
    "Operating System :: OS Independent",
    "Programming Language :: Python",
    "Programming Language :: Python :: 3",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
]

# Description should be a one-liner:
description = (
    "mrrt.espirit: ESPIRiT coil sensitivity calibration and Poisson-disc "
    "sampling patterns"
)
# Long description will go up on the pypi page
long_description = """
mrrt.espirit
============
Coil sensitivity maps for parallel MRI from a fully sampled calibration
region of k-space using ESPIRiT, as well as Poisson-disc undersampling
patterns for Cartesian acquisitions.

The calibration computes the k-space kernels spanning the signal space of
the calibration matrix, transforms them to a point-wise image-space
covariance and obtains the sensitivities as the leading eigenvectors of the
covariance at every voxel.

License
=======
``mrrt.espirit`` is licensed under the terms of the BSD 3-clause license.
See the file "LICENSE.txt" for information on the history of this software,
terms & conditions for usage, and a DISCLAIMER OF ALL WARRANTIES.
"""

NAME = "mrrt.espirit"
MAINTAINER = "Gregory R. Lee"
MAINTAINER_EMAIL = "grlee77@gmail.com"
DESCRIPTION = description
LONG_DESCRIPTION = long_description
URL = "https://github.com/mritools/mrrt.espirit"
DOWNLOAD_URL = ""
LICENSE = "BSD"
AUTHOR = "Gregory R. Lee"
AUTHOR_EMAIL = "grlee77@gmail.com"
PLATFORMS = "OS Independent"
MAJOR = _version_major
MINOR = _version_minor
MICRO = _version_micro
VERSION = __version__
PACKAGE_DATA = {"mrrt.espirit": [pjoin("tests", "*")]}
REQUIRES = ["mrrt.utils", "numpy>=1.20", "scipy"]
EXTRAS_REQUIRE = {"test": ["pytest"]}
PYTHON_REQUIRES = ">= 3.7"
