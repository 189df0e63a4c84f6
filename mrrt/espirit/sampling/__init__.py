"""Poisson-disc undersampling patterns for Cartesian k-space."""

from ._poisson import *  # noqa
