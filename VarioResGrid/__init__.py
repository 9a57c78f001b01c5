"""
VarioResGrid
------------
Empirical variograms of model residuals: regular lattices from scattered
coordinates, raw lag variograms over gridded values, and their isotropic,
anisotropic, semi-isotropic (heat) and surface representations.
"""

import logging

# ---------------------------------------------------------------------
# Version (written by setuptools-scm to _version.py at build/install time)
# ---------------------------------------------------------------------
try:
    from ._version import version as __version__  # created by setuptools-scm
except ImportError:  # pragma: no cover
    __version__ = "0.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

# ---------------------------------------------------------------------
# Errors and options
# ---------------------------------------------------------------------
from .exceptions import (
    VarioResGridError,
    InvalidInputError,
    OffLatticeError,
    DuplicateLocationError,
    EmptyAxisError,
    NoStableCellsError,
)
from .config import VariogramOptions, PLOT_CHOICES

# ---------------------------------------------------------------------
# Lattice construction
# ---------------------------------------------------------------------
from .grid import LatticeDescriptor, build_lattice, populate_matrix

# ---------------------------------------------------------------------
# Raw lag variogram
# ---------------------------------------------------------------------
from .lagvgram import MatrixLagVariogram, RawAnisotropicVariogram, lag_vectors

# ---------------------------------------------------------------------
# Variogram representations
# ---------------------------------------------------------------------
from .variogram import (
    Variogram,
    AnisotropicVariogram,
    IsotropicVariogram,
    HeatVariogram,
    SurfaceVariogram,
    compute_variogram,
    filter_unstable,
    variogram,
)

__all__ = [
    "__version__",
    "VarioResGridError", "InvalidInputError", "OffLatticeError", "DuplicateLocationError",
    "EmptyAxisError", "NoStableCellsError",
    "VariogramOptions", "PLOT_CHOICES",
    "LatticeDescriptor", "build_lattice", "populate_matrix",
    "MatrixLagVariogram", "RawAnisotropicVariogram", "lag_vectors",
    "Variogram", "AnisotropicVariogram", "IsotropicVariogram", "HeatVariogram", "SurfaceVariogram",
    "compute_variogram", "filter_unstable", "variogram",
]
