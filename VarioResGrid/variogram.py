"""
This file contains the functions required for computing empirical variograms of gridded residuals, and for deriving
their isotropic, anisotropic, semi-isotropic (heat) and surface representations, with a filter for cells computed
from too few pairs.
"""

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Optional

import numpy as np
import pandas as pd

from .config import PLOT_CHOICES, VariogramOptions
from .exceptions import DuplicateLocationError, InvalidInputError, NoStableCellsError
from .grid import as_coordinates, build_lattice, populate_matrix
from .lagvgram import MatrixLagVariogram
from .utils import FieldwiseEq, facet_colours, facet_means, max_pairwise_distance, nan_aware_mean

logger = logging.getLogger(__name__)


# Representations
@dataclass(frozen=True, eq=False)
class AnisotropicVariogram(FieldwiseEq):
    """Variogram per (row, col) lag; columns row_lag, col_lag, x, y, z, N."""

    table: pd.DataFrame
    kind: ClassVar[str] = "anisotropic"


@dataclass(frozen=True, eq=False)
class IsotropicVariogram(FieldwiseEq):
    """Variogram per distance; columns distance, variogram, N."""

    table: pd.DataFrame
    kind: ClassVar[str] = "isotropic"


@dataclass(frozen=True, eq=False)
class HeatVariogram(FieldwiseEq):
    """
    Semi-isotropic variogram per absolute lag.

    Columns row_lag, col_lag (absolute lags in cells), x, y (physical),
    z (mean of the folded values), N (total pairs of the folded records)
    and n_records (number of folded records).
    """

    table: pd.DataFrame
    kind: ClassVar[str] = "heat"


@dataclass(frozen=True, eq=False)
class SurfaceVariogram(FieldwiseEq):
    """
    Heat variogram laid out as a surface for 3-D rendering.

    `z`, `N` and `n_records` are indexed by the `x` (row displacement) and `y`
    (column displacement) levels. `facet_values` holds the mean of the four
    corners of every facet and `col` its colour. `zlim` is None when no cell
    has a value.
    """

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    N: np.ndarray
    zlim: Optional[tuple]
    facet_values: np.ndarray
    col: np.ndarray
    n_records: np.ndarray
    options: VariogramOptions = field(default_factory=VariogramOptions, repr=False)
    xlab: str = "row disp."
    ylab: str = "col disp."
    zlab: str = ""
    kind: ClassVar[str] = "surface"

    @property
    def has_stable_cells(self):
        return self.zlim is not None

    def persp_args(self):
        """Keyword arguments for a 3-D surface renderer."""
        if not self.has_stable_cells:
            raise NoStableCellsError("The surface has no stable cells to render.")
        return {
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "zlim": self.zlim,
            "col": self.col,
            "phi": self.options.phi,
            "theta": self.options.theta,
            "xlab": self.xlab,
            "ylab": self.ylab,
            "zlab": self.zlab,
        }


@dataclass(frozen=True, eq=False)
class Variogram(FieldwiseEq):
    """
    All representations of one empirical variogram.

    Attributes
    ----------
    isotropic, anisotropic, heat, surface
        Derived representations.
    plot : str
        Which representations were requested ('all', 'isotropic', 'anisotropic',
        'perspective', 'heat' or 'none').
    radius : float or None
        Radius used for the lags.
    lattice : LatticeDescriptor or None
        Lattice the residuals were placed on.
    """

    isotropic: IsotropicVariogram
    anisotropic: AnisotropicVariogram
    heat: HeatVariogram
    surface: SurfaceVariogram
    plot: str = "all"
    radius: Optional[float] = None
    lattice: Optional[object] = field(default=None, repr=False)

    def representations(self):
        return {
            "isotropic": self.isotropic,
            "anisotropic": self.anisotropic,
            "heat": self.heat,
            "perspective": self.surface,
        }

    def selected(self):
        """Representations named by `plot`."""
        reps = self.representations()
        if self.plot == "all":
            return reps
        if self.plot == "none":
            return {}
        return {self.plot: reps[self.plot]}

    def filtered(self, min_pairs=None):
        """Copy with unstable cells removed; defaults to `options.min_pairs`."""
        if min_pairs is None:
            min_pairs = self.surface.options.min_pairs
        return filter_unstable(self, min_pairs)


# Derivations from the raw lag variogram
def anisotropic_table(raw):
    return pd.DataFrame({
        "row_lag": np.asarray(raw.row_lag, dtype=np.int64),
        "col_lag": np.asarray(raw.col_lag, dtype=np.int64),
        "x": np.asarray(raw.row_lag, float) * raw.dx,
        "y": np.asarray(raw.col_lag, float) * raw.dy,
        "z": np.asarray(raw.vgram_full, float),
        "N": np.asarray(raw.N, dtype=np.int64),
    })


def isotropic_table(raw):
    return pd.DataFrame({
        "distance": np.asarray(raw.distance, float),
        "variogram": np.asarray(raw.vgram, float),
        "N": np.asarray(raw.n, dtype=np.int64),
    })


def heat_table(aniso, dx, dy, skipna=True):
    """
    Fold an anisotropic table over the sign of the lags.

    Records sharing the same (|row_lag|, |col_lag|) are merged: `z` is their
    mean (missing values ignored when `skipna`), `N` the sum of their pair
    counts and `n_records` the number of merged records.
    """
    folded = pd.DataFrame({
        "row_lag": aniso["row_lag"].abs(),
        "col_lag": aniso["col_lag"].abs(),
        "z": aniso["z"],
        "N": aniso["N"],
    })
    heat = (
        folded.groupby(["row_lag", "col_lag"], sort=True)
        .agg(
            z=("z", lambda s: nan_aware_mean(s, skipna=skipna)),
            N=("N", "sum"),
            n_records=("N", "size"),
        )
        .reset_index()
    )
    heat.insert(2, "x", heat["row_lag"].to_numpy(dtype=float) * dx)
    heat.insert(3, "y", heat["col_lag"].to_numpy(dtype=float) * dy)
    heat["N"] = heat["N"].astype(np.int64)
    return heat


def _make_surface(x, y, z, N, n_records, options):
    facets = facet_means(z, skipna=options.skipna)
    col = facet_colours(facets, options.colours, options.n_colours)
    if np.any(~np.isnan(z)):
        zlim = (0.0, float(np.nanmax(z)))
    else:
        zlim = None

    for arr in (x, y, z, N, n_records, facets, col):
        arr.setflags(write=False)
    return SurfaceVariogram(
        x=x, y=y, z=z, N=N, zlim=zlim, facet_values=facets, col=col, n_records=n_records, options=options
    )


def _mean_pairs(N, n_records):
    # pairs per folded record; NaN where the cell holds no record
    N = np.asarray(N, float)
    n_records = np.asarray(n_records, float)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(n_records > 0, N / n_records, np.nan)


def surface_from_heat(heat, dx, dy, options=None):
    """
    Lay the heat table out as a matrix indexed by its absolute-lag levels.

    Levels are the distinct lags present in the table, not necessarily evenly
    spaced. Cells with no record are NaN in `z`, `N` and `n_records`.
    """
    options = options or VariogramOptions()
    row_levels = np.unique(heat["row_lag"].to_numpy())
    col_levels = np.unique(heat["col_lag"].to_numpy())
    i = np.searchsorted(row_levels, heat["row_lag"].to_numpy())
    j = np.searchsorted(col_levels, heat["col_lag"].to_numpy())

    shape = (row_levels.size, col_levels.size)
    z = np.full(shape, np.nan)
    N = np.full(shape, np.nan)
    n_records = np.full(shape, np.nan)
    z[i, j] = heat["z"].to_numpy(dtype=float)
    N[i, j] = heat["N"].to_numpy(dtype=float)
    n_records[i, j] = heat["n_records"].to_numpy(dtype=float)

    x = row_levels.astype(float) * dx
    y = col_levels.astype(float) * dy
    return _make_surface(x, y, z, N, n_records, options)


def _occupied_extent(matrix, dx, dy):
    # max distance between observed cells
    rows, cols = np.nonzero(~np.isnan(matrix))
    pts = np.column_stack([rows * dx, cols * dy])
    return max_pairwise_distance(pts)


def compute_variogram(matrix, step, lag_library=None, radius=None, options=None, plot="all", lattice=None):
    """
    Compute the four variogram representations of a populated matrix.

    Parameters
    ----------
    matrix : (rows, cols) array_like
        Values at their lattice cells, NaN elsewhere.
    step : tuple of float
        Cell spacing (dx, dy).
    lag_library : object, optional
        Anything with `compute(matrix, radius, dx, dy)` returning a
        `RawAnisotropicVariogram`. Defaults to `MatrixLagVariogram()`.
    radius : float, optional
        Maximum lag length. Defaults to a fraction (`options.radius_fraction`)
        of the largest distance between observed cells.
    options : VariogramOptions, optional
    plot : str, default 'all'
        Representations to display; stored on the result.
    lattice : LatticeDescriptor, optional
        Stored on the result for reference.

    Returns
    -------
    Variogram
    """
    options = options or VariogramOptions()
    if plot not in PLOT_CHOICES:
        raise InvalidInputError(f"Invalid plot: choose from {', '.join(repr(p) for p in PLOT_CHOICES)}")

    mat = np.asarray(matrix, dtype=float)
    if mat.ndim != 2:
        raise InvalidInputError("matrix must be two-dimensional")
    try:
        dx, dy = (float(s) for s in step)
    except (TypeError, ValueError) as err:
        raise InvalidInputError(f"step must be a pair of numbers (dx, dy); got {step!r}") from err
    if not (dx > 0 and dy > 0):
        raise InvalidInputError(f"step values must be > 0; got {step!r}")

    if radius is None:
        radius = _occupied_extent(mat, dx, dy) * options.radius_fraction
    lag_library = lag_library or MatrixLagVariogram()

    raw = lag_library.compute(mat, radius, dx, dy)
    raw.validate()
    logger.debug("Raw variogram with %d lags and %d distance bins", len(raw), len(raw.distance))

    aniso = anisotropic_table(raw)
    heat = heat_table(aniso, dx, dy, skipna=options.skipna)

    return Variogram(
        isotropic=IsotropicVariogram(isotropic_table(raw)),
        anisotropic=AnisotropicVariogram(aniso),
        heat=HeatVariogram(heat),
        surface=surface_from_heat(heat, dx, dy, options),
        plot=plot,
        radius=float(radius),
        lattice=lattice,
    )


# Stability filter
def filter_unstable(representation, min_pairs=None):
    """
    Suppress values computed from fewer than `min_pairs` pairs.

    Isotropic rows are dropped; anisotropic, heat and surface values are set
    to NaN with shapes unchanged. Heat and surface cells are judged on their
    mean pair count per folded record (`N / n_records`), so folding lags
    together never lets a cell pass that none of its records would. The
    surface's `zlim` and facet colours are recomputed from the remaining
    values. The input is never modified.

    Parameters
    ----------
    representation : IsotropicVariogram, AnisotropicVariogram, HeatVariogram, SurfaceVariogram or Variogram
    min_pairs : int, optional
        Defaults to `VariogramOptions().min_pairs`.

    Returns
    -------
    Same type as `representation`.
    """
    if min_pairs is None:
        min_pairs = VariogramOptions().min_pairs
    if min_pairs < 0:
        raise InvalidInputError("min_pairs must be >= 0")

    if isinstance(representation, IsotropicVariogram):
        table = representation.table
        kept = table.loc[table["N"] >= min_pairs].reset_index(drop=True)
        logger.debug("Dropped %d unstable isotropic bins", len(table) - len(kept))
        return IsotropicVariogram(kept)

    elif isinstance(representation, AnisotropicVariogram):
        table = representation.table.copy()
        table.loc[table["N"] < min_pairs, "z"] = np.nan
        return AnisotropicVariogram(table)

    elif isinstance(representation, HeatVariogram):
        table = representation.table.copy()
        pairs = _mean_pairs(table["N"], table["n_records"])
        table.loc[pairs < min_pairs, "z"] = np.nan
        return HeatVariogram(table)

    elif isinstance(representation, SurfaceVariogram):
        z = representation.z.copy()
        with np.errstate(invalid="ignore"):
            z[_mean_pairs(representation.N, representation.n_records) < min_pairs] = np.nan
        s = _make_surface(
            representation.x.copy(),
            representation.y.copy(),
            z,
            representation.N.copy(),
            representation.n_records.copy(),
            representation.options,
        )
        if not s.has_stable_cells:
            logger.warning("No surface cell has at least %d pairs", min_pairs)
        return s

    elif isinstance(representation, Variogram):
        return Variogram(
            isotropic=filter_unstable(representation.isotropic, min_pairs),
            anisotropic=filter_unstable(representation.anisotropic, min_pairs),
            heat=filter_unstable(representation.heat, min_pairs),
            surface=filter_unstable(representation.surface, min_pairs),
            plot=representation.plot,
            radius=representation.radius,
            lattice=representation.lattice,
        )

    else:
        raise TypeError(f"Cannot filter object of type {type(representation).__name__}")


# Main Function
def variogram(model=None, plot="all", R=None, coord=None, z=None, options=None, lag_library=None):
    """
    Empirical variogram of the residuals of a fitted spatial model.

    Unless `coord` or `z` are given, coordinates and residuals are taken from
    `model`. At most one observation per spatial location is allowed.

    Parameters
    ----------
    model : object, optional
        Fitted model exposing `residuals()` and `coordinates()`, aligned by index.
    plot : {'all', 'isotropic', 'anisotropic', 'perspective', 'heat', 'none'}
        Representations to display.
    R : float, optional
        Radius of the variogram, in coordinate units. Defaults to a third of the
        largest distance between observations.
    coord : (n, 2) array_like, optional
        Observation coordinates; overrides those of `model`.
    z : (n,) array_like, optional
        Values to analyse; overrides the residuals of `model`.
    options : VariogramOptions, optional
    lag_library : object, optional
        Raw lag variogram provider; see `compute_variogram`.

    Returns
    -------
    Variogram

    Raises
    ------
    InvalidInputError
        Missing inputs, malformed coordinates, fewer than two observations or
        mismatched lengths.
    DuplicateLocationError
        More than one observation at the same location.
    """
    options = options or VariogramOptions()
    if plot not in PLOT_CHOICES:
        raise InvalidInputError(f"Invalid plot: choose from {', '.join(repr(p) for p in PLOT_CHOICES)}")

    if model is None and (coord is None or z is None):
        raise InvalidInputError("Missing input: give a fitted model, or both coord and z.")

    if coord is None:
        coord = model.coordinates()
    if z is None:
        z = model.residuals()

    coords = as_coordinates(coord)
    if coords.shape[0] < 2:
        raise InvalidInputError("At least two observations are needed.")

    try:
        values = np.asarray(z, dtype=float).ravel()
    except (TypeError, ValueError) as err:
        raise InvalidInputError("Values must be numeric.") from err
    if values.size != coords.shape[0]:
        raise InvalidInputError(f"Got {values.size} values for {coords.shape[0]} coordinates.")

    # only one observation per spatial unit
    dup = pd.DataFrame(coords).duplicated()
    if dup.any():
        locations = [tuple(p) for p in np.unique(coords[dup.to_numpy()], axis=0)]
        raise DuplicateLocationError(
            f"More than one observation detected in {len(locations)} spatial unit(s).", locations=locations
        )

    lattice = build_lattice(coords, autofill=options.autofill, rtol=options.rtol, atol=options.atol)
    mat = populate_matrix(lattice, values)

    if R is None:
        R = max_pairwise_distance(coords) * options.radius_fraction
    logger.info("Variogram of %d observations on a %s lattice, radius %.6g", values.size, lattice.shape, R)

    return compute_variogram(mat, lattice.step, lag_library=lag_library, radius=R, options=options, plot=plot,
                             lattice=lattice)
