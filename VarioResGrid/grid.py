"""
This file contains the functions required for placing scattered 2-D sample coordinates on a regular lattice, as well
as filling that lattice with observed values.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .exceptions import DuplicateLocationError, EmptyAxisError, InvalidInputError, OffLatticeError
from .utils import FieldwiseEq

logger = logging.getLogger(__name__)

AXIS_NAMES = ("x", "y")


@dataclass(frozen=True, eq=False)
class LatticeDescriptor(FieldwiseEq):
    """
    Regular lattice inferred from a set of coordinates.

    Attributes
    ----------
    step : tuple of float
        Cell spacing (dx, dy).
    axis_values : tuple of ndarray
        Strictly increasing lattice coordinates along x (rows) and y (columns).
    cell_index : ndarray, shape (n, 2)
        (row, col) cell of every input coordinate, in input order.
    origin : tuple of float
        Lowest lattice coordinate on each axis.
    autofill : bool
        Whether gaps were filled with empty cells.
    """

    step: tuple
    axis_values: tuple
    cell_index: np.ndarray
    origin: tuple
    autofill: bool

    @property
    def shape(self):
        return (len(self.axis_values[0]), len(self.axis_values[1]))

    @property
    def n_cells(self):
        return self.shape[0] * self.shape[1]

    @property
    def is_complete(self):
        """True when every cell of the lattice holds at least one observation."""
        occupied = np.unique(self.cell_index, axis=0).shape[0]
        return occupied == self.n_cells


def as_coordinates(coordinates):
    """
    Coerce coordinates to a float array of shape (n, 2).

    Accepts numpy arrays, sequences of pairs and two-column DataFrames.
    """
    if coordinates is None:
        raise InvalidInputError("Coordinates are missing.")
    if isinstance(coordinates, pd.DataFrame):
        coordinates = coordinates.to_numpy()
    try:
        coords = np.asarray(coordinates, dtype=float)
    except (TypeError, ValueError) as err:
        raise InvalidInputError("Coordinates must be numeric.") from err

    if coords.ndim != 2 or coords.shape[1] != 2:
        raise InvalidInputError(f"Coordinates must be a two-column array; got shape {coords.shape}.")
    if coords.shape[0] == 0:
        raise InvalidInputError("Coordinates are empty.")
    if not np.all(np.isfinite(coords)):
        raise InvalidInputError("Coordinates contain missing or infinite values.")
    return coords


def _distinct_values(values, rtol, atol):
    # sorted unique values; near-equal neighbours collapse onto the first one
    v = np.unique(values)
    if v.size == 0:
        raise EmptyAxisError("Axis has no distinct values.")
    keep = [0]
    for i in range(1, v.size):
        if not np.isclose(v[i], v[keep[-1]], rtol=rtol, atol=atol):
            keep.append(i)
    return v[keep]


def _axis_lattice(values, autofill, rtol, atol, name):
    distinct = _distinct_values(values, rtol, atol)

    if distinct.size < 2:
        return distinct, 1.0

    # minimal consecutive gap, not a gcd over all gaps
    step = float(np.min(np.diff(distinct)))

    if not autofill:
        return distinct, step

    origin = distinct[0]
    nsteps = int(np.rint((distinct[-1] - origin) / step))
    axis = origin + step * np.arange(nsteps + 1, dtype=float)

    # every observed value must fall on the generated sequence
    k = np.rint((distinct - origin) / step).astype(int)
    off = ~np.isclose(axis[k], distinct, rtol=rtol, atol=atol)
    if np.any(off):
        bad = float(distinct[np.argmax(off)])
        raise OffLatticeError(
            f"Value {bad!r} on axis '{name}' does not fall on a regular lattice with step {step!r} "
            f"starting at {float(origin)!r}.",
            axis=name,
            value=bad,
        )

    # snap generated values onto the observed ones
    axis[k] = distinct
    return axis, step


def _locate(axis, values, rtol, atol, name):
    pos = np.searchsorted(axis, values)
    lo = np.clip(pos - 1, 0, axis.size - 1)
    hi = np.clip(pos, 0, axis.size - 1)
    idx = np.where(np.abs(axis[hi] - values) < np.abs(axis[lo] - values), hi, lo)

    miss = ~np.isclose(axis[idx], values, rtol=rtol, atol=atol)
    if np.any(miss):
        bad = float(values[np.argmax(miss)])
        raise OffLatticeError(f"Value {bad!r} on axis '{name}' has no matching lattice cell.", axis=name, value=bad)
    return idx


def build_lattice(coordinates, autofill=True, rtol=1e-9, atol=1e-8):
    """
    Infer the regular lattice that contains a set of 2-D coordinates.

    Each axis is handled independently. The spacing is the minimal positive
    difference between consecutive distinct values (1 if the axis holds a
    single value). With `autofill` the axis is the full arithmetic sequence
    from its minimum to its maximum; otherwise the observed distinct values
    are kept as they are, gaps included.

    Parameters
    ----------
    coordinates : (n, 2) array_like
        Sample locations (x, y). Duplicates are allowed and share a cell.
    autofill : bool, default True
        Fill gaps so that the lattice is evenly spaced.
    rtol, atol : float
        Tolerances used to merge near-equal values and to match coordinates
        against lattice values.

    Returns
    -------
    LatticeDescriptor

    Raises
    ------
    InvalidInputError
        If `coordinates` is not a non-empty, finite, two-column array.
    OffLatticeError
        If, under `autofill`, an observed value does not land on the
        generated sequence within tolerance.
    """

    coords = as_coordinates(coordinates)

    axes = []
    steps = []
    cells = []
    for j, name in enumerate(AXIS_NAMES):
        axis, step = _axis_lattice(coords[:, j], autofill, rtol, atol, name)
        axis.setflags(write=False)
        axes.append(axis)
        steps.append(step)
        cells.append(_locate(axis, coords[:, j], rtol, atol, name))

    cell_index = np.column_stack(cells).astype(np.intp)
    cell_index.setflags(write=False)

    lattice = LatticeDescriptor(
        step=tuple(steps),
        axis_values=tuple(axes),
        cell_index=cell_index,
        origin=(float(axes[0][0]), float(axes[1][0])),
        autofill=bool(autofill),
    )
    logger.debug("Lattice of shape %s with step %s (autofill=%s)", lattice.shape, lattice.step, autofill)
    return lattice


def populate_matrix(lattice, values):
    """
    Place observed values at their lattice cells.

    Parameters
    ----------
    lattice : LatticeDescriptor
    values : (n,) array_like
        One value per coordinate used to build `lattice`, in the same order.

    Returns
    -------
    ndarray of shape `lattice.shape`
        NaN everywhere except at observed cells.

    Raises
    ------
    InvalidInputError
        If the number of values differs from the number of coordinates.
    DuplicateLocationError
        If two observations fall in the same cell.
    """
    try:
        vals = np.asarray(values, dtype=float).ravel()
    except (TypeError, ValueError) as err:
        raise InvalidInputError("Values must be numeric.") from err

    cells = lattice.cell_index
    if vals.size != cells.shape[0]:
        raise InvalidInputError(f"Got {vals.size} values for {cells.shape[0]} coordinates.")

    uniq, counts = np.unique(cells, axis=0, return_counts=True)
    if np.any(counts > 1):
        shared = [tuple(int(i) for i in c) for c in uniq[counts > 1]]
        raise DuplicateLocationError(
            f"More than one observation detected in {len(shared)} lattice cell(s).", locations=shared
        )

    mat = np.full(lattice.shape, np.nan)
    mat[cells[:, 0], cells[:, 1]] = vals
    return mat
