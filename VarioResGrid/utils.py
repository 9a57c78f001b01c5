import dataclasses

import numpy as np
import pandas as pd
from matplotlib import colors as mcolors
from scipy.spatial.distance import pdist

from .exceptions import InvalidInputError


# largest distance between any two locations
def max_pairwise_distance(coords):
    coords = np.asarray(coords, float)
    if coords.shape[0] < 2:
        raise InvalidInputError("At least two locations are needed to compute distances.")
    return float(np.max(pdist(coords)))


# mean that can ignore missing values
def nan_aware_mean(x, skipna=True):
    """
    Mean of `x`.

    With `skipna` missing values are dropped first; a group with no
    remaining value gives NaN. Without it any missing value gives NaN.
    """
    x = np.asarray(x, float)
    if skipna:
        x = x[~np.isnan(x)]
    if x.size == 0:
        return np.nan
    return float(np.mean(x))


# facet means of a surface
def facet_means(z, skipna=True):
    """
    Mean of the four corners of every 2x2 block of a matrix.

    Parameters
    ----------
    z : (nx, ny) array_like
        Surface heights, NaN for missing.
    skipna : bool, default True
        Ignore missing corners. A facet with four missing corners is NaN.

    Returns
    -------
    (nx - 1, ny - 1) ndarray
        One value per facet (empty if either dimension is below 2).
    """
    z = np.asarray(z, float)
    nx, ny = z.shape
    if nx < 2 or ny < 2:
        return np.full((max(nx - 1, 0), max(ny - 1, 0)), np.nan)

    corners = np.stack([z[1:, 1:], z[1:, :-1], z[:-1, 1:], z[:-1, :-1]])
    if not skipna:
        return corners.mean(axis=0)

    present = ~np.isnan(corners)
    total = np.where(present, corners, 0.0).sum(axis=0)
    count = present.sum(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(count > 0, total / count, np.nan)


# colour ramp
def colour_ramp(colours, n=100):
    """Return `n` hex colours interpolated linearly between two colours."""
    cmap = mcolors.LinearSegmentedColormap.from_list("vario_ramp", list(colours), N=int(n))
    return [mcolors.to_hex(cmap(i)) for i in range(int(n))]


def equal_width_bins(values, nbins):
    """
    Assign each value to one of `nbins` equal-width bins over its finite range.

    The outer breaks are widened by a thousandth of the range so that the
    extremes fall inside; a constant input lands in the middle bin. Missing
    values get bin -1.

    Returns
    -------
    ndarray of int, same shape as `values`
    """
    v = np.asarray(values, float)
    out = np.full(v.shape, -1, dtype=int)
    finite = np.isfinite(v)
    if not np.any(finite):
        return out

    lo = float(np.min(v[finite]))
    hi = float(np.max(v[finite]))
    if hi > lo:
        breaks = np.linspace(lo, hi, nbins + 1)
        dx = hi - lo
        breaks[0] = lo - dx / 1000.0
        breaks[-1] = hi + dx / 1000.0
    else:
        dx = abs(lo) if lo != 0 else 1.0
        breaks = np.linspace(lo - dx / 1000.0, hi + dx / 1000.0, nbins + 1)

    # right-closed intervals
    idx = np.searchsorted(breaks, v[finite], side="left") - 1
    out[finite] = np.clip(idx, 0, nbins - 1)
    return out


def facet_colours(facets, colours, n=100):
    """
    Colour per facet on an `n`-level ramp between two colours.

    Returns
    -------
    ndarray of object, same shape as `facets`
        Hex colour strings; None for missing facets.
    """
    ramp = colour_ramp(colours, n)
    bins = equal_width_bins(facets, n)
    out = np.empty(bins.shape, dtype=object)
    for pos, b in np.ndenumerate(bins):
        out[pos] = ramp[b] if b >= 0 else None
    return out


# equality of arrays, frames and nested tuples of them
def values_equal(a, b):
    """
    Compare two field values holding arrays or DataFrames.

    Floating arrays compare NaN equal to NaN; DataFrames use `DataFrame.equals`.
    """
    if isinstance(a, pd.DataFrame) or isinstance(b, pd.DataFrame):
        return isinstance(a, pd.DataFrame) and isinstance(b, pd.DataFrame) and a.equals(b)
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        a = np.asarray(a)
        b = np.asarray(b)
        if a.shape != b.shape:
            return False
        if a.dtype.kind == "f" and b.dtype.kind == "f":
            return bool(np.array_equal(a, b, equal_nan=True))
        return bool(np.array_equal(a, b))
    if isinstance(a, (tuple, list)) and isinstance(b, (tuple, list)):
        return len(a) == len(b) and all(values_equal(u, v) for u, v in zip(a, b))
    return bool(a == b)


class FieldwiseEq:
    """
    Equality for dataclasses whose fields hold numpy arrays or DataFrames.

    Use with ``@dataclass(eq=False)``. Instances are unhashable.
    """

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return all(
            values_equal(getattr(self, f.name), getattr(other, f.name)) for f in dataclasses.fields(self)
        )
