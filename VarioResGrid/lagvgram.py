"""
This file contains the raw lag variogram of a gridded field: the semivariance for every integer (row, column)
displacement inside a radius, together with the number of pairs behind each value.
"""

import logging
from dataclasses import dataclass

import numpy as np
from numba import njit

from .exceptions import InvalidInputError
from .utils import FieldwiseEq

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RawAnisotropicVariogram(FieldwiseEq):
    """
    Unbinned anisotropic variogram over a matrix.

    Attributes
    ----------
    row_lag, col_lag : ndarray of int
        Lag of each record in cells; `row_lag >= 0`.
    distance_full : ndarray of float
        Physical length of each lag.
    vgram_full : ndarray of float
        Semivariance per lag (NaN when no pair survived).
    N : ndarray of int
        Pair count per lag (0 when no pair survived).
    distance, vgram, n : ndarray
        Isotropic triples: lags collapsed by distance.
    dx, dy : float
        Cell spacing.
    """

    row_lag: np.ndarray
    col_lag: np.ndarray
    distance_full: np.ndarray
    vgram_full: np.ndarray
    N: np.ndarray
    distance: np.ndarray
    vgram: np.ndarray
    n: np.ndarray
    dx: float
    dy: float

    def __len__(self):
        return len(self.row_lag)

    def validate(self):
        """Check the record columns are aligned and row lags are non-negative."""
        k = len(self.row_lag)
        for name in ("col_lag", "distance_full", "vgram_full", "N"):
            if len(getattr(self, name)) != k:
                raise InvalidInputError(f"Raw variogram column '{name}' has {len(getattr(self, name))} rows, expected {k}.")
        if not (len(self.distance) == len(self.vgram) == len(self.n)):
            raise InvalidInputError("Raw variogram isotropic columns differ in length.")
        if k and np.min(self.row_lag) < 0:
            raise InvalidInputError("Raw variogram must only hold non-negative row lags.")
        if k and np.min(self.N) < 0:
            raise InvalidInputError("Raw variogram pair counts must be non-negative.")
        return self


@njit
def _lag_sums(dat, lags):
    """Sum of squared differences and pair count for each (row, col) lag."""
    nrow, ncol = dat.shape
    k = lags.shape[0]
    sums = np.zeros(k)
    counts = np.zeros(k, dtype=np.int64)
    for t in range(k):
        di = lags[t, 0]
        dj = lags[t, 1]
        for r in range(nrow - di):
            for c in range(ncol):
                c2 = c + dj
                if c2 < 0 or c2 >= ncol:
                    continue
                a = dat[r, c]
                b = dat[r + di, c2]
                if np.isnan(a) or np.isnan(b):
                    continue
                diff = a - b
                sums[t] += diff * diff
                counts[t] += 1
    return sums, counts


def lag_vectors(shape, radius, dx=1.0, dy=1.0):
    """
    Integer lags within `radius`, ordered by physical length.

    Parameters
    ----------
    shape : tuple of int
        Matrix shape (rows, cols).
    radius : float
        Maximum physical lag length.
    dx, dy : float
        Cell spacing along rows and columns.

    Returns
    -------
    lags : ndarray of int, shape (k, 2)
        (row_lag, col_lag) with row_lag >= 0.
    d : ndarray of float, shape (k,)
        Physical lag length.
    """
    nrow, ncol = shape
    m = min(int(np.round(radius / dx)), nrow)
    n = min(int(np.round(radius / dy)), ncol)

    cols = np.arange(1, n + 1)
    rows = np.arange(1, m + 1)
    signed_cols = np.concatenate([-cols[::-1], cols])

    blocks = [
        np.column_stack([np.zeros_like(cols), cols]),
        np.column_stack([rows, np.zeros_like(rows)]),
    ]
    if m and n:
        rr, cc = np.meshgrid(rows, signed_cols, indexing="ij")
        blocks.append(np.column_stack([rr.ravel(), cc.ravel()]))
    lags = np.concatenate(blocks).astype(np.int64).reshape(-1, 2)

    d = np.hypot(dx * lags[:, 0], dy * lags[:, 1])
    good = (d > 0) & (d <= radius)
    lags = lags[good]
    d = d[good]

    order = np.argsort(d, kind="stable")
    return lags[order], d[order]


def collapse_by_distance(d, vgram_full, N, decimals=12):
    """
    Pool lag records sharing the same distance, weighting by pair count.

    Returns
    -------
    distance, vgram, n : ndarray
        One entry per distinct distance; vgram is NaN where n == 0.
    """
    key = np.round(np.asarray(d, float), decimals)
    distance, inverse = np.unique(key, return_inverse=True)
    N = np.asarray(N, float)
    # lags without pairs do not contribute
    contrib = np.where(N > 0, np.nan_to_num(vgram_full) * N, 0.0)
    top = np.bincount(inverse, weights=contrib, minlength=distance.size)
    bottom = np.bincount(inverse, weights=N, minlength=distance.size)
    with np.errstate(divide="ignore", invalid="ignore"):
        vgram = np.where(bottom > 0, top / bottom, np.nan)
    return distance, vgram, bottom.astype(np.int64)


class MatrixLagVariogram:
    """
    Raw lag variogram of a matrix with missing cells.

    For every lag (i, j) within the radius, all cell pairs (r, c) and
    (r + i, c + j) with both values present contribute
    0.5 * (z[r, c] - z[r + i, c + j]) ** 2 to the lag mean.
    """

    def compute(self, matrix, radius, dx=1.0, dy=1.0):
        """
        Compute the raw anisotropic variogram.

        Parameters
        ----------
        matrix : (rows, cols) array_like
            Gridded values, NaN for empty cells.
        radius : float
            Maximum lag length, in the same units as `dx` and `dy`.
        dx, dy : float
            Cell spacing.

        Returns
        -------
        RawAnisotropicVariogram
        """
        dat = np.asarray(matrix, dtype=float)
        if dat.ndim != 2:
            raise InvalidInputError("matrix must be two-dimensional")
        if not radius > 0:
            raise InvalidInputError(f"radius must be > 0; got {radius!r}")
        if not (dx > 0 and dy > 0):
            raise InvalidInputError("dx and dy must be > 0")

        lags, d = lag_vectors(dat.shape, radius, dx, dy)
        logger.debug("Computing %d lags within radius %s on a %s matrix", len(lags), radius, dat.shape)

        if len(lags):
            sums, counts = _lag_sums(np.ascontiguousarray(dat), np.ascontiguousarray(lags))
        else:
            sums = np.zeros(0)
            counts = np.zeros(0, dtype=np.int64)

        with np.errstate(divide="ignore", invalid="ignore"):
            vgram_full = np.where(counts > 0, 0.5 * sums / counts, np.nan)

        distance, vgram, n = collapse_by_distance(d, vgram_full, counts)

        return RawAnisotropicVariogram(
            row_lag=lags[:, 0],
            col_lag=lags[:, 1],
            distance_full=d,
            vgram_full=vgram_full,
            N=counts,
            distance=distance,
            vgram=vgram,
            n=n,
            dx=float(dx),
            dy=float(dy),
        )
