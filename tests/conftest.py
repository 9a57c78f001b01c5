"""Pytest configuration and fixtures for VarioResGrid tests."""

from __future__ import annotations

import numpy as np
import pytest

from VarioResGrid.lagvgram import RawAnisotropicVariogram, collapse_by_distance


class FakeModel:
    """Fitted-model stand-in exposing residuals and coordinates."""

    def __init__(self, coords, residuals) -> None:
        self._coords = coords
        self._residuals = residuals

    def coordinates(self):
        return self._coords

    def residuals(self):
        return self._residuals


class StubLagLibrary:
    """Raw lag provider returning fixed records and counting its calls."""

    def __init__(self, row_lag, col_lag, vgram_full, N, dx=1.0, dy=1.0) -> None:
        self.row_lag = np.asarray(row_lag, dtype=np.int64)
        self.col_lag = np.asarray(col_lag, dtype=np.int64)
        self.vgram_full = np.asarray(vgram_full, dtype=float)
        self.N = np.asarray(N, dtype=np.int64)
        self.calls = []

    def compute(self, matrix, radius, dx, dy):
        self.calls.append((np.shape(matrix), radius, dx, dy))
        d = np.hypot(self.row_lag * dx, self.col_lag * dy)
        distance, vgram, n = collapse_by_distance(d, self.vgram_full, self.N)
        return RawAnisotropicVariogram(
            row_lag=self.row_lag,
            col_lag=self.col_lag,
            distance_full=d,
            vgram_full=self.vgram_full,
            N=self.N,
            distance=distance,
            vgram=vgram,
            n=n,
            dx=dx,
            dy=dy,
        )


@pytest.fixture
def holes_coords() -> np.ndarray:
    """Coordinates with gaps in both axes."""
    return np.column_stack([[1, 2, 3, 5, 6, 7, 8], [1, 2, 5, 6, 7, 8, 9]]).astype(float)


@pytest.fixture
def reps_coords() -> np.ndarray:
    """Coordinates with repeated values on both axes."""
    return np.column_stack([[1, 2, 3, 3, 4, 5, 6], [0, 1, 2, 3, 4, 4, 5]]).astype(float)


@pytest.fixture
def square_coords() -> np.ndarray:
    """2x2 unit grid."""
    return np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])


@pytest.fixture
def field_coords() -> np.ndarray:
    """Complete 8x8 unit grid."""
    xx, yy = np.meshgrid(np.arange(8.0), np.arange(8.0), indexing="ij")
    return np.column_stack([xx.ravel(), yy.ravel()])


@pytest.fixture
def field_values(field_coords: np.ndarray) -> np.ndarray:
    """Smooth trend plus noise over the 8x8 grid."""
    rng = np.random.default_rng(42)
    trend = 0.3 * field_coords[:, 0] - 0.1 * field_coords[:, 1]
    return trend + rng.normal(scale=0.5, size=field_coords.shape[0])


@pytest.fixture
def stub_library() -> StubLagLibrary:
    """Three raw records, two of them folding onto the same absolute lag."""
    return StubLagLibrary(row_lag=[0, 1, 1], col_lag=[1, -1, 1], vgram_full=[1.0, 2.0, 4.0], N=[10, 20, 40])


@pytest.fixture
def make_stub():
    """Factory for stub lag providers."""
    return StubLagLibrary


@pytest.fixture
def make_model():
    """Factory for fitted-model stand-ins."""
    return FakeModel
