"""
Options shared by the lattice builder and the variogram aggregator.

A single immutable value is passed down explicitly; nothing here is
process-wide state.
"""

from dataclasses import dataclass, replace as _dc_replace

from matplotlib import colors as mcolors

from .exceptions import InvalidInputError

# sequential palette endpoints (dark blue -> light orange)
DEFAULT_COLOURS = ("#034E7B", "#FDAE6B")

PLOT_CHOICES = ("all", "isotropic", "anisotropic", "perspective", "heat", "none")


@dataclass(frozen=True)
class VariogramOptions:
    """
    Configuration for `variogram` and `compute_variogram`.

    Parameters
    ----------
    colours : tuple of str, default ('#034E7B', '#FDAE6B')
        Low and high end of the facet colour ramp. Any matplotlib colour spec.
    n_colours : int, default 100
        Number of levels in the colour ramp.
    min_pairs : int, default 30
        Cells computed from fewer pairs are considered unstable.
    autofill : bool, default True
        Fill gaps in the lattice with empty cells.
    rtol, atol : float
        Tolerances used when matching coordinates against lattice values.
    radius_fraction : float, default 1/3
        Default radius as a fraction of the maximum pairwise distance.
    skipna : bool, default True
        Ignore missing values in group and facet means.
    phi, theta : float
        Default viewing angles for the surface descriptor.
    """

    colours: tuple = DEFAULT_COLOURS
    n_colours: int = 100
    min_pairs: int = 30
    autofill: bool = True
    rtol: float = 1e-9
    atol: float = 1e-8
    radius_fraction: float = 1.0 / 3.0
    skipna: bool = True
    phi: float = 30.0
    theta: float = -35.0

    def __post_init__(self):
        if len(self.colours) != 2:
            raise InvalidInputError("colours must hold exactly two colour specs (low, high)")
        for c in self.colours:
            if not mcolors.is_color_like(c):
                raise InvalidInputError(f"Invalid colour spec: {c!r}")
        if int(self.n_colours) < 1:
            raise InvalidInputError("n_colours must be >= 1")
        if self.min_pairs < 0:
            raise InvalidInputError("min_pairs must be >= 0")
        if self.rtol < 0 or self.atol < 0:
            raise InvalidInputError("rtol and atol must be non-negative")
        if not self.radius_fraction > 0:
            raise InvalidInputError("radius_fraction must be > 0")
        object.__setattr__(self, "colours", tuple(self.colours))

    def replace(self, **changes):
        """Return a copy with the given fields changed."""
        return _dc_replace(self, **changes)
