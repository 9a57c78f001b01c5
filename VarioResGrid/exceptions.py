"""Named error kinds raised while building lattices and variograms."""


class VarioResGridError(Exception):
    """Base exception for all VarioResGrid errors."""

    pass


class InvalidInputError(VarioResGridError, ValueError):
    """Missing or malformed coordinates/values, or too few observations."""

    pass


class OffLatticeError(InvalidInputError):
    """An observed coordinate does not land on the generated lattice."""

    def __init__(self, message, axis=None, value=None):
        super().__init__(message)
        self.axis = axis
        self.value = value


class DuplicateLocationError(VarioResGridError, ValueError):
    """Two observations share one spatial cell."""

    def __init__(self, message, locations=None):
        super().__init__(message)
        self.locations = [] if locations is None else locations


class EmptyAxisError(VarioResGridError, ValueError):
    """An axis has no distinct values."""

    pass


class NoStableCellsError(VarioResGridError):
    """Every cell of a surface was removed by the stability filter."""

    pass
