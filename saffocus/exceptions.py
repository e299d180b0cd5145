"""Exceptions raised by the focus computation."""

__all__ = ["SafFocusError", "InvalidParameterError", "DegenerateFitError"]


class SafFocusError(Exception):
    """Base class for all saffocus errors."""


class InvalidParameterError(SafFocusError, ValueError):
    """Optical parameters are out of their valid range.

    Raised before any computation starts, e.g. for a non-positive
    refractive index, wavelength or NA, an empty pupil grid, or an
    inverted z-scan range.
    """


class DegenerateFitError(SafFocusError, ArithmeticError):
    """The Strehl peak could not be refined.

    Raised when the quadratic fit around the scan maximum has zero
    curvature (collinear points), when the fit window contains
    non-finite Strehl values, or when the fitted peak is not positive.
    """
