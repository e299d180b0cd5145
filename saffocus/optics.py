"""Optical parameter set and pupil sampling grid."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Tuple

import numpy as np

from .exceptions import InvalidParameterError

__all__ = [
    "OpticalParameters",
    "PupilGrid",
    "make_pupil_grid",
    "FOCUS_SHIFT_FACTOR",
]

# First-order estimate of the axial focus shift per unit imaging depth,
# in units of refimm / refmed.
FOCUS_SHIFT_FACTOR = 1.25

# Legacy parameter field names.
_STRUCT_ALIASES = {
    "NA": "na",
    "lambda": "wavelength",
    "Npupil": "npupil",
}


@dataclass(frozen=True)
class OpticalParameters:
    """Immutable optical system parameters.

    Lengths (wavelength, working distance, depth, z-spread) share one
    unit, typically nanometers; the returned z-positions use it too.

    Attributes:
        na: Numerical aperture of the objective.
        refmed: Refractive index of the sample medium.
        refcov: Refractive index of the coverslip.
        refimm: Actual refractive index of the immersion medium.
        refimmnom: Nominal (design) refractive index of the immersion medium.
        wavelength: Vacuum wavelength.
        npupil: Number of pupil samples per axis.
        fwd: Nominal free working distance.
        depth: Imaging depth below the coverslip (>= 0).
        zspread: (low, high) half-range of the stage scan. The scan covers
            1.5 times this range around the first-order focus estimate.
        debugmode: If True, log a text report and plot the Strehl curve.

    Example:
        ```python
        params = OpticalParameters(
            na=1.49, refmed=1.33, refcov=1.52, refimm=1.51, refimmnom=1.51,
            wavelength=680.0, npupil=64, fwd=150e3, depth=5e3,
            zspread=(-1000.0, 1000.0),
        )
        ```
    """

    na: float
    refmed: float
    refcov: float
    refimm: float
    refimmnom: float
    wavelength: float
    npupil: int
    fwd: float
    depth: float
    zspread: Tuple[float, float] = (-1000.0, 1000.0)
    debugmode: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        """Validate parameters and normalize zspread."""
        indices = {
            "refmed": self.refmed,
            "refcov": self.refcov,
            "refimm": self.refimm,
            "refimmnom": self.refimmnom,
        }
        for name, value in indices.items():
            if not value > 0:
                raise InvalidParameterError(
                    f"Refractive index {name} must be positive, got {value}"
                )
        if not self.na > 0:
            raise InvalidParameterError(f"NA must be positive, got {self.na}")
        if not self.wavelength > 0:
            raise InvalidParameterError(
                f"Wavelength must be positive, got {self.wavelength}"
            )
        if (
            not np.isfinite(self.npupil)
            or int(self.npupil) != self.npupil
            or self.npupil < 1
        ):
            raise InvalidParameterError(
                f"npupil must be a positive integer, got {self.npupil}"
            )
        object.__setattr__(self, "npupil", int(self.npupil))

        if not np.isfinite(self.fwd):
            raise InvalidParameterError(
                f"Free working distance must be finite, got {self.fwd}"
            )

        if not self.depth >= 0:
            raise InvalidParameterError(
                f"Imaging depth must be non-negative, got {self.depth}"
            )

        zspread = tuple(float(z) for z in np.ravel(self.zspread))
        if len(zspread) != 2:
            raise InvalidParameterError(
                f"zspread must hold exactly two values, got {len(zspread)}"
            )
        if not all(np.isfinite(zspread)):
            raise InvalidParameterError(f"zspread must be finite, got {zspread}")
        if zspread[0] > zspread[1]:
            raise InvalidParameterError(
                f"zspread must be ordered (low <= high), got {zspread}"
            )
        object.__setattr__(self, "zspread", zspread)

        # Only the sample medium may carry evanescent pupil samples.
        for name in ("refcov", "refimm", "refimmnom"):
            if self.na > indices[name]:
                raise InvalidParameterError(
                    f"NA ({self.na}) cannot exceed {name} ({indices[name]})"
                )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "OpticalParameters":
        """Build parameters from a dict.

        Accepts both the attribute names of this class and the field
        names of the legacy parameter struct (``NA``, ``lambda``,
        ``Npupil``). Unknown keys are ignored.

        Example:
            ```python
            params = OpticalParameters.from_mapping({
                "NA": 1.49, "refmed": 1.33, "refcov": 1.52,
                "refimm": 1.51, "refimmnom": 1.51, "lambda": 680,
                "Npupil": 64, "fwd": 150e3, "depth": 0,
                "zspread": [-1000, 1000], "debugmode": False,
            })
            ```
        """
        known = set(cls.__dataclass_fields__)
        kwargs = {}
        for key, value in mapping.items():
            name = _STRUCT_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    @property
    def focus_shift_estimate(self) -> float:
        """First-order axial focus shift caused by the imaging depth."""
        return FOCUS_SHIFT_FACTOR * self.refimm / self.refmed * self.depth

    @property
    def baseline_stage_position(self) -> float:
        """Stage position around which the Strehl scan is centered."""
        return self.fwd - self.focus_shift_estimate


@dataclass(frozen=True)
class PupilGrid:
    """Normalized pupil-plane sampling grid.

    Attributes:
        x: 2D array of x pupil coordinates, varying along axis 0.
        y: 2D array of y pupil coordinates, varying along axis 1.
        mask: 2D boolean array, True strictly inside the unit circle.
    """

    x: np.ndarray
    y: np.ndarray
    mask: np.ndarray

    @property
    def shape(self) -> Tuple[int, int]:
        return self.mask.shape

    @property
    def step(self) -> float:
        """Sample spacing along each axis."""
        return 2.0 / self.mask.shape[0]

    @property
    def rho2(self) -> np.ndarray:
        """Squared normalized pupil radius."""
        return self.x**2 + self.y**2


def make_pupil_grid(npupil: int) -> PupilGrid:
    """Sample the square [-1, 1] x [-1, 1] on pixel centers.

    Args:
        npupil: Number of samples per axis.

    Returns:
        PupilGrid with samples at -1 + step/2 + k*step, k = 0..npupil-1,
        where step = 2/npupil.
    """
    if npupil < 1:
        raise InvalidParameterError(f"npupil must be >= 1, got {npupil}")

    step = 2.0 / npupil
    coords = -1.0 + step / 2 + step * np.arange(npupil)
    x, y = np.meshgrid(coords, coords, indexing="ij")

    mask = (x**2 + y**2) < 1.0

    return PupilGrid(x=x, y=y, mask=mask)
