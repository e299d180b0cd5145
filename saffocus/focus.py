"""Optimal stage focus and RMS wavefront error under index mismatch.

The Strehl ratio is scanned over stage positions around the first-order
focus estimate fwd - 1.25 * refimm/refmed * depth. A second-order
polynomial fitted to the five samples around the maximum gives the
optimum with sub-sample precision. The RMS wavefront error due to the
mismatch follows from the peak Strehl ratio S as

    Wrms = λ / (2π) * ln(1 / S)

At zero depth the peak intensity is not exactly at the nominal stage
position and S can exceed 1, so Wrms becomes slightly negative. This is
expected and not an error.

Example:
    >>> from saffocus import OpticalParameters, set_saf_focus
    >>> params = OpticalParameters(
    ...     na=1.49, refmed=1.33, refcov=1.52, refimm=1.51, refimmnom=1.51,
    ...     wavelength=680.0, npupil=64, fwd=150e3, depth=0.0,
    ...     zspread=(-1000.0, 1000.0),
    ... )
    >>> zvals, wrms = set_saf_focus(params)
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .exceptions import DegenerateFitError, InvalidParameterError
from .interface import compute_interface_optics
from .optics import OpticalParameters, make_pupil_grid
from .pupil import compute_vectorial_field
from .scan import MIN_SCAN_POINTS, NUM_SCAN_POINTS, StrehlScan, scan_strehl

__all__ = [
    "PeakFit",
    "FocusResult",
    "refine_peak",
    "wavefront_rms",
    "optimize_focus",
    "set_saf_focus",
]

logger = logging.getLogger(__name__)

# Half-width of the fit window around the scan maximum
_HALF_WINDOW = 2

# Curvature below this fraction of the window's Strehl level counts as zero
_CURVATURE_RTOL = 1e-10


@dataclass(frozen=True)
class PeakFit:
    """Quadratic fit around the Strehl maximum.

    Attributes:
        index: Center of the fit window (argmax, clamped so the window
            fits inside the scan).
        coefficients: (a, b, c) of S(z) = a z² + b z + c.
        offset: Vertex -b / (2a), in scan offset coordinates.
        max_strehl: Fitted polynomial evaluated at its vertex.
    """

    index: int
    coefficients: Tuple[float, float, float]
    offset: float
    max_strehl: float

    @property
    def window(self) -> slice:
        return slice(self.index - _HALF_WINDOW, self.index + _HALF_WINDOW + 1)


@dataclass(frozen=True)
class FocusResult:
    """Result of the focus optimization.

    Attributes:
        zvals: [stage position, free working distance, -imaging depth].
        wrms: RMS wavefront error, in wavelength units (same unit as
            params.wavelength). Negative values occur at zero depth.
        scan: The Strehl scan the optimum was found from.
        fit: The quadratic peak fit.
    """

    zvals: np.ndarray
    wrms: float
    scan: StrehlScan
    fit: PeakFit

    @property
    def stage_position(self) -> float:
        return float(self.zvals[0])

    @property
    def max_strehl(self) -> float:
        return self.fit.max_strehl

    def report(self, wavelength: float) -> str:
        """Human-readable summary.

        Depth is printed in the input length unit, distances in units of
        1000 (µm for nm input), and the RMS error in milli-wavelengths.
        """
        lines = [
            f"image plane depth from cover slip = {-self.zvals[2]:4.0f} nm",
            f"free working distance = {1e-3 * self.zvals[1]:6.3f} mu",
            f"nominal z-stage position = {1e-3 * self.zvals[0]:6.3f} mu",
            f"rms aberration due to RI mismatch = {1e3 * self.wrms / wavelength:4.1f} mlambda",
        ]
        return "\n".join(lines)


def refine_peak(offsets: np.ndarray, strehl: np.ndarray) -> PeakFit:
    """Refine the Strehl maximum by a local quadratic fit.

    The argmax is clamped to [2, nz - 4] so that two neighbors exist on
    each side. The last scan sample never enters the fit.

    Args:
        offsets: 1D array of scan offsets, at least 6 samples.
        strehl: 1D array of Strehl values, same length.

    Returns:
        PeakFit.

    Raises:
        InvalidParameterError: If the scan is shorter than 6 samples or
            the arrays differ in length.
        DegenerateFitError: If the window contains non-finite values or
            the fit has zero curvature.
    """
    offsets = np.asarray(offsets, dtype=np.float64)
    strehl = np.asarray(strehl, dtype=np.float64)
    nz = len(offsets)
    if nz < MIN_SCAN_POINTS or len(strehl) != nz:
        raise InvalidParameterError(
            f"Need matching offsets and Strehl values with at least "
            f"{MIN_SCAN_POINTS} samples, got {nz} and {len(strehl)}"
        )

    indz = int(np.argmax(strehl))
    indz = min(max(indz, _HALF_WINDOW), nz - _HALF_WINDOW - 2)

    window = slice(indz - _HALF_WINDOW, indz + _HALF_WINDOW + 1)
    z_win = offsets[window]
    s_win = strehl[window]
    if not np.all(np.isfinite(s_win)):
        raise DegenerateFitError(
            f"Strehl values around index {indz} are not finite: {s_win}"
        )

    a, b, c = np.polyfit(z_win, s_win, 2)

    span = z_win[-1] - z_win[0]
    level = max(np.max(np.abs(s_win)), np.finfo(np.float64).tiny)
    if abs(a) * span**2 <= _CURVATURE_RTOL * level:
        raise DegenerateFitError(
            f"Quadratic fit around offset {offsets[indz]:.6g} has zero curvature "
            f"(a={a:.3g}); the Strehl samples are collinear"
        )
    if a > 0:
        logger.warning(
            f"Quadratic fit around offset {offsets[indz]:.6g} opens upward; "
            f"the refined position is a minimum"
        )

    vertex = -b / (2 * a)
    max_strehl = float(np.polyval([a, b, c], vertex))

    return PeakFit(
        index=indz,
        coefficients=(float(a), float(b), float(c)),
        offset=float(vertex),
        max_strehl=max_strehl,
    )


def wavefront_rms(max_strehl: float, wavelength: float) -> float:
    """RMS wavefront error from the peak Strehl ratio.

    Wrms = λ / (2π) * ln(1 / S). Negative if S > 1.

    Raises:
        DegenerateFitError: If max_strehl is not positive.
    """
    if not max_strehl > 0:
        raise DegenerateFitError(
            f"Peak Strehl ratio must be positive, got {max_strehl}"
        )
    return wavelength / (2 * np.pi) * float(np.log(1.0 / max_strehl))


def optimize_focus(
    params: OpticalParameters, nz: int = NUM_SCAN_POINTS
) -> FocusResult:
    """Find the stage position of optimal focus at the given depth.

    Args:
        params: Optical parameters.
        nz: Number of stage offsets in the Strehl scan. Default 101.

    Returns:
        FocusResult with z-positions, RMS wavefront error, the scan and
        the peak fit.

    Raises:
        DegenerateFitError: If the peak cannot be refined.

    Example:
        ```python
        result = optimize_focus(params)
        print(result.stage_position, result.wrms)
        ```
    """
    grid = make_pupil_grid(params.npupil)
    optics = compute_interface_optics(grid, params)
    field = compute_vectorial_field(grid, optics, params)
    scan = scan_strehl(grid, optics, field, params, nz=nz)

    fit = refine_peak(scan.offsets, scan.strehl)
    wrms = wavefront_rms(fit.max_strehl, params.wavelength)

    zvals = np.array([scan.baseline + fit.offset, params.fwd, -params.depth])
    result = FocusResult(zvals=zvals, wrms=wrms, scan=scan, fit=fit)

    if params.debugmode:
        print(result.report(params.wavelength))
        # matplotlib is an optional extra
        from .plotting import plot_strehl_scan

        plot_strehl_scan(scan, params, fit=fit, show_plot=True)

    return result


def set_saf_focus(params: OpticalParameters) -> Tuple[np.ndarray, float]:
    """Stage position for optimal focus under index mismatch.

    Args:
        params: Optical parameters.

    Returns:
        Tuple (zvals, wrms) with zvals = [stage position, free working
        distance, -imaging depth] and wrms the RMS wavefront error.
    """
    result = optimize_focus(params)
    return result.zvals, result.wrms
