"""saffocus - Optimal stage focus under refractive-index mismatch.

Computes the stage z-position that maximizes the Strehl ratio when a
high-NA objective images into a sample medium whose refractive index
differs from the design, and the RMS wavefront error caused by the mismatch.

The computation is a single pipeline of pure functions:

- **optics**: parameter set and pupil sampling grid
- **interface**: propagation angles and Fresnel coefficients for the
  medium -> coverslip -> immersion stack
- **pupil**: vectorial pupil field, aplanatic amplitude, normalization
- **scan**: Strehl ratio over candidate stage positions
- **focus**: quadratic peak refinement and RMS wavefront error

Example:
    >>> from saffocus import OpticalParameters, set_saf_focus
    >>> params = OpticalParameters(
    ...     na=1.49,             # TIRF objective
    ...     refmed=1.33,         # aqueous sample
    ...     refcov=1.52,         # glass coverslip
    ...     refimm=1.51,         # actual immersion oil
    ...     refimmnom=1.51,      # design immersion oil
    ...     wavelength=680.0,    # nm
    ...     npupil=64,
    ...     fwd=150e3,           # free working distance, nm
    ...     depth=5e3,           # imaging depth below coverslip, nm
    ...     zspread=(-1000.0, 1000.0),
    ... )
    >>> zvals, wrms = set_saf_focus(params)
"""

__version__ = "0.1.0"

from .exceptions import SafFocusError, InvalidParameterError, DegenerateFitError
from .optics import OpticalParameters, PupilGrid, make_pupil_grid
from .interface import (
    InterfaceOptics,
    cos_theta,
    cos_theta_branch,
    compute_interface_optics,
)
from .pupil import VectorialField, compute_vectorial_field
from .scan import StrehlScan, scan_strehl
from .focus import (
    PeakFit,
    FocusResult,
    refine_peak,
    wavefront_rms,
    optimize_focus,
    set_saf_focus,
)

# Note: plotting requires matplotlib, import explicitly:
#   from saffocus.plotting import plot_strehl_scan

__all__ = [
    # Version
    "__version__",
    # Errors
    "SafFocusError",
    "InvalidParameterError",
    "DegenerateFitError",
    # Parameters and pupil grid
    "OpticalParameters",
    "PupilGrid",
    "make_pupil_grid",
    # Interface optics
    "InterfaceOptics",
    "cos_theta",
    "cos_theta_branch",
    "compute_interface_optics",
    # Vectorial field
    "VectorialField",
    "compute_vectorial_field",
    # Strehl scan
    "StrehlScan",
    "scan_strehl",
    # Focus
    "PeakFit",
    "FocusResult",
    "refine_peak",
    "wavefront_rms",
    "optimize_focus",
    "set_saf_focus",
]
