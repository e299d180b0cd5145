"""Propagation angles and Fresnel transmission through the interface stack.

Light emitted in the sample medium (refmed) crosses the coverslip
(refcov) into the immersion medium (refimm). The objective is designed
for a nominal immersion medium (refimmnom), whose propagation angles
enter the optical path difference only.

The Fresnel coefficients are not divided by the z-component of the
wavevector in the sample medium here; that factor of the Weyl
representation of the dipole field is part of the aplanatic amplitude
(see pupil.compute_vectorial_field).
"""

import logging
from dataclasses import dataclass

import numpy as np

from .optics import OpticalParameters, PupilGrid

__all__ = [
    "InterfaceOptics",
    "cos_theta",
    "cos_theta_branch",
    "compute_interface_optics",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterfaceOptics:
    """Per-sample angular and Fresnel factors of the interface stack.

    All arrays are complex with the pupil grid shape.

    Attributes:
        cos_med: cos(θ) in the sample medium. Purely imaginary beyond
            the critical angle.
        cos_cov: cos(θ) in the coverslip.
        cos_imm: cos(θ) in the actual immersion medium.
        cos_immnom: cos(θ) in the nominal immersion medium.
        fresnel_p_medcov: p-transmission, medium -> coverslip.
        fresnel_s_medcov: s-transmission, medium -> coverslip.
        fresnel_p_covimm: p-transmission, coverslip -> immersion.
        fresnel_s_covimm: s-transmission, coverslip -> immersion.
    """

    cos_med: np.ndarray
    cos_cov: np.ndarray
    cos_imm: np.ndarray
    cos_immnom: np.ndarray
    fresnel_p_medcov: np.ndarray
    fresnel_s_medcov: np.ndarray
    fresnel_p_covimm: np.ndarray
    fresnel_s_covimm: np.ndarray

    @property
    def fresnel_p(self) -> np.ndarray:
        """Total p-transmission, medium -> immersion."""
        return self.fresnel_p_medcov * self.fresnel_p_covimm

    @property
    def fresnel_s(self) -> np.ndarray:
        """Total s-transmission, medium -> immersion."""
        return self.fresnel_s_medcov * self.fresnel_s_covimm


def cos_theta_branch(arg: np.ndarray) -> np.ndarray:
    """Square root of ``arg`` with an explicit branch for negative values.

    Computes sqrt(|arg|) * (cos(φ/2) - i sin(φ/2)) with φ = atan2(0, arg).
    Non-negative arguments give the real root, negative arguments give
    -i * sqrt(|arg|). This is the opposite sign of ``np.emath.sqrt`` for
    negative input and must stay that way.

    Args:
        arg: Real array, 1 - sin²(θ).

    Returns:
        Complex array of cos(θ).
    """
    arg = np.asarray(arg, dtype=np.float64)
    phase = np.arctan2(np.zeros_like(arg), arg)
    return np.sqrt(np.abs(arg)) * (np.cos(phase / 2) - 1j * np.sin(phase / 2))


def cos_theta(grid: PupilGrid, na: float, n: float) -> np.ndarray:
    """cos(θ) = sqrt(1 - ρ² NA²/n²) in a medium of index n.

    Inside the aperture the argument is positive as long as NA <= n,
    which OpticalParameters enforces. Samples outside the aperture
    (grid corners) may have a negative argument; they are evaluated in
    the complex plane so they stay finite and are masked later.
    """
    arg = 1.0 - grid.rho2 * na**2 / n**2
    return np.sqrt(arg.astype(np.complex128))


def compute_interface_optics(
    grid: PupilGrid, params: OpticalParameters
) -> InterfaceOptics:
    """Compute angular factors and Fresnel coefficients over the pupil.

    Args:
        grid: Pupil sampling grid from make_pupil_grid().
        params: Optical parameters.

    Returns:
        InterfaceOptics with all per-sample factors.

    Example:
        ```python
        grid = make_pupil_grid(params.npupil)
        optics = compute_interface_optics(grid, params)
        t_p, t_s = optics.fresnel_p, optics.fresnel_s
        ```
    """
    na = params.na
    refmed, refcov, refimm = params.refmed, params.refcov, params.refimm

    arg_med = 1.0 - grid.rho2 * na**2 / refmed**2
    cos_med = cos_theta_branch(arg_med)
    cos_cov = cos_theta(grid, na, refcov)
    cos_imm = cos_theta(grid, na, refimm)
    cos_immnom = cos_theta(grid, na, params.refimmnom)

    n_evanescent = int(np.count_nonzero((arg_med < 0) & grid.mask))
    if n_evanescent:
        logger.debug(
            f"{n_evanescent} of {int(grid.mask.sum())} aperture samples "
            f"are evanescent in the sample medium (NA={na}, refmed={refmed})"
        )

    # Denominators can vanish at grid corners outside the aperture
    with np.errstate(divide="ignore", invalid="ignore"):
        fresnel_p_medcov = (
            2 * refmed * cos_med / (refmed * cos_cov + refcov * cos_med)
        )
        fresnel_s_medcov = (
            2 * refmed * cos_med / (refmed * cos_med + refcov * cos_cov)
        )
        fresnel_p_covimm = (
            2 * refcov * cos_cov / (refcov * cos_imm + refimm * cos_cov)
        )
        fresnel_s_covimm = (
            2 * refcov * cos_cov / (refcov * cos_cov + refimm * cos_imm)
        )

    return InterfaceOptics(
        cos_med=cos_med,
        cos_cov=cos_cov,
        cos_imm=cos_imm,
        cos_immnom=cos_immnom,
        fresnel_p_medcov=fresnel_p_medcov,
        fresnel_s_medcov=fresnel_s_medcov,
        fresnel_p_covimm=fresnel_p_covimm,
        fresnel_s_covimm=fresnel_s_covimm,
    )
