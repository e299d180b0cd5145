"""Vectorial pupil field and the ideal-focus normalization."""

import logging
from dataclasses import dataclass

import numpy as np

from .exceptions import InvalidParameterError
from .interface import InterfaceOptics
from .optics import OpticalParameters, PupilGrid

__all__ = ["VectorialField", "compute_vectorial_field", "channel_sums"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VectorialField:
    """Polarization-resolved pupil field of the emitter.

    Attributes:
        polarization: Complex array, shape (ny, nx, 2, 3). Axis 2 is the
            output polarization channel, axis 3 the field component
            (x, y, z). Zero outside the aperture.
        amplitude: Complex aplanatic amplitude, shape (ny, nx). Zero
            outside the aperture.
        normalization: Peak intensity of the aberration-free focus, i.e.
            the Strehl integral at zero optical path difference.
    """

    polarization: np.ndarray
    amplitude: np.ndarray
    normalization: float


def channel_sums(field: np.ndarray, polarization: np.ndarray) -> np.ndarray:
    """Integrate pupil fields over the pupil for each of the 6 channels.

    Args:
        field: Complex scalar pupil field, shape (..., ny, nx).
        polarization: Complex array, shape (ny, nx, 2, 3).

    Returns:
        Complex array, shape (..., 2, 3).
    """
    return np.einsum("...ij,ijab->...ab", field, polarization)


def compute_vectorial_field(
    grid: PupilGrid,
    optics: InterfaceOptics,
    params: OpticalParameters,
) -> VectorialField:
    """Assemble polarization vectors, amplitude and Strehl normalization.

    For each pupil sample, the p- and s-polarized unit vectors (weighted
    by their Fresnel transmission) are projected onto two orthogonal
    output channels:

        pvec = t_p * [cosθ cosφ, cosθ sinφ, -sinθ]
        svec = t_s * [-sinφ, cosφ, 0]
        channel 0 = cosφ pvec - sinφ svec
        channel 1 = sinφ pvec + cosφ svec

    with θ the propagation angle in the sample medium. The amplitude
    sqrt(cos θ_imm) / (refmed cos θ_med) combines the aplanatic factor on
    the immersion side with the Weyl-representation factor of the
    sample side.

    Args:
        grid: Pupil sampling grid.
        optics: Interface factors from compute_interface_optics().
        params: Optical parameters.

    Returns:
        VectorialField.

    Raises:
        InvalidParameterError: If the aperture holds no energy.
    """
    mask = grid.mask

    phi = np.arctan2(grid.y, grid.x)
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)

    cos_t = optics.cos_med
    sin_t = np.sqrt(1.0 - cos_t**2)

    t_p = optics.fresnel_p
    t_s = optics.fresnel_s

    # Fresnel factors may be non-finite at grid corners outside the aperture
    with np.errstate(invalid="ignore"):
        pvec = np.stack(
            [t_p * cos_t * cos_phi, t_p * cos_t * sin_phi, -t_p * sin_t], axis=-1
        )
        svec = np.stack(
            [-t_s * sin_phi, t_s * cos_phi, np.zeros_like(t_s)], axis=-1
        )
        polarization = np.stack(
            [
                cos_phi[..., None] * pvec - sin_phi[..., None] * svec,
                sin_phi[..., None] * pvec + cos_phi[..., None] * svec,
            ],
            axis=-2,
        )
    polarization = np.where(mask[..., None, None], polarization, 0.0)

    with np.errstate(divide="ignore", invalid="ignore"):
        amplitude = np.sqrt(optics.cos_imm) / (params.refmed * cos_t)
    amplitude = np.where(mask, amplitude, 0.0)

    normalization = float(np.sum(np.abs(channel_sums(amplitude, polarization)) ** 2))
    if not normalization > 0:
        raise InvalidParameterError(
            f"Ideal focus intensity must be positive, got {normalization} "
            f"(npupil={params.npupil}, {int(mask.sum())} aperture samples)"
        )
    logger.debug(f"Strehl normalization: {normalization:.6g}")

    return VectorialField(
        polarization=polarization,
        amplitude=amplitude,
        normalization=normalization,
    )
