"""Tests for the vectorial pupil field."""

import numpy as np
import pytest

from saffocus import (
    OpticalParameters,
    compute_interface_optics,
    compute_vectorial_field,
    make_pupil_grid,
)
from saffocus.pupil import channel_sums


def build_field(**overrides):
    kwargs = dict(
        na=1.49, refmed=1.33, refcov=1.52, refimm=1.51, refimmnom=1.51,
        wavelength=680.0, npupil=64, fwd=150e3, depth=0.0,
    )
    kwargs.update(overrides)
    params = OpticalParameters(**kwargs)
    grid = make_pupil_grid(params.npupil)
    optics = compute_interface_optics(grid, params)
    return grid, compute_vectorial_field(grid, optics, params)


class TestVectorialField:
    """Tests for compute_vectorial_field."""

    def test_shapes(self):
        grid, field = build_field(npupil=32)
        assert field.polarization.shape == (32, 32, 2, 3)
        assert field.amplitude.shape == (32, 32)
        assert np.iscomplexobj(field.polarization)

    def test_zero_outside_aperture(self):
        grid, field = build_field()
        assert np.all(field.amplitude[~grid.mask] == 0)
        assert np.all(field.polarization[~grid.mask] == 0)

    def test_finite_everywhere(self):
        _, field = build_field()
        assert np.all(np.isfinite(field.polarization))
        assert np.all(np.isfinite(field.amplitude))

    def test_matched_index_center_is_identity(self):
        """At normal incidence without interfaces, channel i is axis i."""
        grid, field = build_field(
            na=1.2, refmed=1.5, refcov=1.5, refimm=1.5, refimmnom=1.5, npupil=33
        )
        center = field.polarization[16, 16]
        expected = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        assert np.allclose(center, expected, atol=1e-8)

    def test_no_axial_component_at_center(self):
        _, field = build_field(npupil=33)
        assert np.allclose(field.polarization[16, 16, :, 2], 0.0, atol=1e-8)

    def test_amplitude_formula_on_axis(self):
        _, field = build_field(npupil=33)
        # cos θ = 1 in all media on axis
        assert np.isclose(field.amplitude[16, 16], 1.0 / 1.33)

    @pytest.mark.parametrize(
        "overrides",
        [
            {},
            {"na": 1.2},
            {"na": 0.8, "refmed": 1.0},
            {"npupil": 1},
            {"npupil": 2},
            {"npupil": 31, "refimmnom": 1.52},
        ],
    )
    def test_normalization_positive(self, overrides):
        _, field = build_field(**overrides)
        assert field.normalization > 0

    def test_normalization_matches_channel_sums(self):
        _, field = build_field(npupil=32)
        sums = channel_sums(field.amplitude, field.polarization)
        assert sums.shape == (2, 3)
        assert np.isclose(field.normalization, np.sum(np.abs(sums) ** 2))

    def test_channels_rotationally_equivalent(self):
        """The grid is symmetric under 90° rotation, so both channels carry equal power."""
        _, field = build_field(na=1.2, npupil=48)
        sums = channel_sums(field.amplitude, field.polarization)
        assert np.isclose(abs(sums[0, 0]), abs(sums[1, 1]), rtol=1e-10)
        # Cross-polarized and axial components cancel over the pupil
        scale = abs(sums[0, 0])
        assert abs(sums[0, 1]) < 1e-10 * scale
        assert abs(sums[0, 2]) < 1e-10 * scale
        assert abs(sums[1, 2]) < 1e-10 * scale
