"""Tests for the Strehl scan over stage positions."""

import numpy as np
import pytest

from saffocus import (
    InvalidParameterError,
    OpticalParameters,
    compute_interface_optics,
    compute_vectorial_field,
    make_pupil_grid,
    scan_strehl,
)
from saffocus.scan import NUM_SCAN_POINTS, optical_path_difference, scan_offsets


def make_params(**overrides):
    kwargs = dict(
        na=1.49, refmed=1.33, refcov=1.52, refimm=1.51, refimmnom=1.51,
        wavelength=680.0, npupil=64, fwd=150e3, depth=0.0,
        zspread=(-1000.0, 1000.0),
    )
    kwargs.update(overrides)
    return OpticalParameters(**kwargs)


def run_scan(params, nz=NUM_SCAN_POINTS):
    grid = make_pupil_grid(params.npupil)
    optics = compute_interface_optics(grid, params)
    field = compute_vectorial_field(grid, optics, params)
    return scan_strehl(grid, optics, field, params, nz=nz)


class TestScanOffsets:
    """Tests for the scan sampling."""

    def test_default_length_and_range(self):
        offsets = scan_offsets(make_params())
        assert len(offsets) == 101
        assert np.isclose(offsets[0], -1500.0)
        assert np.isclose(offsets[-1], 1500.0)
        assert np.allclose(np.diff(offsets), 30.0)

    def test_center_sample_is_zero(self):
        offsets = scan_offsets(make_params())
        assert offsets[50] == 0.0

    def test_asymmetric_spread(self):
        offsets = scan_offsets(make_params(zspread=(-200.0, 600.0)), nz=5)
        assert np.allclose(offsets, [-300.0, 0.0, 300.0, 600.0, 900.0])


class TestOpticalPathDifference:
    """Tests for the optical path difference."""

    def test_zero_for_nominal_conditions(self):
        params = make_params()
        grid = make_pupil_grid(params.npupil)
        optics = compute_interface_optics(grid, params)
        wzpos = optical_path_difference(np.array([params.fwd]), grid, optics, params)
        assert wzpos.shape == (1,) + grid.shape
        assert np.all(wzpos == 0)

    def test_masked_outside_aperture(self):
        params = make_params(depth=3000.0)
        grid = make_pupil_grid(params.npupil)
        optics = compute_interface_optics(grid, params)
        stage = params.baseline_stage_position + np.array([-100.0, 0.0, 100.0])
        wzpos = optical_path_difference(stage, grid, optics, params)
        assert np.all(wzpos[:, ~grid.mask] == 0)
        assert np.any(wzpos[:, grid.mask] != 0)

    def test_defocus_on_axis(self):
        """On axis all cosines are 1, so W is a plain path-length sum."""
        params = make_params(npupil=33, depth=2000.0, refimmnom=1.50)
        grid = make_pupil_grid(params.npupil)
        optics = compute_interface_optics(grid, params)
        stage = 149e3
        wzpos = optical_path_difference(np.array([stage]), grid, optics, params)
        expected = stage * 1.51 - 150e3 * 1.50 + 2000.0 * 1.33
        assert np.isclose(wzpos[0, 16, 16].real, expected)


class TestStrehlScan:
    """Tests for scan_strehl."""

    def test_scan_shape_and_order(self):
        params = make_params(npupil=32)
        scan = run_scan(params)
        assert len(scan) == 101
        assert scan.strehl.shape == (101,)
        assert np.all(np.diff(scan.offsets) > 0)
        assert np.isclose(scan.step, 30.0)

    def test_stage_positions(self):
        params = make_params(npupil=32, depth=4000.0)
        scan = run_scan(params)
        baseline = 150e3 - 1.25 * 1.51 / 1.33 * 4000.0
        assert np.isclose(scan.baseline, baseline)
        assert np.allclose(scan.stage_positions, baseline + scan.offsets)

    def test_unit_strehl_at_nominal_focus(self):
        """Without mismatch or depth the scan center has zero path difference."""
        scan = run_scan(make_params())
        assert np.isclose(scan.strehl[50], 1.0, rtol=1e-12)

    def test_strehl_bounded_without_mismatch(self):
        params = make_params(na=1.2)
        scan = run_scan(params)
        assert np.all(scan.strehl <= 1.0 + 1e-10)
        assert np.argmax(scan.strehl) == 50

    def test_symmetric_without_mismatch(self):
        """Real pupil weights make defocus in either direction equivalent."""
        scan = run_scan(make_params(na=1.2))
        assert np.allclose(scan.strehl, scan.strehl[::-1], rtol=1e-8)

    def test_strehl_non_negative(self):
        scan = run_scan(make_params(npupil=32, depth=2000.0, na=1.3))
        assert np.all(scan.strehl >= 0)

    def test_custom_number_of_points(self):
        scan = run_scan(make_params(npupil=16), nz=11)
        assert len(scan) == 11

    def test_too_few_points(self):
        with pytest.raises(InvalidParameterError, match="nz"):
            run_scan(make_params(npupil=16), nz=5)
