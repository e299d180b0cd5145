"""Diagnostic plot of the Strehl scan."""

import logging
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from .focus import PeakFit
from .optics import OpticalParameters
from .scan import StrehlScan

__all__ = ["plot_strehl_scan"]

logger = logging.getLogger(__name__)


def plot_strehl_scan(
    scan: StrehlScan,
    params: OpticalParameters,
    fit: Optional[PeakFit] = None,
    ax: Optional[plt.Axes] = None,
    output_path: Optional[Path] = None,
    show_plot: bool = False,
) -> plt.Axes:
    """Plot Strehl ratio against stage position relative to fwd.

    Args:
        scan: Strehl scan from scan_strehl().
        params: Optical parameters the scan was computed with.
        fit: Optional peak fit; the fitted parabola and its vertex are
            overlaid.
        ax: Axes to draw into. A new figure is created if None.
        output_path: Optional path to save the figure.
        show_plot: Whether to display the figure interactively. On a
            non-interactive backend a figure created here is closed
            instead.

    Returns:
        The Axes drawn into.
    """
    created = ax is None
    if created:
        _, ax = plt.subplots(figsize=(6, 4))

    stage = scan.stage_positions - params.fwd
    ax.plot(stage, scan.strehl, "b-", linewidth=2, label="Strehl")

    if fit is not None:
        z_win = scan.offsets[fit.window]
        z_fine = np.linspace(z_win[0], z_win[-1], 50)
        ax.plot(
            scan.baseline + z_fine - params.fwd,
            np.polyval(fit.coefficients, z_fine),
            "r--",
            linewidth=1,
            label="Quadratic fit",
        )
        ax.plot(
            scan.baseline + fit.offset - params.fwd,
            fit.max_strehl,
            "ro",
            label=f"Optimum (S={fit.max_strehl:.3f})",
        )
        ax.legend(loc="lower right")

    ax.set_xlabel("Stage position")
    ax.set_ylabel("Strehl")
    ax.set_title(f"Depth {params.depth:g}, fwd {params.fwd:g}")
    ax.grid(True, alpha=0.3)

    fig = ax.get_figure()
    if output_path is not None:
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        logger.info(f"Saved Strehl scan plot to {output_path}")

    if show_plot:
        backend = plt.get_backend().lower()
        if backend != "agg":
            plt.show()
        else:
            logger.debug(f"Skipping plt.show() - non-interactive backend: {backend}")
            if created:
                plt.close(fig)

    return ax
