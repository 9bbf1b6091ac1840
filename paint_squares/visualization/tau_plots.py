"""
Tau fit visualization for Paint Squares.

Renders the track duration frequency distribution of a square together with
the fitted exponential decay. TauPlotWriter can be passed as the plot hook of
the square processor.
"""

import os
import logging

import numpy as np
import matplotlib.pyplot as plt

from ..analysis.tau import create_frequency_distribution, exponential_decay, track_durations

logger = logging.getLogger(__name__)


def plot_tau_fit(tau_result, tracks=None, ax=None, title=None):
    """
    Plot a duration frequency distribution and its decay fit.

    Parameters
    ----------
    tau_result : TauResult
        Result of calculate_tau
    tracks : pandas.DataFrame, optional
        Tracks to plot when the result holds no distribution, by default None
    ax : matplotlib.axes.Axes, optional
        Axes to plot on, by default None
    title : str, optional
        Plot title, by default None

    Returns
    -------
    matplotlib.figure.Figure
        Figure with visualization
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))
    else:
        fig = ax.figure

    x, y = tau_result.durations, tau_result.frequencies
    if len(x) == 0 and tracks is not None:
        x, y = create_frequency_distribution(track_durations(tracks))

    if len(x) == 0:
        ax.text(0.5, 0.5, "No track durations", ha='center', va='center')
        return fig

    ax.plot(x, y, 'o', alpha=0.7, markersize=4, label='Tracks')

    if tau_result.parameters:
        fit_x = np.linspace(0, np.max(x), 200)
        ax.plot(fit_x, exponential_decay(fit_x, *tau_result.parameters), 'r-', linewidth=2,
                label=f"Fit: Tau = {tau_result.fitted_tau:.0f} ms, R² = {tau_result.fitted_r_squared:.3f}")

    status = 'accepted' if tau_result.succeeded else f"rejected ({tau_result.reason.value})"
    ax.set_xlabel('Track Duration (s)')
    ax.set_ylabel('Frequency')
    ax.set_title(f"{title} - {status}" if title else status)
    ax.legend()

    return fig


class TauPlotWriter:
    """
    Plot hook saving one Tau fit image per square.

    Parameters
    ----------
    output_dir : str
        Directory for the images; a sub-directory per recording is created
    dpi : int, optional
        Image resolution, by default 100
    """

    def __init__(self, output_dir, dpi=100):
        self.output_dir = output_dir
        self.dpi = dpi

    def __call__(self, recording, square, tau_result):
        directory = os.path.join(self.output_dir, str(recording.recording_name))
        os.makedirs(directory, exist_ok=True)

        file_path = os.path.join(directory, f"{recording.recording_name}-square-{square.square_number}.png")
        fig = plot_tau_fit(tau_result, tracks=square.tracks,
                           title=f"{recording.recording_name} - Square {square.square_number}")
        try:
            fig.savefig(file_path, dpi=self.dpi)
        finally:
            plt.close(fig)

        logger.debug(f"Saved Tau fit plot to {file_path}")
        return file_path
