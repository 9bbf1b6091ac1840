"""
Recording-level aggregation for Paint Squares.

Pools the tracks of the selected squares of a recording and runs the same
Tau and density estimation used for single squares on the pooled set.
"""

import logging

import numpy as np
import pandas as pd

from ..objects import empty_tracks
from .density import calculate_background, calculate_density
from .tau import calculate_tau

logger = logging.getLogger(__name__)


def get_tracks_from_selected_squares(squares):
    """
    Concatenate the tracks of all selected squares.

    Parameters
    ----------
    squares : list of Square
        Squares of a recording

    Returns
    -------
    pandas.DataFrame
        Pooled tracks in square traversal order
    """
    parts = [square.tracks for square in squares if square.selected and len(square.tracks) > 0]
    if not parts:
        return empty_tracks(squares[0].tracks.columns if squares else None)
    return pd.concat(parts, ignore_index=True)


def calculate_recording_attributes(recording, config):
    """
    Calculate Tau, R², density and background statistics of a recording.

    Background statistics are taken over the full set of squares; Tau, R² and
    density over the pooled tracks of the selected squares. Without selected
    squares the density is NaN.

    Parameters
    ----------
    recording : Recording
        Recording whose squares have been calculated and selected
    config : GenerateSquaresConfig
        Configuration with thresholds and constants

    Returns
    -------
    TauResult
        The Tau estimation result of the pooled tracks
    """
    recording.reset_attributes()

    background = calculate_background(recording.squares, config)
    recording.number_of_squares_in_background = background.number_of_squares
    recording.number_of_tracks_in_background = background.number_of_tracks
    recording.average_tracks_in_background = background.background_mean

    pooled = get_tracks_from_selected_squares(recording.squares)
    result = calculate_tau(pooled, config.min_tracks_to_calculate_tau, config.min_required_r_squared)
    recording.tau = result.tau
    recording.r_squared = result.r_squared

    n_selected = recording.number_of_selected_squares
    if n_selected > 0:
        recording.density = calculate_density(
            len(pooled),
            n_selected * config.square_area,
            config.acquisition.recording_duration,
            recording.concentration,
        )
    else:
        recording.density = np.nan

    logger.info(f"{recording.recording_name}: {n_selected} squares selected, "
                f"Tau = {recording.tau:.0f}, R² = {recording.r_squared:.3f}, "
                f"density = {recording.density:.3f}")
    return result
