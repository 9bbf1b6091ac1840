"""
Per-square attribute calculation for Paint Squares.

Computes Tau, variability, density and both density ratio variants for every
square of a recording, adds descriptive track statistics, and finally runs
the selection filter once all squares are complete.
"""

import logging

import numpy as np

from .density import (
    calc_average_track_count_in_background_squares,
    calculate_background,
    calculate_density,
    calculate_density_ratio,
)
from .selection import select_squares
from .tau import calculate_tau
from .variability import calc_variability

logger = logging.getLogger(__name__)

# (attribute, column, reduction)
TRACK_STATISTICS = [
    ('median_diffusion_coefficient', 'diffusion_coefficient', 'median'),
    ('median_diffusion_coefficient_ext', 'diffusion_coefficient_ext', 'median'),
    ('median_displacement', 'track_displacement', 'median'),
    ('max_displacement', 'track_displacement', 'max'),
    ('total_displacement', 'track_displacement', 'sum'),
    ('median_max_speed', 'track_max_speed', 'median'),
    ('max_max_speed', 'track_max_speed', 'max'),
    ('median_median_speed', 'track_median_speed', 'median'),
    ('max_median_speed', 'track_median_speed', 'max'),
    ('max_track_duration', 'track_duration', 'max'),
    ('total_track_duration', 'track_duration', 'sum'),
    ('median_track_duration', 'track_duration', 'median'),
]


def calculate_track_statistics(tracks):
    """
    Summarise the kinematic columns of a set of tracks.

    Columns missing from the table are skipped; an empty table yields NaN.

    Parameters
    ----------
    tracks : pandas.DataFrame
        Tracks of one square

    Returns
    -------
    dict
        Statistic name to value
    """
    statistics = {}
    for name, column, reduction in TRACK_STATISTICS:
        if column not in tracks.columns:
            continue
        values = tracks[column].to_numpy(dtype=float)
        if len(values) == 0:
            statistics[name] = np.nan
        elif reduction == 'median':
            statistics[name] = float(np.median(values))
        elif reduction == 'max':
            statistics[name] = float(np.max(values))
        else:
            statistics[name] = float(np.sum(values))
    return statistics


def calculate_square_metrics(square, config, concentration, background_mean, background_ori):
    """
    Calculate all metrics of one square in place.

    Parameters
    ----------
    square : Square
        Square with its tracks assigned
    config : GenerateSquaresConfig
        Configuration with thresholds and constants
    concentration : float
        Concentration factor of the recording
    background_mean : float
        Background track count for the density ratio
    background_ori : float
        Fixed-count background track count for the alternative density ratio

    Returns
    -------
    TauResult
        The Tau estimation result of the square
    """
    tracks = square.tracks
    n_tracks = len(tracks)

    result = calculate_tau(tracks, config.min_tracks_to_calculate_tau, config.min_required_r_squared)
    square.tau = result.tau
    square.r_squared = result.r_squared

    square.variability = calc_variability(tracks, square, granularity=config.variability_granularity)
    square.density = calculate_density(n_tracks, config.square_area,
                                       config.acquisition.recording_duration, concentration)
    square.density_ratio = calculate_density_ratio(n_tracks, background_mean)
    square.density_ratio_ori = calculate_density_ratio(n_tracks, background_ori)
    square.track_statistics = calculate_track_statistics(tracks)
    return result


def calculate_square_attributes(recording, config, plot_hook=None, predicate=None):
    """
    Calculate the attributes of every square and select the usable squares.

    A failure in one square is logged and leaves that square undefined (NaN);
    the remaining squares are still processed.

    Parameters
    ----------
    recording : Recording
        Recording with squares and assigned tracks
    config : GenerateSquaresConfig
        Configuration with thresholds and constants
    plot_hook : callable, optional
        plot_hook(recording, square, tau_result), called for every square
        with enough tracks for a Tau fit, by default None
    predicate : callable, optional
        Neighbour predicate overriding the configured neighbour mode

    Returns
    -------
    list of Square
        The selected squares
    """
    squares = recording.squares

    background = calculate_background(squares, config)
    background_ori = calc_average_track_count_in_background_squares(squares, config.background_ori_square_count)

    logger.debug(f"{recording.recording_name}: background mean = {background.background_mean:.2f} "
                 f"(n = {background.number_of_squares}), fixed-count background = {background_ori:.2f}")

    for square in squares:
        square.reset_attributes()
        try:
            result = calculate_square_metrics(square, config, recording.concentration,
                                              background.background_mean, background_ori)
        except Exception as e:
            logger.error(f"{recording.recording_name}: error calculating square "
                         f"{square.square_number}: {str(e)}")
            square.reset_attributes()
            continue

        if plot_hook is not None and square.number_of_tracks >= config.min_tracks_to_calculate_tau:
            try:
                plot_hook(recording, square, result)
            except Exception as e:
                logger.warning(f"Plot hook failed for square {square.square_number}: {str(e)}")

    selected = select_squares(squares, config, predicate=predicate)
    logger.debug(f"{recording.recording_name}: {len(selected)} of {len(squares)} squares selected")
    return selected
