"""
Density and background estimation for Paint Squares.

Densities are track counts normalised by area, observation time and
concentration. Density ratios compare the track count of a square with the
mean track count of the background squares, the most sparsely populated
squares of the recording.
"""

import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class BackgroundEstimationResult:
    """
    Background squares and their mean track count.

    Produced fresh for every estimation; never cached across populations.
    """

    background_mean: float
    background_squares: List = field(default_factory=list)

    @property
    def number_of_squares(self):
        return len(self.background_squares)

    @property
    def number_of_tracks(self):
        return int(sum(square.number_of_tracks for square in self.background_squares))


def calculate_density(number_of_tracks, area, time, concentration):
    """
    Calculate the density of tracks.

    Parameters
    ----------
    number_of_tracks : int
        Number of tracks
    area : float
        Area in µm²
    time : float
        Observation time in seconds
    concentration : float
        Concentration factor

    Returns
    -------
    float
        number_of_tracks / area / time / concentration

    Raises
    ------
    ValueError
        If area, time or concentration is not positive
    """
    if not (area > 0 and time > 0 and concentration > 0):
        raise ValueError(
            f"Area, time, and concentration must be positive "
            f"(area={area}, time={time}, concentration={concentration})")

    density = number_of_tracks / area
    density /= time
    density /= concentration
    return density


def calculate_density_ratio(number_of_tracks, background_tracks):
    """
    Ratio of a track count to the background track count.

    Returns 0.0 when the background is zero or undefined.
    """
    if not background_tracks > 0:
        return 0.0
    return number_of_tracks / background_tracks


def _rank_by_track_count(squares):
    # Stable: ties keep square traversal order
    return sorted(squares, key=lambda square: square.number_of_tracks)


def estimate_background_ranked(squares, fraction=0.1, total_squares=None):
    """
    Estimate the background from the sparsest non-empty squares.

    Squares are ranked by ascending track count, empty squares are discarded
    and the lowest k remaining squares are averaged, with
    k = floor(fraction * total_squares) and at least one.

    Parameters
    ----------
    squares : list of Square
        Squares to estimate the background from
    fraction : float, optional
        Fraction of the squares in the background, by default 0.1
    total_squares : int, optional
        Square count k is derived from, by default len(squares)

    Returns
    -------
    BackgroundEstimationResult
        Background squares and their mean track count (0.0 if none)
    """
    if total_squares is None:
        total_squares = len(squares)
    k = max(1, int(fraction * total_squares))

    non_empty = [square for square in _rank_by_track_count(squares) if square.number_of_tracks > 0]
    background = non_empty[:k]
    if not background:
        return BackgroundEstimationResult(0.0, [])

    mean = float(np.mean([square.number_of_tracks for square in background]))
    return BackgroundEstimationResult(mean, background)


def estimate_background_sigma_clip(squares, n_sigma=2.0, max_iterations=10, epsilon=0.01):
    """
    Estimate the background by iterative sigma clipping.

    Squares with more than mean + n_sigma * std tracks are discarded until the
    mean changes by less than epsilon (relative) or max_iterations is reached.

    Parameters
    ----------
    squares : list of Square
        Squares to estimate the background from
    n_sigma : float, optional
        Clipping threshold in standard deviations, by default 2.0
    max_iterations : int, optional
        Maximum number of clipping rounds, by default 10
    epsilon : float, optional
        Relative change of the mean at which clipping stops, by default 0.01

    Returns
    -------
    BackgroundEstimationResult
        Background squares and their mean track count
    """
    if not squares:
        return BackgroundEstimationResult(np.nan, [])

    current = list(squares)
    mean = float(np.mean([square.number_of_tracks for square in current]))
    if mean == 0:
        return BackgroundEstimationResult(mean, [])

    for _ in range(max_iterations):
        previous_mean = mean
        counts = np.array([square.number_of_tracks for square in current], dtype=float)
        threshold = mean + n_sigma * np.sqrt(np.mean((counts - mean) ** 2))

        filtered = [square for square in current if square.number_of_tracks <= threshold]
        if not filtered:
            break

        current = filtered
        mean = float(np.mean([square.number_of_tracks for square in current]))
        if mean == 0:
            break
        if abs(mean - previous_mean) / previous_mean < epsilon:
            break

    return BackgroundEstimationResult(mean, current)


def calculate_background(squares, config):
    """
    Estimate the background with the method chosen in the configuration.

    Parameters
    ----------
    squares : list of Square
        Squares to estimate the background from
    config : GenerateSquaresConfig
        Configuration selecting method and fraction

    Returns
    -------
    BackgroundEstimationResult
        Background squares and their mean track count
    """
    if config.background_method == 'sigma_clip':
        result = estimate_background_sigma_clip(squares)
    else:
        result = estimate_background_ranked(
            squares, fraction=config.background_fraction,
            total_squares=config.number_of_squares_in_recording)

    logger.debug(f"Estimated background track count = {result.background_mean:.2f}, "
                 f"n = {result.number_of_squares}")
    return result


def calc_average_track_count_in_background_squares(squares, number_of_background_squares):
    """
    Average the smallest non-zero track counts of a fixed number of squares.

    Parameters
    ----------
    squares : list of Square
        Squares of the recording
    number_of_background_squares : int
        Number of non-empty squares to average; at least one is used

    Returns
    -------
    float
        Mean track count, 0.0 if every square is empty
    """
    counts = sorted(square.number_of_tracks for square in squares if square.number_of_tracks > 0)
    counts = counts[:max(1, int(number_of_background_squares))]
    if not counts:
        return 0.0
    return float(np.mean(counts))
