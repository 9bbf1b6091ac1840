"""
Square analysis module for Paint Squares.

This module provides the grid partitioning, track assignment, Tau estimation,
variability, density and selection steps of square generation.
"""

from .grid import generate_squares, grid_dimension
from .assignment import assign_tracks_to_squares
from .tau import TauFailure, TauResult, TauStatus, calculate_tau, fit_exponential_decay
from .variability import calc_variability
from .density import (
    BackgroundEstimationResult,
    calc_average_track_count_in_background_squares,
    calculate_background,
    calculate_density,
    calculate_density_ratio,
)
from .selection import NEIGHBOUR_PREDICATES, select_squares
from .square_attributes import calculate_square_attributes
from .recording_attributes import calculate_recording_attributes, get_tracks_from_selected_squares
