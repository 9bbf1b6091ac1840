"""
Data model for Paint Squares.

Tracks are held in pandas DataFrames with one row per track. A Recording owns
its track table and its grid of Squares; each Square holds the slice of the
track table that falls inside its bounding box together with the attributes
computed for it.
"""

import logging
from typing import List

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Track table columns
TRACK_ID = 'track_id'
TRACK_X = 'x'
TRACK_Y = 'y'
TRACK_DURATION = 'track_duration'
SQUARE_NUMBER = 'square_number'
LABEL_NUMBER = 'label_number'

REQUIRED_TRACK_COLUMNS = [TRACK_ID, TRACK_X, TRACK_Y, TRACK_DURATION]

# Optional kinematic summaries, consumed but never recomputed
KINEMATIC_COLUMNS = [
    'track_displacement',
    'track_max_speed',
    'track_median_speed',
    'diffusion_coefficient',
    'diffusion_coefficient_ext',
    'total_distance',
    'confinement_ratio',
    'number_of_spots',
]


def empty_tracks(columns=None):
    """Return an empty track table with the given (or required) columns."""
    return pd.DataFrame(columns=list(columns) if columns is not None else REQUIRED_TRACK_COLUMNS)


class Square:
    """
    One cell of a recording's grid.

    Parameters
    ----------
    square_number : int
        Row-major sequence number, 0-based
    row_number : int
        Grid row
    col_number : int
        Grid column
    x0, y0, x1, y1 : float
        Bounding box in µm
    """

    def __init__(self, square_number, row_number, col_number, x0, y0, x1, y1):
        self.square_number = square_number
        self.row_number = row_number
        self.col_number = col_number
        self.x0 = x0
        self.y0 = y0
        self.x1 = x1
        self.y1 = y1

        self.tracks = empty_tracks()
        self.manually_excluded = False

        self.reset_attributes()

    def reset_attributes(self):
        """Set all computed attributes back to their undefined state."""
        self.tau = np.nan
        self.r_squared = np.nan
        self.variability = np.nan
        self.density = np.nan
        self.density_ratio = np.nan
        self.density_ratio_ori = np.nan
        self.selected = False
        self.label_number = None
        self.track_statistics = {}

    @property
    def number_of_tracks(self):
        return len(self.tracks)

    @property
    def width(self):
        return self.x1 - self.x0

    @property
    def height(self):
        return self.y1 - self.y0

    @property
    def area(self):
        return self.width * self.height

    def to_dict(self):
        """
        Convert the square and its computed attributes to a flat dictionary.

        Returns
        -------
        dict
            Dictionary representation of the square (tracks excluded)
        """
        data = {
            'square_number': self.square_number,
            'row_number': self.row_number,
            'col_number': self.col_number,
            'label_number': self.label_number,
            'selected': self.selected,
            'manually_excluded': self.manually_excluded,
            'x0': self.x0,
            'y0': self.y0,
            'x1': self.x1,
            'y1': self.y1,
            'number_of_tracks': self.number_of_tracks,
            'variability': self.variability,
            'density': self.density,
            'density_ratio': self.density_ratio,
            'density_ratio_ori': self.density_ratio_ori,
            'tau': self.tau,
            'r_squared': self.r_squared,
        }
        data.update(self.track_statistics)
        return data

    def __repr__(self):
        return (f"Square({self.square_number}, row={self.row_number}, col={self.col_number}, "
                f"tracks={self.number_of_tracks}, selected={self.selected})")


class Recording:
    """
    One imaging session with its tracks and grid of squares.

    Parameters
    ----------
    recording_name : str
        Name of the recording
    tracks : pandas.DataFrame
        Track table with one row per track
    concentration : float, optional
        Concentration factor used in density normalisation, by default 1.0
    experiment_name : str, optional
        Name of the owning experiment, by default None
    metadata : dict, optional
        Additional recording metadata (condition, probe, cell type), by default None
    process : bool, optional
        Whether the recording should be processed, by default True
    """

    def __init__(self, recording_name, tracks=None, concentration=1.0,
                 experiment_name=None, metadata=None, process=True):
        self.recording_name = recording_name
        self.experiment_name = experiment_name
        self.concentration = concentration
        self.metadata = metadata or {}
        self.process = process

        self.tracks = tracks if tracks is not None else empty_tracks()
        self.squares: List[Square] = []
        self.assignments = pd.DataFrame(columns=[TRACK_ID, SQUARE_NUMBER, LABEL_NUMBER])

        self.reset_attributes()

    def reset_attributes(self):
        """Set all recording-level computed attributes back to undefined."""
        self.tau = np.nan
        self.r_squared = np.nan
        self.density = np.nan
        self.number_of_squares_in_background = 0
        self.number_of_tracks_in_background = 0
        self.average_tracks_in_background = np.nan

    @property
    def number_of_tracks(self):
        return len(self.tracks)

    @property
    def selected_squares(self):
        return [square for square in self.squares if square.selected]

    @property
    def number_of_selected_squares(self):
        return len(self.selected_squares)

    def get_square(self, square_number):
        """
        Get a square by its sequence number.

        Raises
        ------
        KeyError
            If the square does not exist
        """
        if 0 <= square_number < len(self.squares):
            square = self.squares[square_number]
            if square.square_number == square_number:
                return square
        for square in self.squares:
            if square.square_number == square_number:
                return square
        raise KeyError(f"Square {square_number} does not exist in recording '{self.recording_name}'.")

    def tracks_with_assignments(self):
        """
        Return the track table joined with the square and label assignment.

        Tracks that were not assigned keep NaN in the assignment columns.
        """
        tracks = self.tracks.drop(columns=[SQUARE_NUMBER, LABEL_NUMBER], errors='ignore')
        if self.assignments.empty:
            tracks = tracks.copy()
            tracks[SQUARE_NUMBER] = np.nan
            tracks[LABEL_NUMBER] = np.nan
            return tracks
        return tracks.merge(self.assignments, on=TRACK_ID, how='left')

    def to_dict(self):
        """
        Convert the recording-level attributes to a flat dictionary.

        Returns
        -------
        dict
            Dictionary representation of the recording (squares excluded)
        """
        data = {
            'experiment_name': self.experiment_name,
            'recording_name': self.recording_name,
            'concentration': self.concentration,
            'process': self.process,
            'number_of_tracks': self.number_of_tracks,
            'number_of_squares': len(self.squares),
            'number_of_selected_squares': self.number_of_selected_squares,
            'number_of_squares_in_background': self.number_of_squares_in_background,
            'number_of_tracks_in_background': self.number_of_tracks_in_background,
            'average_tracks_in_background': self.average_tracks_in_background,
            'tau': self.tau,
            'r_squared': self.r_squared,
            'density': self.density,
        }
        data.update(self.metadata)
        return data

    def __repr__(self):
        return (f"Recording({self.recording_name!r}, tracks={self.number_of_tracks}, "
                f"squares={len(self.squares)}, selected={self.number_of_selected_squares})")
