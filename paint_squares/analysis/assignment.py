"""
Track assignment for Paint Squares.

Bins the tracks of a recording into the squares of its grid. Squares use a
half-open interval [x0, x1) x [y0, y1), except that the last column and the
last row are closed on their upper bound so tracks lying exactly on the outer
image edge are still assigned.
"""

import logging

import numpy as np
import pandas as pd

from ..objects import (
    LABEL_NUMBER,
    SQUARE_NUMBER,
    TRACK_ID,
    TRACK_X,
    TRACK_Y,
)
from .grid import grid_dimension, grid_edges

logger = logging.getLogger(__name__)


def locate_in_grid(values, edges):
    """
    Find the grid index of each coordinate along one axis.

    Parameters
    ----------
    values : numpy.ndarray
        Coordinates
    edges : list of float
        Grid boundaries along the axis, dimension + 1 values

    Returns
    -------
    numpy.ndarray
        Index per coordinate, -1 for coordinates outside the grid
    """
    values = np.asarray(values, dtype=float)
    edges = np.asarray(edges, dtype=float)
    dimension = len(edges) - 1

    index = np.searchsorted(edges, values, side='right') - 1

    # Closed upper bound on the outer edge
    index[values == edges[-1]] = dimension - 1

    outside = (index < 0) | (index >= dimension) | ~np.isfinite(values)
    index[outside] = -1
    return index


def assign_tracks_to_squares(recording, config):
    """
    Assign every track of a recording to the square that contains it.

    The input track table is not modified. Each square receives its own slice
    of the track table (an empty table when no track falls inside it) and the
    recording receives an assignment table mapping track ids to a square number
    and a label number. Label numbers count the non-empty squares in square
    traversal order.

    Parameters
    ----------
    recording : Recording
        Recording with tracks and generated squares
    config : GenerateSquaresConfig
        Configuration holding the square count and acquisition constants

    Returns
    -------
    pandas.DataFrame
        The assignment table (track_id, square_number, label_number)
    """
    tracks = recording.tracks
    dimension = grid_dimension(config.number_of_squares_in_recording)
    acquisition = config.acquisition

    col_index = locate_in_grid(tracks[TRACK_X].to_numpy(), grid_edges(acquisition.image_width, dimension))
    row_index = locate_in_grid(tracks[TRACK_Y].to_numpy(), grid_edges(acquisition.image_height, dimension))

    inside = (col_index >= 0) & (row_index >= 0)
    square_index = np.where(inside, row_index * dimension + col_index, -1)

    n_outside = int((~inside).sum())
    if n_outside:
        logger.warning(f"{recording.recording_name}: {n_outside} tracks lie outside the image and are not assigned")

    squares_by_number = {square.square_number: square for square in recording.squares}
    positions_by_square = {}
    for position, number in zip(np.flatnonzero(inside), square_index[inside]):
        positions_by_square.setdefault(int(number), []).append(position)

    assignment_parts = []
    label_number = 0
    for square in recording.squares:
        positions = positions_by_square.get(square.square_number)
        if positions is None:
            square.tracks = tracks.iloc[0:0].copy()
            continue

        square.tracks = tracks.iloc[positions].copy()
        assignment_parts.append(pd.DataFrame({
            TRACK_ID: square.tracks[TRACK_ID].to_numpy(),
            SQUARE_NUMBER: square.square_number,
            LABEL_NUMBER: label_number,
        }))
        logger.debug(f"Square {square.square_number}: {len(positions)} tracks assigned (label {label_number})")
        label_number += 1

    if assignment_parts:
        assignments = pd.concat(assignment_parts, ignore_index=True)
    else:
        assignments = pd.DataFrame(columns=[TRACK_ID, SQUARE_NUMBER, LABEL_NUMBER])

    unknown = set(np.unique(square_index[inside])) - set(squares_by_number)
    if unknown:
        logger.warning(f"{recording.recording_name}: tracks fall in squares missing from the grid: {sorted(unknown)}")

    recording.assignments = assignments
    logger.debug(f"Total {len(assignments)} of {len(tracks)} tracks assigned to {len(recording.squares)} squares")
    return assignments
