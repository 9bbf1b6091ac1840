"""
Spatial variability of tracks within a square.

The square is divided into a granularity x granularity sub-grid and the
variability is the coefficient of variation of the sub-cell track counts.
"""

import logging

import numpy as np

from ..objects import TRACK_X, TRACK_Y

logger = logging.getLogger(__name__)


def sub_grid_counts(x, y, x0, y0, width, height, granularity=10):
    """
    Count tracks per sub-cell of a square.

    Tracks whose sub-cell index falls outside [0, granularity) are dropped.

    Parameters
    ----------
    x, y : array-like
        Track locations
    x0, y0 : float
        Origin of the square
    width, height : float
        Size of the square
    granularity : int, optional
        Number of sub-cells along each axis, by default 10

    Returns
    -------
    numpy.ndarray
        Counts with shape (granularity, granularity), indexed [row, column]
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    with np.errstate(invalid='ignore'):
        xi = np.floor((x - x0) / width * granularity)
        yi = np.floor((y - y0) / height * granularity)

    keep = (np.isfinite(xi) & np.isfinite(yi)
            & (xi >= 0) & (xi < granularity) & (yi >= 0) & (yi < granularity))

    flat_index = yi[keep].astype(int) * granularity + xi[keep].astype(int)
    counts = np.bincount(flat_index, minlength=granularity * granularity)
    return counts.reshape(granularity, granularity)


def coefficient_of_variation(counts):
    """Population std / mean of the counts, 0.0 when the mean is zero."""
    values = np.asarray(counts, dtype=float).ravel()
    mean = values.mean()
    if mean == 0:
        return 0.0
    return float(values.std() / mean)


def calc_variability(tracks, square, granularity=10):
    """
    Calculate the variability of the tracks in one square.

    Parameters
    ----------
    tracks : pandas.DataFrame
        Tracks assigned to the square
    square : Square
        The square, supplying origin and size
    granularity : int, optional
        Number of sub-cells along each axis, by default 10

    Returns
    -------
    float
        Coefficient of variation of the sub-cell counts
    """
    counts = sub_grid_counts(
        tracks[TRACK_X].to_numpy(), tracks[TRACK_Y].to_numpy(),
        square.x0, square.y0, square.width, square.height,
        granularity=granularity,
    )
    return coefficient_of_variation(counts)
