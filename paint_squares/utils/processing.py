"""
Track table processing utilities for Paint Squares.
"""

import logging

import pandas as pd

from ..objects import TRACK_DURATION, TRACK_ID, TRACK_X, TRACK_Y

logger = logging.getLogger(__name__)

RECORDING_NAME = 'recording_name'


def track_keys(df):
    """Columns identifying a track; track ids are only unique per recording."""
    if RECORDING_NAME in df.columns:
        return [RECORDING_NAME, TRACK_ID]
    return [TRACK_ID]


def is_spot_table(tracks_df):
    """True if the table holds several spots (frames) per track."""
    return 'frame' in tracks_df.columns and tracks_df.duplicated(subset=track_keys(tracks_df)).any()


def summarize_spots(spots_df, time_interval):
    """
    Reduce a per-spot table to one row per track.

    The representative location is the mean spot position and the duration
    is (last frame - first frame) * time_interval. Tracks are grouped per
    recording when a recording_name column is present. Other columns that
    are constant within a track are kept.

    Parameters
    ----------
    spots_df : pandas.DataFrame
        Table with track_id, frame, x and y columns
    time_interval : float
        Time between frames in seconds

    Returns
    -------
    pandas.DataFrame
        One row per track
    """
    keys = track_keys(spots_df)
    grouped = spots_df.groupby(keys, sort=True)

    summary = grouped.agg(**{
        TRACK_X: (TRACK_X, 'mean'),
        TRACK_Y: (TRACK_Y, 'mean'),
        'first_frame': ('frame', 'min'),
        'last_frame': ('frame', 'max'),
        'number_of_spots': ('frame', 'size'),
    })
    summary[TRACK_DURATION] = (summary['last_frame'] - summary['first_frame']) * time_interval
    summary = summary.drop(columns=['first_frame', 'last_frame'])

    # Per-track constant columns
    other = [col for col in spots_df.columns
             if col not in keys + [TRACK_X, TRACK_Y, 'frame', TRACK_DURATION, 'number_of_spots']]
    if other:
        nunique = grouped[other].nunique(dropna=False)
        constant = [col for col in other if (nunique[col] <= 1).all()]
        if constant:
            summary = summary.join(grouped[constant].first())

    logger.info(f"Summarized {len(spots_df)} spots into {len(summary)} tracks")
    summary = summary.reset_index()
    # Keep track_id first, as in a plain track table
    return summary[[TRACK_ID] + [col for col in summary.columns if col != TRACK_ID]]


def round_columns(df, decimals):
    """
    Round selected columns of a table.

    Parameters
    ----------
    df : pandas.DataFrame
        Table to round
    decimals : dict
        Column name to number of decimals; missing columns are ignored

    Returns
    -------
    pandas.DataFrame
        Rounded copy of the table
    """
    df = df.copy()
    for column, n in decimals.items():
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors='coerce').round(n)
    return df

