"""
Input/output module for Paint Squares.

This module provides functions for loading track and recording tables and for
saving the square, recording and track tables produced by square generation.
"""

import os
import json
import logging

import pandas as pd

from ..objects import REQUIRED_TRACK_COLUMNS, TRACK_ID
from .processing import is_spot_table, round_columns, summarize_spots

logger = logging.getLogger(__name__)

# Column headers written by the tracking pipeline
COLUMN_ALTERNATIVES = {
    'track_id': ['Track Id', 'Track ID', 'TRACK_ID', 'trajectory', 'particle', 'id', 'track'],
    'recording_name': ['Recording Name', 'Ext Recording Name', 'recording'],
    'x': ['Track X Location', 'TRACK_X_LOCATION', 'position_x', 'x_position', 'X'],
    'y': ['Track Y Location', 'TRACK_Y_LOCATION', 'position_y', 'y_position', 'Y'],
    'track_duration': ['Track Duration', 'TRACK_DURATION', 'duration'],
    'frame': ['Frame', 'FRAME', 't'],
    'track_displacement': ['Track Displacement', 'TRACK_DISPLACEMENT'],
    'track_max_speed': ['Track Max Speed', 'TRACK_MAX_SPEED'],
    'track_median_speed': ['Track Median Speed', 'TRACK_MEDIAN_SPEED'],
    'diffusion_coefficient': ['Diffusion Coefficient'],
    'diffusion_coefficient_ext': ['Diffusion Coefficient Ext'],
    'total_distance': ['Total Distance', 'TOTAL_DISTANCE_TRAVELED'],
    'confinement_ratio': ['Confinement Ratio', 'CONFINEMENT_RATIO'],
    'number_of_spots': ['Number of Spots', 'NUMBER_SPOTS'],
    'concentration': ['Concentration'],
    'experiment_name': ['Experiment Name'],
    'process': ['Process Flag', 'Process'],
}

# Decimals used when writing result tables
SQUARE_DECIMALS = {
    'x0': 2, 'y0': 2, 'x1': 2, 'y1': 2,
    'tau': 0,
    'r_squared': 3,
    'variability': 2,
    'density': 3,
    'density_ratio': 2,
    'density_ratio_ori': 2,
    'median_diffusion_coefficient': 2,
    'median_diffusion_coefficient_ext': 2,
    'median_displacement': 1,
    'max_displacement': 1,
    'total_displacement': 1,
    'median_max_speed': 1,
    'max_max_speed': 1,
    'median_median_speed': 1,
    'max_median_speed': 1,
    'max_track_duration': 1,
    'total_track_duration': 1,
    'median_track_duration': 1,
}

RECORDING_DECIMALS = {
    'tau': 0,
    'r_squared': 3,
    'density': 2,
    'average_tracks_in_background': 3,
}


def _detect_format(file_path):
    ext = os.path.splitext(file_path)[1].lower()
    if ext == '.csv':
        return 'csv'
    elif ext in ['.xls', '.xlsx']:
        return 'excel'
    elif ext == '.json':
        return 'json'
    raise ValueError(f"Unknown file extension: {ext}")


def read_table(file_path, format=None):
    """
    Read a table from CSV, Excel or JSON.

    Parameters
    ----------
    file_path : str
        Path to the table file
    format : str, optional
        File format ('csv', 'excel', 'json'), by default None (from extension)

    Returns
    -------
    pandas.DataFrame
        The table
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"Table file not found: {file_path}")

    format = format or _detect_format(file_path)
    if format == 'csv':
        return pd.read_csv(file_path)
    elif format == 'excel':
        return pd.read_excel(file_path)
    elif format == 'json':
        with open(file_path, 'r') as f:
            return pd.DataFrame(json.load(f))
    raise ValueError(f"Unsupported format: {format}")


def normalize_columns(df):
    """
    Rename known alternative headers to the snake_case column names.

    Returns
    -------
    pandas.DataFrame
        Table with renamed columns
    """
    column_mapping = {}
    for column, alternatives in COLUMN_ALTERNATIVES.items():
        if column in df.columns:
            continue
        for alt in alternatives:
            if alt in df.columns:
                column_mapping[alt] = column
                break

    if column_mapping:
        df = df.rename(columns=column_mapping)
        logger.info(f"Mapped columns: {column_mapping}")
    return df


def load_tracks(file_path, format=None, time_interval=0.05):
    """
    Load a track table from file.

    Per-spot tables (several rows per track with a frame column) are
    summarized to one row per track.

    Parameters
    ----------
    file_path : str
        Path to track data file
    format : str, optional
        File format ('csv', 'excel', 'json'), by default None
    time_interval : float, optional
        Time between frames in seconds, used when summarizing spots, by default 0.05

    Returns
    -------
    pandas.DataFrame
        Track table with one row per track
    """
    try:
        logger.info(f"Loading tracks from {file_path}")

        tracks_df = normalize_columns(read_table(file_path, format))

        if TRACK_ID in tracks_df.columns and is_spot_table(tracks_df):
            tracks_df = summarize_spots(tracks_df, time_interval)

        missing_columns = [col for col in REQUIRED_TRACK_COLUMNS if col not in tracks_df.columns]
        if missing_columns:
            raise ValueError(f"Missing required columns after mapping: {missing_columns}")

        logger.info(f"Loaded {len(tracks_df)} tracks")
        return tracks_df

    except Exception as e:
        logger.error(f"Error loading tracks: {str(e)}")
        raise


def load_recordings(file_path, format=None):
    """
    Load a recordings table (recording_name, concentration, process, ...).

    Returns
    -------
    pandas.DataFrame
        Recordings table
    """
    try:
        logger.info(f"Loading recordings from {file_path}")

        recordings_df = normalize_columns(read_table(file_path, format))
        if 'recording_name' not in recordings_df.columns:
            raise ValueError("Missing required column: recording_name")

        if 'process' in recordings_df.columns:
            recordings_df['process'] = recordings_df['process'].map(_parse_flag)

        logger.info(f"Loaded {len(recordings_df)} recordings")
        return recordings_df

    except Exception as e:
        logger.error(f"Error loading recordings: {str(e)}")
        raise


def _parse_flag(value):
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', 'y', '1')
    if pd.isna(value):
        return True
    return bool(value)


def squares_to_dataframe(recordings, rounded=True):
    """
    Build the square table of a list of recordings.

    Parameters
    ----------
    recordings : list of Recording
        Processed recordings
    rounded : bool, optional
        Whether to apply the output rounding, by default True

    Returns
    -------
    pandas.DataFrame
        One row per square
    """
    rows = []
    for recording in recordings:
        for square in recording.squares:
            rows.append({'experiment_name': recording.experiment_name,
                         'recording_name': recording.recording_name,
                         **square.to_dict()})

    df = pd.DataFrame(rows)
    if 'label_number' in df.columns:
        df['label_number'] = df['label_number'].astype('Int64')
    return round_columns(df, SQUARE_DECIMALS) if rounded else df


def recordings_to_dataframe(recordings, rounded=True):
    """
    Build the recording table of a list of recordings.

    Returns
    -------
    pandas.DataFrame
        One row per recording
    """
    df = pd.DataFrame([recording.to_dict() for recording in recordings])
    return round_columns(df, RECORDING_DECIMALS) if rounded else df


def tracks_to_dataframe(recordings):
    """
    Build the track table of a list of recordings with square assignments.

    Returns
    -------
    pandas.DataFrame
        One row per track
    """
    parts = [recording.tracks_with_assignments() for recording in recordings if recording.number_of_tracks > 0]
    if not parts:
        return pd.DataFrame()
    df = pd.concat(parts, ignore_index=True)
    for column in ('square_number', 'label_number'):
        df[column] = df[column].astype('Int64')
    return df


def save_table(df, file_path, format=None):
    """
    Save a table to file.

    Parameters
    ----------
    df : pandas.DataFrame
        Table to save
    file_path : str
        Output file path
    format : str, optional
        File format ('csv', 'excel', 'json'), by default None

    Returns
    -------
    str
        Path to saved file
    """
    try:
        logger.info(f"Saving table to {file_path}")
        os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)

        format = format or _detect_format(file_path)
        if format == 'csv':
            df.to_csv(file_path, index=False)
        elif format == 'excel':
            df.to_excel(file_path, index=False)
        elif format == 'json':
            df.to_json(file_path, orient='records', indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Saved {len(df)} rows")
        return file_path

    except Exception as e:
        logger.error(f"Error saving table: {str(e)}")
        raise
