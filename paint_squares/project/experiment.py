"""
Experiment management for Paint Squares.

An experiment groups the recordings made under one protocol and offers
experiment-wide square generation and result tables.
"""

import logging

import pandas as pd

from ..objects import Recording
from ..utils.io import recordings_to_dataframe, squares_to_dataframe, tracks_to_dataframe
from .processor import process_experiment

logger = logging.getLogger(__name__)


class Experiment:
    """
    Collection of recordings belonging to one experiment.

    Parameters
    ----------
    name : str
        Name of the experiment
    recordings : list of Recording, optional
        Initial recordings, by default None
    """

    def __init__(self, name, recordings=None):
        self.name = name
        self.recordings = {}
        for recording in recordings or []:
            self.add_recording(recording)

        self.errors = []

    def add_recording(self, recording):
        """
        Add a recording, tagging it with the experiment name.

        Returns
        -------
        Recording
            The added recording (or the existing one with the same name)
        """
        if recording.recording_name in self.recordings:
            logger.warning(f"Recording '{recording.recording_name}' already exists in experiment "
                           f"'{self.name}' and will be returned.")
            return self.recordings[recording.recording_name]

        if recording.experiment_name is None:
            recording.experiment_name = self.name
        self.recordings[recording.recording_name] = recording
        return recording

    def get_recording(self, recording_name):
        """
        Raises
        ------
        KeyError
            If the recording does not exist
        """
        if recording_name not in self.recordings:
            raise KeyError(f"Recording '{recording_name}' does not exist in experiment '{self.name}'.")
        return self.recordings[recording_name]

    def list_recordings(self):
        return list(self.recordings.keys())

    def generate_squares(self, config, max_workers=None, plot_hook=None, predicate=None):
        """
        Process every recording and keep the processed results.

        Returns
        -------
        dict
            Batch results as returned by process_experiment
        """
        logger.info(f"Processing Experiment: {self.name}")
        batch = process_experiment(list(self.recordings.values()), config,
                                   max_workers=max_workers, plot_hook=plot_hook,
                                   predicate=predicate)

        # Worker processes return copies
        for recording in batch['recordings']:
            self.recordings[recording.recording_name] = recording
        self.errors = batch['errors']

        logger.info(f"Finished processing Experiment: {self.name}")
        return batch

    def squares_table(self, rounded=False):
        """One row per square of every processed recording."""
        return squares_to_dataframe(self.recordings.values(), rounded=rounded)

    def recordings_table(self, rounded=False):
        """One row per recording."""
        return recordings_to_dataframe(self.recordings.values(), rounded=rounded)

    def tracks_table(self):
        """All tracks with their square and label assignment."""
        return tracks_to_dataframe(self.recordings.values())

    @classmethod
    def from_tables(cls, name, tracks_df, recordings_df=None):
        """
        Build an experiment from a track table and an optional recordings table.

        Parameters
        ----------
        name : str
            Name of the experiment
        tracks_df : pandas.DataFrame
            Track table with a recording_name column
        recordings_df : pandas.DataFrame, optional
            Recording table with recording_name and optionally concentration,
            process and further metadata columns, by default None

        Returns
        -------
        Experiment
            The created experiment
        """
        experiment = cls(name)

        if recordings_df is None:
            recordings_df = pd.DataFrame({'recording_name': tracks_df['recording_name'].unique()})

        tracks_by_recording = dict(tuple(tracks_df.groupby('recording_name', sort=False)))

        for row in recordings_df.to_dict('records'):
            recording_name = row.pop('recording_name')
            concentration = row.pop('concentration', 1.0)
            process = bool(row.pop('process', True))
            experiment_name = row.pop('experiment_name', name)

            tracks = tracks_by_recording.get(recording_name)
            if tracks is None:
                logger.warning(f"No tracks found for recording {recording_name}")
                tracks = tracks_df.iloc[0:0]

            experiment.add_recording(Recording(
                recording_name,
                tracks=tracks.reset_index(drop=True),
                concentration=concentration,
                experiment_name=experiment_name,
                metadata=row,
                process=process,
            ))

        return experiment
