"""
Square generation processing for Paint Squares.

Runs the square engine over one recording or over all recordings of an
experiment. Recordings are independent of each other and can be processed in
parallel; a failing recording is reported without aborting the batch.
"""

import os
import datetime
import logging
import concurrent.futures
from concurrent.futures import ProcessPoolExecutor

from ..config import ConfigurationError
from ..analysis.grid import generate_squares
from ..analysis.assignment import assign_tracks_to_squares
from ..analysis.square_attributes import calculate_square_attributes
from ..analysis.recording_attributes import calculate_recording_attributes

logger = logging.getLogger(__name__)


def validate_recording(recording):
    """
    Check the recording inputs that feed density normalisation.

    Raises
    ------
    ConfigurationError
        If the concentration is not a positive number
    """
    try:
        concentration = float(recording.concentration)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Recording '{recording.recording_name}' has an invalid concentration: {recording.concentration!r}")
    if not concentration > 0:
        raise ConfigurationError(
            f"Recording '{recording.recording_name}' concentration must be positive, got {concentration}")


def process_recording(recording, config, plot_hook=None, predicate=None):
    """
    Generate and calculate the squares of one recording.

    Parameters
    ----------
    recording : Recording
        Recording with its tracks
    config : GenerateSquaresConfig
        Configuration with thresholds and constants
    plot_hook : callable, optional
        plot_hook(recording, square, tau_result) for diagnostic plots, by default None
    predicate : callable, optional
        Neighbour predicate overriding the configured neighbour mode, by default None

    Returns
    -------
    Recording
        The same recording, with squares and aggregate attributes populated

    Raises
    ------
    ConfigurationError
        If the configuration or recording constants are unusable
    """
    config.validate()
    validate_recording(recording)

    logger.info(f"Processing: {recording.recording_name} ({recording.number_of_tracks} tracks)")
    if recording.number_of_tracks == 0:
        logger.warning(f"Recording {recording.recording_name} has no tracks")

    recording.squares = generate_squares(config)
    assign_tracks_to_squares(recording, config)
    calculate_square_attributes(recording, config, plot_hook=plot_hook, predicate=predicate)
    calculate_recording_attributes(recording, config)
    return recording


def process_experiment(recordings, config, max_workers=None, plot_hook=None, predicate=None):
    """
    Process all recordings of an experiment.

    Parameters
    ----------
    recordings : list of Recording
        Recordings to process; recordings with process=False are skipped
    config : GenerateSquaresConfig
        Configuration with thresholds and constants
    max_workers : int, optional
        Number of worker processes, by default None (auto); 1 runs inline
    plot_hook : callable, optional
        Picklable plot hook passed to every recording, by default None
    predicate : callable, optional
        Picklable neighbour predicate passed to every recording, by default None

    Returns
    -------
    dict
        Batch results with the processed recordings (input order) and errors
    """
    config.validate()

    to_process = [recording for recording in recordings if recording.process]
    skipped = [recording.recording_name for recording in recordings if not recording.process]
    for name in skipped:
        logger.warning(f"Skipping recording {name} (not flagged for processing)")

    processed = [None] * len(to_process)
    errors = []

    if to_process:
        max_workers = max_workers or min(os.cpu_count() or 1, len(to_process))

        if max_workers == 1:
            for i, recording in enumerate(to_process):
                try:
                    processed[i] = process_recording(recording, config, plot_hook=plot_hook,
                                                      predicate=predicate)
                except Exception as exc:
                    errors.append({'recording_name': recording.recording_name, 'error': str(exc)})
                    logger.error(f"Recording {recording.recording_name} generated an exception: {exc}")
        else:
            with ProcessPoolExecutor(max_workers=max_workers) as executor:
                future_to_index = {
                    executor.submit(process_recording, recording, config, plot_hook, predicate): i
                    for i, recording in enumerate(to_process)
                }

                for future in concurrent.futures.as_completed(future_to_index):
                    i = future_to_index[future]
                    recording = to_process[i]
                    try:
                        processed[i] = future.result()
                    except Exception as exc:
                        errors.append({'recording_name': recording.recording_name, 'error': str(exc)})
                        logger.error(f"Recording {recording.recording_name} generated an exception: {exc}")

    results = [recording for recording in processed if recording is not None]
    logger.info(f"Finished processing {len(results)} of {len(to_process)} recordings")

    return {
        'timestamp': datetime.datetime.now(),
        'n_recordings': len(to_process),
        'n_successful': len(results),
        'n_failed': len(errors),
        'skipped': skipped,
        'recordings': results,
        'errors': errors,
    }
