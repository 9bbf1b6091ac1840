"""
Command-line interface for Paint Squares.

This module provides a command-line interface for generating squares from
the track tables of an experiment directly from the terminal.
"""

import argparse
import os
import sys
import logging

from paint_squares import __version__
from paint_squares.config import GenerateSquaresConfig, load_config
from paint_squares.project.experiment import Experiment
from paint_squares.utils import io
from paint_squares.visualization import TauPlotWriter

logger = logging.getLogger(__name__)

SQUARES_FILE = 'All Squares.csv'
RECORDINGS_FILE = 'All Recordings.csv'
TRACKS_FILE = 'All Tracks.csv'


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Paint Squares: grid based binding analysis of single-molecule tracks'
    )

    parser.add_argument('--version', action='version', version=f'Paint Squares {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    generate_parser = subparsers.add_parser('generate', help='Generate squares for an experiment')
    generate_parser.add_argument('tracks', help='Track table (CSV, Excel, JSON)')
    generate_parser.add_argument('recordings', nargs='?',
                                 help='Optional recordings table with concentration and process flag')
    generate_parser.add_argument('output_dir', help='Output directory for the result tables')
    generate_parser.add_argument('--config', help='Configuration file (YAML, JSON)')
    generate_parser.add_argument('--experiment-name', help='Experiment name (defaults to the output directory name)')
    generate_parser.add_argument('--plot', action='store_true',
                                 help='Save a Tau fit plot per square')
    generate_parser.add_argument('--max-workers', type=int,
                                 help='Number of worker processes (1 runs inline)')
    generate_parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    return parser.parse_args(argv)


def get_configuration(config_file):
    """
    Load the square generation configuration.

    Parameters
    ----------
    config_file : str
        Path to configuration file, or None for the defaults

    Returns
    -------
    GenerateSquaresConfig
        Validated configuration
    """
    if config_file:
        config = load_config(config_file)
        logger.info(f"Loaded configuration from {config_file}")
    else:
        config = GenerateSquaresConfig()
    return config.validate()


def run_generate(args):
    """
    Run square generation for one experiment.

    Parameters
    ----------
    args : argparse.Namespace
        Command-line arguments
    """
    logger.info("Starting square generation")

    try:
        config = get_configuration(args.config)
    except Exception as e:
        logger.error(f"Error loading configuration: {str(e)}")
        sys.exit(1)

    try:
        tracks_df = io.load_tracks(args.tracks, time_interval=config.acquisition.time_interval)
        recordings_df = io.load_recordings(args.recordings) if args.recordings else None
    except Exception as e:
        logger.error(f"Error loading input tables: {str(e)}")
        sys.exit(1)

    if 'recording_name' not in tracks_df.columns:
        tracks_df['recording_name'] = os.path.splitext(os.path.basename(args.tracks))[0]

    experiment_name = args.experiment_name or os.path.basename(os.path.normpath(args.output_dir))
    experiment = Experiment.from_tables(experiment_name, tracks_df, recordings_df)

    plot_hook = None
    if args.plot or config.plot_curve_fitting:
        plot_hook = TauPlotWriter(os.path.join(args.output_dir, 'Tau Plots'))

    batch = experiment.generate_squares(config, max_workers=args.max_workers, plot_hook=plot_hook)

    try:
        io.save_table(experiment.squares_table(rounded=True), os.path.join(args.output_dir, SQUARES_FILE))
        io.save_table(experiment.recordings_table(rounded=True), os.path.join(args.output_dir, RECORDINGS_FILE))
        io.save_table(experiment.tracks_table(), os.path.join(args.output_dir, TRACKS_FILE))
    except Exception as e:
        logger.error(f"Error saving results: {str(e)}")
        sys.exit(1)

    for error in batch['errors']:
        logger.error(f"Recording {error['recording_name']} failed: {error['error']}")

    logger.info(f"Processed {batch['n_successful']} of {batch['n_recordings']} recordings "
                f"({len(batch['skipped'])} skipped)")

    return 1 if batch['n_failed'] else 0


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)

    if getattr(args, 'verbose', False):
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == 'generate':
        return run_generate(args)

    logger.error("No command given, use --help for usage")
    return 2


if __name__ == '__main__':
    sys.exit(main())
