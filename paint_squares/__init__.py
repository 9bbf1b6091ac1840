"""
Paint Squares package for single-particle tracking post-processing.

This package divides each recording of an experiment into a grid of squares,
assigns tracks to the squares, estimates Tau, variability and density per
square, and selects the squares that are usable for further analysis.
"""

__version__ = '0.1.0'

import logging

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from .config import (
    AcquisitionParameters,
    ConfigurationError,
    GenerateSquaresConfig,
    NeighbourMode,
)
from .objects import Recording, Square
from . import analysis
from . import utils
from . import project
from .project.processor import process_experiment, process_recording
