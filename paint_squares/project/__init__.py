"""
Project processing module for Paint Squares.

This module runs square generation over recordings and experiments.
"""

from .processor import process_experiment, process_recording
from .experiment import Experiment
