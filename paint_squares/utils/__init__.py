"""
Utility module for Paint Squares.

This module provides table input/output and track table processing.
"""

from . import io
from . import processing
