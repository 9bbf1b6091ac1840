"""
Visualization module for Paint Squares.

This module provides diagnostic plots of the Tau fits of squares.
"""

from .tau_plots import TauPlotWriter, plot_tau_fit
