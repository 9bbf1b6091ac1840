"""
Grid partitioning for Paint Squares.

Divides the imaging area of a recording into a uniform square grid.
"""

import math
import numbers
import logging

from ..config import ConfigurationError
from ..objects import Square

logger = logging.getLogger(__name__)


def grid_dimension(number_of_squares_in_recording):
    """
    Return the number of squares along one side of the grid.

    Parameters
    ----------
    number_of_squares_in_recording : int
        Total number of squares, must be a positive perfect square

    Returns
    -------
    int
        Grid dimension

    Raises
    ------
    ConfigurationError
        If the number of squares is not a positive perfect square
    """
    n = number_of_squares_in_recording
    if not isinstance(n, numbers.Integral) or isinstance(n, bool) or n <= 0:
        raise ConfigurationError(f"Number of squares must be a positive integer, got {n!r}")
    n = int(n)
    dimension = math.isqrt(n)
    if dimension * dimension != n:
        raise ConfigurationError(f"Number of squares must be a perfect square, got {n}")
    return dimension


def grid_edges(extent, dimension):
    """Square boundaries along one axis, shared by neighbouring squares."""
    size = extent / dimension
    return [i * size for i in range(dimension + 1)]


def generate_squares(config):
    """
    Create the squares of one recording in row-major order.

    Parameters
    ----------
    config : GenerateSquaresConfig
        Configuration holding the square count and acquisition constants

    Returns
    -------
    list of Square
        dimension x dimension squares tiling the imaging area
    """
    dimension = grid_dimension(config.number_of_squares_in_recording)
    acquisition = config.acquisition.validate()

    x_edges = grid_edges(acquisition.image_width, dimension)
    y_edges = grid_edges(acquisition.image_height, dimension)

    squares = []
    for row_number in range(dimension):
        for col_number in range(dimension):
            squares.append(Square(
                square_number=row_number * dimension + col_number,
                row_number=row_number,
                col_number=col_number,
                x0=x_edges[col_number],
                y0=y_edges[row_number],
                x1=x_edges[col_number + 1],
                y1=y_edges[row_number + 1],
            ))

    logger.debug(f"Generated {len(squares)} squares ({dimension} x {dimension})")
    return squares
