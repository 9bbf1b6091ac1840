"""
Square selection for Paint Squares.

A square is selected when its density ratio, variability and R² pass the
configured thresholds and, depending on the neighbour mode, it has a
neighbour that passed them as well. Selected squares receive a dense label
number in square traversal order.
"""

import logging
from typing import Callable, Dict, Sequence

import numpy as np

from ..config import NeighbourMode

logger = logging.getLogger(__name__)

SelectionPredicate = Callable[[object, Sequence], bool]


def passes_thresholds(square, config):
    """
    Check the per-square selection criteria.

    Parameters
    ----------
    square : Square
        Square with computed attributes
    config : GenerateSquaresConfig
        Configuration with the selection thresholds

    Returns
    -------
    bool
        True if every criterion holds and every value is finite
    """
    if square.manually_excluded:
        return False

    values = (square.density_ratio, square.variability, square.r_squared)
    if not all(np.isfinite(value) for value in values):
        return False

    return (square.density_ratio >= config.min_required_density_ratio
            and square.variability <= config.max_allowable_variability
            and square.r_squared >= config.min_required_r_squared)


def free_neighbours(square, neighbours):
    return True


def relaxed_neighbours(square, neighbours):
    """At least one candidate among the eight surrounding squares."""
    return len(neighbours) > 0


def strict_neighbours(square, neighbours):
    """At least one candidate sharing an edge with the square."""
    return any(abs(other.row_number - square.row_number) + abs(other.col_number - square.col_number) == 1
               for other in neighbours)


NEIGHBOUR_PREDICATES: Dict[NeighbourMode, SelectionPredicate] = {
    NeighbourMode.FREE: free_neighbours,
    NeighbourMode.RELAXED: relaxed_neighbours,
    NeighbourMode.STRICT: strict_neighbours,
}


def candidate_neighbourhood(square, candidates_by_position):
    """Candidate squares in the 8-neighbourhood of a square."""
    neighbours = []
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            other = candidates_by_position.get((square.row_number + dr, square.col_number + dc))
            if other is not None:
                neighbours.append(other)
    return neighbours


def apply_selection_filter(squares, config, predicate=None):
    """
    Mark squares as selected or unselected.

    Selection is recomputed from scratch: the threshold filter runs over every
    square first, then the neighbour predicate is evaluated against the
    complete set of threshold candidates.

    Parameters
    ----------
    squares : list of Square
        Squares with computed attributes
    config : GenerateSquaresConfig
        Configuration with thresholds and neighbour mode
    predicate : callable, optional
        predicate(square, neighbours) -> bool overriding the neighbour mode,
        where neighbours are the candidate squares around the square

    Returns
    -------
    list of Square
        The selected squares in traversal order
    """
    if predicate is None:
        predicate = NEIGHBOUR_PREDICATES[config.neighbour_mode]

    candidates = [square for square in squares if passes_thresholds(square, config)]
    candidates_by_position = {(square.row_number, square.col_number): square for square in candidates}

    selected_numbers = set()
    for square in candidates:
        if predicate(square, candidate_neighbourhood(square, candidates_by_position)):
            selected_numbers.add(square.square_number)

    for square in squares:
        square.selected = square.square_number in selected_numbers

    if config.neighbour_mode != NeighbourMode.FREE:
        logger.debug(f"Neighbour mode [{config.neighbour_mode.value}] retained "
                     f"{len(selected_numbers)} / {len(candidates)} squares")

    return [square for square in squares if square.selected]


def assign_label_numbers(squares):
    """
    Give selected squares labels 0, 1, 2, ... in square number order.

    Unselected squares have no label.
    """
    label_number = 0
    for square in sorted(squares, key=lambda square: square.square_number):
        if square.selected:
            square.label_number = label_number
            label_number += 1
        else:
            square.label_number = None
    return label_number


def select_squares(squares, config, predicate=None):
    """
    Apply the selection filter and label the selected squares.

    Returns
    -------
    list of Square
        The selected squares in traversal order
    """
    selected = apply_selection_filter(squares, config, predicate=predicate)
    assign_label_numbers(squares)
    return selected
