"""
Test Variability

Validates the sub-grid coefficient of variation of track locations.
"""

import unittest

import numpy as np
import pandas as pd

from paint_squares.objects import Square
from paint_squares.analysis.variability import (
    calc_variability,
    coefficient_of_variation,
    sub_grid_counts,
)


def tracks_at(x, y):
    return pd.DataFrame({'track_id': np.arange(len(x)), 'x': x, 'y': y, 'track_duration': 0.5})


class TestVariability(unittest.TestCase):
    """Test variability of tracks within a square."""

    def setUp(self):
        self.square = Square(0, 0, 0, 10.0, 20.0, 14.0, 24.0)

    def test_no_tracks(self):
        self.assertEqual(calc_variability(tracks_at([], []), self.square), 0.0)

    def test_uniform_tracks_have_zero_variability(self):
        # One track in the centre of every sub-cell
        centres = 10.0 + (np.arange(10) + 0.5) * 0.4
        xx, yy = np.meshgrid(centres, centres + 10.0)
        tracks = tracks_at(xx.ravel(), yy.ravel())

        self.assertAlmostEqual(calc_variability(tracks, self.square), 0.0)

    def test_concentrated_tracks_have_high_variability(self):
        tracks = tracks_at(np.full(50, 10.1), np.full(50, 20.1))
        # One occupied cell out of 100: std / mean = sqrt(99)
        self.assertAlmostEqual(calc_variability(tracks, self.square), np.sqrt(99.0))

    def test_clustered_exceeds_spread(self):
        rng = np.random.default_rng(7)
        spread = tracks_at(rng.uniform(10.0, 14.0, 400), rng.uniform(20.0, 24.0, 400))
        clustered = tracks_at(rng.uniform(10.0, 10.8, 400), rng.uniform(20.0, 20.8, 400))

        self.assertGreater(calc_variability(clustered, self.square), calc_variability(spread, self.square))

    def test_out_of_range_tracks_dropped(self):
        counts = sub_grid_counts([10.1, 9.0, 14.0, 13.9], [20.1, 20.1, 20.1, 23.9], 10.0, 20.0, 4.0, 4.0)
        self.assertEqual(counts.shape, (10, 10))
        self.assertEqual(counts.sum(), 2)
        self.assertEqual(counts[0, 0], 1)
        self.assertEqual(counts[9, 9], 1)

    def test_granularity(self):
        counts = sub_grid_counts([10.5, 13.5], [20.5, 23.5], 10.0, 20.0, 4.0, 4.0, granularity=2)
        np.testing.assert_array_equal(counts, [[1, 0], [0, 1]])

    def test_coefficient_of_variation_zero_mean(self):
        self.assertEqual(coefficient_of_variation(np.zeros((3, 3))), 0.0)


if __name__ == '__main__':
    unittest.main()
