"""
Test Density

Validates density normalisation and background estimation.
"""

import unittest

import numpy as np
import pandas as pd

from paint_squares.config import GenerateSquaresConfig
from paint_squares.objects import Square
from paint_squares.analysis.density import (
    calc_average_track_count_in_background_squares,
    calculate_background,
    calculate_density,
    calculate_density_ratio,
    estimate_background_ranked,
    estimate_background_sigma_clip,
)


def squares_with_counts(counts):
    squares = []
    for i, n in enumerate(counts):
        square = Square(i, 0, i, float(i), 0.0, float(i + 1), 1.0)
        square.tracks = pd.DataFrame({'track_id': np.arange(n), 'x': i + 0.5, 'y': 0.5, 'track_duration': 0.5})
        squares.append(square)
    return squares


class TestCalculateDensity(unittest.TestCase):

    def test_formula(self):
        self.assertAlmostEqual(calculate_density(50, 2.0, 100.0, 0.5), 50 / 2.0 / 100.0 / 0.5)

    def test_zero_tracks(self):
        self.assertEqual(calculate_density(0, 16.8, 100.0, 1.0), 0.0)

    def test_non_positive_inputs(self):
        for args in ((5, 0.0, 100.0, 1.0), (5, 1.0, 0.0, 1.0), (5, 1.0, 100.0, 0.0), (5, 1.0, 100.0, -2.0)):
            with self.subTest(args=args):
                with self.assertRaises(ValueError):
                    calculate_density(*args)


class TestDensityRatio(unittest.TestCase):

    def test_ratio(self):
        self.assertEqual(calculate_density_ratio(50, 10.0), 5.0)

    def test_zero_background(self):
        self.assertEqual(calculate_density_ratio(50, 0.0), 0.0)

    def test_undefined_background(self):
        self.assertEqual(calculate_density_ratio(50, np.nan), 0.0)


class TestBackgroundEstimation(unittest.TestCase):
    """Test background estimation methods."""

    def setUp(self):
        self.counts = [0, 0, 3, 1, 50, 60, 2, 4, 80, 5]
        self.squares = squares_with_counts(self.counts)

    def test_ranked_skips_empty_squares(self):
        result = estimate_background_ranked(self.squares, fraction=0.3)

        self.assertEqual(result.number_of_squares, 3)
        self.assertAlmostEqual(result.background_mean, 2.0)
        self.assertEqual(result.number_of_tracks, 6)

    def test_ranked_uses_at_least_one_square(self):
        result = estimate_background_ranked(self.squares, fraction=0.01)
        self.assertEqual(result.number_of_squares, 1)
        self.assertAlmostEqual(result.background_mean, 1.0)

    def test_ranked_all_empty(self):
        result = estimate_background_ranked(squares_with_counts([0, 0, 0, 0]))
        self.assertEqual(result.background_mean, 0.0)
        self.assertEqual(result.number_of_squares, 0)

    def test_ranked_total_squares(self):
        result = estimate_background_ranked(self.squares, fraction=0.1, total_squares=40)
        self.assertEqual(result.number_of_squares, 4)
        self.assertAlmostEqual(result.background_mean, 2.5)

    def test_sigma_clip_removes_outliers(self):
        counts = [10] * 30 + [11] * 30 + [500]
        result = estimate_background_sigma_clip(squares_with_counts(counts))

        self.assertEqual(result.number_of_squares, 60)
        self.assertAlmostEqual(result.background_mean, 10.5)

    def test_sigma_clip_single_busy_square(self):
        # Clipping the only non-empty square leaves a zero mean
        result = estimate_background_sigma_clip(squares_with_counts([0] * 99 + [1000]))

        self.assertEqual(result.background_mean, 0.0)
        self.assertEqual(result.number_of_squares, 99)
        self.assertEqual(result.number_of_tracks, 0)

    def test_sigma_clip_empty(self):
        self.assertTrue(np.isnan(estimate_background_sigma_clip([]).background_mean))

    def test_configured_method(self):
        config = GenerateSquaresConfig(number_of_squares_in_recording=9, background_fraction=0.3)
        ranked = calculate_background(self.squares, config)
        self.assertEqual(ranked.number_of_squares, 2)
        self.assertAlmostEqual(ranked.background_mean, 1.5)

        config.background_method = 'sigma_clip'
        clipped = calculate_background(self.squares, config)
        self.assertGreater(clipped.background_mean, ranked.background_mean)

    def test_fixed_count_background(self):
        self.assertAlmostEqual(calc_average_track_count_in_background_squares(self.squares, 2), 1.5)
        self.assertAlmostEqual(calc_average_track_count_in_background_squares(self.squares, 0), 1.0)
        self.assertEqual(calc_average_track_count_in_background_squares(squares_with_counts([0, 0]), 1), 0.0)


if __name__ == '__main__':
    unittest.main()
