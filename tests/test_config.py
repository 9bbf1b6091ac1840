"""
Test Configuration

Validates the square generation configuration and its file round trip.
"""

import os
import tempfile
import unittest

import numpy as np

from paint_squares.config import (
    AcquisitionParameters,
    ConfigurationError,
    GenerateSquaresConfig,
    NeighbourMode,
    load_config,
    save_config,
)


class TestAcquisitionParameters(unittest.TestCase):
    """Test the derived acquisition constants."""

    def test_default_image_size(self):
        acquisition = AcquisitionParameters()
        self.assertAlmostEqual(acquisition.image_width, 82.0864512, places=6)
        self.assertAlmostEqual(acquisition.image_height, 82.0864512, places=6)

    def test_default_recording_duration(self):
        self.assertAlmostEqual(AcquisitionParameters().recording_duration, 100.0)

    def test_zero_duration_rejected(self):
        with self.assertRaises(ConfigurationError):
            AcquisitionParameters(frames=0).validate()


class TestGenerateSquaresConfig(unittest.TestCase):
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = GenerateSquaresConfig()
        self.assertEqual(config.number_of_squares_in_recording, 400)
        self.assertEqual(config.min_tracks_to_calculate_tau, 20)
        self.assertEqual(config.neighbour_mode, NeighbourMode.FREE)
        self.assertEqual(config.squares_per_row, 20)
        self.assertEqual(config.background_square_count, 40)

    def test_square_area(self):
        config = GenerateSquaresConfig(number_of_squares_in_recording=16)
        self.assertAlmostEqual(config.square_area * 16, config.acquisition.image_area)

    def test_validate_returns_config(self):
        config = GenerateSquaresConfig()
        self.assertIs(config.validate(), config)

    def test_non_square_count_rejected(self):
        for n in (0, -4, 2, 10, 399):
            with self.subTest(n=n):
                with self.assertRaises(ConfigurationError):
                    GenerateSquaresConfig(number_of_squares_in_recording=n).validate()

    def test_numpy_integer_count_accepted(self):
        config = GenerateSquaresConfig(number_of_squares_in_recording=np.int64(16)).validate()
        self.assertEqual(config.squares_per_row, 4)
        self.assertIs(type(config.number_of_squares_in_recording), int)

    def test_configuration_error_is_value_error(self):
        with self.assertRaises(ValueError):
            GenerateSquaresConfig(number_of_squares_in_recording=5).validate()

    def test_unknown_background_method_rejected(self):
        with self.assertRaises(ConfigurationError):
            GenerateSquaresConfig(background_method='median').validate()

    def test_neighbour_mode_parsed_from_string(self):
        self.assertEqual(GenerateSquaresConfig(neighbour_mode='strict').neighbour_mode, NeighbourMode.STRICT)
        with self.assertRaises(ConfigurationError):
            GenerateSquaresConfig(neighbour_mode='Loose')

    def test_small_background_fraction_keeps_one_square(self):
        config = GenerateSquaresConfig(number_of_squares_in_recording=4, background_fraction=0.1)
        self.assertEqual(config.background_square_count, 1)

    def test_fixed_count_background_independent_of_fraction(self):
        config = GenerateSquaresConfig(number_of_squares_in_recording=100, background_fraction=0.5)
        self.assertEqual(config.background_square_count, 50)
        self.assertEqual(config.background_ori_square_count, 10)

        config = GenerateSquaresConfig.from_dict({'Background Ori Fraction': 0.2})
        self.assertEqual(config.background_ori_square_count, 80)
        with self.assertRaises(ConfigurationError):
            GenerateSquaresConfig(background_ori_fraction=0).validate()

    def test_from_dict_display_names(self):
        config = GenerateSquaresConfig.from_dict({
            'Generate Squares': {
                'Number of Squares in Recording': 225,
                'Min Tracks to Calculate Tau': 10,
                'Min Required R Squared': 0.5,
                'Neighbour Mode': 'Relaxed',
            }
        })
        self.assertEqual(config.number_of_squares_in_recording, 225)
        self.assertEqual(config.min_tracks_to_calculate_tau, 10)
        self.assertAlmostEqual(config.min_required_r_squared, 0.5)
        self.assertEqual(config.neighbour_mode, NeighbourMode.RELAXED)

    def test_from_dict_ignores_unknown_keys(self):
        config = GenerateSquaresConfig.from_dict({'max_allowable_variability': 5.0, 'colour': 'red'})
        self.assertAlmostEqual(config.max_allowable_variability, 5.0)


class TestConfigFiles(unittest.TestCase):
    """Test loading and saving configuration files."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def test_yaml_round_trip(self):
        config = GenerateSquaresConfig(number_of_squares_in_recording=100, neighbour_mode='Strict',
                                       acquisition=AcquisitionParameters(frames=1000))
        path = save_config(config, os.path.join(self.tmp.name, 'paint.yaml'))

        loaded = load_config(path)
        self.assertEqual(loaded, config)

    def test_json_round_trip(self):
        config = GenerateSquaresConfig(min_required_density_ratio=2.0)
        path = save_config(config, os.path.join(self.tmp.name, 'paint.json'))
        self.assertEqual(load_config(path), config)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmp.name, 'missing.yaml'))

    def test_unsupported_extension(self):
        path = os.path.join(self.tmp.name, 'paint.ini')
        with open(path, 'w') as f:
            f.write('[Generate Squares]\n')
        with self.assertRaises(ValueError):
            load_config(path)


if __name__ == '__main__':
    unittest.main()
