"""
Configuration module for Paint Squares.

Configuration is passed explicitly as value objects into every component of
the square engine; nothing reads a shared global configuration.
"""

import math
import numbers
import os
import json
import logging
from dataclasses import dataclass, asdict, field
from enum import Enum

import yaml

logger = logging.getLogger(__name__)

SECTION_GENERATE_SQUARES = 'Generate Squares'

# Display names used in the configuration files of the acquisition pipeline
_DISPLAY_KEYS = {
    'Number of Squares in Recording': 'number_of_squares_in_recording',
    'Min Tracks to Calculate Tau': 'min_tracks_to_calculate_tau',
    'Min Required R Squared': 'min_required_r_squared',
    'Min Required Density Ratio': 'min_required_density_ratio',
    'Max Allowable Variability': 'max_allowable_variability',
    'Neighbour Mode': 'neighbour_mode',
    'Variability Granularity': 'variability_granularity',
    'Background Fraction': 'background_fraction',
    'Background Method': 'background_method',
    'Background Ori Fraction': 'background_ori_fraction',
    'Plot Curve Fitting': 'plot_curve_fitting',
}

BACKGROUND_METHODS = ('ranked', 'sigma_clip')


class ConfigurationError(ValueError):
    """Raised when configuration or acquisition constants are unusable."""


class NeighbourMode(str, Enum):
    """Strictness of the neighbour requirement in square selection."""

    FREE = 'Free'
    RELAXED = 'Relaxed'
    STRICT = 'Strict'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        for mode in cls:
            if str(value).strip().lower() == mode.value.lower():
                return mode
        raise ConfigurationError(f"Unknown neighbour mode: {value!r}")


@dataclass(frozen=True)
class AcquisitionParameters:
    """
    Fixed constants of the acquisition domain.

    Parameters
    ----------
    pixel_width : float
        Pixel width in µm.
    pixel_height : float
        Pixel height in µm.
    pixels_width : int
        Number of pixels along x.
    pixels_height : int
        Number of pixels along y.
    time_interval : float
        Time between frames in seconds.
    frames : int
        Number of frames in a standard recording.
    """

    pixel_width: float = 0.1603251
    pixel_height: float = 0.1603251
    pixels_width: int = 512
    pixels_height: int = 512
    time_interval: float = 0.05
    frames: int = 2000

    @property
    def image_width(self):
        return self.pixel_width * self.pixels_width

    @property
    def image_height(self):
        return self.pixel_height * self.pixels_height

    @property
    def image_area(self):
        return self.image_width * self.image_height

    @property
    def recording_duration(self):
        return self.frames * self.time_interval

    def validate(self):
        """Raise ConfigurationError if any dimension or duration is not positive."""
        if self.image_width <= 0 or self.image_height <= 0:
            raise ConfigurationError(
                f"Image area must be positive, got {self.image_width} x {self.image_height}")
        if self.recording_duration <= 0:
            raise ConfigurationError(
                f"Recording duration must be positive, got {self.recording_duration}")
        return self


@dataclass
class GenerateSquaresConfig:
    """
    Thresholds and settings for square generation and selection.

    Parameters
    ----------
    number_of_squares_in_recording : int
        Total number of squares in the grid; must be a perfect square.
    min_tracks_to_calculate_tau : int
        Minimum number of tracks before a Tau fit is attempted.
    min_required_r_squared : float
        Minimum R² for a Tau fit to be accepted and a square to be selected.
    min_required_density_ratio : float
        Minimum density ratio for a square to be selected.
    max_allowable_variability : float
        Maximum variability for a square to be selected.
    neighbour_mode : NeighbourMode
        Neighbour requirement applied after the threshold filter.
    variability_granularity : int
        Number of sub-cells along each axis used for the variability.
    background_fraction : float
        Fraction of the squares averaged for the background estimate.
    background_method : str
        'ranked' (lowest non-zero squares) or 'sigma_clip'.
    background_ori_fraction : float
        Fraction of the squares averaged for the fixed-count background
        behind density_ratio_ori, independent of background_method.
    plot_curve_fitting : bool
        Whether the processor should call the Tau plot hook.
    """

    number_of_squares_in_recording: int = 400
    min_tracks_to_calculate_tau: int = 20
    min_required_r_squared: float = 0.1
    min_required_density_ratio: float = 0.1
    max_allowable_variability: float = 10.0
    neighbour_mode: NeighbourMode = NeighbourMode.FREE
    variability_granularity: int = 10
    background_fraction: float = 0.1
    background_method: str = 'ranked'
    background_ori_fraction: float = 0.1
    plot_curve_fitting: bool = False
    acquisition: AcquisitionParameters = field(default_factory=AcquisitionParameters)

    def __post_init__(self):
        self.neighbour_mode = NeighbourMode.parse(self.neighbour_mode)

    @property
    def squares_per_row(self):
        return math.isqrt(self.number_of_squares_in_recording)

    @property
    def square_area(self):
        return self.acquisition.image_area / self.number_of_squares_in_recording

    @property
    def background_square_count(self):
        """Number of squares averaged for the background, at least one."""
        return max(1, int(self.background_fraction * self.number_of_squares_in_recording))

    @property
    def background_ori_square_count(self):
        """Number of squares averaged for density_ratio_ori, at least one."""
        return max(1, int(self.background_ori_fraction * self.number_of_squares_in_recording))

    def validate(self):
        """
        Check the configuration, failing fast on unusable values.

        Returns
        -------
        GenerateSquaresConfig
            The validated configuration

        Raises
        ------
        ConfigurationError
            If any value is out of range
        """
        n = self.number_of_squares_in_recording
        if not isinstance(n, numbers.Integral) or isinstance(n, bool) or n <= 0:
            raise ConfigurationError(
                f"Number of squares in recording must be a positive integer, got {n!r}")
        if math.isqrt(n) ** 2 != n:
            raise ConfigurationError(
                f"Number of squares in recording must be a perfect square, got {n}")
        self.number_of_squares_in_recording = int(n)
        if self.min_tracks_to_calculate_tau < 0:
            raise ConfigurationError("Min tracks to calculate Tau must not be negative")
        if self.variability_granularity < 1:
            raise ConfigurationError("Variability granularity must be at least 1")
        if not 0 < self.background_fraction <= 1:
            raise ConfigurationError(
                f"Background fraction must be in (0, 1], got {self.background_fraction}")
        if not 0 < self.background_ori_fraction <= 1:
            raise ConfigurationError(
                f"Background ori fraction must be in (0, 1], got {self.background_ori_fraction}")
        if self.background_method not in BACKGROUND_METHODS:
            raise ConfigurationError(f"Unknown background method: {self.background_method!r}")
        self.acquisition.validate()
        return self

    def to_dict(self):
        data = asdict(self)
        data['neighbour_mode'] = self.neighbour_mode.value
        return data

    @classmethod
    def from_dict(cls, data):
        """
        Create a configuration from a dictionary.

        Accepts snake_case keys or the display names of the acquisition
        pipeline, optionally nested in a 'Generate Squares' section.

        Parameters
        ----------
        data : dict
            Configuration dictionary

        Returns
        -------
        GenerateSquaresConfig
            Created configuration
        """
        data = dict(data or {})
        if SECTION_GENERATE_SQUARES in data:
            data = dict(data[SECTION_GENERATE_SQUARES])
        elif 'generate_squares' in data:
            data = dict(data['generate_squares'])

        kwargs = {}
        for key, value in data.items():
            name = _DISPLAY_KEYS.get(key, key)
            if name == 'acquisition':
                value = AcquisitionParameters(**value)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")
        return cls(**kwargs)


def load_config(file_path):
    """
    Load a square generation configuration from a YAML or JSON file.

    Parameters
    ----------
    file_path : str
        Path to configuration file

    Returns
    -------
    GenerateSquaresConfig
        Loaded (not yet validated) configuration
    """
    try:
        logger.info(f"Loading configuration from {file_path}")

        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        ext = os.path.splitext(file_path)[1].lower()
        if ext in ['.yaml', '.yml']:
            with open(file_path, 'r') as f:
                data = yaml.safe_load(f)
        elif ext == '.json':
            with open(file_path, 'r') as f:
                data = json.load(f)
        else:
            raise ValueError(f"Unsupported configuration format: {ext}")

        return GenerateSquaresConfig.from_dict(data)

    except Exception as e:
        logger.error(f"Error loading configuration: {str(e)}")
        raise


def save_config(config, file_path):
    """
    Save a configuration to a YAML or JSON file.

    Parameters
    ----------
    config : GenerateSquaresConfig
        Configuration to save
    file_path : str
        Output file path

    Returns
    -------
    str
        Path to saved file
    """
    try:
        logger.info(f"Saving configuration to {file_path}")
        os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)

        data = {SECTION_GENERATE_SQUARES: config.to_dict()}
        ext = os.path.splitext(file_path)[1].lower()
        if ext in ['.yaml', '.yml']:
            with open(file_path, 'w') as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        elif ext == '.json':
            with open(file_path, 'w') as f:
                json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unsupported configuration format: {ext}")

        return file_path

    except Exception as e:
        logger.error(f"Error saving configuration: {str(e)}")
        raise
