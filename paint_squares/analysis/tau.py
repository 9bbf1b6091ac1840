"""
Tau estimation module for Paint Squares.

Fits a mono-exponential decay y = m * exp(-t * x) + b to the frequency
distribution of track durations and reports Tau (in ms) together with the
coefficient of determination of the fit. The same routine serves single
squares and the pooled tracks of a recording.
"""

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

from ..objects import TRACK_DURATION

logger = logging.getLogger(__name__)

# Number of free parameters in the decay model
_N_PARAMETERS = 3


class TauStatus(str, Enum):
    SUCCESS = 'success'
    FAILURE = 'failure'


class TauFailure(str, Enum):
    INSUFFICIENT_TRACKS = 'insufficient_tracks'
    NO_FIT = 'no_fit'
    R_SQUARED_TOO_LOW = 'r_squared_too_low'


@dataclass(frozen=True)
class TauResult:
    """
    Outcome of a Tau estimation.

    On failure `tau` and `r_squared` are NaN. The raw fit values are kept in
    `fitted_tau` and `fitted_r_squared` for diagnostics, together with the
    frequency distribution that was fitted.
    """

    status: TauStatus
    tau: float = np.nan
    r_squared: float = np.nan
    reason: TauFailure = None
    fitted_tau: float = np.nan
    fitted_r_squared: float = np.nan
    parameters: tuple = ()
    durations: np.ndarray = field(default_factory=lambda: np.empty(0), repr=False)
    frequencies: np.ndarray = field(default_factory=lambda: np.empty(0), repr=False)

    @property
    def succeeded(self):
        return self.status == TauStatus.SUCCESS

    @classmethod
    def failure(cls, reason, **kwargs):
        return cls(status=TauStatus.FAILURE, reason=reason, **kwargs)


def exponential_decay(x, m, t, b):
    """Mono-exponential decay with offset."""
    return m * np.exp(-t * x) + b


def create_frequency_distribution(durations):
    """
    Count how often each distinct duration occurs.

    Parameters
    ----------
    durations : array-like
        Track durations in seconds

    Returns
    -------
    numpy.ndarray
        Distinct durations, ascending
    numpy.ndarray
        Number of tracks per distinct duration
    """
    durations = np.asarray(durations, dtype=float)
    durations = durations[np.isfinite(durations)]
    values, counts = np.unique(durations, return_counts=True)
    return values, counts.astype(float)


def initial_guess(x, y):
    """
    Heuristic starting point [m, t, b] for the decay fit.

    The baseline is the smallest frequency, the amplitude the range of the
    frequencies, and the rate comes from a straight-line fit to
    log(y - b) over the points clearly above the baseline.
    """
    min_y = float(np.min(y))
    max_y = float(np.max(y))
    max_x = float(np.max(x))

    b = max(0.0, min_y)
    m = max(1e-6, max_y - b)

    eps = max(1e-6, 0.01 * m)
    above = (y - b) > eps
    if np.count_nonzero(above) >= 2 and x[above].max() > x[above].min():
        slope, _ = np.polyfit(x[above], np.log(y[above] - b), 1)
        t = max(1e-9, -slope)
    else:
        t = 1.0 / max(1e-3, max_x)

    m = float(np.clip(m, 1e-9, 1e9))
    t = float(np.clip(t, 1e-9, 1e3))
    b = float(np.clip(b, 0.0, max(1.0, max_y)))
    return [m, t, b]


def compute_r_squared(x, y, parameters):
    """R² of the decay model on the data, NaN when y has no variance."""
    y = np.asarray(y, dtype=float)
    with np.errstate(over='ignore', invalid='ignore'):
        predicted = exponential_decay(np.asarray(x, dtype=float), *parameters)
    ss_res = np.sum((y - predicted) ** 2)
    ss_tot = np.sum((y - np.mean(y)) ** 2)
    if ss_tot == 0:
        return np.nan
    return float(1.0 - ss_res / ss_tot)


def fit_exponential_decay(x, y):
    """
    Fit y = m * exp(-t * x) + b with Levenberg-Marquardt.

    Parameters
    ----------
    x : array-like
        Distinct durations in seconds
    y : array-like
        Frequencies

    Returns
    -------
    float
        Tau in ms (1000 / t), NaN if the fit failed or t is not positive
    float
        R² of the fit, NaN if the fit failed
    tuple
        Fitted parameters (m, t, b), empty if the fit failed
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape or len(x) < _N_PARAMETERS:
        return np.nan, np.nan, ()

    try:
        with warnings.catch_warnings(), np.errstate(over='ignore', invalid='ignore', divide='ignore'):
            warnings.simplefilter('ignore', OptimizeWarning)
            parameters, _ = curve_fit(
                exponential_decay, x, y,
                p0=initial_guess(x, y),
                method='lm',
                maxfev=10000,
            )
    except (RuntimeError, ValueError, TypeError, FloatingPointError) as e:
        logger.debug(f"Exponential decay fit failed: {str(e)}")
        return np.nan, np.nan, ()

    if not np.all(np.isfinite(parameters)):
        return np.nan, np.nan, ()

    m, t, b = (float(p) for p in parameters)
    tau = 1000.0 / t if t > 0 else np.nan
    return tau, compute_r_squared(x, y, (m, t, b)), (m, t, b)


def track_durations(tracks):
    """Durations of a track table, or the values themselves for an array."""
    if hasattr(tracks, 'columns'):
        return tracks[TRACK_DURATION].to_numpy(dtype=float)
    return np.asarray(tracks, dtype=float)


def calculate_tau(tracks, min_tracks_to_calculate_tau, min_required_r_squared):
    """
    Estimate Tau for a set of tracks.

    Parameters
    ----------
    tracks : pandas.DataFrame or array-like
        Track table with a track duration column, or the durations
    min_tracks_to_calculate_tau : int
        Below this number of tracks no fit is attempted
    min_required_r_squared : float
        Fits with a lower R² are reported as failures

    Returns
    -------
    TauResult
        SUCCESS with Tau and R², or FAILURE with NaN values and a reason
    """
    durations = track_durations(tracks)
    if len(durations) < min_tracks_to_calculate_tau or len(durations) == 0:
        return TauResult.failure(TauFailure.INSUFFICIENT_TRACKS)

    x, y = create_frequency_distribution(durations)
    tau, r_squared, parameters = fit_exponential_decay(x, y)
    diagnostics = dict(fitted_tau=tau, fitted_r_squared=r_squared, parameters=parameters,
                       durations=x, frequencies=y)

    if not (np.isfinite(tau) and np.isfinite(r_squared)):
        return TauResult.failure(TauFailure.NO_FIT, **diagnostics)

    if r_squared < min_required_r_squared:
        return TauResult.failure(TauFailure.R_SQUARED_TOO_LOW, **diagnostics)

    return TauResult(status=TauStatus.SUCCESS, tau=tau, r_squared=r_squared, **diagnostics)
