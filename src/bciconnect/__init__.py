"""
BCI Connect
===========

Signal processing and classification for brain-computer interfaces: window
statistics, normalization, detrending, zero-phase filtering, spectral
analysis, channel quality grading, and P300 / SSVEP classifiers.

Processing Overview:

    EEG Window → Quality Check → Detrend → Filters → Normalize → Classifier

    1. Quality: grade each raw channel BAD / AMPLITUDE_OK / GOOD
    2. Conditioning: linear detrend, Butterworth filters, normalization
    3. Spectral: FFT magnitudes and phases, Welch band power
    4. Classification: P300 model zoo, SSVEP canonical correlation

Windows are channel-major arrays of shape (n_chans, n_time_steps).
Filtering works in place; every other operation returns new arrays.

Key Classes:
    - ConditioningPipeline: Configurable detrend/filter/normalize chain
    - FilterBank: Ordered zero-phase Butterworth filters
    - SignalQualityEstimator: Per-channel quality grades
    - P300Classifier: Pretrained P300 detector
    - SSVEPClassifier: CCA-based flicker frequency decision
    - SimulatedWindowSource: Synthetic EEG for testing

Quick Start:
    >>> from bciconnect import SimulatedWindowSource, ssvep_classify
    >>>
    >>> source = SimulatedWindowSource(n_chans=8, ssvep_frequency=10.0)
    >>> window = source.read_window()
    >>> result = ssvep_classify(window.data, window.sampling_rate, [8.0, 10.0, 12.0])
    >>> result.index
    1

Author: BCI Connect Team
License: MIT
"""

# Errors and version
from .errors import (
    ErrorCode,
    BCIConnectError,
    ModelNotAllowedError,
    ModelLoadError,
    WindowShapeError,
)
from .version import Version, VERSION, get_version

# Window layout
from .window import as_window, check_window

# Statistics and normalization
from .statistics import mean, std, median, mad, robust_std, minmax, peak_to_peak
from .normalization import demean, standardize, ewma, ewma_standardize
from .detrend import detrend

# Filtering and spectral analysis
from .filters import (
    FilterType,
    FilterSpec,
    FilterBank,
    filter_lowpass,
    filter_highpass,
    filter_bandpass,
    filter_notch,
)
from .spectral import fft, fft_bin_count, fft_frequencies, band_power

# Signal quality
from .quality import (
    ChannelQuality,
    QualityConfig,
    SignalQualityEstimator,
    get_signal_quality,
)

# Classifiers
from .p300 import (
    P300ModelDescriptor,
    P300_MODEL_ZOO,
    P300State,
    P300Classifier,
    p300_init,
)
from .ssvep import SSVEPConfig, SSVEPResult, SSVEPClassifier, ssvep_classify

# Pipeline and acquisition
from .pipeline import (
    NormalizationType,
    ConditioningConfig,
    ConditioningPipeline,
    WindowDiagnostics,
)
from .acquisition import EEGWindow, WindowSource, SimulatedWindowSource

# Version
__version__ = str(VERSION)

# Public API
__all__ = [
    # Errors and version
    "ErrorCode",
    "BCIConnectError",
    "ModelNotAllowedError",
    "ModelLoadError",
    "WindowShapeError",
    "Version",
    "VERSION",
    "get_version",
    # Window layout
    "as_window",
    "check_window",
    # Statistics and normalization
    "mean",
    "std",
    "median",
    "mad",
    "robust_std",
    "minmax",
    "peak_to_peak",
    "demean",
    "standardize",
    "ewma",
    "ewma_standardize",
    "detrend",
    # Filtering and spectral analysis
    "FilterType",
    "FilterSpec",
    "FilterBank",
    "filter_lowpass",
    "filter_highpass",
    "filter_bandpass",
    "filter_notch",
    "fft",
    "fft_bin_count",
    "fft_frequencies",
    "band_power",
    # Signal quality
    "ChannelQuality",
    "QualityConfig",
    "SignalQualityEstimator",
    "get_signal_quality",
    # Classifiers
    "P300ModelDescriptor",
    "P300_MODEL_ZOO",
    "P300State",
    "P300Classifier",
    "p300_init",
    "SSVEPConfig",
    "SSVEPResult",
    "SSVEPClassifier",
    "ssvep_classify",
    # Pipeline and acquisition
    "NormalizationType",
    "ConditioningConfig",
    "ConditioningPipeline",
    "WindowDiagnostics",
    "EEGWindow",
    "WindowSource",
    "SimulatedWindowSource",
]
