"""
Per-Channel Window Statistics
=============================

Descriptive statistics computed independently for every channel of a
``(n_chans, n_time_steps)`` window. All functions are pure and reentrant and
return one value per channel.

Conventions:
    - ``std`` is the population estimator (ddof = 0)
    - ``mad`` is the raw median absolute deviation, median(|x - median(x)|),
      without the normal-consistency constant; ``robust_std`` applies it

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

# Scales the MAD of a Gaussian to its standard deviation
MAD_NORMAL_CONSISTENCY = 1.4826


def mean(x: np.ndarray) -> np.ndarray:
    """Mean of each channel."""
    return np.mean(x, axis=-1)


def std(x: np.ndarray) -> np.ndarray:
    """Population standard deviation of each channel."""
    return np.std(x, axis=-1)


def median(x: np.ndarray) -> np.ndarray:
    """Median of each channel. The input is not reordered."""
    return np.median(x, axis=-1)


def mad(x: np.ndarray) -> np.ndarray:
    """Median absolute deviation of each channel."""
    center = np.median(x, axis=-1, keepdims=True)
    return np.median(np.abs(x - center), axis=-1)


def robust_std(x: np.ndarray) -> np.ndarray:
    """MAD-based estimate of the standard deviation, insensitive to outliers."""
    return MAD_NORMAL_CONSISTENCY * mad(x)


def minmax(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Minimum and maximum of each channel.

    Returns:
        Tuple of (x_min, x_max), each of length n_chans
    """
    return np.min(x, axis=-1), np.max(x, axis=-1)


def peak_to_peak(x: np.ndarray) -> np.ndarray:
    """Range (max - min) of each channel."""
    return np.ptp(x, axis=-1)
