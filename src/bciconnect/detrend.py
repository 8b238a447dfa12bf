"""
Linear Detrending
=================

Removes the least-squares linear trend from each channel of a window:

    x_detrended[n] = x[n] - (slope * n + intercept)

where (slope, intercept) minimise sum_n (x[n] - slope * n - intercept)^2.
A single-sample channel has no defined trend and is returned unchanged.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy import signal


def detrend(x: np.ndarray) -> np.ndarray:
    """
    Subtract the per-channel linear fit.

    Args:
        x: Window, shape (n_chans, n_time_steps)

    Returns:
        Detrended copy of ``x``
    """
    x = np.asarray(x, dtype=np.float64)
    if x.shape[-1] < 2:
        return x.copy()
    return signal.detrend(x, axis=-1, type="linear")


def linear_trend(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Least-squares line of each channel against sample index.

    Returns:
        Tuple of (slopes, intercepts), each of length n_chans
    """
    x = np.atleast_2d(np.asarray(x, dtype=np.float64))
    n = x.shape[-1]
    if n < 2:
        return np.zeros(x.shape[0]), x[:, 0].copy()
    index = np.arange(n, dtype=np.float64)
    centered_index = index - index.mean()
    slopes = (x @ centered_index) / np.dot(centered_index, centered_index)
    intercepts = x.mean(axis=-1) - slopes * index.mean()
    return slopes, intercepts
