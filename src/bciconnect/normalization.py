"""
Signal Normalization
====================

Closed-form and exponentially weighted normalization of multichannel
windows, computed independently per channel.

Mathematical Background:
    1. Demeaning:        y = x - mean(x)
    2. Standardization:  z = (x - mean(x)) / std(x)
    3. EWMA (bias-corrected, seeded by the first sample):

           m_t = sum_i (1 - a)^i x_{t-i} / sum_i (1 - a)^i

       The numerator is a first-order IIR recursion
       s_t = (1 - a) s_{t-1} + x_t evaluated with scipy.signal.lfilter;
       the denominator has the closed form (1 - (1 - a)^(t+1)) / a.
       Both stay bounded by 1/a times the signal magnitude, so long windows
       neither overflow nor lose precision to cancellation.
    4. EWMA standardization:

           v_t = EWMA of (x_t - m_t)^2
           z_t = (x_t - m_t) / sqrt(v_t + eps)

Recommended operating values follow braindecode: a = 0.001, eps = 1e-4.

None of these functions keep state between calls: the running estimators
start afresh on every window.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy import signal

from . import statistics

logger = logging.getLogger(__name__)

DEFAULT_EWMA_ALPHA = 1e-3
DEFAULT_EWMA_EPSILON = 1e-4


def demean(x: np.ndarray) -> np.ndarray:
    """Subtract the per-channel mean, removing DC offset."""
    x = np.asarray(x, dtype=np.float64)
    return x - statistics.mean(x)[..., np.newaxis]


def standardize(x: np.ndarray) -> np.ndarray:
    """
    Z-score each channel to zero mean and unit variance.

    A channel with zero standard deviation yields non-finite values; callers
    are expected to avoid flat channels (see ``ewma_standardize`` for a
    stabilized variant).
    """
    x = np.asarray(x, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return (x - statistics.mean(x)[..., np.newaxis]) / statistics.std(x)[..., np.newaxis]


def _ewm_mean(x: np.ndarray, alpha: float) -> np.ndarray:
    """Bias-corrected running EWMA along the last axis."""
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    decay = 1.0 - alpha
    weighted_sum = signal.lfilter([1.0], [1.0, -decay], x, axis=-1)
    n = np.arange(1, x.shape[-1] + 1)
    if decay == 0.0:
        weight_total = np.ones(x.shape[-1])
    else:
        weight_total = -np.expm1(n * np.log(decay)) / alpha
    return weighted_sum / weight_total


def ewma(x: np.ndarray, alpha: float = DEFAULT_EWMA_ALPHA) -> np.ndarray:
    """
    Exponentially weighted moving average of each channel.

    Args:
        x: Window, shape (n_chans, n_time_steps)
        alpha: Smoothing factor in (0, 1]; larger values track faster

    Returns:
        Final running average of each channel, shape (n_chans,)
    """
    x = np.asarray(x, dtype=np.float64)
    return _ewm_mean(x, alpha)[..., -1]


def ewma_standardize(
    x: np.ndarray,
    alpha: float = DEFAULT_EWMA_ALPHA,
    epsilon: float = DEFAULT_EWMA_EPSILON,
    init_block_size: Optional[int] = None
) -> np.ndarray:
    """
    Standardize each channel with running EWMA mean and variance.

    Args:
        x: Window, shape (n_chans, n_time_steps)
        alpha: Smoothing factor, braindecode uses 0.001
        epsilon: Added to the variance before the square root so near-flat
            channels do not divide by zero, braindecode uses 1e-4
        init_block_size: If given, the first ``init_block_size`` samples are
            standardized with their own closed-form mean and variance
            instead of the still-settling running estimates

    Returns:
        Standardized window, same shape as ``x``
    """
    x = np.asarray(x, dtype=np.float64)
    running_mean = _ewm_mean(x, alpha)
    demeaned = x - running_mean
    running_var = _ewm_mean(demeaned * demeaned, alpha)
    standardized = demeaned / np.sqrt(running_var + epsilon)

    if init_block_size:
        if init_block_size > x.shape[-1]:
            logger.warning(
                f"init_block_size ({init_block_size}) exceeds window length "
                f"({x.shape[-1]}), the whole window uses closed-form statistics"
            )
        block = x[..., :init_block_size]
        block_mean = np.mean(block, axis=-1, keepdims=True)
        block_var = np.var(block, axis=-1, keepdims=True)
        standardized[..., :init_block_size] = (
            (block - block_mean) / np.sqrt(block_var + epsilon)
        )

    return standardized
