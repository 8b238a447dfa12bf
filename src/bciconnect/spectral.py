"""
Spectral Analysis
=================

Real-input FFT of multichannel windows, reporting magnitude and phase for the
non-negative frequency bins, plus Welch power estimates used for band power
and line-noise measurements.

Bin Layout:
    Each channel yields ``fft_bin_count(T) = ((T - (T mod 2)) / 2) + 1``
    bins. Bin k sits at frequency k * fs / T. For even T the last bin is the
    Nyquist frequency. Output arrays are channel-major with this many bins
    per channel, and callers allocating buffers must use the same formula.

Scaling:
    Magnitudes are the raw |X[k]| of the unnormalized DFT
    X[k] = sum_n x[n] exp(-2j pi k n / T); phases are angle(X[k]) in radians.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from scipy import signal
from scipy.integrate import trapezoid


def fft_bin_count(n_time_steps: int) -> int:
    """Number of non-negative frequency bins per channel."""
    return (n_time_steps - (n_time_steps % 2)) // 2 + 1


def fft_frequencies(n_time_steps: int, sampling_freq: float) -> np.ndarray:
    """Center frequency in Hz of every output bin."""
    return np.arange(fft_bin_count(n_time_steps)) * sampling_freq / n_time_steps


def fft(
    x: np.ndarray,
    sampling_freq: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    FFT magnitudes and phases of each channel.

    Args:
        x: Window, shape (n_chans, n_time_steps)
        sampling_freq: Sampling frequency in Hz, used only for reporting
            bin frequencies through ``fft_frequencies``

    Returns:
        Tuple of (magnitudes, phases), each of shape
        (n_chans, fft_bin_count(n_time_steps)); phases in radians
    """
    x = np.asarray(x, dtype=np.float64)
    n_bins = fft_bin_count(x.shape[-1])
    spectrum = np.fft.rfft(x, axis=-1)[..., :n_bins]
    return np.abs(spectrum), np.angle(spectrum)


def power_spectral_density(
    x: np.ndarray,
    sampling_freq: float,
    nperseg: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Welch power spectral density of each channel.

    Args:
        x: Window, shape (n_chans, n_time_steps)
        sampling_freq: Sampling frequency in Hz
        nperseg: Segment length; defaults to one second of data, capped at
            the window length

    Returns:
        Tuple of (frequencies_hz, psd) with psd shape (n_chans, n_freqs)
    """
    x = np.asarray(x, dtype=np.float64)
    n_time_steps = x.shape[-1]
    if nperseg is None:
        nperseg = int(sampling_freq)
    nperseg = max(1, min(nperseg, n_time_steps))
    return signal.welch(x, fs=sampling_freq, nperseg=nperseg, axis=-1)


def band_power(
    x: np.ndarray,
    sampling_freq: float,
    band: Tuple[float, float],
    nperseg: Optional[int] = None
) -> np.ndarray:
    """
    Absolute power of each channel within a frequency band.

    P_band = integral of the Welch PSD over [low, high], by the trapezoid rule.

    Returns:
        Band power per channel, shape (n_chans,)
    """
    freqs, psd = power_spectral_density(x, sampling_freq, nperseg)
    low, high = band
    mask = (freqs >= low) & (freqs <= high)
    if np.count_nonzero(mask) < 2:
        if not np.any(mask):
            return np.zeros(psd.shape[:-1])
        resolution = freqs[1] - freqs[0] if len(freqs) > 1 else sampling_freq
        return psd[..., mask].sum(axis=-1) * resolution
    return trapezoid(psd[..., mask], freqs[mask], axis=-1)
