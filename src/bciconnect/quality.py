"""
Signal Quality Estimation
=========================

Grades every channel of an unprocessed 2-3 second window by amplitude
plausibility and power-line (50/60 Hz) contamination.

Grades (ordered by strictness):
    BAD            - failed the amplitude measures: flat line, electrode not
                     in contact, saturation or gross corruption
    AMPLITUDE_OK   - amplitude is plausible but line noise dominates
    GOOD           - amplitude is plausible and line noise is low

Grading is monotonic: a channel failing the amplitude check is BAD no matter
how clean its spectrum is.

Method:
    1. Detrend each channel so DC offset and slow drift of raw recordings do
       not count as amplitude.
    2. Amplitude: robust std (1.4826 * MAD) must lie within
       [min_robust_std_uv, max_robust_std_uv] and the peak-to-peak range must
       stay below max_peak_to_peak_uv. Median-based spread is barely moved by
       blinks or muscle bursts, so channels carrying ordinary artifacts pass.
    3. Line noise: Welch PSD power within +/- line_bandwidth_hz of each line
       frequency below Nyquist, relative to total power in the analysis
       band. The larger of the 50 Hz and 60 Hz ratios is compared with
       max_line_noise_ratio. With no line frequency below Nyquist the check
       cannot fail.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

import numpy as np

from . import statistics
from .detrend import detrend
from .spectral import power_spectral_density

logger = logging.getLogger(__name__)


class ChannelQuality(IntEnum):
    """Per-channel quality grade."""
    BAD = 0
    AMPLITUDE_OK = 1
    GOOD = 2


@dataclass
class QualityConfig:
    """
    Thresholds for channel quality grading.

    Values assume microvolt input and 2-3 s unprocessed windows.

    Attributes:
        min_robust_std_uv: Below this spread the channel is a flat line
        max_robust_std_uv: Above this spread the electrode is not fitted
        max_peak_to_peak_uv: Range ceiling catching saturation and pops
        line_frequencies: Power-line frequencies to check (Hz)
        line_bandwidth_hz: Half-width of the band counted as line noise
        max_line_noise_ratio: Largest acceptable share of line-noise power
        analysis_band: Band (Hz) used as total power reference; the upper
            edge is clipped to Nyquist
    """
    min_robust_std_uv: float = 0.5
    max_robust_std_uv: float = 150.0
    max_peak_to_peak_uv: float = 1000.0
    line_frequencies: Tuple[float, ...] = (50.0, 60.0)
    line_bandwidth_hz: float = 1.0
    max_line_noise_ratio: float = 0.25
    analysis_band: Tuple[float, float] = (1.0, 100.0)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.min_robust_std_uv >= self.max_robust_std_uv:
            raise ValueError(
                f"min_robust_std_uv ({self.min_robust_std_uv}) must be < "
                f"max_robust_std_uv ({self.max_robust_std_uv})"
            )
        if not 0 < self.max_line_noise_ratio <= 1:
            raise ValueError(
                f"max_line_noise_ratio must be in (0, 1], got {self.max_line_noise_ratio}"
            )
        if self.analysis_band[0] >= self.analysis_band[1]:
            raise ValueError(f"Invalid analysis band {self.analysis_band}")


class SignalQualityEstimator:
    """
    Per-channel EEG quality grading.

    Stateless apart from its configuration; one instance may serve
    concurrent callers working on separate windows.

    Example:
        >>> estimator = SignalQualityEstimator()
        >>> grades = estimator.estimate(raw_window, sampling_rate=250.0)
        >>> good_channels = np.flatnonzero(grades == ChannelQuality.GOOD)
    """

    def __init__(self, config: Optional[QualityConfig] = None) -> None:
        self.config = config or QualityConfig()

    def amplitude_ok(self, x: np.ndarray) -> np.ndarray:
        """
        Amplitude measures of each (detrended) channel.

        Returns:
            Boolean array, True where the channel passes
        """
        cfg = self.config
        finite = np.all(np.isfinite(x), axis=-1)
        clean = np.where(finite[..., np.newaxis], x, 0.0)

        spread = statistics.robust_std(clean)
        span = statistics.peak_to_peak(clean)

        return (
            finite
            & (spread >= cfg.min_robust_std_uv)
            & (spread <= cfg.max_robust_std_uv)
            & (span <= cfg.max_peak_to_peak_uv)
        )

    def line_noise_ratio(self, x: np.ndarray, sampling_rate: float) -> np.ndarray:
        """
        Share of analysis-band power found around the line frequencies.

        Returns:
            Ratio per channel in [0, 1]; zero when no line frequency is
            observable at this sampling rate
        """
        cfg = self.config
        n_chans = x.shape[0]
        nyquist = sampling_rate / 2.0
        line_freqs = [
            f for f in cfg.line_frequencies
            if f + cfg.line_bandwidth_hz < nyquist
        ]
        if not line_freqs:
            return np.zeros(n_chans)

        freqs, psd = power_spectral_density(x, sampling_rate)
        low, high = cfg.analysis_band
        in_band = (freqs >= low) & (freqs <= min(high, nyquist))
        total = psd[:, in_band].sum(axis=-1)

        ratio = np.zeros(n_chans)
        for line in line_freqs:
            near_line = np.abs(freqs - line) <= cfg.line_bandwidth_hz
            line_power = psd[:, near_line].sum(axis=-1)
            with np.errstate(divide="ignore", invalid="ignore"):
                share = np.where(total > 0, line_power / total, 0.0)
            ratio = np.maximum(ratio, np.clip(share, 0.0, 1.0))
        return ratio

    def estimate(self, x: np.ndarray, sampling_rate: float) -> np.ndarray:
        """
        Grade every channel of a window.

        Args:
            x: Unprocessed window, shape (n_chans, n_time_steps), microvolts
            sampling_rate: Sampling frequency in Hz

        Returns:
            Array of ChannelQuality values, shape (n_chans,)
        """
        x = np.atleast_2d(np.asarray(x, dtype=np.float64))
        finite = np.all(np.isfinite(x), axis=-1)
        residual = detrend(np.where(finite[:, np.newaxis], x, 0.0))
        residual[~finite] = np.nan

        quality = np.full(x.shape[0], ChannelQuality.BAD, dtype=np.int64)
        passed_amplitude = self.amplitude_ok(residual)
        if not np.any(passed_amplitude):
            logger.debug("No channel passed amplitude quality measures")
            return quality

        quality[passed_amplitude] = ChannelQuality.AMPLITUDE_OK
        ratio = self.line_noise_ratio(residual[passed_amplitude], sampling_rate)
        low_noise = ratio <= self.config.max_line_noise_ratio
        quality[np.flatnonzero(passed_amplitude)[low_noise]] = ChannelQuality.GOOD

        logger.debug(
            f"Signal quality: {np.count_nonzero(quality == ChannelQuality.GOOD)} good, "
            f"{np.count_nonzero(quality == ChannelQuality.AMPLITUDE_OK)} line-noisy, "
            f"{np.count_nonzero(quality == ChannelQuality.BAD)} bad"
        )
        return quality


def get_signal_quality(
    x: np.ndarray,
    sampling_rate: float,
    config: Optional[QualityConfig] = None
) -> np.ndarray:
    """Grade every channel of ``x`` with the default (or given) thresholds."""
    return SignalQualityEstimator(config).estimate(x, sampling_rate)
