"""
EEG Window Acquisition
======================

Sources of fixed-length multichannel EEG windows feeding the conditioning
pipeline and the classifiers.

Architecture:
    WindowSource (abstract)
        └── SimulatedWindowSource  (synthetic EEG for demos and tests)

Hardware drivers are outside this library; an application wraps its device
SDK in a ``WindowSource`` subclass and hands windows to the processing
functions.

Signal Model of the simulator (microvolts):
    - Pink (1/f) background noise
    - Alpha rhythm (10 Hz), stronger towards posterior channels
    - Optional SSVEP component at the attended flicker frequency plus its
      second harmonic
    - Optional power-line interference
    - White sensor noise

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, Optional

import numpy as np

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class EEGWindow:
    """
    A window of multichannel EEG samples.

    Attributes:
        data: Samples, shape (n_chans, n_time_steps), channel-major, microvolts
        sampling_rate: Sampling frequency in Hz
        timestamp: Time of the first sample in seconds (Unix time by default,
            simulated sources count from zero)
    """
    data: np.ndarray
    sampling_rate: float
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Validate window geometry."""
        if self.data.ndim != 2:
            raise ValueError(f"Window data must be 2D, got shape {self.data.shape}")
        if self.sampling_rate <= 0:
            raise ValueError(f"sampling_rate must be positive, got {self.sampling_rate}")

    @property
    def n_chans(self) -> int:
        return self.data.shape[0]

    @property
    def n_time_steps(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        """Window length in seconds."""
        return self.n_time_steps / self.sampling_rate


# =============================================================================
# Abstract Source
# =============================================================================

class WindowSource(ABC):
    """
    Abstract source of EEG windows.

    Subclasses implement ``read_window``; iteration yields windows until the
    source is exhausted (``read_window`` returns None).
    """

    def __init__(
        self,
        n_chans: int,
        sampling_rate: float,
        window_seconds: float
    ) -> None:
        if n_chans < 1:
            raise ValueError(f"n_chans must be >= 1, got {n_chans}")
        if sampling_rate <= 0:
            raise ValueError(f"sampling_rate must be positive, got {sampling_rate}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self.n_chans = n_chans
        self.sampling_rate = float(sampling_rate)
        self.window_seconds = float(window_seconds)
        self.n_time_steps = int(round(window_seconds * sampling_rate))

    @abstractmethod
    def read_window(self) -> Optional[EEGWindow]:
        """Return the next window, or None when no more data is available."""

    def __iter__(self) -> Iterator[EEGWindow]:
        while True:
            window = self.read_window()
            if window is None:
                return
            yield window


# =============================================================================
# Simulated Source
# =============================================================================

class SimulatedWindowSource(WindowSource):
    """
    Deterministic synthetic EEG for testing and demos.

    The same seed always produces the same sequence of windows; successive
    windows continue the rhythms without phase jumps.

    Example:
        >>> source = SimulatedWindowSource(n_chans=8, ssvep_frequency=10.0, seed=1)
        >>> window = source.read_window()
        >>> window.data.shape
        (8, 500)
    """

    def __init__(
        self,
        n_chans: int = 8,
        sampling_rate: float = 250.0,
        window_seconds: float = 2.0,
        noise_level: float = 5.0,
        alpha_amplitude: float = 5.0,
        ssvep_frequency: Optional[float] = None,
        ssvep_amplitude: float = 15.0,
        line_frequency: Optional[float] = None,
        line_amplitude: float = 30.0,
        n_windows: Optional[int] = None,
        seed: Optional[int] = None
    ) -> None:
        """
        Initialize simulated source.

        Args:
            n_chans: Number of channels
            sampling_rate: Sampling frequency in Hz
            window_seconds: Length of each window in seconds
            noise_level: Standard deviation of the white noise in µV
            alpha_amplitude: Peak amplitude of the alpha rhythm in µV
            ssvep_frequency: Attended flicker frequency in Hz, None for none
            ssvep_amplitude: Peak amplitude of the SSVEP fundamental in µV
            line_frequency: Power-line frequency in Hz, None for a clean room
            line_amplitude: Peak amplitude of line interference in µV
            n_windows: Number of windows before the source is exhausted,
                None for unlimited
            seed: Random seed
        """
        super().__init__(n_chans, sampling_rate, window_seconds)
        self.noise_level = noise_level
        self.alpha_amplitude = alpha_amplitude
        self.ssvep_frequency = ssvep_frequency
        self.ssvep_amplitude = ssvep_amplitude
        self.line_frequency = line_frequency
        self.line_amplitude = line_amplitude
        self.n_windows = n_windows

        self._rng = np.random.default_rng(seed)
        self._elapsed = 0.0
        self._windows_read = 0

        logger.info(
            f"Initialized SimulatedWindowSource: {n_chans} channels @ "
            f"{sampling_rate} Hz, {self.n_time_steps} samples per window"
        )

    def read_window(self) -> Optional[EEGWindow]:
        """
        Generate the next synthetic window.

        Returns:
            EEGWindow, or None once ``n_windows`` have been produced
        """
        if self.n_windows is not None and self._windows_read >= self.n_windows:
            return None

        t = np.arange(self.n_time_steps) / self.sampling_rate + self._elapsed
        start = self._elapsed
        self._elapsed += self.n_time_steps / self.sampling_rate
        self._windows_read += 1

        data = self._generate_pink_noise(self.n_chans, self.n_time_steps)
        data += self._rng.standard_normal(data.shape) * self.noise_level

        # Alpha stronger towards the posterior (higher index) channels
        posterior_weight = 0.5 + 0.5 * np.arange(self.n_chans) / max(1, self.n_chans - 1)
        data += np.outer(posterior_weight, self.alpha_amplitude * np.sin(2 * np.pi * 10.0 * t))

        if self.ssvep_frequency is not None:
            data += posterior_weight[:, np.newaxis] * self._ssvep_component(t)

        if self.line_frequency is not None:
            data += self.line_amplitude * np.sin(2 * np.pi * self.line_frequency * t)

        return EEGWindow(data=data, sampling_rate=self.sampling_rate, timestamp=start)

    def _ssvep_component(self, t: np.ndarray) -> np.ndarray:
        """Fundamental and second harmonic of the attended flicker."""
        nyquist = self.sampling_rate / 2.0
        component = self.ssvep_amplitude * np.sin(2 * np.pi * self.ssvep_frequency * t)
        if 2 * self.ssvep_frequency < nyquist:
            component += 0.5 * self.ssvep_amplitude * np.sin(
                2 * np.pi * 2 * self.ssvep_frequency * t + np.pi / 4
            )
        return component

    def _generate_pink_noise(self, n_channels: int, n_samples: int) -> np.ndarray:
        """
        Generate pink (1/f) noise.

        Pink noise has equal energy per octave, which is more realistic for
        biological signals than white noise.

        Returns:
            Pink noise array of shape (n_channels, n_samples)
        """
        white = self._rng.standard_normal((n_channels, n_samples))

        freqs = np.fft.rfftfreq(n_samples)
        freqs[0] = 1
        spectrum = 1 / np.sqrt(freqs)
        spectrum[0] = 0  # no DC component

        pink = np.fft.irfft(np.fft.rfft(white, axis=-1) * spectrum, n=n_samples, axis=-1)
        return pink * self.noise_level * 0.5

    def reset(self) -> None:
        """Restart the simulated clock and window count."""
        self._elapsed = 0.0
        self._windows_read = 0
