"""
SSVEP Classifier
================

Decides which of a set of flicker frequencies a user is attending to from a
multichannel EEG window, using canonical correlation analysis (CCA) against
sinusoidal references.

Mathematical Background:
    For each candidate frequency f, build the reference matrix

        Y_f = [sin(2 pi h f t), cos(2 pi h f t)]  for h = 1..n_harmonics

    keeping only harmonics below Nyquist. Each harmonic h is matched on its
    own: rho_{f,h} is the largest canonical correlation between the centred
    EEG X (samples x channels) and the sine/cosine pair at h * f,

        rho = max_{a, b} corr(X a, Y b) = sigma_max(U_x^T U_y)

    where U_x, U_y are orthonormal bases of the column spaces of X and Y.
    The score of f is the weighted mean over harmonics,

        score_f = sum_h w_h rho_{f,h} / sum_h w_h,   w_h = h^(-1.25) + 0.25

    so the fundamental counts most and a subharmonic candidate (6 Hz for a
    12 Hz response) scores below the candidate whose fundamental carries
    the response. Weights follow the filter-bank CCA of Chen et al. (2015).

Decision:
    The best candidate is the one with the highest score. Ties go to the
    candidate listed first, so results are deterministic.

The classifier is stateless: nothing is remembered between calls and
concurrent calls are safe.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy import linalg

logger = logging.getLogger(__name__)

# Relative singular value below which a direction counts as rank-deficient
_RANK_TOLERANCE = 1e-10

# Harmonic weights h^(-1.25) + 0.25
HARMONIC_WEIGHT_EXPONENT = -1.25
HARMONIC_WEIGHT_OFFSET = 0.25


@dataclass(frozen=True)
class SSVEPResult:
    """
    Outcome of one SSVEP classification.

    Attributes:
        index: Position of the best-matching frequency in the candidate list
        score: Canonical correlation of that frequency, in [0, 1]
        scores: Score of every candidate, in candidate order
    """
    index: int
    score: float
    scores: np.ndarray


@dataclass
class SSVEPConfig:
    """
    Configuration for SSVEP classification.

    Attributes:
        n_harmonics: Harmonics (including the fundamental) per reference
    """
    n_harmonics: int = 2

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.n_harmonics < 1:
            raise ValueError(f"n_harmonics must be >= 1, got {self.n_harmonics}")


def reference_signals(
    freq: float,
    n_time_steps: int,
    sampling_rate: float,
    n_harmonics: int = 2
) -> np.ndarray:
    """
    Sine/cosine references for one stimulation frequency.

    Returns:
        Array of shape (n_time_steps, 2 * n_valid_harmonics); harmonics at or
        above Nyquist are left out
    """
    t = np.arange(n_time_steps) / sampling_rate
    nyquist = sampling_rate / 2.0
    columns = []
    for h in range(1, n_harmonics + 1):
        f = h * freq
        if f <= 0 or f >= nyquist:
            continue
        columns.append(np.sin(2 * np.pi * f * t))
        columns.append(np.cos(2 * np.pi * f * t))
    if not columns:
        return np.empty((n_time_steps, 0))
    return np.column_stack(columns)


def harmonic_weights(n_harmonics: int) -> np.ndarray:
    """Weight of each harmonic in a candidate's score, fundamental first."""
    h = np.arange(1, n_harmonics + 1, dtype=float)
    return np.power(h, HARMONIC_WEIGHT_EXPONENT) + HARMONIC_WEIGHT_OFFSET


def _orthonormal_basis(a: np.ndarray) -> np.ndarray:
    """Orthonormal basis of the column space of a centred matrix."""
    a = a - a.mean(axis=0, keepdims=True)
    if a.size == 0:
        return np.empty((a.shape[0], 0))
    u, s, _ = linalg.svd(a, full_matrices=False)
    if s.size == 0 or s[0] <= 0:
        return np.empty((a.shape[0], 0))
    return u[:, s > _RANK_TOLERANCE * s[0]]


def _basis_correlation(ux: np.ndarray, uy: np.ndarray) -> float:
    if ux.shape[1] == 0 or uy.shape[1] == 0:
        return 0.0
    sigma = linalg.svdvals(ux.T @ uy)
    return float(np.clip(sigma[0], 0.0, 1.0))


def canonical_correlation(x: np.ndarray, y: np.ndarray) -> float:
    """
    Largest canonical correlation between two sets of column variables.

    Args:
        x: Array of shape (n_samples, n_x)
        y: Array of shape (n_samples, n_y)

    Returns:
        Correlation in [0, 1]; 0 when either side has no variance
    """
    return _basis_correlation(_orthonormal_basis(x), _orthonormal_basis(y))


def _candidate_score(
    ux: np.ndarray,
    freq: float,
    sampling_rate: float,
    weights: np.ndarray
) -> float:
    """Weighted mean of per-harmonic correlations; 0 with no harmonic below Nyquist."""
    n_time_steps = ux.shape[0]
    total = 0.0
    weight_sum = 0.0
    for h, weight in enumerate(weights, start=1):
        y = reference_signals(h * freq, n_time_steps, sampling_rate, n_harmonics=1)
        if y.shape[1] == 0:
            continue
        total += weight * _basis_correlation(ux, _orthonormal_basis(y))
        weight_sum += weight
    return total / weight_sum if weight_sum > 0 else 0.0


def ssvep_classify(
    x: np.ndarray,
    sampling_rate: float,
    freqs: Sequence[float],
    n_harmonics: int = 2
) -> SSVEPResult:
    """
    Classify a window into one of the candidate stimulation frequencies.

    Args:
        x: Window, shape (n_chans, n_time_steps)
        sampling_rate: Sampling frequency in Hz
        freqs: Candidate frequencies in Hz, at least one
        n_harmonics: Harmonics per candidate, including the fundamental

    Returns:
        SSVEPResult with the best index, its score and all scores

    Raises:
        ValueError: If ``freqs`` is empty
    """
    if len(freqs) == 0:
        raise ValueError("At least one candidate frequency is required")

    x = np.atleast_2d(np.asarray(x, dtype=np.float64))
    ux = _orthonormal_basis(x.T)
    weights = harmonic_weights(n_harmonics)

    scores = np.array([
        _candidate_score(ux, f, sampling_rate, weights) for f in freqs
    ])
    # argmax returns the first maximum, so the lowest index wins ties
    index = int(np.argmax(scores))

    logger.debug(
        f"SSVEP decision: {freqs[index]} Hz (index {index}), score={scores[index]:.3f}"
    )
    return SSVEPResult(index=index, score=float(scores[index]), scores=scores)


class SSVEPClassifier:
    """
    Convenience wrapper binding an SSVEP configuration.

    Example:
        >>> classifier = SSVEPClassifier(SSVEPConfig(n_harmonics=3))
        >>> result = classifier.classify(window, 250.0, [8.0, 10.0, 12.0])
        >>> target = result.index
    """

    def __init__(self, config: Optional[SSVEPConfig] = None) -> None:
        self.config = config or SSVEPConfig()

    def classify(
        self,
        x: np.ndarray,
        sampling_rate: float,
        freqs: Sequence[float]
    ) -> SSVEPResult:
        """Classify ``x`` against ``freqs``; see ``ssvep_classify``."""
        return ssvep_classify(x, sampling_rate, freqs, self.config.n_harmonics)
