"""
P300 Classifier
===============

Estimates the probability that a stimulus-locked EEG epoch contains a P300
event-related potential, using one of a small fixed set of pretrained models
(the model zoo). Models differ in electrode montage, number of stimulus
repetitions and inter-stimulus timing; no parameters are fitted at runtime.

Model Zoo:
    0 - 8 electrode Standard Kit setup, 3 repetitions
    1 - 8 electrode Standard Kit setup, 1 repetition
    2 - 8 electrode Standard Kit setup, 3 repetitions, "fast": 215 ms between
        the start of subsequent stimuli
    3 - O1 and O2 electrodes only, 3 repetitions, "fast" (215 ms)

Epoch Layout:
    n_channels x n_repetitions x 176 samples, channel-major by repetition:
    [ch0_rep0, ch0_rep1, ..., ch1_rep0, ch1_rep1, ...], each block holding
    the 176 samples that follow one stimulus onset. The shape is fixed by
    the model and is a caller precondition.

Scoring:
    1. Average the repetitions of each channel
    2. Remove each channel's mean and decimate by block averaging
    3. Cosine similarity s between the epoch and the model's
       spatio-temporal template W = channel_weights x waveform
    4. p = sigmoid(slope * s + intercept)

Lifecycle:
    INITIALIZED --predict()*--> FREED
    Construction either returns a fully loaded model or raises; a freed
    model rejects further use.

Thread Safety:
    A classifier is single-owner state with no internal locking.
    Synchronize externally if one instance is shared between threads.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import yaml
from scipy.special import expit

from .errors import ErrorCode, ModelLoadError, ModelNotAllowedError, error_code_for

logger = logging.getLogger(__name__)

# Samples following each stimulus onset, independent of the model
SAMPLES_PER_REPETITION = 176


# =============================================================================
# Model Zoo
# =============================================================================

@dataclass(frozen=True)
class P300ModelDescriptor:
    """
    Entry of the P300 model zoo.

    Attributes:
        model_number: Identifier used to select the model
        n_channels: Required number of EEG channels
        n_repetitions: Stimulus repetitions averaged per epoch
        stimulus_interval_ms: Time between starts of subsequent stimuli,
            None for the standard (non-fast) paradigm
        description: Human-readable summary
        resource: Coefficient file name inside ``bciconnect.models``
    """
    model_number: int
    n_channels: int
    n_repetitions: int
    stimulus_interval_ms: Optional[float]
    description: str
    resource: str

    @property
    def epoch_shape(self) -> Tuple[int, int, int]:
        """(channels, repetitions, samples per repetition) of a valid epoch."""
        return (self.n_channels, self.n_repetitions, SAMPLES_PER_REPETITION)

    @property
    def epoch_size(self) -> int:
        """Total number of samples in a valid epoch."""
        return self.n_channels * self.n_repetitions * SAMPLES_PER_REPETITION


P300_MODEL_ZOO: Tuple[P300ModelDescriptor, ...] = (
    P300ModelDescriptor(0, 8, 3, None, "8 electrode Standard Kit, 3 repetitions", "p300_model_0.yaml"),
    P300ModelDescriptor(1, 8, 1, None, "8 electrode Standard Kit, 1 repetition", "p300_model_1.yaml"),
    P300ModelDescriptor(2, 8, 3, 215.0, "8 electrode Standard Kit, 3 repetitions, fast", "p300_model_2.yaml"),
    P300ModelDescriptor(3, 2, 3, 215.0, "O1 and O2 only, 3 repetitions, fast", "p300_model_3.yaml"),
)


def get_model_descriptor(model_number: int) -> P300ModelDescriptor:
    """
    Look up a model zoo entry.

    Raises:
        ModelNotAllowedError: If the number is not part of the zoo
    """
    if isinstance(model_number, bool) or not isinstance(model_number, (int, np.integer)):
        raise ModelNotAllowedError(f"Model number must be an integer, got {model_number!r}")
    if not 0 <= model_number < len(P300_MODEL_ZOO):
        raise ModelNotAllowedError(
            f"Model number {model_number} not allowed, "
            f"choose one of 0-{len(P300_MODEL_ZOO) - 1}"
        )
    return P300_MODEL_ZOO[int(model_number)]


# =============================================================================
# Coefficients
# =============================================================================

@dataclass(frozen=True)
class P300Coefficients:
    """Pretrained parameters of one model, expanded for scoring."""
    decimation: int
    weights: np.ndarray   # (n_channels, n_decimated), unit Frobenius norm
    slope: float
    intercept: float


def _template_waveform(
    components: Any,
    sampling_rate: float,
    decimation: int
) -> np.ndarray:
    """Sum of Gaussian components evaluated at decimated sample centres."""
    n_points = SAMPLES_PER_REPETITION // decimation
    t_ms = (np.arange(n_points) * decimation + (decimation - 1) / 2.0) / sampling_rate * 1000.0
    waveform = np.zeros(n_points)
    for component in components:
        latency = float(component["latency_ms"])
        width = float(component["width_ms"])
        if width <= 0:
            raise ValueError(f"Template component width must be positive, got {width}")
        waveform += float(component["amplitude"]) * np.exp(-0.5 * ((t_ms - latency) / width) ** 2)
    return waveform - waveform.mean()


def _parse_coefficients(data: Dict[str, Any], descriptor: P300ModelDescriptor) -> P300Coefficients:
    """Validate a coefficient document against its zoo entry and expand it."""
    if int(data["model_number"]) != descriptor.model_number:
        raise ValueError(
            f"Resource describes model {data['model_number']}, "
            f"expected {descriptor.model_number}"
        )
    if int(data["n_repetitions"]) != descriptor.n_repetitions:
        raise ValueError(
            f"Resource expects {data['n_repetitions']} repetitions, "
            f"model zoo says {descriptor.n_repetitions}"
        )
    if data.get("stimulus_interval_ms") != descriptor.stimulus_interval_ms:
        raise ValueError(
            f"Resource expects a {data.get('stimulus_interval_ms')} ms stimulus interval, "
            f"model zoo says {descriptor.stimulus_interval_ms}"
        )

    channel_weights = np.asarray(data["channel_weights"], dtype=np.float64)
    if channel_weights.shape != (descriptor.n_channels,):
        raise ValueError(
            f"Expected {descriptor.n_channels} channel weights, got {channel_weights.size}"
        )
    if len(data["channels"]) != descriptor.n_channels:
        raise ValueError(
            f"Expected {descriptor.n_channels} channel names, got {len(data['channels'])}"
        )

    decimation = int(data["decimation"])
    if decimation < 1 or SAMPLES_PER_REPETITION % decimation != 0:
        raise ValueError(f"Decimation {decimation} must divide {SAMPLES_PER_REPETITION}")

    waveform = _template_waveform(data["template"], float(data["sampling_rate"]), decimation)
    weights = np.outer(channel_weights, waveform)
    norm = np.linalg.norm(weights)
    if not np.isfinite(norm) or norm == 0:
        raise ValueError("Model template is degenerate")

    return P300Coefficients(
        decimation=decimation,
        weights=weights / norm,
        slope=float(data["slope"]),
        intercept=float(data["intercept"]),
    )


def load_coefficients(
    descriptor: P300ModelDescriptor,
    model_dir: Optional[Union[str, Path]] = None
) -> P300Coefficients:
    """
    Read and validate the coefficients of a zoo entry.

    Args:
        descriptor: Model zoo entry
        model_dir: Directory holding coefficient files; defaults to the
            resources packaged with the library

    Raises:
        ModelLoadError: If the file is missing, unreadable, malformed or
            inconsistent with the zoo entry
    """
    try:
        if model_dir is None:
            text = resources.files("bciconnect.models").joinpath(descriptor.resource).read_text()
        else:
            text = (Path(model_dir) / descriptor.resource).read_text()
        data = yaml.safe_load(text)
        if not isinstance(data, dict):
            raise ValueError("Coefficient document must be a mapping")
        return _parse_coefficients(data, descriptor)
    except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        raise ModelLoadError(
            f"Failed to load P300 model {descriptor.model_number} "
            f"({descriptor.resource}): {e}"
        ) from e


# =============================================================================
# Classifier
# =============================================================================

class P300State(Enum):
    """Classifier lifecycle states."""
    INITIALIZED = auto()
    FREED = auto()


class P300Classifier:
    """
    P300 presence classifier bound to one model zoo entry.

    Example:
        >>> with P300Classifier(model_number=0) as clf:
        ...     p = clf.predict(epoch)   # epoch shape (8, 3, 176)
    """

    def __init__(
        self,
        model_number: int,
        model_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """
        Select a model from the zoo and load its coefficients.

        Args:
            model_number: Model zoo index (0-3)
            model_dir: Optional directory overriding the packaged resources

        Raises:
            ModelNotAllowedError: Unknown model number
            ModelLoadError: Coefficients could not be loaded
        """
        self.descriptor = get_model_descriptor(model_number)
        self._coefficients: Optional[P300Coefficients] = load_coefficients(
            self.descriptor, model_dir
        )
        self._state = P300State.INITIALIZED

        logger.info(
            f"Initialized P300 model {self.descriptor.model_number}: "
            f"{self.descriptor.description}"
        )

    @property
    def state(self) -> P300State:
        """Current lifecycle state."""
        return self._state

    @property
    def model_number(self) -> int:
        return self.descriptor.model_number

    @property
    def epoch_shape(self) -> Tuple[int, int, int]:
        """Shape an epoch passed to ``predict`` must have."""
        return self.descriptor.epoch_shape

    def _require_initialized(self, operation: str) -> P300Coefficients:
        if self._state is not P300State.INITIALIZED or self._coefficients is None:
            raise RuntimeError(f"Cannot {operation}: P300 model has been freed")
        return self._coefficients

    def predict(self, epoch: np.ndarray) -> float:
        """
        Probability that the epoch contains a P300 response.

        Args:
            epoch: Samples laid out channel-major by repetition, either flat
                or shaped (n_channels, n_repetitions, 176)

        Returns:
            Probability in [0, 1]

        Raises:
            RuntimeError: If the model has been freed
        """
        coef = self._require_initialized("predict")
        n_channels, n_repetitions, n_samples = self.descriptor.epoch_shape

        x = np.asarray(epoch, dtype=np.float64).reshape(n_channels, n_repetitions, n_samples)
        averaged = x.mean(axis=1)
        averaged -= averaged.mean(axis=-1, keepdims=True)
        decimated = averaged.reshape(n_channels, -1, coef.decimation).mean(axis=-1)

        norm = np.linalg.norm(decimated)
        if not np.isfinite(norm) or norm == 0:
            similarity = 0.0
        else:
            similarity = float(np.sum(coef.weights * decimated) / norm)

        probability = float(expit(coef.slope * similarity + coef.intercept))
        logger.debug(
            f"P300 model {self.model_number}: similarity={similarity:.3f}, "
            f"p={probability:.3f}"
        )
        return probability

    def free(self) -> None:
        """
        Release the model coefficients. Call exactly once.

        Raises:
            RuntimeError: If the model was already freed
        """
        self._require_initialized("free")
        self._coefficients = None
        self._state = P300State.FREED
        logger.info(f"Freed P300 model {self.model_number}")

    def __enter__(self) -> "P300Classifier":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._state is P300State.INITIALIZED:
            self.free()


def p300_init(
    model_number: int,
    model_dir: Optional[Union[str, Path]] = None
) -> Tuple[ErrorCode, Optional[P300Classifier]]:
    """
    Result-code surface for model initialization.

    Returns:
        Tuple of (error code, classifier). The classifier is None unless the
        code is ``ErrorCode.OK``.
    """
    try:
        return ErrorCode.OK, P300Classifier(model_number, model_dir)
    except Exception as e:
        logger.error(f"P300 model initialization failed: {e}")
        return error_code_for(e), None
