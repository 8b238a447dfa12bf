#!/usr/bin/env python3
"""
BCI Connect Demo
================

Demonstrates the signal processing chain on simulated EEG:
1. Simulated window acquisition
2. Channel quality grading
3. Conditioning (detrend, filters, normalization)
4. Spectrum of the conditioned window
5. SSVEP frequency decision
6. P300 model zoo scoring

Usage:
    python scripts/demo.py
    python scripts/demo.py --windows 10         # Process 10 windows
    python scripts/demo.py --ssvep-freq 12      # Attend a 12 Hz flicker
    python scripts/demo.py --line-noise 50      # Add 50 Hz mains pickup

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

# Add src directory to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

import numpy as np

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def print_banner() -> None:
    """Print demo banner."""
    from bciconnect import __version__

    print("=" * 60)
    print(f"  BCI CONNECT DEMONSTRATION  (v{__version__})")
    print("=" * 60)


def run_window_demo(
    n_windows: int,
    ssvep_freq: float,
    candidates: List[float],
    line_noise: Optional[float],
    config_path: Optional[str]
) -> None:
    """
    Run simulated windows through quality, conditioning, FFT and SSVEP.

    Args:
        n_windows: Number of windows to process
        ssvep_freq: Simulated attended flicker frequency in Hz
        candidates: Stimulation frequencies to decide between
        line_noise: Mains frequency to inject, None for a clean recording
        config_path: Optional conditioning configuration YAML
    """
    from bciconnect import (
        ChannelQuality,
        ConditioningConfig,
        ConditioningPipeline,
        SimulatedWindowSource,
        SSVEPClassifier,
    )

    print("\n" + "=" * 60)
    print("SSVEP PIPELINE DEMO")
    print("=" * 60)

    source = SimulatedWindowSource(
        n_chans=8,
        sampling_rate=250.0,
        window_seconds=2.0,
        ssvep_frequency=ssvep_freq,
        line_frequency=line_noise,
        n_windows=n_windows,
        seed=0,
    )
    if config_path:
        config = ConditioningConfig.from_yaml(config_path)
    else:
        config = ConditioningConfig.for_ssvep(source.sampling_rate)
    pipeline = ConditioningPipeline(config)
    classifier = SSVEPClassifier()

    print("\nConfiguration:")
    print(f"   Channels: {source.n_chans}")
    print(f"   Sampling rate: {source.sampling_rate} Hz")
    print(f"   Window: {source.n_time_steps} samples")
    print(f"   Filters: {', '.join(s.filter_type.name for s in config.filters)}")
    print(f"   Normalization: {config.normalization.name}")
    print(f"   Candidates: {candidates} Hz (attending {ssvep_freq} Hz)")
    print("-" * 60)

    correct = 0
    latencies = []
    for i, window in enumerate(source):
        start = time.perf_counter()
        report = pipeline.diagnose(window.data)
        conditioned = pipeline.process(window.data)
        result = classifier.classify(conditioned, window.sampling_rate, candidates)
        latencies.append((time.perf_counter() - start) * 1000)

        good = int(np.count_nonzero(report.quality == ChannelQuality.GOOD))
        peak_bin = int(np.argmax(report.magnitudes.mean(axis=0)[1:])) + 1
        decided = candidates[result.index]
        correct += int(decided == ssvep_freq)

        print(
            f"   Window {i:3d} | good channels: {good}/{window.n_chans} | "
            f"spectral peak: {report.frequencies[peak_bin]:5.1f} Hz | "
            f"decision: {decided:5.1f} Hz (score={result.score:.2f})"
        )

    print("-" * 60)
    print("\nStatistics:")
    print(f"   Accuracy: {correct}/{n_windows}")
    print(f"   Mean latency: {np.mean(latencies):.1f} ms")
    print(f"   Max latency: {np.max(latencies):.1f} ms")


def run_p300_demo() -> None:
    """Score a synthetic target and non-target epoch with every zoo model."""
    from bciconnect import P300_MODEL_ZOO, ErrorCode, p300_init
    from bciconnect.p300 import SAMPLES_PER_REPETITION

    print("\n" + "=" * 60)
    print("P300 MODEL ZOO DEMO")
    print("=" * 60)

    rng = np.random.default_rng(1)
    t_ms = np.arange(SAMPLES_PER_REPETITION) / 250.0 * 1000.0
    wave = 8.0 * np.exp(-0.5 * ((t_ms - 340.0) / 70.0) ** 2)

    for descriptor in P300_MODEL_ZOO:
        code, clf = p300_init(descriptor.model_number)
        if code != ErrorCode.OK:
            print(f"   Model {descriptor.model_number}: failed ({code.name})")
            continue

        with clf:
            noise = 4.0 * rng.standard_normal(descriptor.epoch_shape)
            target = clf.predict(noise + wave)
            non_target = clf.predict(noise)

        print(
            f"   Model {descriptor.model_number} ({descriptor.description}) | "
            f"target p={target:.2f} | non-target p={non_target:.2f}"
        )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="BCI Connect Demonstration")
    parser.add_argument(
        "--windows",
        "-n",
        type=int,
        default=5,
        help="Number of simulated windows (default: 5)",
    )
    parser.add_argument(
        "--ssvep-freq",
        type=float,
        default=10.0,
        help="Attended flicker frequency in Hz (default: 10)",
    )
    parser.add_argument(
        "--candidates",
        type=float,
        nargs="+",
        default=[8.0, 10.0, 12.0, 15.0],
        help="Candidate stimulation frequencies in Hz",
    )
    parser.add_argument(
        "--line-noise",
        type=float,
        default=None,
        help="Inject power-line interference at this frequency (Hz)",
    )
    parser.add_argument(
        "--config", type=str, default=None, help="Conditioning configuration YAML"
    )
    parser.add_argument(
        "--ssvep-only", action="store_true", help="Run only the SSVEP demo"
    )
    parser.add_argument(
        "--p300-only", action="store_true", help="Run only the P300 demo"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    print_banner()
    try:
        if not args.p300_only:
            run_window_demo(
                args.windows, args.ssvep_freq, args.candidates,
                args.line_noise, args.config
            )
        if not args.ssvep_only:
            run_p300_demo()
    except KeyboardInterrupt:
        print("\nDemo interrupted by user")
    except Exception as e:
        logger.error(f"Demo error: {e}")
        raise


if __name__ == "__main__":
    main()
