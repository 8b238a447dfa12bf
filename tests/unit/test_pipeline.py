"""
Unit Tests for Conditioning Pipeline and Acquisition
====================================================

Tests for ConditioningConfig persistence and presets, ConditioningPipeline
processing and diagnostics, and the simulated window source.

Author: BCI Connect Team
License: MIT
"""

import numpy as np
import pytest

from bciconnect.acquisition import EEGWindow, SimulatedWindowSource, WindowSource
from bciconnect.filters import FilterSpec, FilterType
from bciconnect.pipeline import (
    ConditioningConfig,
    ConditioningPipeline,
    NormalizationType,
    default_filters,
)
from bciconnect.quality import ChannelQuality, QualityConfig
from bciconnect.spectral import fft_bin_count
from bciconnect.ssvep import ssvep_classify

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def source():
    """Simulated 8-channel source attending a 12 Hz flicker."""
    return SimulatedWindowSource(n_chans=8, ssvep_frequency=12.0, seed=7)


@pytest.fixture
def raw_window(source):
    """One 2-second raw window from the simulated source."""
    return source.read_window().data


# =============================================================================
# Configuration Tests
# =============================================================================


class TestConditioningConfig:
    """Tests for ConditioningConfig."""

    def test_default_values(self):
        """Default chain is a 1-40 Hz band-pass and a 50 Hz notch."""
        config = ConditioningConfig()
        assert config.sampling_rate == 250.0
        assert config.detrend
        assert config.normalization == NormalizationType.NONE
        assert [s.filter_type for s in config.filters] == [FilterType.BANDPASS, FilterType.NOTCH]
        assert config.filters[0].cutoff == (1.0, 40.0)
        assert config.filters[1].band_edges == (48.0, 52.0)
        assert isinstance(config.quality, QualityConfig)

    def test_notch_skipped_at_low_rate(self):
        """The line notch is dropped when it would reach Nyquist."""
        filters = default_filters(100.0)
        assert [s.filter_type for s in filters] == [FilterType.BANDPASS]

    def test_default_band_held_below_nyquist(self):
        """At 64 Hz the default band-pass stops short of Nyquist."""
        config = ConditioningConfig(sampling_rate=64.0)
        assert [s.filter_type for s in config.filters] == [FilterType.BANDPASS]
        low, high = config.filters[0].cutoff
        assert low == 1.0
        assert high == pytest.approx(0.45 * 64.0)
        assert high < 32.0

    def test_empty_filter_list_disables_filtering(self):
        """An explicit empty chain stays empty."""
        assert ConditioningConfig(filters=[]).filters == []

    def test_sampling_rate_mismatch(self):
        """Filters designed for another rate are rejected."""
        with pytest.raises(ValueError):
            ConditioningConfig(sampling_rate=250.0, filters=[FilterSpec.lowpass(500.0, 40.0)])

    def test_invalid_values(self):
        """Non-positive rate and out-of-range alpha are rejected."""
        with pytest.raises(ValueError):
            ConditioningConfig(sampling_rate=0.0)
        with pytest.raises(ValueError):
            ConditioningConfig(ewma_alpha=1.5)

    def test_presets(self):
        """P300 and SSVEP presets pick their band and normalization."""
        p300 = ConditioningConfig.for_p300()
        assert p300.filters[0].cutoff == (0.5, 20.0)
        assert p300.normalization == NormalizationType.DEMEAN

        ssvep = ConditioningConfig.for_ssvep(sampling_rate=500.0, line_frequency=60.0)
        assert ssvep.filters[0].cutoff == (5.0, 45.0)
        assert ssvep.filters[1].band_edges == (58.0, 62.0)
        assert ssvep.normalization == NormalizationType.STANDARDIZE

    def test_yaml_round_trip(self, temp_data_dir):
        """Saving and loading reproduces the configuration."""
        config = ConditioningConfig(
            sampling_rate=250.0,
            filters=[
                FilterSpec.highpass(250.0, 0.5),
                FilterSpec.notch(250.0, 60.0, 4.0),
            ],
            normalization=NormalizationType.EWMA,
            ewma_alpha=0.01,
            ewma_init_block_size=100,
            quality=QualityConfig(line_frequencies=(60.0,)),
        )
        path = temp_data_dir / "conditioning.yaml"
        config.to_yaml(path)
        assert ConditioningConfig.from_yaml(path) == config

    def test_from_yaml_hand_written(self, temp_data_dir):
        """Minimal hand-written files fill in the remaining defaults."""
        path = temp_data_dir / "conditioning.yaml"
        path.write_text(
            "sampling_rate: 500\n"
            "normalization: standardize\n"
            "filters:\n"
            "  - {type: lowpass, cutoff: 30}\n"
            "  - {type: bandpass, cutoff: [1, 40]}\n"
        )
        config = ConditioningConfig.from_yaml(path)
        assert config.sampling_rate == 500.0
        assert config.normalization == NormalizationType.STANDARDIZE
        assert config.filters[0] == FilterSpec.lowpass(500.0, 30)
        assert config.filters[1].cutoff == (1.0, 40.0)

    def test_from_yaml_without_filters_uses_defaults(self, temp_data_dir):
        """Omitting the chain selects the default filters."""
        path = temp_data_dir / "conditioning.yaml"
        path.write_text("detrend: false\n")
        config = ConditioningConfig.from_yaml(path)
        assert not config.detrend
        assert config.filters == default_filters(250.0)


# =============================================================================
# Pipeline Tests
# =============================================================================


class TestConditioningPipeline:
    """Tests for ConditioningPipeline."""

    def test_input_untouched(self, raw_window):
        """Processing works on a copy."""
        original = raw_window.copy()
        out = ConditioningPipeline().process(raw_window)
        np.testing.assert_array_equal(raw_window, original)
        assert out.shape == raw_window.shape
        assert out.dtype == np.float64

    def test_integer_input(self):
        """Integer ADC counts are converted to floating point."""
        x = np.random.default_rng(3).integers(-100, 100, size=(2, 500))
        out = ConditioningPipeline().process(x)
        assert out.dtype == np.float64
        assert np.all(np.isfinite(out))

    def test_rejects_non_2d(self):
        """Only (n_chans, n_time_steps) windows are processed."""
        with pytest.raises(ValueError):
            ConditioningPipeline().process(np.zeros(100))

    def test_removes_offset_and_line_noise(self, sampling_rate):
        """Default chain strips DC, drift and 50 Hz from a 10 Hz rhythm."""
        t = np.arange(1000) / sampling_rate
        alpha = 10.0 * np.sin(2 * np.pi * 10 * t)
        x = (alpha + 300.0 + 20.0 * t + 30.0 * np.sin(2 * np.pi * 50 * t)).reshape(1, -1)
        out = ConditioningPipeline().process(x)
        np.testing.assert_allclose(out[0, 250:750], alpha[250:750], atol=0.5)

    @pytest.mark.parametrize("normalization", [
        NormalizationType.DEMEAN,
        NormalizationType.STANDARDIZE,
        NormalizationType.EWMA,
    ])
    def test_normalization_stage(self, raw_window, normalization):
        """Each normalization yields finite output of the input shape."""
        config = ConditioningConfig(normalization=normalization)
        out = ConditioningPipeline(config).process(raw_window)
        assert out.shape == raw_window.shape
        assert np.all(np.isfinite(out))
        if normalization == NormalizationType.STANDARDIZE:
            np.testing.assert_allclose(out.std(axis=-1), 1.0, rtol=1e-8)
        if normalization == NormalizationType.DEMEAN:
            np.testing.assert_allclose(out.mean(axis=-1), 0.0, atol=1e-8)

    def test_diagnose(self, raw_window):
        """Diagnostics report per-channel quality and the spectrum."""
        report = ConditioningPipeline().diagnose(raw_window)
        n_chans, n_time_steps = raw_window.shape
        assert report.quality.shape == (n_chans,)
        assert report.magnitudes.shape == (n_chans, fft_bin_count(n_time_steps))
        assert report.phases.shape == report.magnitudes.shape
        assert report.frequencies.shape == (fft_bin_count(n_time_steps),)

    def test_diagnose_flags_line_noise_before_notch(self):
        """Quality is graded on the raw window, so the notch cannot hide mains."""
        source = SimulatedWindowSource(n_chans=4, line_frequency=50.0, seed=2)
        window = source.read_window()
        report = ConditioningPipeline().diagnose(window.data)
        assert np.all(report.quality == ChannelQuality.AMPLITUDE_OK)

    @pytest.mark.integration
    def test_conditioned_ssvep_decision(self, raw_window, sampling_rate):
        """SSVEP preset followed by CCA recovers the attended frequency."""
        pipeline = ConditioningPipeline(ConditioningConfig.for_ssvep(sampling_rate))
        result = ssvep_classify(pipeline.process(raw_window), sampling_rate, [8.0, 10.0, 12.0])
        assert result.index == 2


# =============================================================================
# Acquisition Tests
# =============================================================================


class TestEEGWindow:
    """Tests for EEGWindow data class."""

    def test_properties(self):
        """Geometry is derived from the data array."""
        window = EEGWindow(data=np.zeros((4, 500)), sampling_rate=250.0, timestamp=0.0)
        assert window.n_chans == 4
        assert window.n_time_steps == 500
        assert window.duration == pytest.approx(2.0)

    def test_rejects_flat_data(self):
        """Data must already be a 2D window."""
        with pytest.raises(ValueError):
            EEGWindow(data=np.zeros(500), sampling_rate=250.0)


class TestSimulatedWindowSource:
    """Tests for SimulatedWindowSource."""

    def test_window_shape(self, source):
        """Windows have the configured geometry."""
        window = source.read_window()
        assert window.data.shape == (8, 500)
        assert window.sampling_rate == 250.0

    def test_reproducible(self):
        """The same seed produces the same windows."""
        a = SimulatedWindowSource(seed=11).read_window().data
        b = SimulatedWindowSource(seed=11).read_window().data
        np.testing.assert_array_equal(a, b)

    def test_timestamps_continue(self, source):
        """Successive windows follow each other in time."""
        first, second = source.read_window(), source.read_window()
        assert first.timestamp == 0.0
        assert second.timestamp == pytest.approx(2.0)

    def test_exhaustion_and_iteration(self):
        """A bounded source yields exactly n_windows windows."""
        source = SimulatedWindowSource(n_windows=3, seed=0)
        assert len(list(source)) == 3
        assert source.read_window() is None
        source.reset()
        assert source.read_window() is not None

    def test_clean_simulation_grades_good(self):
        """Simulated EEG without mains interference passes quality checks."""
        window = SimulatedWindowSource(n_chans=4, seed=5).read_window()
        report = ConditioningPipeline().diagnose(window.data)
        assert np.all(report.quality == ChannelQuality.GOOD)

    def test_is_window_source(self, source):
        """Simulator implements the abstract source interface."""
        assert isinstance(source, WindowSource)

    def test_invalid_geometry(self):
        """Non-positive geometry is rejected."""
        with pytest.raises(ValueError):
            SimulatedWindowSource(n_chans=0)
        with pytest.raises(ValueError):
            SimulatedWindowSource(window_seconds=0.0)
