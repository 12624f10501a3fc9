"""Tests for the stateless time- and frequency-domain descriptors."""

import numpy as np
import pytest

from pulsescope.core import frequency_domain as fd
from pulsescope.core import time_domain as td
from pulsescope.errors import EmptyInputError, InvalidArgumentError


# ---------------------------------------------------------------------------
# Time domain
# ---------------------------------------------------------------------------

class TestTimeDomain:
    @pytest.mark.parametrize("c", [0.0, 0.5, -0.75, 3.0])
    def test_constant_signal(self, c):
        frame = np.full(32, c)
        assert td.root_mean_square(frame) == pytest.approx(abs(c))
        assert td.peak_energy(frame) == pytest.approx(abs(c))
        assert td.zero_crossing_rate(frame) == 0.0

    def test_rms_of_sine(self, pure_sine):
        y, _ = pure_sine
        assert td.root_mean_square(y) == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)

    def test_peak_uses_absolute_value(self):
        assert td.peak_energy([0.2, -0.9, 0.5]) == pytest.approx(0.9)

    def test_alternating_signs(self):
        assert td.zero_crossing_rate([1.0, -1.0, 1.0, -1.0]) == 3.0

    def test_zero_counts_as_non_positive(self):
        # positive flags: F T F F
        assert td.zero_crossing_rate([0.0, 1.0, 0.0, -1.0]) == 2.0
        assert td.zero_crossing_rate([0.0, 0.0, -1.0]) == 0.0

    def test_zcr_not_normalized(self):
        frame = np.tile([1.0, -1.0], 50)
        assert td.zero_crossing_rate(frame) == 99.0

    def test_returns_python_floats(self):
        assert isinstance(td.zero_crossing_rate([1.0, -1.0]), float)

    @pytest.mark.parametrize("func", [td.root_mean_square, td.peak_energy, td.zero_crossing_rate])
    def test_empty_frame(self, func):
        with pytest.raises(EmptyInputError):
            func([])


# ---------------------------------------------------------------------------
# Frequency domain
# ---------------------------------------------------------------------------

class TestSingleBin:
    @pytest.mark.parametrize("k", [0, 3, 7])
    def test_centroid_is_bin(self, k):
        magnitude = np.zeros(8)
        magnitude[k] = 2.0
        assert fd.spectral_centroid(magnitude) == pytest.approx(k)

    @pytest.mark.parametrize("k", [0, 3, 7])
    def test_rolloff_is_bin_over_length(self, k):
        magnitude = np.zeros(8)
        magnitude[k] = 2.0
        assert fd.spectral_rolloff(magnitude) == pytest.approx(k / 8)


class TestSilentSpectrum:
    def test_guard_values(self):
        silent = np.zeros(16)
        assert fd.spectral_flatness(silent) == 0.0
        assert fd.spectral_crest(silent) == 0.0
        assert fd.spectral_kurtosis(silent) == 0.0
        assert fd.spectral_centroid(silent) == 0.0
        assert fd.spectral_rolloff(silent) == 0.0


class TestFrequencyDomain:
    def test_flat_spectrum(self):
        flat = np.ones(32)
        assert fd.spectral_flatness(flat) == pytest.approx(1.0)
        assert fd.spectral_crest(flat) == pytest.approx(1.0)
        assert fd.spectral_kurtosis(flat) == 0.0

    def test_tonal_spectrum_is_not_flat(self):
        magnitude = np.full(32, 0.01)
        magnitude[4] = 10.0
        assert fd.spectral_flatness(magnitude) < 0.2

    def test_flatness_with_some_zero_bins(self):
        magnitude = np.array([0.0, 1.0, 1.0, 1.0])
        value = fd.spectral_flatness(magnitude)
        assert np.isfinite(value)
        assert 0.0 <= value < 0.01

    def test_crest_is_max_over_mean(self):
        assert fd.spectral_crest([1.0, 2.0, 3.0, 6.0]) == pytest.approx(2.0)

    def test_kurtosis(self):
        assert fd.spectral_kurtosis([0.0, 0.0, 0.0, 1.0]) == pytest.approx(-2.0 / 3.0)

    def test_rolloff_threshold(self):
        magnitude = np.ones(10)
        assert fd.spectral_rolloff(magnitude, threshold=0.5) == pytest.approx(0.4)
        assert fd.spectral_rolloff(magnitude, threshold=1.0) == pytest.approx(0.9)

    @pytest.mark.parametrize("threshold", [0.0, -0.1, 1.5])
    def test_rolloff_invalid_threshold(self, threshold):
        with pytest.raises(InvalidArgumentError):
            fd.spectral_rolloff(np.ones(4), threshold=threshold)

    def test_centroid_weighted_mean(self):
        assert fd.spectral_centroid([1.0, 0.0, 1.0]) == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "func",
        [
            fd.spectral_centroid,
            fd.spectral_flatness,
            fd.spectral_crest,
            fd.spectral_rolloff,
            fd.spectral_kurtosis,
        ],
    )
    def test_empty_spectrum(self, func):
        with pytest.raises(EmptyInputError):
            func(np.array([]))
