"""Shared fixtures for the pulsescope test-suite."""

import numpy as np
import pytest

from pulsescope.config import AnalysisConfig
from pulsescope.io.source import BufferedSoundSource

TEST_SR = 22050


@pytest.fixture
def small_config():
    """4 sub-bands, 2-deep history, rectangular 16-sample frames."""
    return AnalysisConfig(frame_size=16, window="none", subband_count=4, history_depth=2)


@pytest.fixture
def pure_sine():
    """One second of a 440 Hz sine."""
    sr = TEST_SR
    t = np.linspace(0, 1.0, sr, endpoint=False)
    return (0.5 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32), sr


@pytest.fixture
def stereo_source():
    """10 stereo frames, interleaved samples 0..19, at 10 Hz."""
    return BufferedSoundSource(np.arange(20, dtype=np.float32), sample_rate=10, num_channels=2)
