"""Tests for the PCM source adapter and frame readers."""

import numpy as np
import pytest

import pulsescope.io.source as source_module
from pulsescope.errors import EmptyInputError, InvalidArgumentError
from pulsescope.io.source import (
    BufferedSoundSource,
    SoundSource,
    read_frame_at_playhead,
    read_frame_range,
    read_time_at_playhead,
    read_time_range,
    to_mono,
)


class TestBufferedSoundSource:
    def test_properties(self, stereo_source):
        assert isinstance(stereo_source, SoundSource)
        assert stereo_source.total_frames == 10
        assert stereo_source.num_channels == 2
        assert stereo_source.duration == pytest.approx(1.0)
        assert stereo_source.played_frames == 0

    def test_protocol_requires_advance(self):
        class ReadOnlySource:
            sample_rate = 10
            num_channels = 1
            total_frames = 4
            duration = 0.4
            played_frames = 0
            playback_time = 0.0

            def read_interleaved(self, start, end):
                return np.zeros(end - start, dtype=np.float32)

        assert not isinstance(ReadOnlySource(), SoundSource)

    def test_channel_first_array(self):
        pcm = np.array([[0.0, 1.0, 2.0], [10.0, 11.0, 12.0]])
        source = BufferedSoundSource(pcm, sample_rate=3)
        assert source.num_channels == 2
        np.testing.assert_array_equal(source.read_interleaved(0, 2), [0.0, 10.0, 1.0, 11.0])

    def test_advance_clamps(self, stereo_source):
        assert stereo_source.advance(4) == 4
        assert stereo_source.playback_time == pytest.approx(0.4)
        assert stereo_source.advance(100) == 10

    def test_seek(self, stereo_source):
        stereo_source.seek(7)
        assert stereo_source.played_frames == 7
        with pytest.raises(InvalidArgumentError):
            stereo_source.seek(11)

    @pytest.mark.parametrize(
        "pcm, sr, channels, error",
        [
            (np.zeros(0), 10, 1, EmptyInputError),
            (np.zeros(5), 10, 2, InvalidArgumentError),
            (np.zeros(4), 0, 1, InvalidArgumentError),
            (np.zeros(4), 10, 0, InvalidArgumentError),
        ],
    )
    def test_rejects_bad_buffers(self, pcm, sr, channels, error):
        with pytest.raises(error):
            BufferedSoundSource(pcm, sample_rate=sr, num_channels=channels)

    def test_from_file_uses_librosa(self, monkeypatch):
        calls = {}

        def fake_load(path, sr=None, mono=True):
            calls.update(path=path, sr=sr, mono=mono)
            return np.zeros((2, 100), dtype=np.float32), 8000

        monkeypatch.setattr(source_module.librosa, "load", fake_load)
        source = BufferedSoundSource.from_file("song.flac", sr=8000)
        assert calls == {"path": "song.flac", "sr": 8000, "mono": False}
        assert source.num_channels == 2
        assert source.total_frames == 100
        assert source.sample_rate == 8000


class TestReadFrameRange:
    def test_interleaved_slice(self, stereo_source):
        samples = read_frame_range(stereo_source, 2, 5)
        assert samples.size == (5 - 2) * 2
        np.testing.assert_array_equal(samples, np.arange(4, 10))

    def test_full_range(self, stereo_source):
        assert read_frame_range(stereo_source, 0, 10).size == 20

    @pytest.mark.parametrize("start, end", [(-1, 3), (3, 3), (5, 2), (0, 11), (9, 12)])
    def test_rejects_bad_ranges(self, stereo_source, start, end):
        out = None
        with pytest.raises(InvalidArgumentError):
            out = read_frame_range(stereo_source, start, end)
        assert out is None

    def test_at_playhead(self, stereo_source):
        stereo_source.advance(3)
        np.testing.assert_array_equal(read_frame_at_playhead(stereo_source, 2), [6, 7, 8, 9])

    def test_at_playhead_past_end(self, stereo_source):
        stereo_source.advance(9)
        with pytest.raises(InvalidArgumentError):
            read_frame_at_playhead(stereo_source, 2)


class TestReadTimeRange:
    def test_seconds_to_frames(self, stereo_source):
        samples = read_time_range(stereo_source, 0.2, 0.5)
        np.testing.assert_array_equal(samples, np.arange(4, 10))

    @pytest.mark.parametrize("start, end", [(-0.1, 0.5), (0.5, 0.5), (0.6, 0.2), (0.0, 1.5)])
    def test_rejects_bad_times(self, stereo_source, start, end):
        with pytest.raises(InvalidArgumentError):
            read_time_range(stereo_source, start, end)

    def test_at_playhead(self, stereo_source):
        stereo_source.advance(5)
        samples = read_time_at_playhead(stereo_source, 0.2)
        np.testing.assert_array_equal(samples, np.arange(10, 14))


class TestToMono:
    def test_average(self):
        np.testing.assert_allclose(to_mono([1.0, 3.0, 2.0, 4.0], 2), [2.0, 3.0])

    def test_select_channel(self):
        np.testing.assert_array_equal(to_mono([1.0, 3.0, 2.0, 4.0], 2, channel=1), [3.0, 4.0])

    def test_mono_passthrough(self):
        np.testing.assert_array_equal(to_mono([1.0, 2.0, 3.0], 1), [1.0, 2.0, 3.0])

    @pytest.mark.parametrize("channels, channel", [(0, None), (3, None), (2, 2), (2, -1)])
    def test_invalid(self, channels, channel):
        with pytest.raises(InvalidArgumentError):
            to_mono([1.0, 2.0, 3.0, 4.0], channels, channel)
