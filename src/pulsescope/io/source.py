"""
PCM source interface and frame readers.

Decoding and device streaming live outside this package; anything that
satisfies :class:`SoundSource` can feed the pipeline.  The readers here
validate frame/time ranges before touching the source, so a rejected read
returns nothing and leaves the source untouched.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

import librosa
import numpy as np

from pulsescope.errors import EmptyInputError, InvalidArgumentError

logger = logging.getLogger(__name__)


@runtime_checkable
class SoundSource(Protocol):
    """What the analysis core needs from an audio source."""

    sample_rate: int
    num_channels: int

    @property
    def total_frames(self) -> int:
        """Number of PCM frames (samples per channel) available."""

    @property
    def duration(self) -> float:
        """Length in seconds."""

    @property
    def played_frames(self) -> int:
        """Frames already consumed or played."""

    @property
    def playback_time(self) -> float:
        """Seconds already consumed or played."""

    def read_interleaved(self, start: int, end: int) -> np.ndarray:
        """Interleaved samples of frames ``[start, end)`` under the source's lock."""

    def advance(self, frames: int) -> int:
        """Move the play cursor forward by ``frames``; returns the new position."""


class BufferedSoundSource:
    """
    In-memory :class:`SoundSource` over interleaved float PCM.

    Args:
        pcm: Interleaved samples (``frames * channels`` values), or a 2-D
            ``(channels, frames)`` array as returned by ``librosa.load(mono=False)``.
        sample_rate: Sample rate in Hz.
        num_channels: Channel count for 1-D input.
    """

    def __init__(self, pcm: np.ndarray, sample_rate: int, num_channels: int = 1):
        if sample_rate <= 0:
            raise InvalidArgumentError(f"sample rate must be > 0, got {sample_rate}")
        pcm = np.asarray(pcm, dtype=np.float32)
        if pcm.ndim == 2:
            num_channels = pcm.shape[0]
            pcm = pcm.T.reshape(-1)
        if num_channels <= 0:
            raise InvalidArgumentError(f"channel count must be > 0, got {num_channels}")
        if pcm.size == 0:
            raise EmptyInputError("PCM buffer is empty")
        if pcm.size % num_channels:
            raise InvalidArgumentError(
                f"{pcm.size} samples do not divide into {num_channels} channels"
            )

        self.sample_rate = int(sample_rate)
        self.num_channels = int(num_channels)
        self.data_guard = threading.Lock()
        self._pcm = pcm
        self._played_frames = 0

    @classmethod
    def from_file(
        cls,
        audio_path: Union[str, Path],
        sr: Optional[int] = None,
    ) -> "BufferedSoundSource":
        """
        Decode an audio file (wav, mp3, flac) with all of its channels.

        Args:
            audio_path: Path to the audio file.
            sr: Target sample rate. None preserves the original.
        """
        y, sr_out = librosa.load(audio_path, sr=sr, mono=False)
        source = cls(y, sr_out, num_channels=1)
        logger.info(
            "Loaded %s: %d frames, %d channel(s) at %d Hz",
            audio_path,
            source.total_frames,
            source.num_channels,
            source.sample_rate,
        )
        return source

    @property
    def total_frames(self) -> int:
        return self._pcm.size // self.num_channels

    @property
    def duration(self) -> float:
        return self.total_frames / self.sample_rate

    @property
    def played_frames(self) -> int:
        return self._played_frames

    @property
    def playback_time(self) -> float:
        return self._played_frames / self.sample_rate

    def advance(self, frames: int) -> int:
        """Move the play cursor forward, clamped to the end.  Returns the new position."""
        if frames < 0:
            raise InvalidArgumentError(f"cannot advance by a negative frame count ({frames})")
        with self.data_guard:
            self._played_frames = min(self._played_frames + frames, self.total_frames)
            return self._played_frames

    def seek(self, frame: int) -> None:
        if not 0 <= frame <= self.total_frames:
            raise InvalidArgumentError(
                f"seek position {frame} outside [0, {self.total_frames}]"
            )
        with self.data_guard:
            self._played_frames = frame

    def read_interleaved(self, start: int, end: int) -> np.ndarray:
        with self.data_guard:
            return self._pcm[start * self.num_channels : end * self.num_channels].copy()


# ---------------------------------------------------------------------------
# Frame readers
# ---------------------------------------------------------------------------

def read_frame_range(source: SoundSource, start: int, end: int) -> np.ndarray:
    """
    Interleaved samples for PCM frames ``[start, end)``.

    Returns:
        Array of ``(end - start) * source.num_channels`` samples.

    Raises:
        InvalidArgumentError: If ``start < 0``, ``end <= start`` or ``end``
            exceeds the source's total frame count.
    """
    if not 0 <= start < end:
        raise InvalidArgumentError(
            f"start frame is {start}, expected >= 0 and < end frame {end}"
        )
    total = source.total_frames
    if end > total:
        raise InvalidArgumentError(
            f"end frame ({end}) must not exceed total number of frames ({total})"
        )
    samples = source.read_interleaved(start, end)
    expected = (end - start) * source.num_channels
    if samples.size != expected:
        raise InvalidArgumentError(
            f"source returned {samples.size} samples, expected {expected}"
        )
    return samples


def read_frame_at_playhead(source: SoundSource, frame_count: int) -> np.ndarray:
    """``frame_count`` frames starting at the source's played-frames position."""
    start = source.played_frames
    return read_frame_range(source, start, start + frame_count)


def read_time_range(source: SoundSource, start_time: float, end_time: float) -> np.ndarray:
    """
    Interleaved samples between two times in seconds.

    Raises:
        InvalidArgumentError: If ``start_time < 0``, ``end_time <= start_time``
            or ``end_time`` exceeds the source duration.
    """
    if not 0 <= start_time < end_time:
        raise InvalidArgumentError(
            f"start time is {start_time}, expected >= 0 and < end time {end_time}"
        )
    duration = source.duration
    if end_time > duration:
        raise InvalidArgumentError(
            f"end time ({end_time}) must not exceed the source duration ({duration})"
        )
    start = int(start_time * source.sample_rate)
    end = int(end_time * source.sample_rate)
    return read_frame_range(source, start, end)


def read_time_at_playhead(source: SoundSource, time_length: float) -> np.ndarray:
    """``time_length`` seconds starting at the source's playback time."""
    start_time = source.playback_time
    return read_time_range(source, start_time, start_time + time_length)


def to_mono(
    interleaved: np.ndarray,
    num_channels: int,
    channel: Optional[int] = None,
) -> np.ndarray:
    """
    Reduce interleaved samples to one channel.

    Args:
        interleaved: ``frames * num_channels`` samples.
        num_channels: Channels in ``interleaved``.
        channel: Channel to keep; None averages all channels.
    """
    if num_channels <= 0:
        raise InvalidArgumentError(f"channel count must be > 0, got {num_channels}")
    interleaved = np.asarray(interleaved, dtype=np.float64).ravel()
    if interleaved.size % num_channels:
        raise InvalidArgumentError(
            f"{interleaved.size} samples do not divide into {num_channels} channels"
        )
    frames = interleaved.reshape(-1, num_channels)
    if channel is None:
        return frames.mean(axis=1)
    if not 0 <= channel < num_channels:
        raise InvalidArgumentError(f"channel {channel} out of range for {num_channels} channels")
    return frames[:, channel].copy()
