"""
Streaming front-end for live or file-driven analysis.

Architecture Overview
---------------------
::

    SoundSource / audio callback
        │
        ▼  (chunks of hop_size samples)
    RealtimeAnalyzer.process_chunk(chunk)
        │
        ├─► sliding frame buffer (frame_size samples, newest at the end)
        │
        ├─► AnalysisPipeline.process_frame(frame, run_beat_detection=True)
        │
        └─► LiveFeatures (FrameFeatures snapshot + timestamp) to the caller

Each analyzer owns one pipeline and is therefore single-writer: feed it
from one thread, or guard it with a lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from pulsescope.config import AnalysisConfig
from pulsescope.core.pipeline import AnalysisPipeline, FrameFeatures
from pulsescope.errors import InvalidArgumentError
from pulsescope.io.source import SoundSource, read_frame_at_playhead, to_mono

logger = logging.getLogger(__name__)


@dataclass
class LiveFeatures:
    """Single-frame snapshot with its position in the stream."""

    chunk_index: int
    time_sec: float
    features: FrameFeatures


def iter_frames(signal: np.ndarray, frame_size: int, hop_size: Optional[int] = None) -> Iterator[np.ndarray]:
    """
    Yield consecutive ``frame_size`` slices of a mono signal, ``hop_size`` apart.

    A trailing partial frame is dropped.
    """
    if frame_size <= 0:
        raise InvalidArgumentError(f"frame size must be > 0, got {frame_size}")
    hop_size = frame_size if hop_size is None else hop_size
    if hop_size <= 0:
        raise InvalidArgumentError(f"hop size must be > 0, got {hop_size}")
    signal = np.asarray(signal, dtype=np.float64).ravel()
    for start in range(0, signal.size - frame_size + 1, hop_size):
        yield signal[start : start + frame_size]


class RealtimeAnalyzer:
    """
    Chunk-by-chunk analysis for live visualization.

    Parameters
    ----------
    sample_rate:
        Audio sample rate in Hz (default: 44 100).
    hop_size:
        Samples per incoming chunk (default: the frame size).
    config:
        Pipeline configuration; ``config.frame_size`` is the analysis frame.
        Frames larger than the hop overlap with the previous chunks.
    compute_onsets:
        Include onset metrics in every snapshot.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        hop_size: Optional[int] = None,
        config: Optional[AnalysisConfig] = None,
        compute_onsets: bool = True,
    ):
        if sample_rate <= 0:
            raise InvalidArgumentError(f"sample rate must be > 0, got {sample_rate}")
        self.config = config or AnalysisConfig()
        self.sample_rate = sample_rate
        self.hop_size = self.config.frame_size if hop_size is None else hop_size
        if self.hop_size <= 0:
            raise InvalidArgumentError(f"hop size must be > 0, got {self.hop_size}")
        if self.hop_size > self.config.frame_size:
            raise InvalidArgumentError(
                f"hop size {self.hop_size} exceeds frame size {self.config.frame_size}"
            )
        self.compute_onsets = compute_onsets

        self.pipeline = AnalysisPipeline(config=self.config)
        self._buffer = np.zeros(self.config.frame_size, dtype=np.float64)
        self._chunk_index = 0

    def process_chunk(self, chunk: np.ndarray) -> LiveFeatures:
        """
        Shift one chunk into the frame buffer and analyze the buffer.

        Args:
            chunk: 1-D mono samples, length == hop_size.
        """
        chunk = np.asarray(chunk, dtype=np.float64).ravel()
        if chunk.size != self.hop_size:
            raise InvalidArgumentError(
                f"chunk has {chunk.size} samples, expected hop size {self.hop_size}"
            )

        self._buffer = np.roll(self._buffer, -chunk.size)
        self._buffer[-chunk.size :] = chunk

        self.pipeline.process_frame(self._buffer, run_beat_detection=True)
        self._chunk_index += 1
        time_sec = self._chunk_index * self.hop_size / self.sample_rate

        return LiveFeatures(
            chunk_index=self._chunk_index,
            time_sec=time_sec,
            features=self.pipeline.snapshot(include_onsets=self.compute_onsets),
        )

    def process_signal(self, signal: np.ndarray) -> Iterator[LiveFeatures]:
        """Feed a whole mono signal hop by hop."""
        for chunk in iter_frames(signal, self.hop_size):
            yield self.process_chunk(chunk)

    def process_source(self, source: SoundSource, channel: Optional[int] = None) -> Iterator[LiveFeatures]:
        """
        Pull hops from a source at its play cursor until it is exhausted.
        """
        while source.played_frames + self.hop_size <= source.total_frames:
            interleaved = read_frame_at_playhead(source, self.hop_size)
            source.advance(self.hop_size)
            yield self.process_chunk(to_mono(interleaved, source.num_channels, channel))
        logger.debug("Source exhausted after %d chunks", self._chunk_index)

    def close(self) -> None:
        self.pipeline.close()

    def __enter__(self) -> "RealtimeAnalyzer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
