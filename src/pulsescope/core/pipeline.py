"""
Frame analysis pipeline.

Architecture Overview
---------------------
::

    raw frame (N mono samples)
        │
        ▼
    window (create_window)  ──►  SpectralTransform (FFT plan, owned buffers)
                                      │
                                      ├─► real[N], imaginary[N]
                                      └─► magnitude[N // 2]
                                               │
        ┌──────────────────────────────────────┼─────────────────────────┐
        ▼                                      ▼                         ▼
    time_domain (frame)          frequency_domain (magnitude)     BeatDetector.update
                                 OnsetDetector (magnitude /        (optional, per frame)
                                 complex spectrum, on demand)

One transform-and-update sequence runs at a time per pipeline instance:
:meth:`AnalysisPipeline.process_frame` holds the instance lock while it
mutates the spectral buffers, and :meth:`AnalysisPipeline.submit_frame`
queues frames on a single worker thread so they complete in FIFO order.
Use separate pipeline instances for overlapping work.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, Union

import numpy as np

from pulsescope.config import AnalysisConfig
from pulsescope.core import frequency_domain, time_domain
from pulsescope.core.beat import BeatDetector
from pulsescope.core.onset import OnsetDetector
from pulsescope.core.transform import SpectralTransform
from pulsescope.core.window import WindowKind, apply_window, create_window
from pulsescope.errors import AnalysisError, EmptyInputError, InvalidArgumentError, NotConfiguredError
from pulsescope.io.source import SoundSource, read_frame_at_playhead, to_mono

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FrameFeatures:
    """
    Snapshot of every descriptor for the pipeline's current frame.

    Onset fields default to None: computing them advances the onset
    detector, so :meth:`AnalysisPipeline.snapshot` only fills them on request.
    """

    frame_index: int
    frame_size: int

    # Time domain
    rms: float
    peak_energy: float
    zero_crossing_rate: float

    # Frequency domain
    spectral_centroid: float
    spectral_flatness: float
    spectral_crest: float
    spectral_rolloff: float
    spectral_kurtosis: float

    # Beat detection
    is_kick: bool = False
    is_snare: bool = False
    is_hihat: bool = False
    bands: Optional[np.ndarray] = None

    # Onset detection
    energy_difference: Optional[float] = None
    spectral_difference: Optional[float] = None
    spectral_difference_hwr: Optional[float] = None
    complex_spectral_difference: Optional[float] = None
    high_frequency_content: Optional[float] = None


class AnalysisPipeline:
    """
    Owns the current frame, its window and spectra, and the beat and onset
    detectors fed from them.

    Parameters
    ----------
    frame_size:
        Samples per frame; overrides ``config.frame_size`` when given.
    window_kind:
        Window shape; overrides ``config.window`` when given.
    config:
        Full :class:`~pulsescope.config.AnalysisConfig` (defaults used if None).
    beat_detector, onset_detector:
        Pre-built detectors to adopt instead of creating fresh ones.
    """

    def __init__(
        self,
        frame_size: Optional[int] = None,
        window_kind: Union[str, WindowKind, None] = None,
        config: Optional[AnalysisConfig] = None,
        beat_detector: Optional[BeatDetector] = None,
        onset_detector: Optional[OnsetDetector] = None,
    ):
        config = config or AnalysisConfig()
        overrides = {}
        if frame_size is not None:
            overrides["frame_size"] = frame_size
        if window_kind is not None:
            overrides["window"] = window_kind
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config

        self._lock = threading.RLock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closing = False
        self._closed = False
        self._frames_processed = 0

        self.beat_detector = beat_detector or BeatDetector(
            config.subband_count, config.history_depth
        )
        self.onset_detector = onset_detector or OnsetDetector()
        self._transform = SpectralTransform(strict=config.strict)
        self._window_kind = config.window
        self._window = np.zeros(0, dtype=np.float64)
        self._frame = np.zeros(0, dtype=np.float64)

        self.configure(config.frame_size, config.window)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def frame_size(self) -> int:
        return self._frame.shape[0]

    @property
    def window_kind(self) -> WindowKind:
        return self._window_kind

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    def configure(
        self,
        frame_size: int,
        window_kind: Union[str, WindowKind, None] = None,
    ) -> None:
        """
        (Re)allocate frame, window, spectral buffers and FFT plan.

        The previous plan is released before the new one is prepared.  The
        onset detector is reset because its stored spectra no longer match.
        """
        if frame_size <= 0:
            raise InvalidArgumentError(f"frame size must be > 0, got {frame_size}")
        kind = WindowKind.parse(window_kind) if window_kind is not None else self._window_kind

        with self._lock:
            if self._closed:
                raise NotConfiguredError("pipeline is closed")
            window = create_window(frame_size, kind)
            self._transform.prepare(frame_size)
            self._window = window
            self._window_kind = kind
            self._frame = np.zeros(frame_size, dtype=np.float64)
            self.onset_detector.reset()

        logger.info("Configured analysis pipeline: frame size %d, %s window", frame_size, kind.value)

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def process_frame(self, frame, run_beat_detection: bool = False) -> int:
        """
        Window, transform and (optionally) beat-track one frame.

        A frame whose length differs from the current frame size first
        reconfigures the pipeline to that size.

        Args:
            frame: 1-D mono samples.
            run_beat_detection: Feed the new magnitude spectrum to the beat detector.

        Returns:
            Running count of processed frames (1 for the first frame).
        """
        frame = np.array(frame, dtype=np.float64).ravel()
        if frame.size == 0:
            raise EmptyInputError("audio frame is empty")
        if run_beat_detection and frame.size // 2 < self.beat_detector.subband_count:
            raise InvalidArgumentError(
                f"frame of {frame.size} samples yields {frame.size // 2} bins, "
                f"fewer than {self.beat_detector.subband_count} subbands"
            )

        with self._lock:
            if frame.size != self.frame_size:
                logger.warning(
                    "Frame size changed from %d to %d, reconfiguring", self.frame_size, frame.size
                )
                self.configure(frame.size)

            self._frame = frame
            self._transform.execute(apply_window(frame, self._window))

            if run_beat_detection:
                self.beat_detector.update(self._transform.magnitude)

            self._frames_processed += 1
            logger.debug("Processed frame %d", self._frames_processed)
            return self._frames_processed

    def read_source_frame(self, source: SoundSource, channel: Optional[int] = None) -> np.ndarray:
        """
        Mono frame of the current frame size starting at the source's play cursor.

        Args:
            source: PCM source to read from.
            channel: Channel to keep; None averages all channels.
        """
        interleaved = read_frame_at_playhead(source, self.frame_size)
        return to_mono(interleaved, source.num_channels, channel)

    def submit_frame(self, frame, run_beat_detection: bool = False) -> Future:
        """
        Queue a frame for background processing.

        Frames submitted to one pipeline are processed one at a time, in
        submission order.  The returned future resolves to the same value as
        :meth:`process_frame`, or raises its exception.  Queued frames are
        not cancellable once accepted.
        """
        frame = np.array(frame, dtype=np.float64)
        with self._lock:
            if self._closing:
                raise NotConfiguredError("pipeline is closed")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="pulsescope-frame"
                )
            return self._executor.submit(self.process_frame, frame, run_beat_detection)

    def close(self) -> None:
        """
        Wait for queued frames, then release the FFT plan.  Idempotent.

        New submissions are refused as soon as closing starts, but frames
        already queued still run to completion, reconfiguring if needed.
        """
        with self._lock:
            if self._closing:
                return
            self._closing = True
            executor, self._executor = self._executor, None

        if executor is not None:
            executor.shutdown(wait=True)

        with self._lock:
            self._closed = True
            self._transform.release()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "AnalysisPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Buffers (copies, safe to keep across frames)
    # ------------------------------------------------------------------

    @property
    def current_frame(self) -> np.ndarray:
        with self._lock:
            return self._frame.copy()

    @property
    def window(self) -> np.ndarray:
        with self._lock:
            return self._window.copy()

    @property
    def magnitude_spectrum(self) -> np.ndarray:
        with self._lock:
            return self._transform.magnitude.copy()

    @property
    def fft_real(self) -> np.ndarray:
        with self._lock:
            return self._transform.real.copy()

    @property
    def fft_imaginary(self) -> np.ndarray:
        with self._lock:
            return self._transform.imaginary.copy()

    # ------------------------------------------------------------------
    # Time / frequency domain features
    # ------------------------------------------------------------------

    def root_mean_square(self) -> float:
        with self._lock:
            return time_domain.root_mean_square(self._frame)

    def peak_energy(self) -> float:
        with self._lock:
            return time_domain.peak_energy(self._frame)

    def zero_crossing_rate(self) -> float:
        with self._lock:
            return time_domain.zero_crossing_rate(self._frame)

    def spectral_centroid(self) -> float:
        with self._lock:
            return frequency_domain.spectral_centroid(self._transform.magnitude)

    def spectral_flatness(self) -> float:
        with self._lock:
            return frequency_domain.spectral_flatness(self._transform.magnitude)

    def spectral_crest(self) -> float:
        with self._lock:
            return frequency_domain.spectral_crest(self._transform.magnitude)

    def spectral_rolloff(self, threshold: Optional[float] = None) -> float:
        threshold = self.config.rolloff_threshold if threshold is None else threshold
        with self._lock:
            return frequency_domain.spectral_rolloff(self._transform.magnitude, threshold)

    def spectral_kurtosis(self) -> float:
        with self._lock:
            return frequency_domain.spectral_kurtosis(self._transform.magnitude)

    # ------------------------------------------------------------------
    # Onset detection (advances the onset detector)
    # ------------------------------------------------------------------

    def energy_difference(self) -> float:
        with self._lock:
            return self.onset_detector.energy_difference(self._frame)

    def spectral_difference(self) -> float:
        with self._lock:
            return self.onset_detector.spectral_difference(self._transform.magnitude)

    def spectral_difference_hwr(self) -> float:
        with self._lock:
            return self.onset_detector.spectral_difference_hwr(self._transform.magnitude)

    def complex_spectral_difference(self) -> float:
        with self._lock:
            return self.onset_detector.complex_spectral_difference(
                self._transform.real, self._transform.imaginary
            )

    def high_frequency_content(self) -> float:
        with self._lock:
            return self.onset_detector.high_frequency_content(self._transform.magnitude)

    # ------------------------------------------------------------------
    # Beat detection (polling style: invalid queries log and return a sentinel)
    # ------------------------------------------------------------------

    def _poll(self, query: Callable[..., T], sentinel: T, *args) -> T:
        with self._lock:
            try:
                return query(*args)
            except AnalysisError as exc:
                logger.error("Beat detection query %s%s failed: %s", query.__name__, args, exc)
                return sentinel

    def is_beat(self, subband: int) -> bool:
        return self._poll(self.beat_detector.is_beat, False, subband)

    def is_kick(self) -> bool:
        return self._poll(self.beat_detector.is_kick, False)

    def is_snare(self) -> bool:
        return self._poll(self.beat_detector.is_snare, False)

    def is_hihat(self) -> bool:
        return self._poll(self.beat_detector.is_hihat, False)

    def is_beat_range(self, low: int, high: int, threshold: int) -> bool:
        return self._poll(self.beat_detector.is_beat_range, False, low, high, threshold)

    def get_band(self, subband: int) -> float:
        return self._poll(self.beat_detector.get_band, -1.0, subband)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, include_onsets: bool = False) -> FrameFeatures:
        """
        Collect every descriptor of the current frame into one object.

        Args:
            include_onsets: Also compute the onset metrics.  This advances the
                onset detector, so request it at most once per frame.
        """
        with self._lock:
            features = FrameFeatures(
                frame_index=self._frames_processed,
                frame_size=self.frame_size,
                rms=self.root_mean_square(),
                peak_energy=self.peak_energy(),
                zero_crossing_rate=self.zero_crossing_rate(),
                spectral_centroid=self.spectral_centroid(),
                spectral_flatness=self.spectral_flatness(),
                spectral_crest=self.spectral_crest(),
                spectral_rolloff=self.spectral_rolloff(),
                spectral_kurtosis=self.spectral_kurtosis(),
                is_kick=self.is_kick(),
                is_snare=self.is_snare() if self.beat_detector.has_snare_range else False,
                is_hihat=self.is_hihat() if self.beat_detector.has_hihat_range else False,
                bands=self.beat_detector.subbands.copy(),
            )
            if include_onsets:
                features.energy_difference = self.energy_difference()
                features.spectral_difference = self.spectral_difference()
                features.spectral_difference_hwr = self.spectral_difference_hwr()
                features.complex_spectral_difference = self.complex_spectral_difference()
                features.high_frequency_content = self.high_frequency_content()
            return features


def create_pipeline(
    frame_size: int,
    window_kind: Union[str, WindowKind] = WindowKind.HANN,
    **config_values,
) -> AnalysisPipeline:
    """
    Build a pipeline for ``frame_size`` samples with the given window.

    Extra keyword arguments are :class:`~pulsescope.config.AnalysisConfig`
    fields (``subband_count``, ``history_depth`` ...).
    """
    config = AnalysisConfig(frame_size=frame_size, window=window_kind, **config_values)
    return AnalysisPipeline(config=config)
