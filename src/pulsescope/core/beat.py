"""
Sub-band beat detection with an adaptive, history-based threshold.

The magnitude spectrum is split into ``S`` equal contiguous sub-bands.  Each
update compares a sub-band's mean magnitude against the mean of its last
``H`` values, scaled by a sensitivity coefficient that falls as the
sub-band's variance rises.

Energy history is an ``(S, H)`` ring: all sub-bands are written at one
shared cursor, which then advances once per update.
"""

import logging

import numpy as np

from pulsescope.errors import EmptyInputError, IndexOutOfRangeError, InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_SUBBAND_COUNT = 32
DEFAULT_HISTORY_DEPTH = 43

# Sub-band treated as the kick drum.
KICK_BAND = 0

# Empirical linear mapping from sub-band variance to beat sensitivity.
VARIANCE_SLOPE = -0.0025714
VARIANCE_INTERCEPT = 1.15142857


def _check_positive(name: str, value: int) -> int:
    if int(value) != value or value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


class BeatDetector:
    """
    Adaptive sub-band beat detector.

    Args:
        subband_count: Number of sub-bands the spectrum is split into.
        history_depth: Number of past updates averaged per sub-band.

    Raises:
        InvalidArgumentError: If either size is not a positive integer.
    """

    def __init__(
        self,
        subband_count: int = DEFAULT_SUBBAND_COUNT,
        history_depth: int = DEFAULT_HISTORY_DEPTH,
    ):
        # Set first so resize() allocates the history exactly once.
        self._history_depth = _check_positive("history_depth", history_depth)
        self._subband_count = 0
        self.resize(subband_count)

    # ------------------------------------------------------------------
    # Sizing
    # ------------------------------------------------------------------

    @property
    def subband_count(self) -> int:
        return self._subband_count

    @property
    def history_depth(self) -> int:
        return self._history_depth

    @property
    def history_position(self) -> int:
        return self._history_position

    def resize(self, subband_count: int) -> None:
        """Change the sub-band count; all per-band state and history are zeroed."""
        subband_count = _check_positive("subband_count", subband_count)
        logger.info(
            "Updating beat detection subband count from %d to %d",
            self._subband_count,
            subband_count,
        )
        self._subband_count = subband_count

        self.subbands = np.zeros(subband_count, dtype=np.float64)
        self.variance = np.zeros(subband_count, dtype=np.float64)
        self.threshold_coefficients = np.zeros(subband_count, dtype=np.float64)
        self.average_energy = np.zeros(subband_count, dtype=np.float64)
        self._reset_history()

    def resize_history(self, history_depth: int) -> None:
        """Change the history depth; the history ring is zeroed."""
        history_depth = _check_positive("history_depth", history_depth)
        logger.info(
            "Updating beat detection energy history size from %d to %d",
            self._history_depth,
            history_depth,
        )
        self._history_depth = history_depth
        self._reset_history()

    def _reset_history(self) -> None:
        self.energy_history = np.zeros(
            (self._subband_count, self._history_depth), dtype=np.float64
        )
        self._history_position = 0

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, magnitude) -> None:
        """
        Feed one magnitude spectrum.

        Trailing bins beyond ``subband_count * (len // subband_count)`` are
        ignored.

        Raises:
            EmptyInputError: If the spectrum is empty.
            InvalidArgumentError: If it has fewer bins than there are sub-bands.
        """
        magnitude = np.asarray(magnitude, dtype=np.float64).ravel()
        if magnitude.size == 0:
            raise EmptyInputError("magnitude spectrum is empty")

        bins_per_band = magnitude.size // self._subband_count
        if bins_per_band == 0:
            raise InvalidArgumentError(
                f"spectrum of {magnitude.size} bins cannot be split into "
                f"{self._subband_count} subbands"
            )

        bands = magnitude[: bins_per_band * self._subband_count].reshape(
            self._subband_count, bins_per_band
        )
        subbands = bands.mean(axis=1)
        variance = np.mean((bands - subbands[:, np.newaxis]) ** 2, axis=1)

        self.subbands = subbands
        self.variance = variance
        self.threshold_coefficients = VARIANCE_SLOPE * variance + VARIANCE_INTERCEPT
        # Baseline excludes the value written below.
        self.average_energy = self.energy_history.mean(axis=1)

        self.energy_history[:, self._history_position] = subbands
        self._history_position = (self._history_position + 1) % self._history_depth

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_beat(self, subband: int) -> bool:
        """True when the sub-band's energy exceeds its adaptive threshold."""
        if not 0 <= subband < self._subband_count:
            raise IndexOutOfRangeError(
                f"subband {subband} out of range, expected >= 0 and < {self._subband_count}"
            )
        threshold = self.average_energy[subband] * self.threshold_coefficients[subband]
        return bool(self.subbands[subband] > threshold)

    def is_beat_range(self, low: int, high: int, threshold: int) -> bool:
        """
        True when more than ``threshold`` sub-bands in ``[low, high]`` are beats.

        Raises:
            InvalidArgumentError: If either bound is outside ``[0, subband_count)``
                or ``high <= low``.
        """
        for name, value in (("low", low), ("high", high)):
            if not 0 <= value < self._subband_count:
                raise InvalidArgumentError(
                    f"{name} subband is {value}, expected >= 0 and < {self._subband_count}"
                )
        if high <= low:
            raise InvalidArgumentError(
                f"high subband ({high}) must be greater than low subband ({low})"
            )

        beats = sum(1 for index in range(low, high + 1) if self.is_beat(index))
        return beats > threshold

    def is_kick(self) -> bool:
        return self.is_beat(KICK_BAND)

    @property
    def has_snare_range(self) -> bool:
        """True when sub-bands 1 .. S // 3 form a valid range (S >= 6)."""
        return self._subband_count // 3 > 1

    @property
    def has_hihat_range(self) -> bool:
        return self._subband_count - 1 > self._subband_count // 2

    def is_snare(self) -> bool:
        low = 1
        high = self._subband_count // 3
        return self.is_beat_range(low, high, (high - low) // 3)

    def is_hihat(self) -> bool:
        low = self._subband_count // 2
        high = self._subband_count - 1
        return self.is_beat_range(low, high, (high - low) // 3)

    def get_band(self, subband: int) -> float:
        """
        Mean magnitude of a sub-band from the last update.

        Index 0 is not accepted; valid indices are ``1 .. subband_count - 1``.
        """
        if not 0 < subband < self._subband_count:
            raise IndexOutOfRangeError(
                f"subband {subband} out of range, expected > 0 and < {self._subband_count}"
            )
        return float(self.subbands[subband])
