"""
Frame-to-frame onset detection functions.

Each difference metric keeps its own "previous" state, so calling several
metrics on the same frame does not make them interfere with one another.
Before the first call a metric is *uninitialized* and treats the previous
frame as all zeros of the incoming length; after that it is *ready* and
rejects spectra of a different length.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from pulsescope.errors import DimensionMismatchError, EmptyInputError


class OnsetState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass
class _ComplexHistory:
    magnitude: np.ndarray
    phase: np.ndarray
    phase_before: np.ndarray


def _as_vector(values, what: str) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64).ravel()
    if values.size == 0:
        raise EmptyInputError(f"{what} is empty")
    return values


class OnsetDetector:
    """
    Stateful onset-strength metrics.

    The detector must be driven by a single writer: every difference call
    overwrites the stored previous frame.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Forget all previous frames (back to the uninitialized state)."""
        self._previous_energy: Optional[float] = None
        self._previous_magnitude: Optional[np.ndarray] = None
        self._previous_magnitude_hwr: Optional[np.ndarray] = None
        self._previous_complex: Optional[_ComplexHistory] = None

    @property
    def state(self) -> OnsetState:
        stored = (
            self._previous_energy,
            self._previous_magnitude,
            self._previous_magnitude_hwr,
            self._previous_complex,
        )
        if any(item is not None for item in stored):
            return OnsetState.READY
        return OnsetState.UNINITIALIZED

    @staticmethod
    def _check_length(previous: Optional[np.ndarray], current: np.ndarray) -> np.ndarray:
        if previous is None:
            return np.zeros_like(current)
        if previous.shape != current.shape:
            raise DimensionMismatchError(
                f"spectrum has {current.size} bins, previous frame had {previous.size}"
            )
        return previous

    # ------------------------------------------------------------------
    # Time domain
    # ------------------------------------------------------------------

    def energy_difference(self, frame) -> float:
        """Rise in summed squared energy since the previous frame, clamped at 0."""
        frame = _as_vector(frame, "audio frame")
        energy = float(np.sum(frame ** 2))
        previous = self._previous_energy if self._previous_energy is not None else 0.0
        self._previous_energy = energy
        return max(energy - previous, 0.0)

    # ------------------------------------------------------------------
    # Magnitude spectrum
    # ------------------------------------------------------------------

    def spectral_difference(self, magnitude) -> float:
        """Mean squared change of every bin since the previous spectrum."""
        magnitude = _as_vector(magnitude, "magnitude spectrum")
        previous = self._check_length(self._previous_magnitude, magnitude)
        diff = magnitude - previous
        self._previous_magnitude = magnitude.copy()
        return float(np.sum(diff ** 2) / magnitude.size)

    def spectral_difference_hwr(self, magnitude) -> float:
        """Like :meth:`spectral_difference` but only rising bins contribute."""
        magnitude = _as_vector(magnitude, "magnitude spectrum")
        previous = self._check_length(self._previous_magnitude_hwr, magnitude)
        diff = magnitude - previous
        rising = diff[diff > 0]
        self._previous_magnitude_hwr = magnitude.copy()
        return float(np.sum(rising ** 2) / magnitude.size)

    def high_frequency_content(self, magnitude) -> float:
        """Bin-index weighted magnitude sum.  Stateless."""
        magnitude = _as_vector(magnitude, "magnitude spectrum")
        return float(np.dot(np.arange(magnitude.size, dtype=np.float64), magnitude))

    # ------------------------------------------------------------------
    # Complex spectrum
    # ------------------------------------------------------------------

    def complex_spectral_difference(self, real, imaginary) -> float:
        """
        Complex-domain deviation from the predicted spectrum.

        The target bin keeps the previous magnitude and extrapolates phase
        linearly from the two previous frames
        (``2 * phase_prev - phase_prev2``); the distances between the actual
        and target complex values are summed over all bins.
        """
        real = _as_vector(real, "real spectrum")
        imaginary = _as_vector(imaginary, "imaginary spectrum")
        if real.shape != imaginary.shape:
            raise DimensionMismatchError(
                f"real spectrum has {real.size} bins, imaginary has {imaginary.size}"
            )

        magnitude = np.sqrt(real ** 2 + imaginary ** 2)
        phase = np.arctan2(imaginary, real)

        history = self._previous_complex
        if history is None:
            zeros = np.zeros_like(magnitude)
            history = _ComplexHistory(zeros, zeros, zeros)
        elif history.magnitude.shape != magnitude.shape:
            raise DimensionMismatchError(
                f"spectrum has {magnitude.size} bins, "
                f"previous frame had {history.magnitude.size}"
            )

        phase_deviation = phase - (2.0 * history.phase - history.phase_before)
        squared = (
            magnitude ** 2
            + history.magnitude ** 2
            - 2.0 * magnitude * history.magnitude * np.cos(phase_deviation)
        )
        # Rounding can leave tiny negatives when the prediction is exact.
        distance = np.sqrt(np.maximum(squared, 0.0))

        self._previous_complex = _ComplexHistory(
            magnitude=magnitude,
            phase=phase,
            phase_before=history.phase,
        )
        return float(np.sum(distance))
