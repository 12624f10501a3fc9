"""
Frequency-domain descriptors of a magnitude spectrum.

All functions take the non-redundant half spectrum produced by
:class:`~pulsescope.core.transform.SpectralTransform` and return bin-index
based values (no sample-rate scaling).  Degenerate spectra (all zeros, or
zero spread for kurtosis) return 0.0 rather than dividing by zero.
"""

import numpy as np

from pulsescope.errors import EmptyInputError, InvalidArgumentError

DEFAULT_ROLLOFF_THRESHOLD = 0.85

# Offset inside log() so silent bins do not send the geometric mean to -inf.
FLATNESS_EPSILON = 1e-10


def _as_spectrum(magnitude) -> np.ndarray:
    magnitude = np.asarray(magnitude, dtype=np.float64).ravel()
    if magnitude.size == 0:
        raise EmptyInputError("magnitude spectrum is empty")
    return magnitude


def spectral_centroid(magnitude) -> float:
    """Magnitude-weighted mean bin index, 0.0 for a silent spectrum."""
    magnitude = _as_spectrum(magnitude)
    total = magnitude.sum()
    if total == 0:
        return 0.0
    bins = np.arange(magnitude.size, dtype=np.float64)
    return float(np.dot(bins, magnitude) / total)


def spectral_flatness(magnitude) -> float:
    """
    Geometric mean over arithmetic mean.

    Close to 1.0 for noise-like (flat) spectra, close to 0.0 for tonal ones.
    Returns 0.0 for a silent spectrum.
    """
    magnitude = _as_spectrum(magnitude)
    arithmetic_mean = magnitude.mean()
    if arithmetic_mean == 0:
        return 0.0
    geometric_mean = np.exp(np.mean(np.log(magnitude + FLATNESS_EPSILON)))
    return float(geometric_mean / arithmetic_mean)


def spectral_crest(magnitude) -> float:
    """Peak magnitude over mean magnitude, 0.0 for a silent spectrum."""
    magnitude = _as_spectrum(magnitude)
    mean = magnitude.mean()
    if mean == 0:
        return 0.0
    return float(magnitude.max() / mean)


def spectral_rolloff(magnitude, threshold: float = DEFAULT_ROLLOFF_THRESHOLD) -> float:
    """
    Normalized bin below which ``threshold`` of the total magnitude lies.

    Returns ``k / len(magnitude)`` for the smallest ``k`` whose cumulative sum
    reaches ``threshold * sum(magnitude)``.
    """
    if not 0.0 < threshold <= 1.0:
        raise InvalidArgumentError(f"rolloff threshold must be in (0, 1], got {threshold}")
    magnitude = _as_spectrum(magnitude)
    cumulative = np.cumsum(magnitude)
    target = threshold * cumulative[-1]
    index = int(np.argmax(cumulative >= target))
    return index / magnitude.size


def spectral_kurtosis(magnitude) -> float:
    """Excess kurtosis of the magnitude values; 0.0 when they have no spread."""
    magnitude = _as_spectrum(magnitude)
    deviation = magnitude - magnitude.mean()
    variance = np.mean(deviation ** 2)
    if variance == 0:
        return 0.0
    fourth_moment = np.mean(deviation ** 4)
    return float(fourth_moment / variance ** 2 - 3.0)
