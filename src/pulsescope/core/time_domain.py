"""Time-domain descriptors of a single mono frame."""

import numpy as np

from pulsescope.errors import EmptyInputError


def _as_frame(frame) -> np.ndarray:
    frame = np.asarray(frame, dtype=np.float64).ravel()
    if frame.size == 0:
        raise EmptyInputError("audio frame is empty")
    return frame


def root_mean_square(frame) -> float:
    """Square root of the mean of squared samples."""
    frame = _as_frame(frame)
    return float(np.sqrt(np.mean(frame ** 2)))


def peak_energy(frame) -> float:
    """Largest absolute sample value."""
    frame = _as_frame(frame)
    return float(np.max(np.abs(frame)))


def zero_crossing_rate(frame) -> float:
    """
    Count of adjacent sample pairs whose sign differs.

    A sample counts as positive only when ``> 0``, so exact zeros sit with the
    negatives.  The count is not normalized by the frame length.
    """
    frame = _as_frame(frame)
    positive = frame > 0
    return float(np.count_nonzero(positive[1:] != positive[:-1]))
