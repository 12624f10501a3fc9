"""
Window functions used to taper a frame before the FFT.

Coefficients are the symmetric closed-form windows from
``scipy.signal.windows``; e.g. Hann is ``0.5 * (1 - cos(2*pi*i / (N - 1)))``.
"""

from enum import Enum
from typing import Union

import numpy as np
from scipy.signal import windows as scipy_windows

from pulsescope.errors import InvalidArgumentError


class WindowKind(str, Enum):
    """Supported window shapes."""

    NONE = "none"
    HANN = "hann"
    HAMMING = "hamming"
    BLACKMAN = "blackman"
    TUKEY = "tukey"
    TRIANGULAR = "triangular"

    @classmethod
    def parse(cls, value: Union[str, "WindowKind"]) -> "WindowKind":
        """Resolve a window kind from its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {"rectangular": "none", "hanning": "hann", "triangle": "triangular"}
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            names = ", ".join(k.value for k in cls)
            raise InvalidArgumentError(
                f"unknown window kind {value!r}, expected one of: {names}"
            ) from exc


TUKEY_ALPHA = 0.5


def create_window(length: int, kind: Union[str, WindowKind] = WindowKind.HANN) -> np.ndarray:
    """
    Build a window of ``length`` coefficients.

    Args:
        length: Number of coefficients, must be > 0.
        kind: Window shape (enum member or name).

    Returns:
        1-D float64 array of ``length`` coefficients.

    Raises:
        InvalidArgumentError: If ``length`` is not positive or ``kind`` is unknown.
    """
    if length <= 0:
        raise InvalidArgumentError(f"window length must be > 0, got {length}")

    kind = WindowKind.parse(kind)

    if kind is WindowKind.NONE:
        return np.ones(length, dtype=np.float64)
    if kind is WindowKind.HANN:
        window = scipy_windows.hann(length, sym=True)
    elif kind is WindowKind.HAMMING:
        window = scipy_windows.hamming(length, sym=True)
    elif kind is WindowKind.BLACKMAN:
        window = scipy_windows.blackman(length, sym=True)
    elif kind is WindowKind.TUKEY:
        window = scipy_windows.tukey(length, alpha=TUKEY_ALPHA, sym=True)
    else:
        window = scipy_windows.triang(length, sym=True)

    return np.asarray(window, dtype=np.float64)


def apply_window(frame: np.ndarray, window: np.ndarray) -> np.ndarray:
    """Multiply a frame by its window, sample by sample."""
    frame = np.asarray(frame, dtype=np.float64)
    if frame.shape != window.shape:
        raise InvalidArgumentError(
            f"frame length {frame.shape[0]} does not match window length {window.shape[0]}"
        )
    return frame * window
