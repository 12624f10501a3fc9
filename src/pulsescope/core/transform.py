"""
Forward FFT with reusable, explicitly released working buffers.

:class:`FFTPlan` owns the complex input buffer and the real/imaginary output
buffers for one frame length.  :class:`SpectralTransform` wraps a plan and
derives the magnitude spectrum, keeping only the non-redundant half
(``N // 2`` bins) of the conjugate-symmetric output.

The FFT kernel itself is ``scipy.fft.fft``: unscaled forward transform, so a
constant frame of value ``c`` yields ``real[0] == N * c`` and ``imag[0] == 0``.
"""

import logging
from typing import Optional

import numpy as np
from scipy import fft as scipy_fft

from pulsescope.errors import BufferMismatchError, InvalidArgumentError, NotConfiguredError

logger = logging.getLogger(__name__)


class FFTPlan:
    """
    Working buffers for a forward complex FFT of fixed length.

    Use as a context manager (or call :meth:`release`) so the buffers are
    dropped deterministically.  A released plan cannot be executed again.
    """

    def __init__(self, length: int):
        if length <= 0:
            raise InvalidArgumentError(f"FFT length must be > 0, got {length}")
        self.length = int(length)
        self._input: Optional[np.ndarray] = np.zeros(self.length, dtype=np.complex128)
        self.real: Optional[np.ndarray] = np.zeros(self.length, dtype=np.float64)
        self.imaginary: Optional[np.ndarray] = np.zeros(self.length, dtype=np.float64)
        logger.debug("Prepared FFT plan of length %d", self.length)

    @property
    def released(self) -> bool:
        return self._input is None

    def execute(self, samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Transform real samples (imaginary part zero) into the plan buffers.

        Args:
            samples: 1-D array of exactly ``length`` windowed samples.

        Returns:
            Tuple of (real, imaginary) arrays of ``length`` values.  They are
            the plan's own buffers and are overwritten by the next call.

        Raises:
            NotConfiguredError: If the plan has been released.
            BufferMismatchError: If ``samples`` does not have ``length`` values.
        """
        if self.released:
            raise NotConfiguredError("FFT plan has been released")

        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim != 1 or samples.shape[0] != self.length:
            raise BufferMismatchError(
                f"FFT input has shape {samples.shape}, plan expects ({self.length},)"
            )

        self._input[:] = samples
        spectrum = scipy_fft.fft(self._input)
        np.copyto(self.real, spectrum.real)
        np.copyto(self.imaginary, spectrum.imag)
        return self.real, self.imaginary

    def release(self) -> None:
        """Drop the working buffers.  Safe to call more than once."""
        if self.released:
            return
        self._input = None
        self.real = None
        self.imaginary = None
        logger.debug("Released FFT plan of length %d", self.length)

    def __enter__(self) -> "FFTPlan":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class SpectralTransform:
    """
    Windowed-frame to spectrum transform with owned spectral buffers.

    Args:
        strict: When True, executing without a prepared plan raises
            :class:`NotConfiguredError`.  When False the call is logged and
            zero spectra are returned instead.
    """

    def __init__(self, strict: bool = __debug__):
        self.strict = strict
        self._plan: Optional[FFTPlan] = None
        self.real = np.zeros(0, dtype=np.float64)
        self.imaginary = np.zeros(0, dtype=np.float64)
        self.magnitude = np.zeros(0, dtype=np.float64)

    @property
    def is_configured(self) -> bool:
        return self._plan is not None and not self._plan.released

    @property
    def length(self) -> int:
        return self._plan.length if self.is_configured else 0

    def prepare(self, length: int) -> FFTPlan:
        """
        Allocate a plan and spectral buffers for frames of ``length`` samples.

        Any previously prepared plan is released first, so a failed
        allocation never leaves the old plan alive.
        """
        if length <= 0:
            raise InvalidArgumentError(f"FFT length must be > 0, got {length}")

        self.release()
        self._plan = FFTPlan(length)
        self.real = np.zeros(length, dtype=np.float64)
        self.imaginary = np.zeros(length, dtype=np.float64)
        self.magnitude = np.zeros(length // 2, dtype=np.float64)
        return self._plan

    def execute(self, windowed: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Run the forward FFT and refresh real, imaginary and magnitude buffers.

        Returns:
            Tuple of (real, imaginary) spectra, each of the frame length.
        """
        windowed = np.asarray(windowed, dtype=np.float64)

        if not self.is_configured:
            if self.strict:
                raise NotConfiguredError("SpectralTransform.execute() called before prepare()")
            logger.error(
                "Unable to perform FFT analysis because the transform is not prepared; "
                "returning zero spectra"
            )
            n = windowed.shape[0] if windowed.ndim == 1 else 0
            self.real = np.zeros(n, dtype=np.float64)
            self.imaginary = np.zeros(n, dtype=np.float64)
            self.magnitude = np.zeros(n // 2, dtype=np.float64)
            return self.real, self.imaginary

        real, imaginary = self._plan.execute(windowed)
        np.copyto(self.real, real)
        np.copyto(self.imaginary, imaginary)

        half = self._plan.length // 2
        np.sqrt(self.real[:half] ** 2 + self.imaginary[:half] ** 2, out=self.magnitude)
        return self.real, self.imaginary

    def release(self) -> None:
        """Release the current plan, if any."""
        if self._plan is not None:
            self._plan.release()
            self._plan = None

    def __enter__(self) -> "SpectralTransform":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
