"""
Exception taxonomy for the analysis pipeline.

Every error derives from :class:`AnalysisError` and from the closest
builtin, so callers may catch either ``AnalysisError`` or e.g. ``ValueError``.
"""


class AnalysisError(Exception):
    """Base class for all pulsescope errors."""


class InvalidArgumentError(AnalysisError, ValueError):
    """Out-of-range size, frame/time bounds or band range."""


class EmptyInputError(AnalysisError, ValueError):
    """A frame or spectrum with no samples was supplied."""


class DimensionMismatchError(AnalysisError, ValueError):
    """A spectrum differs in length from the one stored as previous state."""


class NotConfiguredError(AnalysisError, RuntimeError):
    """The transform was executed before prepare() or after release()."""


class BufferMismatchError(AnalysisError, ValueError):
    """Transform input length differs from the prepared plan length."""


class IndexOutOfRangeError(AnalysisError, IndexError):
    """A sub-band index query fell outside the detector's sub-bands."""
