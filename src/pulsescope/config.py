"""
Pipeline configuration.

A single frozen dataclass collects the tunables shared by the transform,
the beat detector and the streaming front-end.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from pulsescope.core.beat import DEFAULT_HISTORY_DEPTH, DEFAULT_SUBBAND_COUNT
from pulsescope.core.frequency_domain import DEFAULT_ROLLOFF_THRESHOLD
from pulsescope.core.window import WindowKind
from pulsescope.errors import InvalidArgumentError

DEFAULT_FRAME_SIZE = 1024


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Tunables for an :class:`~pulsescope.core.pipeline.AnalysisPipeline`.

    Attributes:
        frame_size: Samples per analysis frame (N).
        window: Window applied before the FFT.
        subband_count: Beat detector sub-bands (S).
        history_depth: Frames of energy history per sub-band (H).
        rolloff_threshold: Energy fraction used by spectral rolloff.
        strict: Raise on transform misuse instead of returning zero spectra.
            Follows ``__debug__`` so ``python -O`` selects the lenient mode.
    """

    frame_size: int = DEFAULT_FRAME_SIZE
    window: WindowKind = WindowKind.HANN
    subband_count: int = DEFAULT_SUBBAND_COUNT
    history_depth: int = DEFAULT_HISTORY_DEPTH
    rolloff_threshold: float = DEFAULT_ROLLOFF_THRESHOLD
    strict: bool = field(default=__debug__)

    def __post_init__(self):
        object.__setattr__(self, "window", WindowKind.parse(self.window))
        self.validate()

    def validate(self) -> None:
        """Raise InvalidArgumentError when any field is out of range."""
        for name in ("frame_size", "subband_count", "history_depth"):
            value = getattr(self, name)
            if int(value) <= 0:
                raise InvalidArgumentError(f"{name} must be > 0, got {value}")
        if not 0.0 < self.rolloff_threshold <= 1.0:
            raise InvalidArgumentError(
                f"rolloff_threshold must be in (0, 1], got {self.rolloff_threshold}"
            )

    def with_overrides(self, **changes: Any) -> "AnalysisConfig":
        """Return a copy with the given fields replaced (and re-validated)."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "AnalysisConfig":
        """
        Build a config from plain values, e.g. parsed CLI options or JSON.

        Unknown keys are rejected; ``None`` values fall back to defaults.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            raise InvalidArgumentError(f"unknown config keys: {sorted(unknown)}")
        kwargs = {k: v for k, v in values.items() if v is not None}
        for name in ("frame_size", "subband_count", "history_depth"):
            if name in kwargs:
                kwargs[name] = int(kwargs[name])
        if "rolloff_threshold" in kwargs:
            kwargs["rolloff_threshold"] = float(kwargs["rolloff_threshold"])
        return cls(**kwargs)
