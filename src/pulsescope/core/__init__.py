"""Core frame-processing modules."""

from pulsescope.core.beat import BeatDetector
from pulsescope.core.onset import OnsetDetector
from pulsescope.core.transform import FFTPlan, SpectralTransform
from pulsescope.core.window import WindowKind, create_window

__all__ = ["BeatDetector", "OnsetDetector", "FFTPlan", "SpectralTransform", "WindowKind", "create_window"]
