"""Frame-level spectral, onset and beat analysis for streaming audio."""

from pulsescope.config import AnalysisConfig
from pulsescope.core.beat import BeatDetector
from pulsescope.core.onset import OnsetDetector
from pulsescope.core.pipeline import AnalysisPipeline, FrameFeatures, create_pipeline
from pulsescope.core.stream import LiveFeatures, RealtimeAnalyzer
from pulsescope.core.transform import FFTPlan, SpectralTransform
from pulsescope.core.window import WindowKind, create_window
from pulsescope.io.source import BufferedSoundSource, SoundSource

__version__ = "0.1.0"
__all__ = [
    "AnalysisConfig",
    "AnalysisPipeline",
    "BeatDetector",
    "BufferedSoundSource",
    "FFTPlan",
    "FrameFeatures",
    "LiveFeatures",
    "OnsetDetector",
    "RealtimeAnalyzer",
    "SoundSource",
    "SpectralTransform",
    "WindowKind",
    "create_pipeline",
    "create_window",
]
