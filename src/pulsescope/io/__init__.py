"""PCM source adapters."""

from pulsescope.io.source import BufferedSoundSource, SoundSource

__all__ = ["BufferedSoundSource", "SoundSource"]
