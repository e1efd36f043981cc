"""
Concrete transcription engines for asr-bench.

Exactly one engine is active per run; it is chosen by name from
configuration and constructed through the engine registry.
"""

from __future__ import annotations

from asr_bench.config import Settings
from asr_bench.engine_base import TranscriptionEngine
from asr_bench.engine_registry import get_engine_class, is_registered, register_engine
from asr_bench.engines.deepgram import DeepgramEngine
from asr_bench.engines.whisper import FasterWhisperEngine

__all__ = [
    "DeepgramEngine",
    "FasterWhisperEngine",
    "build_engine",
    "register_default_engines",
]


def register_default_engines() -> None:
    """Register the built-in engine classes (idempotent)."""
    if not is_registered("faster_whisper"):
        register_engine("faster_whisper", FasterWhisperEngine)
    if not is_registered("deepgram"):
        register_engine("deepgram", DeepgramEngine)


def build_engine(settings: Settings) -> TranscriptionEngine:
    """Instantiate the engine selected by ``settings.engine``.

    Raises:
        KeyError: If the engine name is not registered.
    """
    cls = get_engine_class(settings.engine)
    if issubclass(cls, FasterWhisperEngine):
        return cls(
            settings.whisper_model,
            device=settings.whisper_device,
            compute_type=settings.whisper_compute_type,
            language=settings.language,
        )
    if issubclass(cls, DeepgramEngine):
        return cls(
            settings.deepgram_api_key,
            model=settings.deepgram_model,
            language=settings.language,
        )
    return cls()  # type: ignore[call-arg]
