"""
Transcription adapter for asr-bench.

Wraps whichever engine is active behind a uniform
``transcribe(path) -> (text, elapsed_seconds)`` contract.  The adapter
measures wall-clock time around the engine call itself and serializes
calls, since engines are single-flight.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import structlog

from asr_bench.engine_base import TranscriptionEngine
from asr_bench.errors import EngineNotReady, TranscriptionFailed
from asr_bench.models import EngineMetadata

logger = structlog.get_logger()


class TranscriptionAdapter:
    """Uniform front for the single active :class:`TranscriptionEngine`.

    Args:
        engine: The active engine, or ``None`` until one is configured.
    """

    def __init__(self, engine: TranscriptionEngine | None = None) -> None:
        self._engine = engine
        self._lock = asyncio.Lock()

    @property
    def engine(self) -> TranscriptionEngine | None:
        return self._engine

    def configure(self, engine: TranscriptionEngine | None) -> None:
        """Swap the active engine.  Only call between runs."""
        self._engine = engine
        logger.info("engine_configured", engine=engine.name if engine else None)

    async def is_ready(self) -> bool:
        return self._engine is not None and await self._engine.health_check()

    def metadata(self) -> EngineMetadata:
        """Describe the active engine for result uploads.

        Raises:
            EngineNotReady: If no engine is configured.
        """
        if self._engine is None:
            raise EngineNotReady()
        return self._engine.metadata()

    async def transcribe(self, path: Path) -> tuple[str, float]:
        """Transcribe *path* with the active engine.

        Returns:
            ``(text, elapsed_seconds)``.

        Raises:
            EngineNotReady: If no engine is configured or it is not loaded.
            TranscriptionFailed: If the engine call raises.
        """
        engine = self._engine
        if engine is None or not await engine.health_check():
            raise EngineNotReady()

        async with self._lock:
            start = time.perf_counter()
            try:
                text = await engine.transcribe(path)
            except Exception as exc:
                logger.error("transcription_error", engine=engine.name, error=str(exc))
                raise TranscriptionFailed(str(exc) or type(exc).__name__) from exc
            elapsed = time.perf_counter() - start

        logger.debug("transcription_done", engine=engine.name, elapsed_s=round(elapsed, 3))
        return text, elapsed
