"""
faster-whisper transcription engine for asr-bench.

Local Whisper inference using faster-whisper (CTranslate2-based).  Loads
the selected model size once on :meth:`connect` and transcribes whole
files in the default executor so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from pathlib import Path

import structlog
from faster_whisper import WhisperModel

from asr_bench.engine_base import TranscriptionEngine

logger = structlog.get_logger()


class FasterWhisperEngine(TranscriptionEngine):
    """Whisper inference over local files via faster-whisper.

    Args:
        model_size: Model size (``tiny`` … ``large-v3``) or a local path.
        device: ``"auto"``, ``"cpu"`` or ``"cuda"``.
        compute_type: CTranslate2 compute type.
        language: Language code passed to the decoder.
        beam_size: Decoder beam width.
    """

    report_model_in_environment = True

    def __init__(
        self,
        model_size: str = "tiny",
        *,
        device: str = "auto",
        compute_type: str = "int8",
        language: str | None = "ja",
        beam_size: int = 5,
    ) -> None:
        self._model_size = model_size
        self._device = device
        self._compute_type = compute_type
        self._language = language
        self._beam_size = beam_size
        self._model: WhisperModel | None = None

    # ── TranscriptionEngine interface ──

    @property
    def name(self) -> str:  # noqa: D401
        """Engine identifier."""
        return "faster_whisper"

    @property
    def model_identifier(self) -> str:
        return self._model_size

    @property
    def version(self) -> str | None:
        try:
            return package_version("faster-whisper")
        except PackageNotFoundError:
            return None

    async def connect(self) -> None:
        """Load the Whisper model."""
        loop = asyncio.get_running_loop()
        self._model = await loop.run_in_executor(
            None,
            lambda: WhisperModel(
                self._model_size, device=self._device, compute_type=self._compute_type
            ),
        )
        logger.info(
            "whisper_model_loaded",
            model=self._model_size,
            device=self._device,
            compute_type=self._compute_type,
        )

    async def disconnect(self) -> None:
        """Drop the loaded model."""
        self._model = None
        logger.info("whisper_model_unloaded", model=self._model_size)

    async def health_check(self) -> bool:
        """Return ``True`` when the Whisper model is loaded."""
        return self._model is not None

    async def transcribe(self, path: Path) -> str:
        if self._model is None:
            raise RuntimeError("Whisper engine is not connected")

        model = self._model  # local ref for the executor closure

        def _run_transcription() -> str:
            segments, _info = model.transcribe(
                str(path), language=self._language, beam_size=self._beam_size
            )
            # The segment generator does the decoding work.
            return "".join(segment.text for segment in segments).strip()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_transcription)
