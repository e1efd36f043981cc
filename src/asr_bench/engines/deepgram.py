"""
Deepgram transcription engine for asr-bench.

Sends each staged file to the Deepgram pre-recorded transcription API
through the Deepgram SDK and returns the first alternative's transcript.
The engine is identified by model name and language, the same way a
platform speech recognizer is identified by its locale.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import httpx
import structlog
from deepgram import DeepgramClient, PrerecordedOptions

from asr_bench.engine_base import TranscriptionEngine

logger = structlog.get_logger()

_DEFAULT_TIMEOUT_S = 120.0


class DeepgramEngine(TranscriptionEngine):
    """Deepgram pre-recorded transcription.

    Args:
        api_key: Deepgram API key.
        model: Deepgram model name (e.g. ``nova-2``).
        language: BCP-47 language code.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "nova-2",
        language: str = "ja",
        timeout: float = _DEFAULT_TIMEOUT_S,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language
        self._timeout = timeout
        self._client: DeepgramClient | None = None

    # ── TranscriptionEngine interface ──

    @property
    def name(self) -> str:  # noqa: D401
        """Engine identifier."""
        return "deepgram"

    @property
    def model_identifier(self) -> str:
        return f"{self._model}:{self._language}"

    async def connect(self) -> None:
        """Create the Deepgram client."""
        if not self._api_key:
            raise RuntimeError("Deepgram API key is not configured")
        self._client = DeepgramClient(self._api_key)
        logger.info("deepgram_client_created", model=self._model, language=self._language)

    async def disconnect(self) -> None:
        """Drop the Deepgram client."""
        self._client = None
        logger.info("deepgram_client_released")

    async def health_check(self) -> bool:
        """Return ``True`` once the client has been created."""
        return self._client is not None

    async def transcribe(self, path: Path) -> str:
        if self._client is None:
            raise RuntimeError("Deepgram engine is not connected")

        loop = asyncio.get_running_loop()
        buffer = await loop.run_in_executor(None, path.read_bytes)
        options = PrerecordedOptions(
            model=self._model,
            language=self._language,
            smart_format=True,
        )
        response = await self._client.listen.asyncrest.v("1").transcribe_file(
            {"buffer": buffer},
            options,
            timeout=httpx.Timeout(self._timeout, connect=10.0),
        )
        return _extract_transcript(response)


def _extract_transcript(response: Any) -> str:
    """Pull ``results.channels[0].alternatives[0].transcript`` from *response*."""
    try:
        return str(response.results.channels[0].alternatives[0].transcript)
    except (AttributeError, IndexError, TypeError) as exc:
        raise ValueError(f"unexpected Deepgram response shape: {exc!r}") from exc
