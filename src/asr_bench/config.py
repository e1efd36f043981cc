"""
Environment-based configuration management for asr-bench.

Uses pydantic-settings to load configuration values from environment
variables and .env files.  The benchmark core itself only receives a
:class:`~asr_bench.models.RunConfig`; these settings feed the control
service and the one-shot runner script that build it.

All environment variables are prefixed with ``BENCH_`` to avoid collisions.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from asr_bench.models import RunConfig


class Settings(BaseSettings):
    """Central configuration loaded from ``BENCH_``-prefixed environment variables.

    Attributes:
        base_url: Catalog/reporting service base URL.
        audio_set_id: Catalog audio set to benchmark.
        category: Category within the audio set.
        http_timeout_s: Per-request timeout for service calls.
        scratch_dir: Directory for staged audio (None = a private temp dir per process).
        engine: Active transcription engine identifier.
        language: Transcription language code.
        whisper_model: faster-whisper model size or path.
        whisper_device: faster-whisper device (``auto``, ``cpu``, ``cuda``).
        whisper_compute_type: CTranslate2 compute type.
        deepgram_api_key: Deepgram API key.
        deepgram_model: Deepgram model name.
        device_name: Overrides the host name in the environment fingerprint.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Render logs as JSON instead of console key/value lines.
        api_host: Bind address for the control service.
        api_port: Bind port for the control service.
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Catalog / reporting service ──
    base_url: str = Field(
        default="http://localhost:3000",
        description="Catalog/reporting service base URL.",
    )
    audio_set_id: str = Field(default="reazonspeech-small", description="Catalog audio set.")
    category: str = Field(default="batch_01", description="Category within the audio set.")
    http_timeout_s: float = Field(default=60.0, gt=0.0, description="HTTP request timeout.")
    scratch_dir: str | None = Field(default=None, description="Directory for staged audio.")

    # ── Transcription engines ──
    engine: str = Field(default="faster_whisper", description="Active engine identifier.")
    language: str = Field(default="ja", max_length=10, description="Transcription language.")
    whisper_model: str = Field(default="tiny", description="faster-whisper model size or path.")
    whisper_device: str = Field(default="auto", description="faster-whisper device.")
    whisper_compute_type: str = Field(default="int8", description="CTranslate2 compute type.")
    deepgram_api_key: str = Field(default="", description="Deepgram API key.")
    deepgram_model: str = Field(default="nova-2", description="Deepgram model name.")

    # ── Telemetry ──
    device_name: str | None = Field(default=None, description="Device name override.")

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Logging level.")
    log_json: bool = Field(default=True, description="Render logs as JSON.")

    # ── Control service ──
    api_host: str = Field(default="0.0.0.0", description="Control service bind address.")
    api_port: int = Field(default=8010, ge=1, le=65535, description="Control service bind port.")

    def run_config(self) -> RunConfig:
        """Return the per-run configuration derived from these settings."""
        return RunConfig(
            base_url=self.base_url,
            audio_set_id=self.audio_set_id,
            category=self.category,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton."""
    return Settings()
