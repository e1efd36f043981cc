"""
Abstract base class for transcription engines in asr-bench.

Defines the TranscriptionEngine interface that every backend implements:
lifecycle (connect/disconnect/health_check), whole-file transcription,
and the descriptive properties reported with each benchmark result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from asr_bench.models import EngineMetadata


class TranscriptionEngine(ABC):
    """Abstract base class that every transcription backend must implement.

    Subclasses provide :meth:`connect`, :meth:`disconnect`,
    :meth:`health_check` and :meth:`transcribe`.  The :attr:`name`
    property returns the identifier used by the registry and reported
    as ``engine_name``.
    """

    #: Whether ``environment_info`` should carry a ``model`` entry.
    report_model_in_environment: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the engine identifier string (e.g. ``'faster_whisper'``)."""
        ...  # pragma: no cover

    @property
    def label(self) -> str:
        """Upper-case label used in the environment fingerprint."""
        return self.name.replace("_", "").upper()

    @property
    @abstractmethod
    def model_identifier(self) -> str | None:
        """Model size, model name, or locale the engine runs with."""
        ...  # pragma: no cover

    @property
    def version(self) -> str | None:
        """Engine library version, when it can be determined."""
        return None

    @property
    def model_version(self) -> str | None:
        """Model revision, when it can be determined."""
        return None

    @abstractmethod
    async def connect(self) -> None:
        """Load the model or open the engine connection.

        Raises:
            RuntimeError: If the engine cannot be initialised.
        """
        ...  # pragma: no cover

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the model or connection."""
        ...  # pragma: no cover

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` if the engine is ready to transcribe."""
        ...  # pragma: no cover

    @abstractmethod
    async def transcribe(self, path: Path) -> str:
        """Transcribe the audio file at *path* and return its full text.

        Implementations are single-flight: callers must not issue a
        second call before the first completes.
        """
        ...  # pragma: no cover

    def metadata(self) -> EngineMetadata:
        """Describe this engine for result uploads."""
        return EngineMetadata(
            engine_name=self.name,
            engine_label=self.label,
            model_identifier=self.model_identifier,
            engine_version=self.version,
            model_version=self.model_version,
            report_model_in_environment=self.report_model_in_environment,
        )
