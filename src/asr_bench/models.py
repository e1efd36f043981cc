"""
Data models for asr-bench.

Defines the Pydantic models for the catalog/reporting service wire format
(AudioFilesResponse, TranscriptionResultRequest, TranscriptionResultResponse),
the per-item result record, the run-state tagged variant, and the derived
run summary.
"""

from __future__ import annotations

import enum
from pathlib import Path, PurePosixPath
from statistics import fmean
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ── Catalog service wire models ──


class CatalogItem(BaseModel):
    """One benchmark sample listed by the catalog service.

    Attributes:
        id: Catalog file identifier.
        remote_path: Server-relative download path (wire field ``url``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Catalog file identifier.")
    remote_path: str = Field(..., alias="url", description="Server-relative download path.")

    @property
    def file_name(self) -> str:
        """Last path segment of :attr:`remote_path`, or :attr:`id` if empty."""
        name = PurePosixPath(urlsplit(self.remote_path).path).name
        return name or self.id

    @property
    def extension(self) -> str:
        """File extension (with leading dot) taken from the URL path."""
        return PurePosixPath(urlsplit(self.remote_path).path).suffix


class AudioFilesResponse(BaseModel):
    """Body of ``GET /api/v1/audio_sets/{set_id}/files``."""

    audio_set_id: str
    category: str
    files: list[CatalogItem]


class TranscriptionResultRequest(BaseModel):
    """Body of ``POST /api/v1/transcription_results``.

    Optional fields left as ``None`` are omitted from the JSON body.
    """

    file_id: str
    engine_name: str
    engine_version: str | None = None
    asr_model: str | None = None
    asr_model_version: str | None = None
    processing_time: float | None = None
    environment_name: str | None = None
    environment_info: dict[str, str] | None = None
    transcribed_text: str | None = None
    memo: str | None = None


class TranscriptionResultResponse(BaseModel):
    """Metrics computed by the reporting service for one uploaded result."""

    id: int
    status: str
    file_id: str
    cer: float | None = None
    reference_length: int | None = None
    hypothesis_length: int | None = None
    hits: int | None = None
    substitutions: int | None = None
    deletions: int | None = None
    insertions: int | None = None
    created_at: str


# ── Engine metadata ──


class EngineMetadata(BaseModel):
    """Engine description attached to every uploaded result.

    Attributes:
        engine_name: Engine identifier reported as ``engine_name``.
        engine_label: Upper-case label used in the environment fingerprint.
        model_identifier: Model (or locale) identifier, if known.
        engine_version: Engine library version, if known.
        model_version: Model revision, if known.
        report_model_in_environment: Whether ``environment_info`` carries
            a ``model`` entry.
    """

    model_config = ConfigDict(frozen=True)

    engine_name: str
    engine_label: str
    model_identifier: str | None = None
    engine_version: str | None = None
    model_version: str | None = None
    report_model_in_environment: bool = False


# ── Run state ──


class FileStatus(str, enum.Enum):
    """Progress of one catalog item through the pipeline."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    # Not assigned while any failure aborts the whole run.
    ERROR = "error"


class ProcessingPhase(str, enum.Enum):
    """Sub-stage of the ``processing`` run state."""

    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    UPLOADING = "uploading"


class RunStatus(str, enum.Enum):
    """Top-level stage of a benchmark run."""

    IDLE = "idle"
    FETCHING_CATALOG = "fetching_catalog"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class RunState(BaseModel):
    """Tagged run-state value.

    ``current``/``total``/``phase`` are set only for ``processing`` and
    ``message`` only for ``error``.  Build instances through the
    classmethod constructors.
    """

    model_config = ConfigDict(frozen=True)

    status: RunStatus
    current: int | None = Field(default=None, ge=1)
    total: int | None = Field(default=None, ge=1)
    phase: ProcessingPhase | None = None
    message: str | None = None

    @model_validator(mode="after")
    def _check_variant(self) -> RunState:
        processing = self.status is RunStatus.PROCESSING
        has_progress = None not in (self.current, self.total, self.phase)
        if processing != has_progress:
            raise ValueError("current, total and phase belong to the processing state only")
        if processing and self.current > self.total:  # type: ignore[operator]
            raise ValueError("current must not exceed total")
        if (self.status is RunStatus.ERROR) != (self.message is not None):
            raise ValueError("message belongs to the error state only")
        return self

    @classmethod
    def idle(cls) -> RunState:
        return cls(status=RunStatus.IDLE)

    @classmethod
    def fetching_catalog(cls) -> RunState:
        return cls(status=RunStatus.FETCHING_CATALOG)

    @classmethod
    def processing(cls, current: int, total: int, phase: ProcessingPhase) -> RunState:
        return cls(status=RunStatus.PROCESSING, current=current, total=total, phase=phase)

    @classmethod
    def completed(cls) -> RunState:
        return cls(status=RunStatus.COMPLETED)

    @classmethod
    def error(cls, message: str) -> RunState:
        return cls(status=RunStatus.ERROR, message=message)

    @property
    def is_terminal(self) -> bool:
        """``True`` for ``completed`` and ``error``."""
        return self.status in (RunStatus.COMPLETED, RunStatus.ERROR)


class ItemResult(BaseModel):
    """Mutable progress/result record for one catalog item.

    Owned by the orchestrator; observers receive copies.
    """

    id: str
    file_name: str
    status: FileStatus = FileStatus.PENDING
    processing_duration: float | None = Field(default=None, ge=0.0)
    transcribed_text: str | None = None
    character_error_rate: float | None = None
    reference_length: int | None = None
    hypothesis_length: int | None = None
    hits: int | None = None
    substitutions: int | None = None
    deletions: int | None = None
    insertions: int | None = None

    @classmethod
    def pending_for(cls, item: CatalogItem) -> ItemResult:
        return cls(id=item.id, file_name=item.file_name)

    def record_metrics(self, response: TranscriptionResultResponse) -> None:
        """Copy the service-computed error metrics onto this record."""
        self.character_error_rate = response.cer
        self.reference_length = response.reference_length
        self.hypothesis_length = response.hypothesis_length
        self.hits = response.hits
        self.substitutions = response.substitutions
        self.deletions = response.deletions
        self.insertions = response.insertions


class RunSummary(BaseModel):
    """Aggregates computed once when a run completes.

    Attributes:
        item_count: Number of catalog items in the run.
        total_processing_time: Sum of per-item transcription durations (s).
        average_cer: Mean CER over items that reported one; ``None`` when
            no item did.
    """

    model_config = ConfigDict(frozen=True)

    item_count: int = 0
    total_processing_time: float = 0.0
    average_cer: float | None = None

    @classmethod
    def from_results(cls, results: list[ItemResult]) -> RunSummary:
        rates = [r.character_error_rate for r in results if r.character_error_rate is not None]
        return cls(
            item_count=len(results),
            total_processing_time=sum(r.processing_duration or 0.0 for r in results),
            average_cer=fmean(rates) if rates else None,
        )


# ── Run configuration ──


class RunConfig(BaseModel):
    """Caller-supplied configuration for one benchmark run."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(..., description="Catalog/reporting service base URL.")
    audio_set_id: str = Field(..., description="Catalog audio set identifier.")
    category: str = Field(..., description="Catalog category within the set.")


class StagedFile(BaseModel):
    """A downloaded item awaiting release."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    local_path: Path
