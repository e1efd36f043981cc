"""
asr-bench: speech-recognition benchmark orchestration.

Drives a catalog of audio samples through a transcription engine and a
results-reporting service one item at a time, tracking per-item progress
and aggregate character error rate, and cleaning up staged audio on every
exit path.
"""

from asr_bench.adapter import TranscriptionAdapter
from asr_bench.catalog import CatalogClient
from asr_bench.engine_base import TranscriptionEngine
from asr_bench.errors import (
    BenchmarkError,
    Cancelled,
    DownloadFailed,
    EngineNotReady,
    FetchFailed,
    InvalidResponse,
    RunAlreadyActive,
    TranscriptionFailed,
    UploadFailed,
)
from asr_bench.models import (
    CatalogItem,
    FileStatus,
    ItemResult,
    ProcessingPhase,
    RunConfig,
    RunState,
    RunStatus,
    RunSummary,
)
from asr_bench.orchestrator import BenchmarkOrchestrator
from asr_bench.reporter import ResultReporter
from asr_bench.stager import ItemStager

__all__ = [
    "BenchmarkError",
    "BenchmarkOrchestrator",
    "Cancelled",
    "CatalogClient",
    "CatalogItem",
    "DownloadFailed",
    "EngineNotReady",
    "FetchFailed",
    "FileStatus",
    "InvalidResponse",
    "ItemResult",
    "ItemStager",
    "ProcessingPhase",
    "ResultReporter",
    "RunAlreadyActive",
    "RunConfig",
    "RunState",
    "RunStatus",
    "RunSummary",
    "TranscriptionAdapter",
    "TranscriptionEngine",
    "TranscriptionFailed",
    "UploadFailed",
]
