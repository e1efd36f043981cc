"""
Error taxonomy for asr-bench.

Every failure that can end a benchmark run is a :class:`BenchmarkError`
subclass.  The string form of each error names the phase it came from so
the run's ``error`` state is readable without inspecting internals.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for all benchmark run failures.

    Args:
        reason: Human-readable detail (e.g. ``"HTTP 500"``).
    """

    prefix: str = "Benchmark failed"

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__(f"{self.prefix}: {reason}" if reason else self.prefix)


class FetchFailed(BenchmarkError):
    """The catalog could not be fetched."""

    prefix = "Catalog fetch failed"


class DownloadFailed(BenchmarkError):
    """An audio item could not be staged locally."""

    prefix = "Download failed"


class UploadFailed(BenchmarkError):
    """A transcription result was rejected or could not be sent."""

    prefix = "Result upload failed"


class EngineNotReady(BenchmarkError):
    """No transcription engine is configured, or it is not loaded."""

    prefix = "Transcription engine is not ready"


class TranscriptionFailed(BenchmarkError):
    """The transcription engine raised while processing a file."""

    prefix = "Transcription failed"


class Cancelled(BenchmarkError):
    """The run observed a cancellation request at a check point."""

    prefix = "Cancelled"


class InvalidResponse(BenchmarkError):
    """A service response body did not match the expected schema.

    Args:
        phase: Which exchange produced the body (``"catalog"``, ``"upload"``).
        reason: Decoder detail.
    """

    def __init__(self, phase: str, reason: str = "") -> None:
        self.phase = phase
        self.prefix = f"Invalid {phase} response"
        super().__init__(reason)


class RunAlreadyActive(BenchmarkError):
    """A run was started or reset while another run is in progress."""

    prefix = "A benchmark run is already active"
