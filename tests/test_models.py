"""
Tests for asr-bench data models.

Validates catalog decoding, the run-state tagged variant, item result
metric recording, and run summary aggregation.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from asr_bench.models import (
    AudioFilesResponse,
    CatalogItem,
    FileStatus,
    ItemResult,
    ProcessingPhase,
    RunState,
    RunStatus,
    RunSummary,
    TranscriptionResultRequest,
    TranscriptionResultResponse,
)

from conftest import make_result_body


class TestCatalogItem:
    def test_decodes_wire_field_url(self) -> None:
        body = AudioFilesResponse.model_validate(
            {"audio_set_id": "s", "category": "c", "files": [{"id": "a", "url": "/f/a.wav"}]}
        )
        assert body.files[0].remote_path == "/f/a.wav"

    def test_file_name_is_last_segment(self) -> None:
        item = CatalogItem(id="a", remote_path="/audio/batch/a.wav")
        assert item.file_name == "a.wav"

    def test_file_name_ignores_query(self) -> None:
        item = CatalogItem(id="a", remote_path="/audio/a.flac?sig=xyz")
        assert item.file_name == "a.flac"
        assert item.extension == ".flac"

    def test_file_name_falls_back_to_id(self) -> None:
        assert CatalogItem(id="abc", remote_path="/").file_name == "abc"

    def test_extension_missing(self) -> None:
        assert CatalogItem(id="a", remote_path="/f/raw").extension == ""

    def test_immutable(self) -> None:
        item = CatalogItem(id="a", remote_path="/f/a.wav")
        with pytest.raises(ValidationError):
            item.id = "b"  # type: ignore[misc]

    def test_missing_files_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AudioFilesResponse.model_validate({"audio_set_id": "s", "category": "c"})


class TestRunState:
    def test_constructors(self) -> None:
        assert RunState.idle().status is RunStatus.IDLE
        assert RunState.fetching_catalog().status is RunStatus.FETCHING_CATALOG
        assert RunState.completed().is_terminal
        assert RunState.error("boom").message == "boom"

    def test_processing_carries_progress(self) -> None:
        state = RunState.processing(2, 5, ProcessingPhase.UPLOADING)
        assert (state.current, state.total, state.phase) == (2, 5, ProcessingPhase.UPLOADING)
        assert not state.is_terminal

    def test_processing_requires_progress(self) -> None:
        with pytest.raises(ValidationError):
            RunState(status=RunStatus.PROCESSING, current=1)

    def test_progress_only_for_processing(self) -> None:
        with pytest.raises(ValidationError):
            RunState(status=RunStatus.IDLE, current=1, total=1, phase=ProcessingPhase.DOWNLOADING)

    def test_current_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            RunState.processing(0, 2, ProcessingPhase.DOWNLOADING)

    def test_current_not_beyond_total(self) -> None:
        with pytest.raises(ValidationError):
            RunState.processing(3, 2, ProcessingPhase.DOWNLOADING)

    def test_error_requires_message(self) -> None:
        with pytest.raises(ValidationError):
            RunState(status=RunStatus.ERROR)

    def test_equality_by_value(self) -> None:
        assert RunState.processing(1, 2, ProcessingPhase.DOWNLOADING) == RunState.processing(
            1, 2, ProcessingPhase.DOWNLOADING
        )


class TestItemResult:
    def test_pending_for_item(self) -> None:
        result = ItemResult.pending_for(CatalogItem(id="a", remote_path="/f/a.wav"))
        assert result.status is FileStatus.PENDING
        assert result.file_name == "a.wav"
        assert result.character_error_rate is None

    def test_failure_detail_lives_on_run_state_only(self) -> None:
        """Items carry no error text; the run's error state holds the message."""
        assert "error_message" not in ItemResult.model_fields
        assert RunState.error("Download failed: HTTP 500").message == "Download failed: HTTP 500"

    def test_record_metrics(self) -> None:
        result = ItemResult(id="a", file_name="a.wav")
        result.record_metrics(TranscriptionResultResponse.model_validate(make_result_body("a", cer=0.04)))
        assert result.character_error_rate == 0.04
        assert (result.hits, result.substitutions, result.deletions, result.insertions) == (47, 2, 1, 0)


class TestRunSummary:
    def test_average_over_present_values_only(self) -> None:
        results = [
            ItemResult(id="a", file_name="a", processing_duration=1.5, character_error_rate=0.02),
            ItemResult(id="b", file_name="b", processing_duration=2.0),
            ItemResult(id="c", file_name="c", processing_duration=0.5, character_error_rate=0.08),
        ]
        summary = RunSummary.from_results(results)
        assert summary.item_count == 3
        assert summary.total_processing_time == pytest.approx(4.0)
        assert summary.average_cer == pytest.approx(0.05)

    def test_average_unset_without_rates(self) -> None:
        summary = RunSummary.from_results([ItemResult(id="a", file_name="a", processing_duration=1.0)])
        assert summary.average_cer is None

    def test_empty(self) -> None:
        summary = RunSummary.from_results([])
        assert summary == RunSummary(item_count=0, total_processing_time=0.0, average_cer=None)


class TestTranscriptionResultRequest:
    def test_optional_fields_omitted(self) -> None:
        body = TranscriptionResultRequest(file_id="a", engine_name="faster_whisper")
        assert body.model_dump(exclude_none=True) == {"file_id": "a", "engine_name": "faster_whisper"}
