"""
Benchmark orchestrator for asr-bench.

Owns the run state machine.  One run fetches the catalog once, then for
each item, strictly in order: stages the file, transcribes it, uploads the
result and records the returned error metrics.  Any failure aborts the
run; cancellation is cooperative and observed between steps.  Staged files
are released on every exit path.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
from prometheus_client import Counter, Histogram

from asr_bench.adapter import TranscriptionAdapter
from asr_bench.catalog import CatalogClient
from asr_bench.errors import BenchmarkError, Cancelled, RunAlreadyActive
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
from asr_bench.reporter import ResultReporter
from asr_bench.stager import ItemStager
from asr_bench.telemetry import DeviceTelemetry, ThermalState

logger = structlog.get_logger()

# ── Prometheus metrics ──
ITEMS_PROCESSED = Counter(
    "asr_bench_items_processed_total",
    "Total number of catalog items transcribed and reported.",
    ["engine"],
)
RUNS_FINISHED = Counter(
    "asr_bench_runs_finished_total",
    "Total number of benchmark runs by outcome.",
    ["outcome"],
)
TRANSCRIPTION_SECONDS = Histogram(
    "asr_bench_transcription_seconds",
    "Wall-clock transcription time per item.",
    ["engine"],
)

StateListener = Callable[[RunState], None]

_PHASE_STATUS = {
    ProcessingPhase.DOWNLOADING: FileStatus.DOWNLOADING,
    ProcessingPhase.TRANSCRIBING: FileStatus.TRANSCRIBING,
    ProcessingPhase.UPLOADING: FileStatus.UPLOADING,
}


class BenchmarkOrchestrator:
    """Sequence catalog → stage → transcribe → upload for every item.

    The orchestrator is the only writer of run state.  Observers read
    copies through the properties or receive every :class:`RunState`
    change through :meth:`subscribe`.

    Args:
        config: Catalog location for the run.
        catalog: Catalog client.
        stager: Item stager owning the scratch files.
        adapter: Transcription adapter over the active engine.
        reporter: Result reporter.
        telemetry: Device telemetry sampled after each item.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        catalog: CatalogClient,
        stager: ItemStager,
        adapter: TranscriptionAdapter,
        reporter: ResultReporter,
        telemetry: DeviceTelemetry | None = None,
    ) -> None:
        self._config = config
        self._catalog = catalog
        self._stager = stager
        self._adapter = adapter
        self._reporter = reporter
        self._telemetry = telemetry or reporter.telemetry

        self._state = RunState.idle()
        self._results: list[ItemResult] = []
        self._summary: RunSummary | None = None
        self._thermal_state = ThermalState.UNKNOWN
        self._peak_memory_bytes: int | None = None
        self._run_id: str | None = None
        self._running = False
        self._cancel_requested = False
        self._listeners: list[StateListener] = []

    @classmethod
    def from_config(
        cls,
        config: RunConfig,
        adapter: TranscriptionAdapter,
        *,
        telemetry: DeviceTelemetry | None = None,
        scratch_dir: Path | str | None = None,
        timeout: float = 60.0,
    ) -> BenchmarkOrchestrator:
        """Build an orchestrator with HTTP clients pointed at ``config.base_url``."""
        telemetry = telemetry or DeviceTelemetry()
        return cls(
            config,
            catalog=CatalogClient(config.base_url, timeout=timeout),
            stager=ItemStager(config.base_url, scratch_dir=scratch_dir, timeout=timeout),
            adapter=adapter,
            reporter=ResultReporter(config.base_url, telemetry=telemetry, timeout=timeout),
            telemetry=telemetry,
        )

    # ── observer API ──

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def adapter(self) -> TranscriptionAdapter:
        return self._adapter

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def results(self) -> list[ItemResult]:
        """Copies of the per-item records, in catalog order."""
        return [r.model_copy() for r in self._results]

    @property
    def summary(self) -> RunSummary | None:
        """Aggregates of the last completed run, if any."""
        return self._summary

    @property
    def thermal_state(self) -> ThermalState:
        """Thermal state sampled after the most recent completed item."""
        return self._thermal_state

    @property
    def peak_memory_bytes(self) -> int | None:
        """Peak process RSS sampled after the most recent completed item."""
        return self._peak_memory_bytes

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def run_id(self) -> str | None:
        return self._run_id

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── commands ──

    def cancel(self) -> None:
        """Request cancellation; honoured at the next check point."""
        if not self._running:
            logger.debug("cancel_ignored_no_active_run")
            return
        self._cancel_requested = True
        logger.info("cancel_requested", run_id=self._run_id)

    def reset(self) -> None:
        """Acknowledge a finished run and return to ``idle``.

        A no-op (apart from releasing any leftover files) when already idle.

        Raises:
            RunAlreadyActive: If a run is in progress.
        """
        if self._running:
            raise RunAlreadyActive("cancel the active run before resetting")
        self._stager.release_all()
        if self._state.status is RunStatus.IDLE:
            return
        self._results = []
        self._summary = None
        self._cancel_requested = False
        self._set_state(RunState.idle())
        logger.info("run_reset", run_id=self._run_id)

    async def run(self) -> RunState:
        """Execute one full benchmark run and return its final state.

        Taxonomy errors end in ``error(message)``; cancellation ends in
        ``idle``.  Neither is raised to the caller.

        Raises:
            RunAlreadyActive: If another run is in progress.
        """
        if self._running:
            raise RunAlreadyActive()
        self._running = True
        self._cancel_requested = False
        self._run_id = uuid.uuid4().hex
        self._results = []
        self._summary = None
        log = logger.bind(
            run_id=self._run_id,
            audio_set_id=self._config.audio_set_id,
            category=self._config.category,
        )
        log.info("run_started")
        self._set_state(RunState.fetching_catalog())

        final = RunState.error("Run interrupted")
        outcome = "error"
        try:
            items = await self._catalog.fetch(self._config.audio_set_id, self._config.category)
            self._check_cancelled()
            self._results = [ItemResult.pending_for(item) for item in items]

            for index, item in enumerate(items, start=1):
                await self._process_item(index, len(items), item, log)

            self._summary = RunSummary.from_results(self._results)
            final = RunState.completed()
            outcome = "completed"
            log.info(
                "run_completed",
                items=self._summary.item_count,
                total_processing_time=round(self._summary.total_processing_time, 3),
                average_cer=self._summary.average_cer,
            )
        except Cancelled:
            final = RunState.idle()
            outcome = "cancelled"
            log.info("run_cancelled")
        except BenchmarkError as exc:
            final = RunState.error(str(exc))
            log.error("run_failed", error=str(exc))
        except asyncio.CancelledError:
            final = RunState.idle()
            outcome = "cancelled"
            log.warning("run_task_cancelled")
            raise
        except Exception as exc:
            final = RunState.error(f"Unexpected error: {exc}")
            log.exception("run_unexpected_error")
        finally:
            self._stager.release_all()
            self._running = False
            self._cancel_requested = False
            RUNS_FINISHED.labels(outcome=outcome).inc()
            self._set_state(final)
        return final

    async def aclose(self) -> None:
        """Release leftover files and close the service clients."""
        self._stager.release_all()
        await self._catalog.close()
        await self._stager.close()
        await self._reporter.close()

    # ── internal ──

    async def _process_item(self, index: int, total: int, item: CatalogItem, log: Any) -> None:
        result = self._results[index - 1]
        log = log.bind(item_id=item.id, index=index, total=total)

        self._check_cancelled()
        self._advance(result, index, total, ProcessingPhase.DOWNLOADING)
        staged = await self._stager.stage(item)

        self._check_cancelled()
        self._advance(result, index, total, ProcessingPhase.TRANSCRIBING)
        text, elapsed = await self._adapter.transcribe(staged.local_path)

        self._check_cancelled()
        self._advance(result, index, total, ProcessingPhase.UPLOADING)
        metadata = self._adapter.metadata()
        response = await self._reporter.upload(item.id, text, elapsed, metadata)

        result.processing_duration = elapsed
        result.transcribed_text = text
        result.record_metrics(response)
        result.status = FileStatus.COMPLETED
        self._thermal_state = self._telemetry.thermal_state()
        self._peak_memory_bytes = self._telemetry.peak_memory_bytes()

        ITEMS_PROCESSED.labels(engine=metadata.engine_name).inc()
        TRANSCRIPTION_SECONDS.labels(engine=metadata.engine_name).observe(elapsed)
        log.info(
            "item_completed",
            elapsed_s=round(elapsed, 3),
            cer=response.cer,
            thermal_state=self._thermal_state.value,
            peak_memory_bytes=self._peak_memory_bytes,
        )

    def _advance(self, result: ItemResult, index: int, total: int, phase: ProcessingPhase) -> None:
        result.status = _PHASE_STATUS[phase]
        self._set_state(RunState.processing(index, total, phase))

    def _check_cancelled(self) -> None:
        if self._cancel_requested:
            raise Cancelled()

    def _set_state(self, state: RunState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("state_listener_failed", status=state.status.value)
