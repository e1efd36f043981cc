"""
Control API router for asr-bench.

Exposes the three run commands (run, cancel, reset) and a read-only
snapshot of the orchestrator's state, results and summary, plus a
``/health`` endpoint reporting engine readiness.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel

from asr_bench.errors import RunAlreadyActive
from asr_bench.models import ItemResult, RunState, RunSummary
from asr_bench.orchestrator import BenchmarkOrchestrator

logger = structlog.get_logger()

router = APIRouter()


class BenchmarkSnapshot(BaseModel):
    """Point-in-time view of the orchestrator for observers."""

    state: RunState
    running: bool
    run_id: str | None = None
    results: list[ItemResult]
    summary: RunSummary | None = None
    thermal_state: str
    peak_memory_bytes: int | None = None


class CommandResponse(BaseModel):
    accepted: bool
    state: RunState


def _get_orchestrator(request: Request) -> BenchmarkOrchestrator:
    return request.app.state.orchestrator


def _run_in_flight(request: Request) -> bool:
    task: asyncio.Task[Any] | None = getattr(request.app.state, "run_task", None)
    return task is not None and not task.done()


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Return service health including engine readiness."""
    adapter = _get_orchestrator(request).adapter
    ready = await adapter.is_ready()
    return {
        "status": "ok" if ready else "degraded",
        "service": "asr-bench",
        "engine": adapter.engine.name if adapter.engine else None,
        "engine_ready": ready,
    }


@router.get("/benchmark", response_model=BenchmarkSnapshot)
async def get_benchmark(request: Request) -> BenchmarkSnapshot:
    orchestrator = _get_orchestrator(request)
    return BenchmarkSnapshot(
        state=orchestrator.state,
        running=orchestrator.is_running,
        run_id=orchestrator.run_id,
        results=orchestrator.results,
        summary=orchestrator.summary,
        thermal_state=orchestrator.thermal_state.value,
        peak_memory_bytes=orchestrator.peak_memory_bytes,
    )


@router.post(
    "/benchmark/run",
    response_model=CommandResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_run(request: Request) -> CommandResponse:
    """Start a run in the background; 409 if one is already active."""
    orchestrator = _get_orchestrator(request)
    if orchestrator.is_running or _run_in_flight(request):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(RunAlreadyActive()))

    request.app.state.run_task = asyncio.create_task(orchestrator.run(), name="benchmark-run")
    logger.info("run_requested", audio_set_id=orchestrator.config.audio_set_id)
    return CommandResponse(accepted=True, state=orchestrator.state)


@router.post(
    "/benchmark/cancel",
    response_model=CommandResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def cancel_run(request: Request) -> CommandResponse:
    orchestrator = _get_orchestrator(request)
    accepted = orchestrator.is_running
    orchestrator.cancel()
    return CommandResponse(accepted=accepted, state=orchestrator.state)


@router.post("/benchmark/reset", response_model=CommandResponse)
async def reset_run(request: Request) -> CommandResponse:
    orchestrator = _get_orchestrator(request)
    try:
        orchestrator.reset()
    except RunAlreadyActive as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return CommandResponse(accepted=True, state=orchestrator.state)
