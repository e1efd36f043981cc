"""
Control service entry point for asr-bench.

Configures logging, builds the active transcription engine and the
benchmark orchestrator from settings, connects the engine, and serves
the control API and Prometheus metrics with Uvicorn.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from asr_bench.adapter import TranscriptionAdapter
from asr_bench.api import router
from asr_bench.config import Settings, get_settings
from asr_bench.engines import build_engine, register_default_engines
from asr_bench.logging import configure_logging
from asr_bench.orchestrator import BenchmarkOrchestrator
from asr_bench.telemetry import DeviceTelemetry

logger = structlog.get_logger()


async def build_orchestrator(settings: Settings) -> BenchmarkOrchestrator:
    """Create the engine named in *settings*, connect it, and wire the orchestrator.

    An engine that fails to connect is left unconfigured; runs then fail
    with ``EngineNotReady`` and ``/health`` reports ``degraded``.
    """
    register_default_engines()
    adapter = TranscriptionAdapter()
    try:
        engine = build_engine(settings)
        await engine.connect()
        adapter.configure(engine)
    except Exception:
        logger.error("engine_init_failed", engine=settings.engine, exc_info=True)

    return BenchmarkOrchestrator.from_config(
        settings.run_config(),
        adapter,
        telemetry=DeviceTelemetry(device_name=settings.device_name),
        scratch_dir=settings.scratch_dir,
        timeout=settings.http_timeout_s,
    )


async def shutdown_orchestrator(orchestrator: BenchmarkOrchestrator) -> None:
    """Disconnect the engine and close service clients."""
    engine = orchestrator.adapter.engine
    if engine is not None:
        await engine.disconnect()
    await orchestrator.aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: build the orchestrator, tear it down on exit."""
    settings: Settings = app.state.settings
    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = await build_orchestrator(settings)
    app.state.run_task = None
    logger.info("asr_bench_startup", engine=settings.engine, base_url=settings.base_url)

    yield

    # ── shutdown ──
    logger.info("asr_bench_shutdown")
    task: asyncio.Task[object] | None = app.state.run_task
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await shutdown_orchestrator(app.state.orchestrator)


def create_app(
    settings: Settings | None = None,
    orchestrator: BenchmarkOrchestrator | None = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(title="asr-bench control service", lifespan=lifespan)
    app.state.settings = settings or get_settings()
    app.state.orchestrator = orchestrator
    app.state.run_task = None
    app.include_router(router)

    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)
    return app


def main() -> None:
    """Run the control service with Uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
