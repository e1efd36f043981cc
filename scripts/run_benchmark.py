"""Run one ASR benchmark pass against the catalog service and print the summary.

Settings come from ``BENCH_``-prefixed environment variables; the flags
below override the catalog location and engine for this invocation.

Usage:
    python scripts/run_benchmark.py --engine faster_whisper --audio-set reazonspeech-small --category batch_01
"""

import argparse
import asyncio
import signal
import sys

from asr_bench.config import Settings, get_settings
from asr_bench.logging import configure_logging
from asr_bench.main import build_orchestrator, shutdown_orchestrator
from asr_bench.models import RunStatus


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for a single benchmark run."""
    parser = argparse.ArgumentParser(description="Benchmark an ASR engine against the catalog")
    parser.add_argument("--engine", type=str, default=None, help="Engine identifier")
    parser.add_argument("--base-url", type=str, default=None, help="Catalog service base URL")
    parser.add_argument("--audio-set", type=str, default=None, help="Catalog audio set id")
    parser.add_argument("--category", type=str, default=None, help="Category within the set")
    return parser.parse_args()


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "engine": args.engine,
        "base_url": args.base_url,
        "audio_set_id": args.audio_set,
        "category": args.category,
    }
    return get_settings().model_copy(update={k: v for k, v in overrides.items() if v is not None})


async def _run(settings: Settings) -> int:
    orchestrator = await build_orchestrator(settings)
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
    try:
        final = await orchestrator.run()
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        await shutdown_orchestrator(orchestrator)

    for result in orchestrator.results:
        cer = "-" if result.character_error_rate is None else f"{result.character_error_rate:.4f}"
        duration = "-" if result.processing_duration is None else f"{result.processing_duration:.2f}s"
        print(f"{result.id}\t{result.file_name}\t{result.status.value}\t{duration}\tCER={cer}")

    if final.status is RunStatus.COMPLETED and orchestrator.summary is not None:
        summary = orchestrator.summary
        average = "n/a" if summary.average_cer is None else f"{summary.average_cer:.4f}"
        print(
            f"completed {summary.item_count} items, "
            f"total {summary.total_processing_time:.2f}s, average CER {average}"
        )
        return 0
    if final.status is RunStatus.ERROR:
        print(f"error: {final.message}", file=sys.stderr)
        return 1
    print("cancelled", file=sys.stderr)
    return 130


def main() -> None:
    """Run a single benchmark pass."""
    args = parse_args()
    settings = _settings_from_args(args)
    configure_logging(settings.log_level, json_logs=settings.log_json)
    sys.exit(asyncio.run(_run(settings)))


if __name__ == "__main__":
    main()
