"""Shared fixtures for asr-bench tests."""

from __future__ import annotations

import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Make helpers in this module importable from test files
# (needed with --import-mode=importlib).
sys.path.insert(0, str(Path(__file__).resolve().parent))

from asr_bench.adapter import TranscriptionAdapter  # noqa: E402
from asr_bench.engine_base import TranscriptionEngine  # noqa: E402
from asr_bench.models import RunConfig  # noqa: E402
from asr_bench.orchestrator import BenchmarkOrchestrator  # noqa: E402
from asr_bench.telemetry import DeviceTelemetry  # noqa: E402

BASE_URL = "http://bench.test"
AUDIO_SET_ID = "set-1"
CATEGORY = "batch_01"
AUDIO_BYTES = b"RIFF\x24\x00\x00\x00WAVEfmt "


def make_response(
    status: int,
    *,
    json_body: Any = None,
    content: bytes | None = None,
    method: str = "GET",
    url: str = BASE_URL,
) -> httpx.Response:
    """Build a real ``httpx.Response`` bound to a request."""
    request = httpx.Request(method, url)
    if json_body is not None:
        return httpx.Response(status, json=json_body, request=request)
    return httpx.Response(status, content=content or b"", request=request)


def make_result_body(file_id: str, *, cer: float | None = 0.1, result_id: int = 1) -> dict[str, Any]:
    """A reporting-service response body for one uploaded result."""
    return {
        "id": result_id,
        "status": "created",
        "file_id": file_id,
        "cer": cer,
        "reference_length": 50,
        "hypothesis_length": 49,
        "hits": 47,
        "substitutions": 2,
        "deletions": 1,
        "insertions": 0,
        "created_at": "2025-12-23T10:00:00Z",
    }


def make_deepgram_response(transcript: str) -> MagicMock:
    """Shape of a Deepgram pre-recorded response carrying one alternative."""
    alternative = MagicMock()
    alternative.transcript = transcript
    channel = MagicMock()
    channel.alternatives = [alternative]
    response = MagicMock()
    response.results.channels = [channel]
    return response


class FakeEngine(TranscriptionEngine):
    """In-memory engine returning canned text per file.

    Args:
        text: Text returned for every file.
        ready: Value reported by :meth:`health_check`.
        error: Exception raised by :meth:`transcribe`, if any.
        on_transcribe: Awaited with the path before returning.
    """

    report_model_in_environment = True

    def __init__(
        self,
        text: str = "こんにちは世界",
        *,
        ready: bool = True,
        error: Exception | None = None,
        on_transcribe: Callable[[Path], Awaitable[None]] | None = None,
    ) -> None:
        self.text = text
        self.ready = ready
        self.error = error
        self.on_transcribe = on_transcribe
        self.calls: list[Path] = []

    @property
    def name(self) -> str:
        return "fake_engine"

    @property
    def model_identifier(self) -> str:
        return "tiny"

    async def connect(self) -> None:
        self.ready = True

    async def disconnect(self) -> None:
        self.ready = False

    async def health_check(self) -> bool:
        return self.ready

    async def transcribe(self, path: Path) -> str:
        self.calls.append(path)
        assert path.exists(), "engine must receive a staged file"
        if self.on_transcribe is not None:
            await self.on_transcribe(path)
        if self.error is not None:
            raise self.error
        return self.text


class FakeBenchmarkService:
    """``httpx.MockTransport`` handler emulating the catalog/reporting service.

    Args:
        files: Catalog entries (``{"id": ..., "url": ...}``).
        cer: CER returned per file id (missing → ``None``).
        catalog_status: Status for the catalog listing.
        download_status: Status per download path (default 200).
        upload_status: Status for result uploads.
    """

    def __init__(
        self,
        files: list[dict[str, str]],
        *,
        cer: dict[str, float] | None = None,
        catalog_status: int = 200,
        download_status: dict[str, int] | None = None,
        upload_status: int = 201,
    ) -> None:
        self.files = files
        self.cer = cer or {}
        self.catalog_status = catalog_status
        self.download_status = download_status or {}
        self.upload_status = upload_status
        self.uploads: list[dict[str, Any]] = []
        self.downloads: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET" and path == f"/api/v1/audio_sets/{AUDIO_SET_ID}/files":
            if self.catalog_status != 200:
                return httpx.Response(self.catalog_status, text="unavailable")
            return httpx.Response(
                200,
                json={
                    "audio_set_id": AUDIO_SET_ID,
                    "category": request.url.params.get("category"),
                    "files": self.files,
                },
            )
        if request.method == "POST" and path == "/api/v1/transcription_results":
            body = json.loads(request.content)
            self.uploads.append(body)
            if self.upload_status not in (200, 201):
                return httpx.Response(self.upload_status, text='{"error":"file_id not found"}')
            return httpx.Response(
                self.upload_status,
                json=make_result_body(
                    body["file_id"], cer=self.cer.get(body["file_id"]), result_id=len(self.uploads)
                ),
            )
        if request.method == "GET" and any(f["url"] == path for f in self.files):
            self.downloads.append(path)
            status = self.download_status.get(path, 200)
            return httpx.Response(status, content=AUDIO_BYTES if status == 200 else b"")
        return httpx.Response(404)


# ─── Fixtures ────────────────────────────────────────────────


@pytest.fixture()
def run_config() -> RunConfig:
    return RunConfig(base_url=BASE_URL, audio_set_id=AUDIO_SET_ID, category=CATEGORY)


@pytest.fixture()
def telemetry(tmp_path: Path) -> DeviceTelemetry:
    """Telemetry with a fixed device name and no thermal zones."""
    return DeviceTelemetry(device_name="Bench Host 01", thermal_root=tmp_path / "no-thermal")


@pytest.fixture()
def scratch_dir(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture()
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def mock_deepgram_rest() -> AsyncMock:
    """Versioned pre-recorded REST client returned by ``listen.asyncrest.v("1")``."""
    rest = AsyncMock()
    rest.transcribe_file = AsyncMock(return_value=make_deepgram_response("こんにちは"))
    return rest


@pytest.fixture()
def mock_deepgram_client(mock_deepgram_rest: AsyncMock) -> MagicMock:
    """``DeepgramClient`` instance wired to :func:`mock_deepgram_rest`."""
    client = MagicMock()
    client.listen.asyncrest.v.return_value = mock_deepgram_rest
    return client


@pytest.fixture()
def build_orchestrator(
    run_config: RunConfig,
    telemetry: DeviceTelemetry,
    scratch_dir: Path,
) -> Callable[..., BenchmarkOrchestrator]:
    """Factory wiring a real orchestrator to a :class:`FakeBenchmarkService`."""
    from asr_bench.catalog import CatalogClient
    from asr_bench.reporter import ResultReporter
    from asr_bench.stager import ItemStager

    def _build(
        service: FakeBenchmarkService,
        engine: TranscriptionEngine | None,
    ) -> BenchmarkOrchestrator:
        client = httpx.AsyncClient(transport=httpx.MockTransport(service))
        return BenchmarkOrchestrator(
            run_config,
            catalog=CatalogClient(BASE_URL, client=client),
            stager=ItemStager(BASE_URL, scratch_dir=scratch_dir, client=client),
            adapter=TranscriptionAdapter(engine),
            reporter=ResultReporter(BASE_URL, telemetry=telemetry, client=client),
            telemetry=telemetry,
        )

    return _build
