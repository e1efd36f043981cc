"""
Result reporter for asr-bench.

Uploads one transcribed item to ``POST /api/v1/transcription_results``
together with engine metadata and an environment fingerprint, and
returns the error metrics the service computes against its reference
transcript.  No retries.
"""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from asr_bench.errors import InvalidResponse, UploadFailed
from asr_bench.models import EngineMetadata, TranscriptionResultRequest, TranscriptionResultResponse
from asr_bench.telemetry import DeviceTelemetry

logger = structlog.get_logger()

_DEFAULT_TIMEOUT_S = 30.0
_ACCEPTED_STATUS = frozenset({httpx.codes.OK, httpx.codes.CREATED})


def environment_name(device_name: str, metadata: EngineMetadata) -> str:
    """Fingerprint ``{device}-{ENGINE}-{model}`` with whitespace removed from the device."""
    device = "".join(device_name.split())
    return f"{device}-{metadata.engine_label}-{metadata.model_identifier or 'unknown'}"


class ResultReporter:
    """Send transcription results to the reporting service.

    Args:
        base_url: Service base URL.
        telemetry: Source of device name, OS version and thermal state.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        telemetry: DeviceTelemetry | None = None,
        timeout: float = _DEFAULT_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.telemetry = telemetry or DeviceTelemetry()
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared ``httpx.AsyncClient``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @property
    def results_url(self) -> str:
        return f"{self.base_url}/api/v1/transcription_results"

    def build_request(
        self,
        item_id: str,
        text: str,
        processing_time: float,
        metadata: EngineMetadata,
    ) -> TranscriptionResultRequest:
        """Assemble the upload body for one item."""
        info = {
            "os_version": self.telemetry.os_version(),
            "engine": metadata.engine_name,
            "thermal_state": self.telemetry.thermal_state().value,
        }
        if metadata.report_model_in_environment and metadata.model_identifier:
            info["model"] = metadata.model_identifier

        return TranscriptionResultRequest(
            file_id=item_id,
            engine_name=metadata.engine_name,
            engine_version=metadata.engine_version,
            asr_model=metadata.model_identifier,
            asr_model_version=metadata.model_version,
            processing_time=processing_time,
            environment_name=environment_name(self.telemetry.device_name(), metadata),
            environment_info=info,
            transcribed_text=text,
        )

    async def upload(
        self,
        item_id: str,
        text: str,
        processing_time: float,
        metadata: EngineMetadata,
    ) -> TranscriptionResultResponse:
        """POST one result and return the service-computed metrics.

        Raises:
            UploadFailed: On transport errors or a status other than 200/201.
            InvalidResponse: If the response body does not match the schema.
        """
        body = self.build_request(item_id, text, processing_time, metadata)
        payload = body.model_dump(mode="json", exclude_none=True)
        log = logger.bind(item_id=item_id, engine=metadata.engine_name)
        log.debug("result_upload_request", url=self.results_url, payload=payload)

        client = await self._get_client()
        try:
            resp = await client.post(self.results_url, json=payload)
        except httpx.HTTPError as exc:
            log.error("result_upload_transport_error", error=str(exc))
            raise UploadFailed(str(exc) or type(exc).__name__) from exc

        if resp.status_code not in _ACCEPTED_STATUS:
            detail = resp.text or "Unknown error"
            log.error("result_upload_rejected", status=resp.status_code, body=detail)
            raise UploadFailed(f"HTTP {resp.status_code}: {detail}")

        try:
            result = TranscriptionResultResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            raise InvalidResponse("upload", str(exc)) from exc

        log.info("result_uploaded", result_id=result.id, cer=result.cer)
        return result

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
