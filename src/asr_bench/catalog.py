"""
Catalog client for asr-bench.

Fetches the list of audio files that make up one benchmark batch from
``GET /api/v1/audio_sets/{set_id}/files?category={category}``.  A single
round trip per run; no retries.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from asr_bench.errors import FetchFailed, InvalidResponse
from asr_bench.models import AudioFilesResponse, CatalogItem

logger = structlog.get_logger()

_DEFAULT_TIMEOUT_S = 30.0


class CatalogClient:
    """Read-only client for the audio-set catalog.

    Args:
        base_url: Service base URL (``http://host:port``).
        timeout: Per-request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = _DEFAULT_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared ``httpx.AsyncClient``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def files_url(self, audio_set_id: str) -> str:
        return f"{self.base_url}/api/v1/audio_sets/{quote(audio_set_id, safe='')}/files"

    async def fetch(self, audio_set_id: str, category: str) -> list[CatalogItem]:
        """Return the catalog items for *audio_set_id* / *category*.

        Raises:
            FetchFailed: On transport errors or a non-200 status.
            InvalidResponse: If the body does not match the catalog schema.
        """
        url = self.files_url(audio_set_id)
        log = logger.bind(audio_set_id=audio_set_id, category=category)
        client = await self._get_client()
        try:
            resp = await client.get(url, params={"category": category})
        except httpx.HTTPError as exc:
            log.error("catalog_fetch_transport_error", error=str(exc))
            raise FetchFailed(str(exc) or type(exc).__name__) from exc

        if resp.status_code != httpx.codes.OK:
            log.error("catalog_fetch_bad_status", status=resp.status_code)
            raise FetchFailed(f"HTTP {resp.status_code}")

        try:
            body = AudioFilesResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            log.error("catalog_decode_failed", errors=exc.error_count())
            raise InvalidResponse("catalog", str(exc)) from exc

        log.info("catalog_fetched", count=len(body.files))
        return body.files

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
