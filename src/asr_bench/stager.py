"""
Item stager for asr-bench.

Downloads one catalog item at a time into scratch storage under a fresh
unique name (keeping the original extension) and tracks every staged file
until :meth:`ItemStager.release_all` deletes it.  Without an explicit
scratch directory each stager uses its own private temp directory,
created on first use and removed by :meth:`ItemStager.close`.
"""

from __future__ import annotations

import asyncio
import tempfile
import uuid
from pathlib import Path

import httpx
import structlog

from asr_bench.errors import DownloadFailed
from asr_bench.models import CatalogItem, StagedFile

logger = structlog.get_logger()

_DEFAULT_TIMEOUT_S = 60.0
_SCRATCH_PREFIX = "asr-bench-"


class ItemStager:
    """Stage remote audio items locally and own them until released.

    Args:
        base_url: Service base URL; item paths are appended to it.
        scratch_dir: Target directory (default: a private ``asr-bench-*``
            temp directory owned by this stager).
        timeout: Per-request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        scratch_dir: Path | str | None = None,
        timeout: float = _DEFAULT_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._scratch_dir = Path(scratch_dir) if scratch_dir else None
        self._owns_scratch_dir = scratch_dir is None
        self.timeout = timeout
        self._client = client
        self._staged: dict[str, Path] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared ``httpx.AsyncClient``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    @property
    def scratch_dir(self) -> Path:
        """Directory staged files are written to."""
        if self._scratch_dir is None:
            self._scratch_dir = Path(tempfile.mkdtemp(prefix=_SCRATCH_PREFIX))
            logger.debug("scratch_dir_created", path=str(self._scratch_dir))
        return self._scratch_dir

    @property
    def staged(self) -> dict[str, Path]:
        """Snapshot of item id → local path for files not yet released."""
        return dict(self._staged)

    async def stage(self, item: CatalogItem) -> StagedFile:
        """Download *item* into scratch storage.

        Raises:
            DownloadFailed: On transport errors, a non-200 status, or a
                local write failure.
        """
        url = f"{self.base_url}{item.remote_path}"
        log = logger.bind(item_id=item.id, url=url)
        client = await self._get_client()
        try:
            resp = await client.get(url)
        except httpx.HTTPError as exc:
            log.error("download_transport_error", error=str(exc))
            raise DownloadFailed(str(exc) or type(exc).__name__) from exc

        if resp.status_code != httpx.codes.OK:
            log.error("download_bad_status", status=resp.status_code)
            raise DownloadFailed(f"HTTP {resp.status_code}")

        scratch_dir = self.scratch_dir
        dest = scratch_dir / f"{uuid.uuid4().hex}{item.extension}"
        content = resp.content

        def _write() -> None:
            scratch_dir.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(content)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, _write)
        except OSError as exc:
            log.error("download_write_failed", path=str(dest), error=str(exc))
            self._remove(dest)
            raise DownloadFailed(f"cannot write {dest}: {exc}") from exc

        previous = self._staged.pop(item.id, None)
        if previous is not None:
            self._remove(previous)
        self._staged[item.id] = dest
        log.info("item_staged", path=str(dest), size=len(content))
        return StagedFile(item_id=item.id, local_path=dest)

    def release_all(self) -> int:
        """Delete every tracked file and clear tracking.

        Deletion failures are logged and not raised, so cleanup never masks
        the run outcome.

        Returns:
            Number of files actually removed.
        """
        removed = sum(self._remove(path) for path in self._staged.values())
        if self._staged:
            logger.info("staged_files_released", tracked=len(self._staged), removed=removed)
        self._staged.clear()
        return removed

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("staged_file_release_failed", path=str(path), error=str(exc))
            return False
        return True

    async def close(self) -> None:
        """Release staged files, remove an owned scratch dir, close the HTTP client."""
        self.release_all()
        if self._owns_scratch_dir and self._scratch_dir is not None:
            try:
                self._scratch_dir.rmdir()
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning(
                    "scratch_dir_removal_failed", path=str(self._scratch_dir), error=str(exc)
                )
            self._scratch_dir = None
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
