"""
Async client for the job service REST surface (base path /api/v1).

Every failure mode (HTTP error status, transport error, malformed body) is
raised as ServiceError so callers have a single thing to catch.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from api.schemas import (
    FontInfo,
    Job,
    JobRequest,
    PreviewSubtitleRequest,
    UploadResult,
    Voice,
)
from config import settings

logger = logging.getLogger(__name__)

LIST_PASSES = 3  # full walks of the paged job list before settling for what was seen


class ServiceError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or None
    if isinstance(body, dict):
        detail = body.get("error") or body.get("detail")
        if detail:
            return str(detail)
    return None


def _collect_jobs(collected: Dict[str, Dict], batch: List[Any]):
    for item in batch:
        if not isinstance(item, dict) or "id" not in item:
            raise ServiceError("GET /jobs returned a job without an id")
        collected[str(item["id"])] = item


class JobServiceClient:
    def __init__(self, base_url: str = None, timeout: float = None,
                 upload_timeout: float = None, page_limit: int = None,
                 transport: httpx.AsyncBaseTransport = None):
        self.base_url = base_url or settings.api_url
        self.upload_timeout = upload_timeout or settings.upload_timeout
        self.page_limit = page_limit or settings.list_page_limit
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise ServiceError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            raise ServiceError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )
        return response

    async def _json(self, method: str, path: str, **kwargs) -> Any:
        response = await self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(f"{method} {path} returned a non-JSON body") from e

    @staticmethod
    def _data(body: Any) -> Any:
        # list endpoints wrap their payload as {"data": [...]}
        if isinstance(body, dict) and "data" in body:
            return body["data"] or []
        return body

    # ── Jobs ──────────────────────────────────────────────────────────────

    async def create_job(self, request: JobRequest) -> str:
        body = await self._json("POST", "/jobs", json=request.model_dump(mode="json"))
        try:
            return str(body["id"])
        except (KeyError, TypeError) as e:
            raise ServiceError("POST /jobs returned no job id") from e

    async def list_jobs(self) -> List[Job]:
        """
        Fetch the complete job collection. The service paginates its list
        (page/limit, limit capped at 100), so every page is walked until the
        reported total has been collected.

        The service pages over an unordered map, so a page can repeat jobs
        already seen and skip others. Jobs are keyed by id, and a walk that
        ends short of the total is started again, up to LIST_PASSES walks.
        """
        collected: Dict[str, Dict] = {}
        total = 0
        for attempt in range(1, LIST_PASSES + 1):
            page = 1
            while True:
                body = await self._json("GET", "/jobs", params={"page": page, "limit": self.page_limit})
                if isinstance(body, list):
                    # unpaged answer is the whole collection
                    _collect_jobs(collected, body)
                    return self._validate_jobs(collected)

                batch = self._data(body)
                _collect_jobs(collected, batch)
                total = int(body.get("total", len(collected))) if isinstance(body, dict) else len(collected)
                if not batch or len(collected) >= total or page * self.page_limit >= total:
                    break
                page += 1

            if len(collected) >= total:
                break
            logger.debug(f"Job list walk {attempt} saw {len(collected)}/{total} jobs")
        else:
            logger.warning(f"GET /jobs still incomplete after {LIST_PASSES} walks ({len(collected)}/{total})")

        return self._validate_jobs(collected)

    @staticmethod
    def _validate_jobs(collected: Dict[str, Dict]) -> List[Job]:
        try:
            return [Job.model_validate(item) for item in collected.values()]
        except ValidationError as e:
            raise ServiceError(f"GET /jobs returned malformed jobs: {e}") from e

    async def get_job(self, job_id: str) -> Job:
        body = await self._json("GET", f"/jobs/{job_id}")
        try:
            return Job.model_validate(body)
        except ValidationError as e:
            raise ServiceError(f"GET /jobs/{job_id} returned a malformed job: {e}") from e

    async def cancel_job(self, job_id: str) -> None:
        await self._request("POST", f"/jobs/{job_id}/cancel")

    async def delete_job(self, job_id: str) -> None:
        await self._request("DELETE", f"/jobs/{job_id}")

    async def delete_all_jobs(self) -> None:
        await self._request("DELETE", "/jobs")

    async def download_result(self, job_id: str, dest: Union[str, Path]) -> Path:
        dest = Path(dest)
        path = f"/jobs/{job_id}/result"
        try:
            async with self._http.stream("GET", path, timeout=self.upload_timeout) as response:
                if response.is_error:
                    await response.aread()
                    raise ServiceError(
                        f"GET {path} returned {response.status_code}",
                        status_code=response.status_code,
                        detail=_error_detail(response),
                    )
                dest.parent.mkdir(parents=True, exist_ok=True)
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise ServiceError(f"GET {path} failed: {e}") from e
        return dest

    # ── Presets & assets ─────────────────────────────────────────────────

    async def list_bgm(self) -> List[str]:
        body = await self._json("GET", "/presets/bgm")
        return [str(name) for name in self._data(body)]

    async def list_fonts(self) -> List[FontInfo]:
        body = await self._json("GET", "/fonts")
        try:
            return [FontInfo.model_validate(item) for item in self._data(body)]
        except ValidationError as e:
            raise ServiceError(f"GET /fonts returned malformed fonts: {e}") from e

    async def list_voices(self, provider: str) -> List[Voice]:
        body = await self._json("GET", "/tts/voices", params={"provider": provider})
        try:
            return [Voice.model_validate(item) for item in self._data(body)]
        except ValidationError as e:
            raise ServiceError(f"GET /tts/voices returned malformed voices: {e}") from e

    async def preview_subtitle(self, request: PreviewSubtitleRequest) -> bytes:
        response = await self._request("POST", "/preview/subtitle", json=request.model_dump(mode="json"))
        return response.content

    async def upload_file(self, file_path: Union[str, Path]) -> UploadResult:
        file_path = Path(file_path)
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise ServiceError(f"Cannot read {file_path}: {e}", detail=str(e)) from e
        body = await self._json(
            "POST", "/upload",
            files={"file": (file_path.name, content)},
            timeout=self.upload_timeout,
        )
        try:
            return UploadResult.model_validate(body)
        except ValidationError as e:
            raise ServiceError(f"POST /upload returned no path: {e}") from e

    async def clean_temp_files(self) -> int:
        body = await self._json("DELETE", "/temp")
        if isinstance(body, dict):
            return int(body.get("deleted_count", 0))
        return 0
