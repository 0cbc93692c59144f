from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt

from napkin_mcp_bridge.errors import (
    GenerationTimeoutError,
    InvalidProviderResponse,
    JobFailedError,
    SubmissionError,
)
from napkin_mcp_bridge.provider.job_state import JobStatus
from napkin_mcp_bridge.provider.napkin_client import NapkinClient

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_ATTEMPTS = 12

_FORMAT_MIME_TYPES = {
    "svg": "image/svg+xml",
    "png": "image/png",
}


@dataclass(frozen=True)
class ArtifactBytes:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class GenerationNotice:
    """The job finished but left nothing we could retrieve; ``text`` explains why."""

    text: str


GenerationOutcome = ArtifactBytes | GenerationNotice


@dataclass(frozen=True)
class JobHandle:
    external_id: str


class _JobInFlight(Exception):
    def __init__(self, status: JobStatus, raw_status: object):
        super().__init__(f"job still {raw_status!r}")
        self.status = status


def _log_poll_attempt(retry_state) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    attempt = retry_state.attempt_number
    if isinstance(exc, _JobInFlight):
        logger.debug(f"Poll attempt {attempt}: job {exc.status.value}")
    elif exc is not None:
        logger.warning(f"Poll attempt {attempt} failed ({type(exc).__name__}: {exc}); will try again")


def extract_job_id(data: dict[str, Any]) -> str | None:
    for key in ("id", "request_id"):
        value = data.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def extract_download_url(status: dict[str, Any]) -> str | None:
    files = status.get("generated_files")
    if isinstance(files, list) and files:
        first = files[0]
        if isinstance(first, str) and first:
            return first
        if isinstance(first, dict) and first.get("url"):
            return str(first["url"])
    url = status.get("url")
    if isinstance(url, str) and url:
        return url
    return None


def _failure_message(status: dict[str, Any]) -> str:
    error = status.get("error") or status.get("message")
    if isinstance(error, dict):
        error = error.get("message") or json.dumps(error)
    if not error:
        return "Napkin reported the job as failed without further detail"
    return str(error)


class JobPoller:
    """Runs one create -> poll -> download sequence against Napkin per call.

    The poll loop sleeps ``poll_interval`` before every status query and gives up
    after ``max_attempts`` queries or once ``poll_interval * max_attempts`` seconds
    of wall-clock time have passed, whichever comes first. Failed status queries
    count against that budget but are otherwise ignored.
    """

    def __init__(
        self,
        client: NapkinClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._poll_interval = poll_interval
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep

    @property
    def ceiling_seconds(self) -> float:
        return self._poll_interval * self._max_attempts

    async def submit_and_await(
        self,
        content: str,
        visual_type: str | None = None,
        format: str = "svg",
    ) -> GenerationOutcome:
        handle = await self._submit(content, visual_type, format)
        status = await self._await_completion(handle)

        url = extract_download_url(status)
        if url is None:
            logger.warning(f"Job {handle.external_id} completed without a download URL")
            return GenerationNotice(
                "Visual generation completed, but Napkin did not return a download URL.\n\n"
                f"Status payload: {json.dumps(status, default=str)}"
            )
        return await self._download(handle, url, format)

    async def _submit(self, content: str, visual_type: str | None, format: str) -> JobHandle:
        payload: dict[str, Any] = {"content": content, "format": format}
        if visual_type:
            payload["visual_query"] = visual_type

        try:
            data = await self._client.create_visual(payload)
        except httpx.HTTPError as ex:
            raise SubmissionError(f"Could not reach Napkin API: {ex}") from ex

        job_id = extract_job_id(data)
        if job_id is None:
            raise SubmissionError(f"Napkin API response did not include a job id: {json.dumps(data, default=str)}")
        logger.info(f"Submitted Napkin job {job_id} (format={format}, visual_query={visual_type or 'auto'})")
        return JobHandle(external_id=job_id)

    async def _await_completion(self, handle: JobHandle) -> dict[str, Any]:
        status: dict[str, Any] = {}
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type((_JobInFlight, httpx.HTTPError, InvalidProviderResponse)),
            after=_log_poll_attempt,
        )
        try:
            # The deadline also cuts short a status request that is still in flight.
            async with asyncio.timeout(self.ceiling_seconds):
                async for attempt in retrying:
                    with attempt:
                        await self._sleep(self._poll_interval)
                        status = await self._client.get_status(handle.external_id)
                        state = JobStatus.parse(status.get("status"))
                        if state.is_failure:
                            message = _failure_message(status)
                            logger.error(f"Napkin job {handle.external_id} {state.value}: {message}")
                            raise JobFailedError(f"Visual generation failed: {message}")
                        if state is not JobStatus.COMPLETED:
                            raise _JobInFlight(state, status.get("status"))
        except (RetryError, TimeoutError) as ex:
            seconds = f"{self.ceiling_seconds:g}"
            logger.error(f"Napkin job {handle.external_id} reached {JobStatus.TIMEOUT.value} after {seconds}s")
            raise GenerationTimeoutError(f"Visual generation timed out after {seconds} seconds") from ex

        logger.info(f"Napkin job {handle.external_id} completed")
        return status

    async def _download(self, handle: JobHandle, url: str, format: str) -> GenerationOutcome:
        try:
            response = await self._client.download(url)
        except httpx.HTTPError as ex:
            logger.warning(f"Download for job {handle.external_id} failed: {ex}")
            return GenerationNotice(
                f"Visual generated successfully, but downloading it failed: {ex}\n\nURL: {url}"
            )

        if not response.is_success:
            logger.warning(f"Download for job {handle.external_id} returned HTTP {response.status_code}")
            return GenerationNotice(
                "Visual generated successfully, but the file could not be downloaded "
                f"(HTTP {response.status_code}).\n\nURL: {url}"
            )

        content_type = response.headers.get("content-type", "")
        mime_type = content_type.split(";", 1)[0].strip().lower()
        if not mime_type:
            mime_type = _FORMAT_MIME_TYPES.get(format, "application/octet-stream")
        return ArtifactBytes(data=response.content, mime_type=mime_type)
