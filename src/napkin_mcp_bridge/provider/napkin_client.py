from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx

from napkin_mcp_bridge.errors import InvalidProviderResponse, SubmissionError

DEFAULT_BASE_URL = "https://api.napkin.ai/v1"
_TIMEOUT_SECONDS = 30.0


class NapkinClient:
    """Thin async wrapper over the Napkin visual-generation API.

    Every request carries the same bearer credential, including downloads of the
    generated files, which Napkin serves from absolute URLs.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = _TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_visual(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post("/visual", json=payload)
        if not response.is_success:
            raise SubmissionError(f"Napkin API error ({response.status_code}): {response.text}")
        try:
            data = response.json()
        except json.JSONDecodeError as ex:
            raise SubmissionError(
                f"Napkin API returned a non-JSON body ({response.status_code}): {response.text}"
            ) from ex
        if not isinstance(data, dict):
            raise SubmissionError(f"Napkin API returned an unexpected body: {response.text}")
        return data

    async def get_status(self, job_id: str) -> dict[str, Any]:
        """Fetch the status payload for a job.

        Raises ``httpx.HTTPError`` on transport failures and non-2xx answers, and
        ``InvalidProviderResponse`` when the body is not a JSON object.
        """
        response = await self._client.get(f"/visual/{quote(job_id, safe='')}/status")
        response.raise_for_status()
        try:
            data = response.json()
        except json.JSONDecodeError as ex:
            raise InvalidProviderResponse(f"Status for job {job_id} is not JSON: {response.text[:200]}") from ex
        if not isinstance(data, dict):
            raise InvalidProviderResponse(f"Status for job {job_id} is not an object: {response.text[:200]}")
        return data

    async def download(self, url: str) -> httpx.Response:
        return await self._client.get(url, headers={"Accept": "*/*"})
