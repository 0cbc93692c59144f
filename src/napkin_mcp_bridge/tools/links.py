from __future__ import annotations

from urllib.parse import quote


class DownloadLinks:
    """Builds download links, absolute when a public base URL is configured."""

    def __init__(self, public_base_url: str | None = None):
        self._base = (public_base_url or "").strip().rstrip("/")

    def artifact(self, artifact_id: str) -> str:
        return self._join(f"/download/{quote(artifact_id, safe='')}")

    def bundle(self, bundle_id: str) -> str:
        return self._join(f"/download/zip/{quote(bundle_id, safe='')}")

    def _join(self, path: str) -> str:
        return f"{self._base}{path}" if self._base else path
