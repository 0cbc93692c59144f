from typing import Any

from napkin_mcp_bridge.errors import BundleError, ToolExecutionError
from napkin_mcp_bridge.store.artifact_store import ArtifactStore
from napkin_mcp_bridge.tool import ToolResult
from napkin_mcp_bridge.tools.links import DownloadLinks


class BundleVisualsTool:
    def __init__(self, store: ArtifactStore, links: DownloadLinks):
        self._store = store
        self._links = links

    @property
    def name(self) -> str:
        return "bundle_visuals"

    @property
    def description(self) -> str:
        return (
            "Package previously generated visuals into a single zip download. "
            "Pass the artifact ids returned by generate_visual, in the order they should appear."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "artifact_ids": {
                    "type": "array",
                    "description": "Artifact ids returned by generate_visual",
                    "items": {"type": "string"},
                    "minItems": 1,
                },
            },
            "required": ["artifact_ids"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        raw_ids = tool_input.get("artifact_ids")
        if raw_ids is None:
            raw_ids = []
        if not isinstance(raw_ids, list) or not all(isinstance(i, str) for i in raw_ids):
            raise ToolExecutionError("Error creating bundle: 'artifact_ids' must be an array of strings")

        try:
            bundle_id = self._store.bundle(raw_ids)
        except BundleError as ex:
            raise ToolExecutionError(f"Error creating bundle: {ex}") from ex

        return ToolResult.text(
            f"Bundle created with {len(raw_ids)} visual(s).\n\n"
            f"Download zip: {self._links.bundle(bundle_id)}\n"
            f"Bundle id: {bundle_id}"
        )
