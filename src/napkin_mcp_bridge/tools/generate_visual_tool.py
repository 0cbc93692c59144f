import base64
from typing import Any
from uuid import uuid4

from loguru import logger

from napkin_mcp_bridge.errors import GenerationError, ToolExecutionError
from napkin_mcp_bridge.provider.job_poller import ArtifactBytes, JobPoller
from napkin_mcp_bridge.store.artifact_store import ArtifactStore
from napkin_mcp_bridge.tool import ToolResult, image_block, text_block
from napkin_mcp_bridge.tools.links import DownloadLinks

VISUAL_TYPES = ["mindmap", "flowchart", "timeline", "comparison", "infographic", "diagram"]
FORMATS = ["svg", "png"]


class GenerateVisualTool:
    def __init__(self, poller: JobPoller, store: ArtifactStore, links: DownloadLinks):
        self._poller = poller
        self._store = store
        self._links = links

    @property
    def name(self) -> str:
        return "generate_visual"

    @property
    def description(self) -> str:
        return (
            "Generate infographics and visuals using Napkin AI. Creates mindmaps, flowcharts, "
            "timelines, comparisons, and more from text content. Returns the image inline "
            "together with a download link and an artifact id usable with bundle_visuals."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": (
                        "The text content to visualize. Use markdown formatting with headers "
                        "and bullet points for best results."
                    ),
                },
                "visual_type": {
                    "type": "string",
                    "description": "Type of visual to generate",
                    "enum": VISUAL_TYPES,
                },
                "format": {
                    "type": "string",
                    "description": "Output format",
                    "enum": FORMATS,
                    "default": "svg",
                },
            },
            "required": ["content"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        content = tool_input.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ToolExecutionError("Error generating visual: 'content' must be a non-empty string")

        format = str(tool_input.get("format") or "svg").lower()
        if format not in FORMATS:
            raise ToolExecutionError(
                f"Error generating visual: unsupported format {format!r} (expected one of {', '.join(FORMATS)})"
            )
        visual_type = tool_input.get("visual_type") or None
        if visual_type is not None and visual_type not in VISUAL_TYPES:
            raise ToolExecutionError(
                f"Error generating visual: unsupported visual_type {visual_type!r} "
                f"(expected one of {', '.join(VISUAL_TYPES)})"
            )

        try:
            outcome = await self._poller.submit_and_await(content, visual_type, format)
        except GenerationError as ex:
            raise ToolExecutionError(f"Error generating visual: {ex}") from ex

        if not isinstance(outcome, ArtifactBytes):
            return ToolResult.text(outcome.text)

        stem = visual_type or "visual"
        filename = f"napkin-{stem}-{uuid4().hex[:8]}.{format}"
        artifact_id = self._store.put(outcome.data, outcome.mime_type, filename)
        link = self._links.artifact(artifact_id)
        logger.info(f"generate_visual stored {artifact_id} -> {link}")

        return ToolResult(
            content=[
                image_block(base64.b64encode(outcome.data).decode("ascii"), outcome.mime_type),
                text_block(
                    "Visual generated successfully!\n\n"
                    f"Download: {link}\n"
                    f"Artifact id: {artifact_id} (available for {self._store.ttl_seconds / 60:g} minutes)"
                ),
            ]
        )
