from __future__ import annotations

from typing import Any

from napkin_mcp_bridge.provider.job_poller import JobPoller
from napkin_mcp_bridge.store.artifact_store import ArtifactStore
from napkin_mcp_bridge.tool import Tool
from napkin_mcp_bridge.tools.bundle_visuals_tool import BundleVisualsTool
from napkin_mcp_bridge.tools.generate_visual_tool import GenerateVisualTool
from napkin_mcp_bridge.tools.links import DownloadLinks


def get_all(poller: JobPoller, store: ArtifactStore, links: DownloadLinks) -> list[Tool]:
    return [
        GenerateVisualTool(poller, store, links),
        BundleVisualsTool(store, links),
    ]


def to_mcp_tools(tools: list[Tool]) -> list[dict[str, Any]]:
    return [
        {
            "name": t.name,
            "description": t.description,
            "inputSchema": t.input_schema,
        }
        for t in tools
    ]
