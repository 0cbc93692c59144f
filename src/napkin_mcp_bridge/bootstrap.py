from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from napkin_mcp_bridge.app_config import AppConfig, RuntimeEnv
from napkin_mcp_bridge.mcp.dispatcher import McpDispatcher
from napkin_mcp_bridge.provider.job_poller import JobPoller
from napkin_mcp_bridge.provider.napkin_client import NapkinClient
from napkin_mcp_bridge.store import ArtifactStore, ExpirySweeper, SessionRegistry
from napkin_mcp_bridge.tool import Tool
from napkin_mcp_bridge.tool_registry import get_all
from napkin_mcp_bridge.tools.links import DownloadLinks


@dataclass
class BridgeRuntime:
    config: AppConfig
    client: NapkinClient
    poller: JobPoller
    store: ArtifactStore
    sessions: SessionRegistry
    sweeper: ExpirySweeper
    links: DownloadLinks
    tools: list[Tool]
    dispatcher: McpDispatcher

    async def start(self) -> None:
        await self.sweeper.start()

    async def close(self) -> None:
        await self.sweeper.close()
        await self.client.aclose()


def build_runtime(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> BridgeRuntime:
    client = NapkinClient(
        env.napkin_api_key,
        base_url=app.provider_base_url,
        timeout=app.request_timeout_seconds,
        transport=transport,
    )
    poller = JobPoller(
        client,
        poll_interval=app.poll_interval_seconds,
        max_attempts=app.poll_max_attempts,
        sleep=sleep,
    )
    store = ArtifactStore(ttl_seconds=app.artifact_ttl_seconds)
    sessions = SessionRegistry(ttl_seconds=app.session_ttl_seconds)
    sweeper = ExpirySweeper(store, sessions, interval_seconds=app.sweep_interval_seconds)
    links = DownloadLinks(env.public_base_url)
    tools = get_all(poller, store, links)

    return BridgeRuntime(
        config=app,
        client=client,
        poller=poller,
        store=store,
        sessions=sessions,
        sweeper=sweeper,
        links=links,
        tools=tools,
        dispatcher=McpDispatcher(tools),
    )
