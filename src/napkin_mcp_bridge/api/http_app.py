"""HTTP surface of the bridge.

``POST /mcp`` carries JSON-RPC. Everything else is plain HTTP: discovery,
health, binary downloads of stored artifacts and bundles, and the legacy SSE
stream some older MCP clients open before posting.

All handlers are coroutines so that they run on the event loop that owns the
artifact store and session registry.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from loguru import logger

from napkin_mcp_bridge.api.zip_archive import build_zip, iter_chunks
from napkin_mcp_bridge.bootstrap import BridgeRuntime
from napkin_mcp_bridge.errors import NotFoundError
from napkin_mcp_bridge.mcp.protocol import (
    CAPABILITIES,
    INTERNAL_ERROR,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    SERVER_NAME,
    SERVER_VERSION,
    jsonrpc_error,
)
from napkin_mcp_bridge.store.session_registry import SessionRegistry

SESSION_HEADER = "Mcp-Session-Id"

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def sse_event_stream(
    sessions: SessionRegistry,
    session_id: str,
    *,
    keepalive_seconds: float,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """Advertise the POST endpoint once, then emit keepalive comments until the client leaves."""
    try:
        yield f"event: endpoint\ndata: /mcp?sessionId={session_id}\n\n"
        while True:
            await asyncio.sleep(keepalive_seconds)
            if await is_disconnected():
                break
            yield ": keepalive\n\n"
    finally:
        sessions.remove(session_id)
        logger.bind(session=session_id).info("Event stream closed")


def _content_disposition(kind: str, filename: str) -> str:
    safe = filename.replace('"', "").replace("\\", "") or "download"
    return f'{kind}; filename="{safe}"'


def create_app(runtime: BridgeRuntime) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await runtime.start()
        try:
            yield
        finally:
            await runtime.close()

    app = FastAPI(title=SERVER_NAME, version=SERVER_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", SESSION_HEADER],
        expose_headers=[SESSION_HEADER],
    )

    @app.exception_handler(NotFoundError)
    async def not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "service": SERVER_NAME,
            **runtime.store.stats(),
            "sessions": len(runtime.sessions),
        }

    @app.get("/mcp")
    async def mcp_discovery() -> dict:
        return {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "protocol_version": PROTOCOL_VERSION,
            "capabilities": CAPABILITIES,
        }

    @app.post("/mcp")
    async def mcp_post(request: Request) -> Response:
        session_id = runtime.sessions.touch(request.headers.get(SESSION_HEADER))
        headers = {SESSION_HEADER: session_id}

        body = await request.body()
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(
                status_code=400,
                content=jsonrpc_error(None, PARSE_ERROR, "Parse error"),
                headers=headers,
            )

        try:
            with logger.contextualize(session=session_id):
                response = await runtime.dispatcher.handle_payload(payload)
        except Exception as ex:
            logger.bind(session=session_id).exception("MCP request error")
            return JSONResponse(
                status_code=500,
                content=jsonrpc_error(None, INTERNAL_ERROR, str(ex) or type(ex).__name__),
                headers=headers,
            )

        if response is None:
            return Response(status_code=204, headers=headers)
        return JSONResponse(content=response, headers=headers)

    @app.get("/download/zip/{bundle_id}")
    async def download_bundle(bundle_id: str) -> StreamingResponse:
        entries = runtime.store.serve_bundle(bundle_id)
        if entries is None:
            raise NotFoundError("Bundle not found or expired")
        data = build_zip(entries)
        return StreamingResponse(
            iter_chunks(data),
            media_type="application/zip",
            headers={
                "Content-Disposition": _content_disposition("attachment", f"napkin-visuals-{bundle_id}.zip"),
                "Content-Length": str(len(data)),
            },
        )

    @app.get("/download/{artifact_id}")
    async def download_artifact(artifact_id: str) -> Response:
        record = runtime.store.get(artifact_id)
        if record is None:
            raise NotFoundError("Artifact not found or expired")
        return Response(
            content=record.data,
            media_type=record.mime_type,
            headers={"Content-Disposition": _content_disposition("inline", record.filename)},
        )

    @app.get("/sse")
    async def sse(request: Request) -> StreamingResponse:
        session_id = runtime.sessions.open_stream()
        stream = sse_event_stream(
            runtime.sessions,
            session_id,
            keepalive_seconds=runtime.config.sse_keepalive_seconds,
            is_disconnected=request.is_disconnected,
        )
        return StreamingResponse(
            stream,
            media_type="text/event-stream",
            headers={**_SSE_HEADERS, SESSION_HEADER: session_id},
        )

    return app
