"""
HTTP transport for the techreader MCP server.

``POST /mcp`` accepts a single JSON-RPC message or a batch and answers with
JSON; notifications get ``202 Accepted`` with an empty body. ``GET /`` is a
greeting and ``GET /health`` reports the server identity.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from . import __version__
from . import mcp_server
from .config import load_config

log = logging.getLogger(__name__)


def create_app(cfg: dict[str, Any] | None = None) -> FastAPI:
    settings = load_config() if cfg is None else cfg
    mcp_server.configure(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        mcp_server.sweep_on_startup(settings)
        yield

    app = FastAPI(title="techreader", version=__version__, lifespan=lifespan)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log.error("Unhandled error [%s %s]: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(status_code=500, content=mcp_server._err(None, -32603, f"Internal error: {exc}"))

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "Hello techreader!"

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "server": mcp_server.SERVER_NAME, "version": __version__}

    @app.post("/mcp")
    async def mcp(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content=mcp_server._err(None, -32700, "Parse error"))

        if isinstance(payload, list):
            if not payload:
                return JSONResponse(status_code=400, content=mcp_server._err(None, -32600, "Invalid Request"))
            responses = []
            for message in payload:
                response = await mcp_server.handle_request(message)
                if response is not None:
                    responses.append(response)
            if not responses:
                return Response(status_code=202)
            return JSONResponse(content=responses)

        response = await mcp_server.handle_request(payload)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(content=response)

    return app
