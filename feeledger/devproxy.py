"""
Local development proxy: forwards /api/* to the fee backend with CORS enabled for the SPA dev server.

    python -m feeledger.devproxy
    uvicorn feeledger.devproxy:app --port 3001
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from feeledger.core.config import settings
from feeledger.core.logging import configure_logging

logger = logging.getLogger(__name__)

# Not forwarded in either direction.
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "content-encoding",
}


def _forward_headers(headers) -> dict:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


def create_proxy_app(target: Optional[str] = None, client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    target = (target or settings.proxy_target).rstrip("/")
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if client is not None:
            yield
            return
        upstream = httpx.AsyncClient(base_url=target, timeout=settings.fee_api_timeout_seconds)
        app.state.upstream = upstream
        try:
            yield
        finally:
            await upstream.aclose()

    app = FastAPI(title="Fee Ledger dev proxy", lifespan=lifespan)
    if client is not None:
        app.state.upstream = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def proxy(path: str, request: Request) -> Response:
        upstream: httpx.AsyncClient = request.app.state.upstream
        url = f"/api/{path}"
        logger.info("Proxying request: %s %s", request.method, request.url.path)
        try:
            upstream_response = await upstream.request(
                request.method,
                url,
                params=request.query_params.multi_items(),
                content=await request.body(),
                headers=_forward_headers(request.headers),
            )
        except httpx.HTTPError as e:
            logger.error("Proxy error: %s %s: %s", request.method, url, e)
            return JSONResponse(status_code=502, content={"message": f"Upstream unavailable: {type(e).__name__}"})
        logger.info("Proxy response: %s %s", upstream_response.status_code, request.url.path)
        return Response(
            content=upstream_response.content,
            status_code=upstream_response.status_code,
            headers=_forward_headers(upstream_response.headers),
        )

    return app


app = create_proxy_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("Dev proxy listening on port %s, forwarding /api to %s", settings.proxy_port, settings.proxy_target)
    uvicorn.run(app, host="127.0.0.1", port=settings.proxy_port)
