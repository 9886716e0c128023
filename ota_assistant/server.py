"""HTTP entry point: ``create_app()`` wires the chat API onto a FastAPI app.

The module-level ``app`` is what uvicorn serves::

    uvicorn ota_assistant.server:app --host 0.0.0.0 --port 8000

The agent graph is compiled once when the app starts and parked on
``app.state.agent``; until then ``/api/chat`` answers 503.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from ota_assistant.agent import create_ota_agent
from ota_assistant.api.routes import router
from ota_assistant.config import CORS_ORIGINS, LLM_PROVIDER, SERVER_HOST, SERVER_PORT
from ota_assistant.llm.failover import ordered_provider_ids

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "OTA Help-Center Assistant"
API_VERSION = "1.0.0"
REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def _agent_lifespan(app: FastAPI):
    chain = " -> ".join(ordered_provider_ids(LLM_PROVIDER))
    logger.info("Compiling chat graph, providers: %s", chain)
    app.state.agent = create_ota_agent()
    try:
        yield
    finally:
        app.state.agent = None
        logger.info("Chat graph released")


async def _tag_request(request: Request, call_next) -> Response:
    """Carry the caller's request id (or a fresh one) through logs and response."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "[%s] %s %s -> %d (%.0fms)",
        request_id, request.method, request.url.path, response.status_code, elapsed_ms,
    )
    return response


async def _service_info() -> dict[str, str]:
    return {
        "service": SERVICE_NAME,
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/api/health",
    }


def create_app() -> FastAPI:
    """Assemble the FastAPI application."""
    app = FastAPI(
        title=SERVICE_NAME,
        version=API_VERSION,
        description="Travel help-center chat with live flight status and route weather.",
        lifespan=_agent_lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.middleware("http")(_tag_request)
    app.include_router(router, prefix="/api")
    app.add_api_route("/", _service_info, methods=["GET"], include_in_schema=False)
    return app


app = create_app()


def main() -> None:
    logger.info("Serving %s on %s:%d", SERVICE_NAME, SERVER_HOST, SERVER_PORT)
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    main()
