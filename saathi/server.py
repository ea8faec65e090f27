"""FastAPI server for Digital Saathi.

Run with:
    uv run uvicorn saathi.server:app --reload --host 0.0.0.0 --port 5000
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from saathi.api.routes import router
from saathi.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from saathi.orchestrator import build_orchestrator
from saathi.services.metrics import metrics

VERSION = "1.0.0"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Wire the orchestrator (stores, model gateway, tools) once per process."""
    started = time.perf_counter()
    application.state.orchestrator = build_orchestrator()
    logger.info("Orchestrator wired in %.0fms", (time.perf_counter() - started) * 1000)
    try:
        yield
    finally:
        application.state.orchestrator = None
        metrics.close()


def create_app() -> FastAPI:
    application = FastAPI(
        title="Digital Saathi AI",
        description=(
            "Assistant for public services: canned answers for known services, "
            "model answers for everything else, and tools for complaints and lookups."
        ),
        version=VERSION,
        lifespan=lifespan,
    )

    # The React frontend runs on a different origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def tag_request(request: Request, call_next) -> Response:
        """Give every request an id (echoed as ``X-Request-ID``) for log correlation."""
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "[%s] %s %s -> %d (%.0fms)",
            request_id, request.method, request.url.path,
            response.status_code, (time.perf_counter() - started) * 1000,
        )
        return response

    application.include_router(router, prefix="/api")

    @application.get("/")
    async def root():
        return {
            "service": "Digital Saathi AI",
            "version": VERSION,
            "docs": "/docs",
            "health": "/api/health",
        }

    return application


app = create_app()


if __name__ == "__main__":
    logger.info("Serving Digital Saathi on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run("saathi.server:app", host=SERVER_HOST, port=SERVER_PORT, reload=True)
