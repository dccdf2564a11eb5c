"""Transcript Viewer FastAPI backend: main application entry point."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from transcript_backend import config
from transcript_backend.date_utils import utc_now_iso
from transcript_backend.routers.transcripts import (
    session_router,
    transcript_router,
    transcripts_router,
)
from transcript_backend.storage.object_store import S3ObjectStore
from transcript_backend.observability import initialize as initialize_observability, shutdown as shutdown_observability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("transcript_viewer")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Transcript viewer backend starting up")
    initialize_observability(app)

    if getattr(app.state, "object_store", None) is None:
        app.state.object_store = S3ObjectStore.from_config()
    logger.info(
        "Serving transcripts from bucket %s (endpoint=%s)",
        config.S3_BUCKET,
        config.S3_ENDPOINT or "aws",
    )

    yield

    logger.info("Transcript viewer backend shutting down")
    shutdown_observability(app)


app = FastAPI(
    title="Transcript Viewer API",
    description="Read-only API serving agent session transcripts from object storage",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow the Vite dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render errors as ``{"error": ...}``, the shape the frontend reads."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors with the same ``{"error": ...}`` body."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {message}" if field else message},
    )


# Static "session" prefix first; see routers.transcripts.
app.include_router(session_router)
app.include_router(transcript_router)
app.include_router(transcripts_router)


@app.get("/api/health")
async def health(request: Request):
    """Health check endpoint."""
    store = getattr(request.app.state, "object_store", None)
    healthy = bool(store) and await asyncio.to_thread(store.check_health)
    payload = {
        "status": "ok" if healthy else "unhealthy",
        "store": "connected" if healthy else "disconnected",
        "bucket": config.S3_BUCKET,
        "timestamp": utc_now_iso(),
    }
    if not healthy:
        return JSONResponse(status_code=503, content=payload)
    return payload


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
