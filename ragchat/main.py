"""FastAPI application entrypoint."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ragchat.api.v1 import v1_router
from ragchat.core.config import get_settings
from ragchat.core.container import build_container
from ragchat.core.errors import RagChatError

logger = logging.getLogger(__name__)

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: wire backends once, unless a container was injected
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(_settings)
    container = app.state.container
    await container.startup()
    yield
    await container.shutdown()


app = FastAPI(
    title="RagChat",
    version="0.1.0",
    description="Retrieval-augmented chat over user-uploaded documents",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error translation ────────────────────────────────────────
@app.exception_handler(RagChatError)
async def ragchat_error_handler(request: Request, exc: RagChatError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc,
            exc_info=exc.__cause__ or exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})


# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}


# ── Uploaded files ───────────────────────────────────────────
os.makedirs(_settings.file_storage_path, exist_ok=True)
app.mount(
    "/uploads",
    StaticFiles(directory=_settings.file_storage_path),
    name="uploads",
)
