"""FastAPI application for the pollgate API.

Provides REST API endpoints wrapping the pollgate package for:
- Poll creation, editing and deletion
- Threaded poll comments (post, list, edit, delete)
- Moderation of polls and comments (queue, transitions, stats)
- Identity administration (roles, suspensions)
- Vote casting
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure the pollgate package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pollgate import __version__
from pollgate.errors import StorageError
from web.backend.app.routers import comments, identities, moderation, polls, votes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="pollgate API",
    description=(
        "REST API for polling-app authorization and moderation. "
        "Provides endpoints for comments, moderation, identity "
        "administration and voting."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    # details stay in the server log, never in the response body
    logger.error("storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "storage unavailable"})


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(polls.router)
app.include_router(comments.router)
app.include_router(moderation.router)
app.include_router(identities.router)
app.include_router(votes.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "pollgate API",
        "version": __version__,
        "description": "Polling-app authorization and moderation REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
