"""
chord.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn chord.api.main:app --reload --port 8000

The routes are a thin adapter: they parse the request, call one service
function and serialise its result.  Domain errors are mapped to status
codes here and nowhere else.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

load_dotenv()

from chord import __version__  # noqa: E402
from chord.api.deps import get_engine  # noqa: E402
from chord.api.routes.channels import router as channels_router  # noqa: E402
from chord.api.routes.guilds import router as guilds_router  # noqa: E402
from chord.api.routes.roles import router as roles_router  # noqa: E402
from chord.errors import (  # noqa: E402
    ChordError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[ChordError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    ConflictError: 409,
    ValidationError: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("Chord API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Chord API shutting down")


app = FastAPI(
    title="Chord Guild API",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(ChordError)
async def chord_error_handler(request: Request, exc: ChordError) -> JSONResponse:
    status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.get("/api/health")
def health():
    return {"status": "ok"}


app.include_router(guilds_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(channels_router, prefix="/api")
