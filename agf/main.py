"""agf FastAPI application: serves scan/rank/delete to a UI."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agf import __version__, config
from agf.routers.sessions import sessions_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("agf")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("agf API starting up")
    try:
        locations = config.resolve_locations()
    except Exception as exc:
        logger.error("Source locations unavailable: %s", exc)
    else:
        for name, path in locations.model_dump().items():
            logger.info("%s: %s", name, path)
    yield
    logger.info("agf API shutting down")


app = FastAPI(
    title="agf API",
    description="Find, rank and delete AI coding agent sessions",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router)
