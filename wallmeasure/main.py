"""wallmeasure.main

FastAPI entrypoint for the wall measurement service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wallmeasure.api.routes import router
from wallmeasure.config import Settings, get_settings
from wallmeasure.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("%s %s starting up...", settings.API_TITLE, settings.API_VERSION)
        logger.info("Reference size: %.4f ft", settings.REFERENCE_SIZE_FT)
        logger.info("=" * 60)

        yield

        logger.info("%s stopped", settings.API_TITLE)

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        description="Fiducial detection and planar wall measurement",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    prefix = settings.API_PREFIX.rstrip("/")
    app.include_router(router, prefix=prefix)

    @app.get("/")
    async def root():
        return {"service": "wallmeasure", "version": settings.API_VERSION, "status": "running"}

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "wallmeasure.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )
