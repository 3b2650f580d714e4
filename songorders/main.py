from __future__ import annotations

import os

from fastapi import FastAPI

from songorders.api import build_router
from songorders.api.errors import install_error_handlers
from songorders.config import settings
from songorders.db import close_pool
from songorders.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Song Orders",
        version=os.getenv("SERVICE_VERSION", "1.0.0"),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.include_router(build_router())
    install_error_handlers(app)

    # the pool is opened lazily on first use
    @app.on_event("shutdown")
    async def shutdown():
        await close_pool()

    @app.get("/")
    async def root():
        return {"service": settings.SERVICE_NAME, "status": "ok", "version": os.getenv("SERVICE_VERSION", "1.0.0")}

    return app


# uvicorn songorders.main:app
app = create_app()
