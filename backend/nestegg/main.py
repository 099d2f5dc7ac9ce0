from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nestegg.api.routers import api_router
from nestegg.core.config import Settings, settings
from nestegg.core.errors import CategoryError
from nestegg.core.logging import setup_logging
from nestegg.db.init_db import init_db
from nestegg.db.session import engine

logger = logging.getLogger(__name__)


def _error_body(request: Request, code: str, message: str) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "path": request.url.path,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }


def create_app(config: Settings = settings) -> FastAPI:
    setup_logging(config)

    app = FastAPI(title="nestegg categories API")

    origins = [o.strip() for o in config.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.exception_handler(CategoryError)
    async def category_error_handler(request: Request, exc: CategoryError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("HTTP %s %s: %s", exc.status_code, exc.code, exc.message, exc_info=exc)
        else:
            logger.info("HTTP %s %s: %s (%s)", exc.status_code, exc.code, exc.message, request.url.path)
        return JSONResponse(_error_body(request, exc.code, exc.message), status_code=exc.status_code)

    @app.on_event("startup")
    def on_startup() -> None:
        if config.auto_create_tables:
            init_db(engine)

    return app


app = create_app()
