# newsdesk/main.py
"""
FastAPI application.

The lifespan builds the process-wide Database and BackfillExecutor once and
hangs them off app.state; routes reach them through dependencies.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from newsdesk.config import Settings, get_settings
from newsdesk.database import Database
from newsdesk.logging_config import configure_logging
from newsdesk.routers import admin_router
from newsdesk.schemas.admin import ErrorResponse
from newsdesk.services.backfill import BackfillExecutor
from newsdesk.services.quality_gate import ContentQualityGate
from newsdesk.services.resilience import (
    ConfigurationFailure,
    ConflictFailure,
    NotFoundFailure,
    PipelineError,
    UpstreamFormatFailure,
)

logger = logging.getLogger(__name__)

# Most specific first; anything else derived from PipelineError is an upstream failure
ERROR_STATUS_CODES: list[tuple[type[PipelineError], int]] = [
    (NotFoundFailure, 404),
    (ConflictFailure, 409),
    (UpstreamFormatFailure, 400),
    (ConfigurationFailure, 503),
]


def status_code_for(error: PipelineError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 502


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to get_settings() at startup
        database: Pre-built database (tests pass an in-memory one)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or get_settings()
        configure_logging(json_format=app_settings.LOG_JSON, level=app_settings.LOG_LEVEL)

        db = database or Database.from_settings(app_settings)
        backfill = BackfillExecutor(
            db,
            gate=ContentQualityGate(app_settings),
            max_workers=app_settings.BACKFILL_MAX_WORKERS,
            enabled=app_settings.BACKFILL_ENABLED,
        )
        app.state.settings = app_settings
        app.state.database = db
        app.state.backfill = backfill
        logger.info("Newsdesk API started")
        try:
            yield
        finally:
            backfill.shutdown(wait=False)
            if database is None:
                db.dispose()

    app = FastAPI(title="Newsdesk Pipeline", lifespan=lifespan)
    app.include_router(admin_router)

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        body = ErrorResponse(error=str(exc))
        if isinstance(exc, ConflictFailure) and exc.existing_id is not None:
            body.existing_id = str(exc.existing_id)
        return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))

    @app.get("/health")
    def health() -> dict:
        return {"ok": True, "status": "ok", "service": "newsdesk-pipeline"}

    return app


app = create_app()
