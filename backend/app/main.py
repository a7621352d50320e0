"""
Score Portal - FastAPI Application

Main entry point for the backend API.
Provides endpoints for score import, rankings, trends and predictions.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config.settings import settings
from app.infrastructure.exceptions import (
    ScorePortalError,
    ValidationError,
    NotFoundError,
    DuplicateRecordError,
    StorageError,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Resolved along the exception MRO, most specific class first
ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    DuplicateRecordError: 409,
    StorageError: 503,
    ScorePortalError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Score Portal Backend starting in {settings.environment} mode...")

    database_enabled = bool(settings.database_url)
    if database_enabled:
        from app.infrastructure.db.database import init_db
        await init_db()
    else:
        logger.warning("DATABASE_URL not set; database routes will fail")

    yield

    if database_enabled:
        from app.infrastructure.db.database import close_db
        await close_db()
    logger.info("Score Portal Backend shut down")


async def portal_error_handler(request: Request, exc: ScorePortalError) -> JSONResponse:
    status_code = next(
        (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS), 500
    )
    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app = FastAPI(
    title="Score Portal",
    description="Exam score import, rankings and outcome prediction",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for error_class in ERROR_STATUS:
    app.add_exception_handler(error_class, portal_error_handler)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "score-portal"}


@app.get("/")
async def root():
    return {
        "message": "Score Portal API",
        "version": "1.0.0",
        "docs": "/docs",
    }


from app.api.routes import admin, exams, students, predictions  # noqa: E402

for module in (admin, exams, students, predictions):
    app.include_router(module.router)
