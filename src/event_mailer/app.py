from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_mailer import bootstrap
from event_mailer.api.middleware.correlation_id import CorrelationIdMiddleware
from event_mailer.api.middleware.metrics import RequestTimingMiddleware
from event_mailer.api.v1.routers import cron, email_queue, health
from event_mailer.application.exceptions import (
    AdmissionError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from event_mailer.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = bootstrap.build_redis(settings)
    app.state.http_client = bootstrap.build_http_client(settings)
    app.state.mailer = bootstrap.build_mailer(settings)
    app.state.composer = bootstrap.build_composer(settings, app.state.http_client)
    app.state.clock = bootstrap.build_clock(settings)
    app.state.limits = bootstrap.limits_from_settings(settings)
    app.state.run_lock = bootstrap.build_run_lock(app.state.redis, settings)
    logger.info(
        "Email queue limits: evaluation=%d certificate=%d total=%d max_attempts=%d",
        app.state.limits.evaluation,
        app.state.limits.certificate,
        app.state.limits.total,
        app.state.limits.max_attempts,
    )

    yield

    await app.state.http_client.aclose()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Event Mailer",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(email_queue.router)
    app.include_router(cron.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnauthorizedError)
    async def _unauthorized(_req: Request, exc: UnauthorizedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(AdmissionError)
    async def _admission(_req: Request, exc: AdmissionError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": exc.detail})
