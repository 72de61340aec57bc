"""
FastAPI application entry point.

Configures the lifespan resources, middleware, routes and exception handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mindflow.core.config import settings
from mindflow.core.database import create_engine, create_session_factory
from mindflow.core.exceptions import AppError

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    engine = create_engine(str(settings.DATABASE_URL), echo=settings.DEBUG)
    app.state.session_factory = create_session_factory(engine)
    app.state.redis = aioredis.from_url(str(settings.REDIS_URL), decode_responses=True)
    logger.info("Starting MindFlow API in %s mode", settings.ENVIRONMENT)
    try:
        yield
    finally:
        await app.state.redis.aclose()
        await engine.dispose()
        logger.info("Shutting down MindFlow API")


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": f"{location}: {message}" if location else message,
            "code": "VALIDATION_ERROR",
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message, "code": "INTERNAL_ERROR"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="MindFlow API",
        description="Learning management platform",
        version=API_VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "version": API_VERSION,
        }

    from mindflow.routers import (
        auth,
        courses,
        dashboard,
        grades,
        invitations,
        organizations,
        quizzes,
        topics,
    )

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
    app.include_router(organizations.router, prefix="/api/v1/organizations", tags=["Organizations"])
    app.include_router(invitations.router, prefix="/api/v1/invitations", tags=["Invitations"])
    app.include_router(courses.router, prefix="/api/v1/courses", tags=["Courses"])
    app.include_router(topics.router, prefix="/api/v1/courses", tags=["Topics"])
    app.include_router(quizzes.router, prefix="/api/v1/quizzes", tags=["Quizzes"])
    app.include_router(grades.router, prefix="/api/v1/grades", tags=["Grades"])
    app.include_router(dashboard.student_router, prefix="/api/v1/student", tags=["Student"])
    app.include_router(dashboard.instructor_router, prefix="/api/v1/instructor", tags=["Instructor"])

    return app


app = create_app()
