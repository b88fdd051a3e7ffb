"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from trajectplan.api.v1.endpoints import health
from trajectplan.api.v1.router import api_router
from trajectplan.core.config import settings
from trajectplan.core.database import close_database, init_database
from trajectplan.core.exceptions import AppError
from trajectplan.utils.logging import get_logger
from trajectplan.utils.responses import create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)

CORRELATION_HEADER = "X-Correlation-ID"


class RootResponse(BaseModel):
    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Verify the database on startup; the API still starts when it is down."""
    LOGGER.info(
        "Starting application",
        extra={
            "version": settings.app_version,
            "environment": settings.environment,
            "llm_provider": settings.llm_provider,
        },
    )

    try:
        await asyncio.wait_for(init_database(create_tables=True), timeout=settings.db_init_timeout)
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    LOGGER.info("Shutting down application")
    try:
        await close_database()
    except Exception as e:
        LOGGER.error("Error closing database", exc_info=True, extra={"error": str(e)})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Autofill of Trajectplan report sections from uploaded reintegration documents",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        # Internal error text stays in the log, not in the response
        LOGGER.error(
            f"Unhandled {type(exc).__name__}: {exc}",
            exc_info=exc,
            extra={"path": request.url.path},
        )
        problem = create_error_detail(
            title="Internal Server Error",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
            request=request,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": problem.model_dump(mode="json")},
        )

    # Added last so it wraps every other middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_HEADER],
    )

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    app.include_router(health.router, prefix="/health", tags=["Health"])

    @app.get(
        "/",
        response_model=RootResponse,
        tags=["Root"],
        summary="Root endpoint",
        operation_id="get_public_root_metadata",
    )
    async def root() -> RootResponse:
        return RootResponse(
            message="Server is running",
            version=settings.app_version,
            docs="/docs",
            health="/health",
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "trajectplan.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
