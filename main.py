#!/usr/bin/env python3

"""
Main application entry point for the Taskboard API.

Architecture: FastAPI application over an async SQLAlchemy database.
Key Features: Lifecycle management, database health checks, uniform
{message, data} error envelope, CORS configuration.
"""

import errno
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.api.tasks import router as tasks_router
from taskboard.api.users import router as users_router
from taskboard.config import settings
from taskboard.db import check_db_connection, close_db, init_db
from taskboard.exceptions import TaskboardError
from taskboard.utils.logger import setup_logger

logger = setup_logger("main")


def envelope(status_code: int, message: str, data=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"message": message, "data": data}
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    try:
        logger.info("Initializing database...")
        await init_db()

        logger.info("Checking database connectivity...")
        if await check_db_connection():
            logger.info("Database connectivity confirmed.")
        else:
            logger.critical("Database connectivity check failed.")
            raise SystemExit("Database connection failed.")
    except Exception as e:
        logger.critical(f"Startup error: {e}")
        raise SystemExit(f"Startup failed: {e}") from e

    logger.info("Taskboard API startup successful.")
    yield

    logger.info("Taskboard API shutdown...")
    await close_db()
    logger.info("Shutdown complete.")


def create_app():
    app = FastAPI(title="Taskboard API", lifespan=lifespan)

    @app.exception_handler(TaskboardError)
    async def taskboard_exception_handler(request: Request, exc: TaskboardError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return envelope(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "malformed body")
        if location:
            message = f"{location}: {message}"
        logger.info(f"Rejected {request.method} {request.url.path}: {errors}")
        return envelope(status.HTTP_400_BAD_REQUEST, f"Invalid request: {message}")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(OSError)
    async def oserror_exception_handler(request: Request, exc: OSError):
        logger.error(f"OSError caught: {exc}, errno: {exc.errno}")
        if exc.errno in [errno.ETIMEDOUT, errno.ECONNREFUSED]:
            logger.error(
                f"Returning 503 due to DB connection issue: {settings.db_unavailable_hint}"
            )
            return envelope(
                status.HTTP_503_SERVICE_UNAVAILABLE, settings.db_unavailable_hint
            )
        return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")

    @app.get("/api")
    async def read_root():
        """API health check endpoint."""
        return {"message": "Taskboard API is running!", "data": None}

    app.include_router(tasks_router)
    app.include_router(users_router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    return app


app = create_app()


def main():
    port = int(settings.server_port)
    host = settings.server_host

    logger.info(f"Starting Taskboard API server on {host}:{port}")

    try:
        uvicorn.run(app, host=host, port=port, workers=settings.server_workers)
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
