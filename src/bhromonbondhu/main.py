# src/bhromonbondhu/main.py
"""Main entry point for the Bhromonbondhu messaging API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bhromonbondhu.api import messages_router
from bhromonbondhu.api.dependencies import SessionDep
from bhromonbondhu.core.logging_config import configure_logging
from bhromonbondhu.core.settings import settings
from bhromonbondhu.db.time import utcnow
from bhromonbondhu.schemas.messaging import ErrorResponse

configure_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Traveler and host messaging API for Bhromonbondhu",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(messages_router, prefix="/api")


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    body = ErrorResponse(message=message).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors in the ``{success, message}`` envelope."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return _error_response(status.HTTP_400_BAD_REQUEST, "; ".join(problems) or "Invalid request")


@app.get("/api/health")
async def health_check(db: SessionDep) -> dict[str, object]:
    """Health check endpoint reporting database connectivity."""
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        database = "disconnected"
    return {
        "success": True,
        "status": "ok",
        "database": database,
        "timestamp": utcnow().isoformat(),
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("bhromonbondhu.main:app", host="0.0.0.0", port=5000, reload=settings.debug)
