"""
Lishka Upload Service.

Classifies photos as fish or fishing gear, streams them to the Lishka
backend and keeps per-user upload state (lane progress, retry queue,
error and success banners) for the client to poll.
"""

from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings, validate_required_settings
from core.logging import setup_logging, get_logger
from core.database import db_manager
from core.middleware import (
    AuthenticationMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    SecurityHeadersMiddleware
)
from core.exceptions import LishkaException
from services.upload_sessions import UploadSessionManager

from api.uploads_router import router as uploads_router
from api.profile_router import router as profile_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the upload session manager on startup and close it on shutdown."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} ({settings.environment.value})")

    validate_required_settings(settings)

    if not db_manager.test_connection():
        # Uploads still work; only the profile read-back is unavailable
        logger.warning("Profile store unreachable at startup")

    if app.state.upload_sessions is None:
        app.state.upload_sessions = UploadSessionManager()
    logger.info(f"Streaming uploads to {settings.backend_url}")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    try:
        await app.state.upload_sessions.aclose()
    finally:
        db_manager.close()


async def lishka_exception_handler(request: Request, exc: LishkaException) -> JSONResponse:
    """Render a Lishka exception raised outside the routes' own handling."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"[{request_id}] {exc.error_code}: {exc.message}", extra={"details": exc.details})

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
            "request_id": request_id
        }
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
            "request_id": request_id
        }
    )


def create_app(upload_sessions: Optional[UploadSessionManager] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        upload_sessions: Session manager to use instead of building one at startup
    """
    settings = get_settings()
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Upload orchestration for the Lishka fishing companion",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
        debug=settings.debug
    )
    app.state.upload_sessions = upload_sessions

    # Added last runs first: CORS, request logging, errors, security headers, auth
    app.add_middleware(AuthenticationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LishkaException, lishka_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(uploads_router)
    app.include_router(profile_router)

    @app.get("/", tags=["root"])
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "status": "healthy"
        }

    @app.get("/health", tags=["health"])
    async def health_check(request: Request):
        """Profile store reachability and upload session counters."""
        sessions = request.app.state.upload_sessions
        upload_stats = sessions.stats() if sessions is not None else {"active_sessions": 0}

        try:
            db_health = db_manager.health_check()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "error": str(e), "version": settings.app_version}
            )

        return {
            "status": "healthy" if db_health["connected"] else "degraded",
            "version": settings.app_version,
            "environment": settings.environment,
            "database": db_health,
            "active_upload_sessions": upload_stats["active_sessions"],
            "uploads": upload_stats
        }

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
        access_log=True
    )
