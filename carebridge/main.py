"""
FastAPI application serving the OAuth callback, with middleware and lifecycle events.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from carebridge.core.config import settings
from carebridge.core.exceptions import ApiError, ConfigurationError
from carebridge.db.redis_client import close_redis, init_redis, redis_manager
from carebridge.routers import auth_router
from carebridge.services.realtime_service import realtime_client
from carebridge.utils.log_filter import install_log_filter
from carebridge.utils.response_utils import error_response, validation_details

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
install_log_filter()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the realtime transport on startup and close it on shutdown."""
    logger.info(f"Starting {settings.app_name} application...")

    try:
        await init_redis()
        redis_health = await redis_manager.health_check()
        if redis_health.get("redis") != "healthy":
            logger.warning(f"Redis connection unhealthy: {redis_health}")
    except Exception as e:
        # The OAuth callback does not need the realtime transport
        logger.error(f"Realtime transport unavailable at startup: {e}")

    if not settings.backend_configured:
        logger.warning("Backend is not configured; OAuth callbacks will be redirected with an error")

    yield

    logger.info(f"Shutting down {settings.app_name} application...")
    try:
        await realtime_client.unsubscribe_all()
        await close_redis()
        logger.info("Redis connections closed")
    except Exception as e:
        logger.error(f"Error during application shutdown: {e}")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="OAuth callback and health endpoints for the Carebridge client services",
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# Global exception handlers
@app.exception_handler(HTTPException)
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent error format."""
    return error_response(
        message=str(exc.detail),
        status_code=exc.status_code,
        code=f"HTTP_{exc.status_code}",
        path=request.url.path,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        message="Request validation failed",
        data=validation_details(exc),
        status_code=422,
        code="VALIDATION_ERROR",
        path=request.url.path,
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Backend failures keep the backend's status and message."""
    logger.error(f"Backend error on {request.url.path}: {exc.message}")
    return error_response(
        message=exc.message,
        data=exc.details,
        status_code=exc.status_code,
        code="BACKEND_ERROR",
        path=request.url.path,
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc.message}")
    return error_response(
        message=exc.message,
        status_code=503,
        code="NOT_CONFIGURED",
        path=request.url.path,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    message = str(exc) if settings.debug else "An unexpected error occurred"
    extra = {"type": type(exc).__name__} if settings.debug else {}
    return error_response(
        message=message,
        status_code=500,
        code="INTERNAL_SERVER_ERROR",
        path=request.url.path,
        **extra
    )


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start_time = time.time()
    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"Response: {response.status_code} - {request.method} {request.url.path} "
        f"completed in {process_time:.4f}s"
    )
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """
    Application health check endpoint.

    Returns:
        dict: Health status of the realtime transport and backend configuration
    """
    health_status = {
        "status": "healthy",
        "version": settings.app_version,
        "components": {
            "backend": "configured" if settings.backend_configured else "unconfigured",
            "realtime": {"subscriptions": realtime_client.subscription_count},
        },
    }

    redis_health = await redis_manager.health_check()
    health_status["components"]["redis"] = redis_health
    if redis_health.get("redis") != "healthy" or not settings.backend_configured:
        health_status["status"] = "unhealthy"

    return health_status


@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs_url": "/docs" if settings.debug else "Documentation disabled in production",
        "health_url": "/health",
    }


app.include_router(auth_router, tags=["Authentication"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "carebridge.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
