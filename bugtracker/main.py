"""
FastAPI main application for the Bug Tracker.

Provides REST API endpoints for listing, filtering, creating, editing and
commenting on bugs.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from bugtracker import __version__
from bugtracker.config import get_settings
from bugtracker.database import SessionLocal, init_db
from bugtracker.exceptions import BugTrackerError
from bugtracker.models.bug_validation import validation_messages
from bugtracker.utils.helpers import error_response

# Configure logging from settings
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format=settings.LOG_FORMAT,
    handlers=[
        logging.StreamHandler(),  # Console output
    ]
)
logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Bug Tracker API")
    logger.info(f"Database: {settings.DATABASE_URL}")

    # Create tables if they don't exist (for development)
    # In production, use Alembic migrations instead
    init_db()

    yield

    # Shutdown
    logger.info("Shutting down Bug Tracker API")


# Create FastAPI application
app = FastAPI(
    title="Bug Tracker API",
    description="""
    REST API for tracking bugs.

    List bugs with filters (status, priority, severity), text search over
    title and description, sorting (`sort=-createdAt`) and pagination
    (`page`, `limit`). Every response uses the envelope
    `{"success": true, "data": ...}` or `{"success": false, "error": "..."}`.
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure rate limiting
if settings.RATE_LIMIT_ENABLED:
    rate_limit_string = f"{settings.RATE_LIMIT_PER_MINUTE}/minute"
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[rate_limit_string]
    )
    logger.info(f"Rate limiting enabled: {rate_limit_string}")
else:
    # Create limiter without limits (disabled)
    limiter = Limiter(key_func=get_remote_address, enabled=False)
    logger.info("Rate limiting disabled")
app.state.limiter = limiter

# Configure CORS with specific allowed origins
allowed_origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,  # Specific origins only
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(SlowAPIMiddleware)


# Global exception handlers
@app.exception_handler(BugTrackerError)
async def bug_tracker_exception_handler(request: Request, exc: BugTrackerError):
    """Render invalid-id, not-found and store errors."""
    if exc.status_code >= 500:
        logger.error(f"Store error on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=error_response(GENERIC_ERROR_MESSAGE))

    logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.message))


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report every invalid body field, query or path parameter in one message."""
    message = ", ".join(validation_messages(exc.errors()))
    logger.warning(f"Invalid request to {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=error_response(message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework HTTP errors (unknown route, wrong method) in the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """Handle requests over the configured rate limit."""
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content=error_response(f"Rate limit exceeded: {exc.detail}")
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle SQLAlchemy database errors."""
    logger.error(f"Database error: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content=error_response(GENERIC_ERROR_MESSAGE))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(status_code=500, content=error_response(GENERIC_ERROR_MESSAGE))


# Health check endpoints
@app.get("/health", tags=["System"])
async def health_check():
    """
    Basic health check endpoint - returns minimal status.

    Returns:
        Status information about the application
    """
    return {
        "status": "healthy",
        "version": __version__
    }


@app.get("/health/ready", tags=["System"])
async def readiness_probe():
    """
    Readiness probe endpoint.

    Returns 200 if the database is reachable, 503 if not.
    """
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except SQLAlchemyError as e:
        logger.error(f"Readiness probe failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "reason": "database unavailable"}
        )


@app.get("/api/v1", tags=["System"])
async def api_root():
    """
    API root endpoint.

    Returns:
        Welcome message with API documentation link
    """
    return {
        "message": "Bug Tracker API",
        "version": __version__,
        "docs": "/docs",
        "bugs": "/api/v1/bugs",
        "health": {
            "basic": "/health",
            "readiness": "/health/ready"
        }
    }


# Import and register routers with API versioning
from bugtracker.routers import bugs

# v1 API endpoints (current)
app.include_router(bugs.router, prefix="/api/v1/bugs", tags=["Bugs v1"])

# Maintain backward compatibility with /api/bugs (alias to v1)
app.include_router(bugs.router, prefix="/api/bugs", tags=["Bugs"], include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bugtracker.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
