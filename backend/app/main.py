"""Main FastAPI application"""

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from pathlib import Path
import logging
import traceback
import time
import uuid

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import settings
from app.core.database import get_db, init_db, SessionLocal
from app.core.exceptions import BaseAPIException
from app.core.metrics import REQUEST_COUNT, REQUEST_LATENCY
from app.schemas.response import ErrorResponse, HealthResponse
from app.api.v1 import auth, users

# Configure logging - ensure log directory exists
_log_dir = Path(settings.get_log_file()).parent
_log_dir.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(settings.get_log_file()),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = {"message": "Internal server error"}

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None
)

# GZip compression for large responses
app.add_middleware(GZipMiddleware, minimum_size=500)

# CORS middleware; credentials are needed for the session cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Security headers + request timing middleware
@app.middleware("http")
async def add_headers_and_timing(request: Request, call_next):
    """Add security headers and log slow requests"""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start = time.time()
    response = await call_next(request)
    duration = time.time() - start

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["X-Request-ID"] = request_id

    REQUEST_COUNT.labels(request.method, request.url.path, str(response.status_code)).inc()
    REQUEST_LATENCY.labels(request.method, request.url.path).observe(duration)

    if duration > 1.0:
        logger.warning(
            "Slow request: %s %s took %.2fs request_id=%s",
            request.method,
            request.url.path,
            duration,
            request_id,
        )

    return response


def _error_body(message: str, errors=None) -> dict:
    return ErrorResponse(message=message, errors=errors or None).model_dump(exclude_none=True)


# Exception handlers
@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"API Exception: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.details),
        headers=exc.headers or None
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and wrong field types are reported like any other validation failure"""
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        if len(loc) > 1 and loc[0] in ("body", "query", "path", "cookie", "header"):
            loc = loc[1:]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(error["msg"])

    logger.warning(
        f"Validation error: {errors}",
        extra={"path": request.url.path, "method": request.method}
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation failed", errors)
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors"""
    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=INTERNAL_ERROR_BODY
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=INTERNAL_ERROR_BODY
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    settings.validate_security_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    if settings.SEED_DEMO_USERS:
        from app.services.user_service import user_service

        db = SessionLocal()
        try:
            created = user_service.seed_demo_users(db)
            for user in created:
                logger.info(f"Created demo user: {user.username}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to seed demo users: {e}")
        finally:
            db.close()


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info(f"Shutting down {settings.APP_NAME}")


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    db_ok = True
    db_error = None
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db_ok = False
        db_error = str(exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"ok": db_ok, "error": db_error},
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/api/docs" if settings.DEBUG else "disabled"
    }


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS
    )
