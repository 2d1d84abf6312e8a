"""
CareLedger Backend
Main FastAPI application: medication schedules, intake ledger, vitals and reminders
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings, scheduling_config
from database import init_db, DatabaseHealthCheck
from errors import CareLedgerError, InternalError
from api import include_routers
from actions.scan_scheduler import ScanScheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}")

    try:
        init_db()
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    scheduler = None
    if settings.SCANS_ENABLED:
        scheduler = ScanScheduler()
        scheduler.start()
    app.state.scan_scheduler = scheduler

    yield

    # Shutdown
    if scheduler:
        await scheduler.stop()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## CareLedger API

    Patient health tracking backend.

    ### Features
    - **Medication Schedules**: Free-text frequencies or explicit clock-times, expanded into dose events
    - **Intake Ledger**: Taken, missed, skipped and partial doses with adherence rates
    - **Vitals**: Readings, per-patient thresholds and out-of-range alerts
    - **Reminders**: One feed of due doses and vital alerts ranked by urgency
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers (prefix /api/v1)
include_routers(app)


# ==================== EXCEPTION HANDLERS ====================

def error_response(status_code: int, message, field: str = None) -> JSONResponse:
    content = {
        "error": True,
        "message": message,
        "status_code": status_code,
        "timestamp": datetime.utcnow().isoformat()
    }
    if field:
        content["field"] = field
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(CareLedgerError)
async def domain_exception_handler(request, exc: CareLedgerError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.field)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    error = InternalError("Record store unavailable")
    return error_response(error.status_code, error.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return error_response(
        422,
        first.get("msg", "Invalid request"),
        ".".join(location) or None
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    response = error_response(exc.status_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response(
        500,
        "An unexpected error occurred" if not settings.DEBUG else str(exc)
    )


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check endpoint"""
    db_connected = DatabaseHealthCheck.is_connected()

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": {
                "status": "up" if db_connected else "down",
                "type": "sqlite" if "sqlite" in settings.DATABASE_URL else "postgresql"
            },
            "scans": {
                "enabled": settings.SCANS_ENABLED,
                "due_interval_seconds": scheduling_config.DUE_SCAN_INTERVAL_SECONDS,
                "generation_interval_seconds": scheduling_config.GENERATION_SCAN_INTERVAL_SECONDS
            }
        },
        "config": {
            "generation_horizon_days": scheduling_config.GENERATION_HORIZON_DAYS,
            "reminder_lookahead_hours": scheduling_config.REMINDER_LOOKAHEAD_HOURS
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
