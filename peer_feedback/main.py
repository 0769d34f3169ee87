"""
Peer Feedback Service - FastAPI Application

Collects one round of peer ratings from a fixed roster of employees.
Middleware order: CORS → CorrelationId → Logging.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from peer_feedback.core.config import settings
from peer_feedback.core.exceptions import AppException, NotFoundError
from peer_feedback.core.limiter import limiter
from peer_feedback.core.logging import setup_logging
from peer_feedback.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from peer_feedback.database import SessionLocal, get_db, init_db
from peer_feedback.routers.api_router import api_router
from peer_feedback.services.ledger_service import LedgerService
from peer_feedback.services.roster import Roster, get_roster

# ============================================================================
# LOGGING SETUP
# ============================================================================
setup_logging()
logger = logging.getLogger(__name__)

_started_at = time.monotonic()
PUBLIC_DIR = Path(settings.public_dir)


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Startup: load the roster, create tables, zero the ledger, repair drift
    - Shutdown: nothing to release beyond the engine pool
    """
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    roster = get_roster()
    logger.info(f"✓ Roster loaded: {len(roster)} employees")

    try:
        init_db()
        db = SessionLocal()
        try:
            ledger = LedgerService(db)
            ledger.ensure_initialized()
            ledger.reconcile()
        finally:
            db.close()
        logger.info(f"✓ Storage initialized ({settings.database_url})")
    except Exception as e:
        logger.error(f"✗ Storage initialization failed: {e}")
        raise

    yield

    logger.info("Gracefully shutting down...")


# ============================================================================
# FASTAPI INSTANCE
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Peer evaluation intake with single-submission enforcement",
    docs_url="/docs",
    redoc_url=None,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ============================================================================
# RATE LIMITER
# ============================================================================
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# MIDDLEWARE STACK (last added runs first)
# ============================================================================
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client errors like any other rejected submission."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"][1:]) or "body"
        errors.append({"field": field, "msg": error["msg"]})

    logger.warning(f"Validation Error: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid request body", "code": "INVALID_BODY", "errors": errors}
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle domain-specific application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"AppException: {exc.message}", extra={"code": exc.error_code, "path": request.url.path})
    content = {"success": False, "error": exc.message, "code": exc.error_code}
    if exc.details:
        content.update(exc.details)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    """Handle standard HTTP exceptions, including unknown routes."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Endpoint not found"
    else:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Fallback handler for unhandled server errors."""
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"}
    )


# ============================================================================
# ROUTER INCLUSION
# ============================================================================
app.include_router(api_router, prefix=settings.api_prefix)


# ============================================================================
# OPERATIONAL ENDPOINTS
# ============================================================================
@app.get(f"{settings.api_prefix}/health", tags=["Health"])
def health_check(roster: Roster = Depends(get_roster)):
    """Liveness probe."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
        "totalEmployees": len(roster),
        "version": settings.version,
    }


@app.get(f"{settings.api_prefix}/readiness", tags=["Health"])
def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe - verifies database connectivity."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready", "components": {"database": "connected"}}


@app.get("/", include_in_schema=False)
def index():
    """Client application entry page."""
    index_file = PUBLIC_DIR / "index.html"
    if not index_file.is_file():
        raise NotFoundError("Endpoint not found")
    return FileResponse(index_file)


class ClientFiles(StaticFiles):
    """Static client assets. Non-GET requests that fall through to here are unknown endpoints."""

    async def get_response(self, path: str, scope):
        if scope["method"] not in ("GET", "HEAD"):
            raise StarletteHTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return await super().get_response(path, scope)


# Static assets last, so API routes win
if PUBLIC_DIR.is_dir():
    app.mount("/", ClientFiles(directory=str(PUBLIC_DIR)), name="public")

