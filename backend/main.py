from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime
from typing import List, Optional
import logging

from config import settings
from database import init_db
from errors import PersonelimError
from accounts import router as accounts_router
from admin import router as admin_router
from businesses import router as businesses_router
from members import router as members_router
from invitations import router as invitations_router
from leaves import router as leaves_router
from locations import router as locations_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="1.0.0", debug=settings.DEBUG)

CORS_ORIGINS = settings.cors_origins_list

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
    max_age=3600,  # Cache preflight responses for 1 hour
)


def error_response(status_code: int, message: str, errors: Optional[List[str]] = None, headers=None) -> JSONResponse:
    """Failure envelope shared by every error handler"""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "data": None,
            "errors": errors or [message],
        },
        headers=headers,
    )


# ==================== EXCEPTION HANDLERS ====================

@app.exception_handler(PersonelimError)
async def domain_exception_handler(request: Request, exc: PersonelimError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    """Unique constraints are the last line against concurrent duplicates"""
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return error_response(409, "The record conflicts with an existing one")


@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    return error_response(500, "A database error occurred")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return error_response(400, "Validation failed", errors)


@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler for unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response(500, "Internal server error")

# ==================== END EXCEPTION HANDLERS ====================

app.include_router(accounts_router)
app.include_router(admin_router)
app.include_router(businesses_router)
app.include_router(members_router)
app.include_router(invitations_router)
app.include_router(leaves_router)
app.include_router(locations_router)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info("=" * 60)

    try:
        await init_db()
        logger.info("Database initialization successful!")
    except ConnectionRefusedError as e:
        logger.error("=" * 60)
        logger.error("CRITICAL: Database connection refused!")
        logger.error(f"Error: {e}")
        logger.error("Check DATABASE_URL and that the database server is reachable")
        logger.error("=" * 60)
        raise
    except Exception as e:
        logger.error("=" * 60)
        logger.error(f"CRITICAL: Application startup failed: {e}")
        logger.error("=" * 60)
        raise

    if not settings.POSTMARK_ENABLED and not settings.EMAIL_TEST_MODE:
        logger.warning("Email delivery is disabled - invitation and reset codes will not be emailed")


@app.get("/api/wakeup", tags=["health"])
async def wakeup():
    """PUBLIC ENDPOINT: Health check used to wake the service"""
    return {
        "success": True,
        "message": "OK",
        "data": {"status": "ok", "timestamp": datetime.utcnow().isoformat()},
        "errors": [],
    }
