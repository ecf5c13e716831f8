import logging
from datetime import timedelta

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlmodel import Session

from opsdesk.core.config import get_settings
from opsdesk.core.logging import setup_logging
from opsdesk.core.database import create_db_and_tables, engine
from opsdesk.core.exceptions import InternalError, OpsDeskError
from opsdesk.core.onboarding import seed_hosts, seed_users
from opsdesk.services import AuditService, JobService, recover_orphaned_jobs

# Import Routers
from opsdesk.routers import commands, core, logs

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manages OpsDesk application lifecycle events.

    On Startup:
    - Creates database tables if missing.
    - Seeds demo users and hosts when enabled.
    - Closes jobs orphaned in the RUNNING state by a previous crash.
    """
    logger.info("OpsDesk starting up...")
    create_db_and_tables()

    with Session(engine) as session:
        if settings.SEED_DEMO_DATA:
            seed_users(session)
            seed_hosts(session)

        grace = timedelta(seconds=settings.COMMAND_TIMEOUT_SECONDS + settings.ORPHAN_GRACE_SECONDS)
        recover_orphaned_jobs(JobService(session), AuditService(session), session, older_than=grace)

    logger.info("OpsDesk started successfully.")
    yield
    logger.info("OpsDesk shutting down...")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan
)

# Global Exception Handlers
@app.exception_handler(OpsDeskError)
async def opsdesk_exception_handler(request: Request, exc: OpsDeskError):
    """Maps domain errors to a JSON body carrying only category and message."""
    if isinstance(exc, InternalError):
        logger.error(f"Internal error on {request.method} {request.url.path}: {exc.message} (recoverable={exc.recoverable})")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "category": exc.category},
    )

@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reports malformed request bodies and parameters as plain 400s."""
    logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "category": "validation"},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "category": "http"},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catches unhandled exceptions and returns clean error responses."""
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "category": "internal"},
    )

# Security Headers Middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Cache-Control"] = "no-store"
    return response

# Include Routers
app.include_router(core.router)
app.include_router(commands.router)
app.include_router(logs.router)
