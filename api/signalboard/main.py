from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from . import schemas  # noqa: E402
from .errors import (  # noqa: E402
    AuthorizationError,
    PolicyViolation,
    SignalBoardError,
    StorageError,
    ValidationError,
)
from .middleware import SecurityHeadersMiddleware  # noqa: E402
from .routers import (  # noqa: E402
    admin,
    engagement,
    feed,
    invites,
    reports,
    signals,
    system,
)
from .seed import ensure_seed_data  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations() -> None:
    logger.info("run_migrations: Starting...")
    try:
        command.upgrade(_alembic_config(), "head")
        logger.info("run_migrations: Completed successfully.")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return
    try:
        run_migrations()
        ensure_seed_data()
        _STARTUP_COMPLETE = True
        logger.info("Startup tasks completed.")
    except Exception as e:
        logger.error(f"Startup tasks failed: {e}", exc_info=True)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    # Server won't start until these complete
    run_startup_tasks()
    logger.info("Signal Board API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Signal Board API",
    version="1.0.0",
    description="Invite-only, moderated community signals about dating experiences",
    lifespan=lifespan,
)

# In production, set CORS_ORIGINS to a comma-separated list of allowed origins
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost")
if cors_origins_str == "*":
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )
cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.add_middleware(SecurityHeadersMiddleware)


def _problem_response(exc: SignalBoardError, detail: str | None, errors=None) -> JSONResponse:
    problem = schemas.Problem(
        title=exc.title,
        status=exc.status_code,
        detail=detail,
        errors=errors,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


@app.exception_handler(SignalBoardError)
async def signalboard_error_handler(request: Request, exc: SignalBoardError) -> JSONResponse:
    if isinstance(exc, PolicyViolation):
        return _problem_response(exc, exc.detail, errors={"reasons": exc.reasons})
    if isinstance(exc, AuthorizationError):
        # Never reveal which check failed
        logger.info(f"Forbidden {request.method} {request.url.path}: {exc.detail}")
        return _problem_response(exc, exc.title)
    if isinstance(exc, StorageError):
        logger.error(f"Storage failure on {request.method} {request.url.path}")
        return _problem_response(exc, exc.title)
    return _problem_response(exc, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query, path or body input is a 400, like service-level validation."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return _problem_response(ValidationError(), "Request failed validation", errors=errors)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    problem = schemas.Problem(title="Internal server error", status=500)
    return JSONResponse(
        status_code=500,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


app.include_router(system.router)
app.include_router(signals.router)
app.include_router(signals.moderation_router)
app.include_router(engagement.router)
app.include_router(feed.router)
app.include_router(invites.router)
app.include_router(reports.router)
app.include_router(reports.claims_router)
app.include_router(admin.router)
