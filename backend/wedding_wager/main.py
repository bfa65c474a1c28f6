"""
backend/wedding_wager/main.py

Purpose:
    FastAPI application bootstrap: lifespan (database, seed data, parlay
    reconciler schedule), middleware and router wiring, and the mapping of
    domain and storage errors onto HTTP responses.

Dependencies:
    - wedding_wager.database
    - wedding_wager.seed
    - wedding_wager.workers.parlay_reconciler
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    ServerSelectionTimeoutError,
)

import wedding_wager.database as _db
from wedding_wager.config import settings
from wedding_wager.database import close_db, connect_db
from wedding_wager.errors import StoreUnavailable, WagerError
from wedding_wager.middleware.logging import StructuredLoggingMiddleware, setup_logging

logger = logging.getLogger("wedding_wager")
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    await connect_db()

    from wedding_wager.seed import seed_admin_users, seed_initial_bets
    await seed_initial_bets()
    await seed_admin_users()

    if settings.PARLAY_RECONCILER_ENABLED:
        from wedding_wager.workers.parlay_reconciler import resolve_pending_parlays
        scheduler.add_job(
            resolve_pending_parlays,
            "interval",
            minutes=settings.PARLAY_RECONCILER_INTERVAL_MINUTES,
            id="parlay_reconciler",
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            "Parlay reconciler scheduled every %d min",
            settings.PARLAY_RECONCILER_INTERVAL_MINUTES,
        )
    else:
        logger.info("Parlay reconciler disabled via config")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await close_db()


app = FastAPI(
    title="Wedding Wager",
    description="Pari-mutuel wedding prediction game with parlays",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from wedding_wager.routers.admin import router as admin_router
from wedding_wager.routers.bets import router as bets_router
from wedding_wager.routers.parlays import router as parlays_router
from wedding_wager.routers.user import router as user_router
from wedding_wager.routers.wagers import router as wagers_router

app.include_router(user_router)
app.include_router(bets_router)
app.include_router(wagers_router)
app.include_router(parlays_router)
app.include_router(admin_router)


@app.exception_handler(WagerError)
async def wager_error_handler(request: Request, exc: WagerError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "retryable": exc.retryable},
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": "Service temporarily unavailable. Please retry.",
            "code": exc.code,
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean validation errors without leaking internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        # Strip the "body" / "query" prefix
        field = ".".join(str(l) for l in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(status_code=422, content={"detail": "Validation error.", "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=409, content={"detail": "Duplicate entry."})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": "Invalid input."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health():
    """Health check -- verifies the DB connection."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
    }
