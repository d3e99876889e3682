"""
TrackCode Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn trackcode.main:app).

Exception Handlers:
    ValidationError / InvalidPrefixError      → 400
    NotFoundError / ClientNotFoundError       → 404
    PrefixUnavailableError                    → 409
    PrefixNotAssignedError                    → 409
    AllocationExhaustedError                  → 409
    TrackingCodeConflictError                 → 409
    DatabaseError                             → 500
    Exception (fallback)                      → 500

Lifecycle:
    Startup:  configure logging, log the allocation settings
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from trackcode import __version__
from trackcode.config import settings
from trackcode.database import dispose_engine
from trackcode.exceptions import (
    AllocationExhaustedError,
    DatabaseError,
    NotFoundError,
    PrefixNotAssignedError,
    PrefixUnavailableError,
    TrackCodeError,
    TrackingCodeConflictError,
    ValidationError,
)
from trackcode.middleware.logging import RequestLoggingMiddleware
from trackcode.middleware.request_id import RequestIDMiddleware, request_id_var
from trackcode.routes import clients, health, prefixes, shipments

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure root logging once, at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("TrackCode Backend %s starting up...", __version__)
    logger.info(
        "Tracking codes: padding=%d, fallback prefix=%s, exhaustion policy=%s",
        settings.sequence_padding,
        settings.fallback_prefix,
        settings.prefix_exhaustion_policy,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("TrackCode Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, exc: TrackCodeError) -> dict:
    return {
        "error": error,
        "message": exc.message,
        "details": exc.context,
        "request_id": request_id_var.get(""),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Database details never reach the response body; they are logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=_error_body("validation_error", exc))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc))

    @app.exception_handler(PrefixUnavailableError)
    async def handle_prefix_unavailable(request: Request, exc: PrefixUnavailableError):
        logger.info("[%s] Prefix conflict: %s", request_id_var.get(""), exc.prefix)
        return JSONResponse(status_code=409, content=_error_body("prefix_unavailable", exc))

    @app.exception_handler(PrefixNotAssignedError)
    async def handle_prefix_not_assigned(request: Request, exc: PrefixNotAssignedError):
        return JSONResponse(status_code=409, content=_error_body("prefix_not_assigned", exc))

    @app.exception_handler(AllocationExhaustedError)
    async def handle_allocation_exhausted(request: Request, exc: AllocationExhaustedError):
        logger.error("[%s] Allocation exhausted: %s", request_id_var.get(""), exc.context)
        return JSONResponse(status_code=409, content=_error_body("allocation_exhausted", exc))

    @app.exception_handler(TrackingCodeConflictError)
    async def handle_tracking_code_conflict(request: Request, exc: TrackingCodeConflictError):
        logger.error("[%s] Tracking code conflict: %s", request_id_var.get(""), exc.tracking_code)
        return JSONResponse(status_code=409, content=_error_body("tracking_code_conflict", exc))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="TrackCode API",
        description=(
            "Tracking-code allocation for the shipment back-office: unique "
            "per-client prefixes and monotonically increasing tracking codes."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(clients.router)
    app.include_router(prefixes.router)
    app.include_router(shipments.router)
    app.include_router(health.router)

    return app


app = create_app()
