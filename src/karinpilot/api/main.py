"""
KarinPilot API

HTTP surface over the case lifecycle and compliance risk engine.
"""
from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings, load_settings
from ..engine import EngineComponents, RiskSignalSource, build_components
from ..exceptions import (
    AlreadyDecided,
    CaseNotFoundError,
    ConcurrencyConflict,
    DuplicatePendingExtension,
    ExtensionLimitExceeded,
    ExtensionNotAllowed,
    ExtensionNotFound,
    ExternalUnavailable,
    InvalidTransition,
    KarinPilotError,
    TerminalStateViolation,
    UnauthorizedApprover,
    ValidationError,
)
from ..logging_setup import configure_logging
from .routes import alerts, cases, catalogs, risk
from .schemas.responses import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


# Checked in order; the first matching family decides the status code
ERROR_STATUS: tuple[tuple[type[KarinPilotError], int], ...] = (
    (ValidationError, 422),
    (CaseNotFoundError, 404),
    (ExtensionNotFound, 404),
    (UnauthorizedApprover, 403),
    (ConcurrencyConflict, 409),
    (InvalidTransition, 409),
    (TerminalStateViolation, 409),
    (ExtensionNotAllowed, 409),
    (ExtensionLimitExceeded, 409),
    (DuplicatePendingExtension, 409),
    (AlreadyDecided, 409),
    (ExternalUnavailable, 503),
)


def status_for(error: KarinPilotError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


DESCRIPTION = """
## KarinPilot

Case lifecycle and compliance risk engine for Ley Karin (Ley 21.643)
investigations.

### Case lifecycle

- Stage transitions over the statutory process graph
- Stage deadlines in calendar or business days, with approved extensions
- Extension requests and decisions
- Deadline alert scans (`ok` → `approaching` → `urgent` → `overdue`)

### Compliance risk

- Offense catalogue matching over the report narrative
- Probability × impact risk matrix
- Unified score blending an external AI severity signal

Every engine error is returned as `{code, message, details, case_id}`.
"""


def create_app(
    settings: Optional[Settings] = None,
    components: Optional[EngineComponents] = None,
    signal_source: Optional[RiskSignalSource] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Runtime settings (read from KP_* variables when None)
        components: Prebuilt engine components, mainly for tests
        signal_source: External AI scorer wired when risk analysis is enabled
    """
    settings = settings or (components.settings if components else load_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the engine once at startup. Catalogue errors abort startup."""
        configure_logging(settings.log_level, settings.log_json)
        if components is None:
            app.state.components = build_components(settings, signal_source=signal_source)
        else:
            app.state.components = components
        engine = app.state.components
        logger.info(
            "KarinPilot ready: %d deadline rules, %d offenses, calendar=%s",
            len(engine.rule_table), len(engine.catalogue), settings.calendar,
        )
        yield

    app = FastAPI(
        title="KarinPilot API",
        description=DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add a request ID to every request and log its duration."""
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "%s %s -> %d", request.method, request.url.path, response.status_code,
            extra={
                "request_id": request_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            },
        )
        return response

    @app.exception_handler(KarinPilotError)
    async def karinpilot_error_handler(request: Request, exc: KarinPilotError):
        status = status_for(exc)
        request_id = getattr(request.state, "request_id", "unknown")
        log = logger.error if status >= 500 else logger.info
        log(
            "Request failed: %s", exc,
            extra={"request_id": request_id, "error_code": exc.code, "case_id": exc.case_id},
        )
        body = ErrorResponse(**exc.to_dict(), request_id=request_id)
        return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))

    app.include_router(cases.router)
    app.include_router(alerts.router)
    app.include_router(risk.router)
    app.include_router(catalogs.router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(request: Request):
        """Liveness probe with the loaded catalogue fingerprints."""
        engine: EngineComponents = request.app.state.components
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
            calendar=engine.settings.calendar,
            risk_analysis_enabled=engine.signal_source is not None,
            rule_table_hash=engine.rule_table.content_hash[:16],
            offenses_loaded=len(engine.catalogue),
        )

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
