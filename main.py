# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Field Service Signup Client
===========================
Local client for a congregation's field-service signup sheet. Keeps the
canonical state fetched from the spreadsheet API in memory, applies every
edit optimistically and rolls it back when the remote call fails, polls for
changes made by other clients, and runs the pairing and spot-grid panels.

Port: 8080
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fieldservice.controllers import (
    assignment_controller,
    roster_controller,
    service_controller,
    session_controller,
    sync_controller,
    system_controller,
)
from fieldservice.core import dependencies
from fieldservice.core.config import settings
from fieldservice.core.errors import GatewayError, RuleRefused
from fieldservice.core.logging import get_logger
from fieldservice.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger("fieldservice")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not getattr(app.state, "services_ready", False):
        dependencies.init_services()
    logger.info("Starting %s v%s", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    try:
        await dependencies.get_sync_service().reload()
    except GatewayError as exc:
        # the sync status carries the error; POST /api/v1/sync/reload retries
        logger.error("Initial load failed: %s", exc.message)
    yield
    await dependencies.close_services()
    logger.info("Shutting down")


app = FastAPI(
    title="Field Service Signup Client",
    description="Optimistic, polling client for the field-service signup spreadsheet.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


# ── Error mapping ──
@app.exception_handler(RuleRefused)
async def rule_refused_handler(request: Request, exc: RuleRefused):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def validation_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(
        status_code=502,
        content={"detail": exc.message, "action": exc.action},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"error": "internal_server_error", "detail": str(exc)})


app.include_router(system_controller.router)
app.include_router(session_controller.router)
app.include_router(sync_controller.router)
app.include_router(roster_controller.router)
app.include_router(service_controller.router)
app.include_router(assignment_controller.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
