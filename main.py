# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
On-Call Bot
===========
Slack slash-command bot that keeps a per-team on-call rotation: teams,
their managers and an ordered on-call list, persisted in SQL and
rendered with phone numbers pulled from Slack profiles.

Port: 8080
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from oncallbot.controllers import command_controller, system_controller
from oncallbot.core.config import settings
from oncallbot.core.database import engine
from oncallbot.core.dependencies import get_oncall_service, get_team_repo
from oncallbot.core.exceptions import ExternalError
from oncallbot.core.logging import get_logger
from oncallbot.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create the table, load stored teams and superusers; dispose pool on shutdown."""
    try:
        get_team_repo().create_schema()
    except ExternalError as exc:
        logger.error("Database schema check FAILED, commands will fail until it recovers: %s", exc)
    get_oncall_service().initialize()
    logger.info("%s %s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    engine.dispose()
    logger.info("Database connection pool disposed, shutting down")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="On-Call Bot",
    description="Slack slash command for team on-call rotations.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(system_controller.router)
app.include_router(command_controller.router)


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "request_id": req_id},
    )


# ── Entrypoint ────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
