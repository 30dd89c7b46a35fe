# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Assistant Gateway
=================
Answers natural-language questions about an organization, grounded on a fresh
snapshot of its data store, through a pool of Gemini API keys with throttling,
retry and rotation. Also forwards caller reports to the organization by email
and exposes Prometheus metrics.

Port: 8010
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gateway.controllers import chat_controller, system_controller
from gateway.core.config import settings
from gateway.core.dependencies import close_services, init_services
from gateway.core.logging import get_logger
from gateway.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    init_services()
    logger.info("%s v%s starting on port %d",
                settings.SERVICE_NAME, settings.SERVICE_VERSION, settings.SERVICE_PORT)
    yield
    await close_services()
    logger.info("%s shutting down", settings.SERVICE_NAME)


app = FastAPI(
    title="Assistant Gateway",
    description="Grounded conversational assistant backed by a pooled Gemini client.",
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


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_server_error",
            "details": str(exc) if settings.DEBUG else None,
            "request_id": req_id,
        },
    )


app.include_router(system_controller.router)
app.include_router(chat_controller.router)


# ── Entrypoint ────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level=settings.LOG_LEVEL.lower())
