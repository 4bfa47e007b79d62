"""
============================================================================
GZ Compliance Engine v1.0
FastAPI Application Entry Point - Business Plan Export Gate
============================================================================

Reliability Level: L6 Critical
Input Constraints: Workshop session JSON over HTTP
Side Effects: Prometheus metrics, structured log lines

MANDATE:
- Never export a plan that fails a BA blocker rule
- Answer every validation within the configured budget (fail-open)
- Zero tolerance for floating-point money math

============================================================================
"""

import os
import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.api.export import router as export_router
from services.compliance_config import get_compliance_config
from services.compliance_orchestrator import reset_compliance_orchestrator

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


# ============================================================================
# LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup/shutdown events.

    Reliability Level: L6 Critical
    Input Constraints: None
    Side Effects: Loads and validates configuration

    Startup:
        - Load compliance configuration from the environment
        - Log effective configuration

    Shutdown:
        - Release the orchestrator worker threads
    """
    logger.info("=" * 60)
    logger.info("GZ COMPLIANCE ENGINE v%s", APP_VERSION)
    logger.info("=" * 60)
    logger.info("Startup Time: %s", datetime.now(timezone.utc).isoformat())

    config = get_compliance_config()
    logger.info("[OK] Compliance configuration loaded | %s", config.to_dict())

    yield

    reset_compliance_orchestrator()
    logger.info("[OK] Compliance orchestrator released")


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

app = FastAPI(
    title="GZ Compliance Engine",
    description=(
        "BA compliance validation and export gate for Gründungszuschuss "
        "business plans.\n\n"
        "Blockers refuse the export, warnings are reported, validator "
        "failures fail open with a neutral score."
    ),
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Reliability Level: L6 Critical
    Input Constraints: Any unhandled exception
    Side Effects: Logs error, returns safe response
    """
    error_code = "SYS-500"
    logger.error("[%s] Unhandled exception | path=%s | error=%s", error_code, request.url.path, exc)

    return JSONResponse(
        status_code=500,
        content={
            "error_code": error_code,
            "message": "Internal server error. This incident has been logged.",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(
    export_router,
    prefix="/api/export",
    tags=["Export"]
)


# ============================================================================
# SYSTEM ENDPOINTS
# ============================================================================

@app.get(
    "/health",
    summary="Health Check",
    description="Lightweight health check for load balancers and monitoring.",
    tags=["System"]
)
async def health_check():
    """
    Lightweight health check endpoint.

    Returns:
        dict: Health status and effective validation budget
    """
    config = get_compliance_config(validate=False)
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "timeout_ms": config.timeout_ms,
    }


@app.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Exposes Prometheus metrics for observability.",
    tags=["Observability"]
)
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level="info"
    )
