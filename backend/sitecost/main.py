"""
SiteCost API v1.0
FastAPI service exposing the construction cost rollup, project-controls and
labor burden calculators. Stateless: persistence and auth live upstream.
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from sitecost import config
from sitecost.services.logging_config import setup_logging
from sitecost.services.middleware import RequestTimingMiddleware
from sitecost.services.perf_monitor import tracker as perf_tracker

setup_logging(level=config.LOG_LEVEL, json_output=config.LOG_JSON)
logger = logging.getLogger("sitecost-api")

VERSION = "1.0.0"

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()


app = FastAPI(
    title="SiteCost Rollup API",
    version=VERSION,
    description="Project cost rollup, variance and earned value for construction estimates",
)


# ---------------------------------------------------------------------------
# Security Headers Middleware
# ---------------------------------------------------------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from sitecost.api.calculator_routes import router as calculator_router  # noqa: E402

app.include_router(calculator_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": VERSION,
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
    }


@app.get("/metrics")
async def metrics():
    """Calculation throughput, durations and rejection counts from the in-process tracker."""
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


logger.info(f"SiteCost API {VERSION} ready ({len(app.routes)} routes)")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sitecost.main:app", host="0.0.0.0", port=8000, reload=True)
