"""
Follow-Up Unit - FastAPI Application

Main entry point for the Follow-Up Unit backend.

Users register contacts ("persons") and file weekly follow-up reports on them.
Admins see every user's records plus report-completion statistics:
- Expected reports: one per person per week since the person was registered
- Actual reports: reports filed for those weeks
- Orphaned reports (person deleted out of band) are flagged, never counted
"""
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config, middleware
from .database import init_db
from .logging_config import configure_logging
from .routers import auth_router, admin_router, persons_router

configure_logging()

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate settings and initialize database on startup."""
    config.validate_env()
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Follow-Up Unit API",
    description="Contact tracking with weekly follow-up reports and completion statistics.",
    version="1.0.0",
    docs_url=None if config.IS_PRODUCTION else "/docs",
    redoc_url=None if config.IS_PRODUCTION else "/redoc",
    openapi_url=None if config.IS_PRODUCTION else "/openapi.json",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

middleware.install(app)

# Include routers (admin first: its fixed paths share the /persons prefix)
app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(persons_router, prefix="/api")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "status": "ok",
        "message": "Server is running",
        "timestamp": _now_iso(),
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "message": "Server is healthy",
        "timestamp": _now_iso(),
        "uptime": round(time.monotonic() - STARTED_AT, 1),
    }


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
