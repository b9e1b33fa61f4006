"""
GovDash Backend — FastAPI Application Entry Point

This is the main entry point for the GovDash backend API server.
It configures logging, the FastAPI application, CORS and the routers,
and initializes the database on startup.

Architecture:
    - FastAPI application with auto-generated OpenAPI docs at /docs
    - CORS enabled for the Streamlit frontend (GOVDASH_CORS_ORIGINS overrides)
    - All routers mounted under the /api prefix
    - Database tables created on startup via lifespan event
    - Mutating endpoints identify the caller by the X-User-Id header

Usage:
    python -m uvicorn backend.main:app --host 127.0.0.1 --port 8050
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import init_db
from .routers import (
    users, portfolios, projects, risks, standards, compliance, access, preferences, export,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("govdash")

DEFAULT_CORS_ORIGINS = [
    "http://localhost:8501",    # Streamlit default
    "http://127.0.0.1:8501",
    "http://localhost:8502",    # Streamlit alternate
    "http://127.0.0.1:8502",
    "http://localhost:3000",    # Optional: other frontends
]


def _cors_origins() -> list[str]:
    raw = os.getenv("GOVDASH_CORS_ORIGINS")
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    - On startup: initialize the database (create tables if they don't exist)
    - On shutdown: nothing special needed (SQLite handles cleanup)
    """
    init_db()
    logger.info("GovDash API started")
    yield


# Create FastAPI application
app = FastAPI(
    title="GovDash Portfolio Dashboard",
    description=(
        "REST API for government portfolio and project oversight. "
        "Supports portfolio health scoring, risk tracking, "
        "PMI compliance evaluation and role-based access."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount all routers
app.include_router(users.router)        # /api/users
app.include_router(portfolios.router)   # /api/portfolios
app.include_router(projects.router)     # /api/projects
app.include_router(risks.router)        # /api/risks
app.include_router(standards.router)    # /api/standards (+ criteria)
app.include_router(compliance.router)   # /api/compliance
app.include_router(access.router)       # /api/access
app.include_router(preferences.router)  # /api/preferences
app.include_router(export.router)       # /api/export


@app.get("/")
def root():
    """Health check and API information endpoint."""
    return {
        "name": "GovDash API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "users": "/api/users",
            "portfolios": "/api/portfolios",
            "projects": "/api/projects",
            "risks": "/api/risks",
            "standards": "/api/standards",
            "compliance": "/api/compliance/dashboard/statistics",
            "access": "/api/access/roles",
            "preferences": "/api/preferences/{user_id}",
            "export": "/api/export/compliance-report.xlsx",
        },
    }


@app.get("/health")
def health_check():
    """Simple health check for monitoring."""
    return {"status": "healthy"}
