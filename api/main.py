"""
Lead Management API - Main Application.

FastAPI application with CORS enabled for the admin frontend.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Lead Management API",
    description="REST API for lead upload, grade classification and distribution eligibility",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# TODO: Restrict origins once the admin frontend domain is fixed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "lead-management-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Lead Management API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import distribution_rules, grade_rules, leads, members, settings

app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
app.include_router(grade_rules.router, prefix="/api/v1", tags=["Grade Rules"])
app.include_router(distribution_rules.router, prefix="/api/v1", tags=["Distribution Rules"])
app.include_router(settings.router, prefix="/api/v1", tags=["Settings"])
app.include_router(members.router, prefix="/api/v1", tags=["Members"])
