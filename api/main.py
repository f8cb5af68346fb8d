"""
Lucky Packet Platform API - Main Application.

FastAPI application exposing packet creation, claiming and status lookups.
The packet store handle is created at startup and closed at shutdown.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from services.runtime import close_store, get_settings, init_store

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_store()
    try:
        yield
    finally:
        close_store()


# Create FastAPI application
app = FastAPI(
    title="Lucky Packet Platform API",
    description="REST API for creating lucky-money packets and claiming shares",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for demo
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status, version and the active store backend.
    The store is reported as "uninitialized" before startup completes.
    """
    try:
        backend = get_settings().backend
    except RuntimeError:
        return {
            "status": "starting",
            "version": __version__,
            "service": "lucky-packet-platform-api",
            "store": "uninitialized"
        }
    return {
        "status": "healthy",
        "version": __version__,
        "service": "lucky-packet-platform-api",
        "store": backend
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Lucky Packet Platform API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import packets

app.include_router(packets.router, prefix="/api/v1", tags=["Packets"])
