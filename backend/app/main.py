"""TrackAS - Logistics Platform API"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core.config import get_settings
from app.core.logging import configure_logging, logger
from app.routers import (
    auth,
    disputes,
    insights,
    invoices,
    navigation,
    notifications,
    operators,
    pricing,
    registrations,
    routing,
    shipments,
    store,
)
from app.services.app_store import app_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level, json_output=not settings.is_demo_mode())
    logger.info(
        "TrackAS API starting",
        version="0.1.0",
        app_mode=settings.normalized_app_mode(),
        auth_enabled=settings.auth_enabled,
        journal=str(app_store.journal.path),
    )
    yield
    # Shutdown
    logger.info("TrackAS API shutting down")


app = FastAPI(
    title="TrackAS API",
    description="Logistics platform - shipments, fleet registration, tracking, pricing, and dispatch",
    version="0.1.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(navigation.router)
app.include_router(shipments.router)
app.include_router(operators.router)
app.include_router(registrations.router)
app.include_router(notifications.router)
app.include_router(pricing.router)
app.include_router(routing.router)
app.include_router(insights.router)
app.include_router(disputes.router)
app.include_router(invoices.router)
app.include_router(store.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "TrackAS API",
        "version": "0.1.0",
        "description": "Logistics platform for shipments, fleet, and dispatch",
        "endpoints": {
            "auth": "/auth",
            "navigation": "/navigation/menu",
            "shipments": "/shipments",
            "operators": "/operators",
            "registrations": "/registrations",
            "notifications": "/notifications",
            "pricing": "/pricing",
            "routing": "/routing",
            "insights": "/insights",
            "disputes": "/disputes",
            "invoices": "/invoices",
            "analytics": "/analytics",
            "store": "/store/state",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
