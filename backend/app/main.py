"""
Himalayan Rides API

Usage:
    uvicorn app.main:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.api_core import exceptions as gcp_exceptions

from app.api.v1 import vehicles
from app.api.v1.content import (
    bike_tours_router,
    destinations_router,
    experiences_router,
    trip_plans_router,
)
from app.core.config import Settings, configure_logging, settings
from app.core.firebase import create_firestore_client
from app.services.container import build_services
from app.services.data import BatchFailed, DataLayerError, SubscriptionFailed, build_data_layer_from_settings

logger = logging.getLogger(__name__)


def _log_subscription_error(error: SubscriptionFailed):
    logger.error(f"Live listener error: {error}")


def create_app(config: Settings = settings, db=None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        config: Runtime settings
        db: Firestore client to use; created from config at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = db if db is not None else create_firestore_client(config)
        data = build_data_layer_from_settings(client, config, error_sink=_log_subscription_error)
        app.state.db = client
        app.state.services = build_services(data)
        logger.info(f"🚀 {config.APP_NAME} started")

        yield

        logger.info(f"Shutting down {config.APP_NAME}")
        app.state.services.close()

    app = FastAPI(title=config.APP_NAME, version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DataLayerError)
    async def data_layer_exception_handler(request: Request, exc: DataLayerError):
        if isinstance(exc, BatchFailed) and isinstance(exc.cause, gcp_exceptions.NotFound):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"detail": "Document not found"},
            )
        if isinstance(exc, BatchFailed) and (exc.cause is None or isinstance(exc.cause, ValueError)):
            # Rejected before reaching Firestore (malformed or oversized batch)
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": str(exc)},
            )

        logger.error(f"Data layer error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "app": config.APP_NAME}

    app.include_router(vehicles.router, prefix="/api/v1/vehicles", tags=["vehicles"])
    app.include_router(bike_tours_router, prefix="/api/v1/bike-tours", tags=["bike-tours"])
    app.include_router(destinations_router, prefix="/api/v1/destinations", tags=["destinations"])
    app.include_router(experiences_router, prefix="/api/v1/experiences", tags=["experiences"])
    app.include_router(trip_plans_router, prefix="/api/v1/trip-plans", tags=["trip-plans"])

    return app


configure_logging()
app = create_app()
