"""FastAPI application for the SatoTrack ingestion backend"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from satotrack.config import IngestionConfig, settings
from satotrack.services.ingestion import WalletIngestionService
from satotrack.services.providers import ProviderHttpClientFactory
from satotrack.storage import Database, PersistenceGateway
from satotrack.api import config, wallet

# Configure logging
log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# Align key loggers with configured level
logging.getLogger("satotrack").setLevel(log_level)
logging.getLogger("uvicorn").setLevel(log_level)
logging.getLogger("uvicorn.access").setLevel(log_level)
logger = logging.getLogger(__name__)


def create_app(
    ingestion_config: Optional[IngestionConfig] = None,
    database: Optional[Database] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application.

    ``transport`` replaces the network transport of every provider client,
    which lets tests serve canned provider responses.
    """

    ingestion_config = ingestion_config or IngestionConfig.from_settings(settings)
    database = database or Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for startup/shutdown"""
        # Startup
        logger.info("Starting SatoTrack ingestion backend...")
        await database.init()
        http = ProviderHttpClientFactory(transport=transport)
        app.state.ingestion_config = ingestion_config
        app.state.ingestion_service = WalletIngestionService.from_config(
            ingestion_config, http, PersistenceGateway(database)
        )
        logger.info(
            "Ingestion service initialized (providers: %s)",
            ", ".join(ingestion_config.provider_priority_order),
        )

        yield

        # Shutdown
        logger.info("Shutting down SatoTrack ingestion backend...")
        await http.close_all()
        await database.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Bitcoin wallet ingestion and normalization API",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(wallet.router, prefix="/api/wallet", tags=["Wallet"])
    app.include_router(config.router, prefix="/api", tags=["Config"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": "SatoTrack Ingestion API",
            "version": settings.api_version,
            "status": "running",
            "providers": ingestion_config.provider_priority_order,
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
