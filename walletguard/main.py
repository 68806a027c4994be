"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from walletguard.api.dependencies import cleanup_dependencies
from walletguard.api.routes import router
from walletguard.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Blocklist backend: {settings.blocklist_backend}")
    logger.info(f"Solana RPC endpoints: {len(settings.solana_rpc_endpoints)}")
    if not settings.registry_credential.get_secret_value():
        logger.warning("No abuse registry credential configured; recipient checks will be degraded")

    yield

    logger.info("Shutting down WalletGuard...")
    await cleanup_dependencies()
    logger.info("Cleanup complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Recipient risk screening for wallet transfers. Combines the user's "
            "blocklist, an abuse-report registry and on-chain activity into a "
            "verdict that gates the send workflow."
        ),
        version=settings.app_version,
        lifespan=lifespan,
    )

    allowed_origins = ["*"]
    if settings.allowed_origins:
        allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]

    allow_credentials = True
    if "*" in allowed_origins and not settings.debug:
        logger.warning("CORS: Using wildcard origins in production is not recommended")
        allow_credentials = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )

    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": f"{settings.api_prefix}/health",
        }

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "walletguard.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )
