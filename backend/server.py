"""
MultiTime Relay Server - Main Application Entry Point
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI

from app_context import RelayContext
from app_logging import setup_logging
from config import load_config, resolve_config_path, resolve_server_settings
from relay_client import REQUEST_TIMEOUT_SECONDS
from relay_errors import ConfigError
from routes import heartbeat_routes, status_routes
from schemas import RelayConfig

__version__ = "1.0.0"


# --------------------------------------------------------------------------- #
# FastAPI App Initialization
# --------------------------------------------------------------------------- #

def create_app(
    config: RelayConfig,
    logger: Optional[logging.Logger] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> FastAPI:
    """
    Build the relay application for one configuration.

    `transport` replaces the network layer of the outbound client (tests pass
    an httpx.MockTransport).
    """
    logger = logger or setup_logging(debug=config.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)
        context = RelayContext(config, http_client, logger, timeout=timeout)
        app.state.context = context

        logger.info(f"Relaying to {len(context.registry)} backend(s), primary: {context.registry.primary.name}")
        for backend in context.registry:
            logger.debug(f"Backend {backend.name} -> {backend.url} (primary={backend.is_primary})")
        try:
            yield
        finally:
            logger.info("Shutting down...")
            await context.close()

    app = FastAPI(title="MultiTime Relay", version=__version__, lifespan=lifespan)

    # ----------------------------------------------------------------------- #
    # Route Registration
    # ----------------------------------------------------------------------- #

    app.include_router(heartbeat_routes.router)
    app.include_router(status_routes.router)

    @app.get("/health")
    async def health_check():
        """Local liveness check; never contacts a backend."""
        registry = app.state.context.registry
        return {
            "status": "healthy",
            "backends": len(registry),
            "primary": registry.primary.name,
        }

    return app


# --------------------------------------------------------------------------- #
# Command Line Entry Point
# --------------------------------------------------------------------------- #

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="multitime",
        description="Relay time-tracking heartbeats to several backends.",
    )
    parser.add_argument("config_file", nargs="?", help="Path to the TOML config file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    logger = setup_logging()

    try:
        config = load_config(resolve_config_path(args.config_file))
        settings = resolve_server_settings(config)
    except ConfigError as e:
        logger.error(f"Error loading config: {e}")
        return 1

    logger = setup_logging(debug=settings.debug)
    app = create_app(config, logger=logger)

    import uvicorn

    logger.info(f"Starting MultiTime server on port {settings.port}")
    # Relayed responses carry the primary's own Server and Date headers.
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        server_header=False,
        date_header=False,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
