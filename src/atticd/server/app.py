"""FastAPI application for the atticd server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.trustedhost import TrustedHostMiddleware

from .. import __version__
from ..utils import parse_socket_address
from .config import Config

logger = logging.getLogger("atticd.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    config: Config = app.state.config

    host, port = config.listen_address()
    logger.info(f"Starting atticd (listen: {host}:{port})")
    if not config.allowed_hosts:
        logger.warning("allowed-hosts is not configured; all Host headers are accepted")
    if config.api_endpoint is None:
        logger.warning(
            "api-endpoint is not configured; it will be synthesized "
            "from the client's Host header"
        )

    compression = config.compression
    level = compression.effective_level()
    logger.info(
        f"Compression: {compression.type.value} "
        f"(level: {'default' if level.is_default else level.precise})"
    )

    yield

    logger.info("Shutting down atticd")


def resolve_endpoints(config: Config, request: Request) -> tuple[str, str]:
    """Resolve the API and substituter endpoints for a request.

    The API endpoint falls back to the request's base URL, and the
    substituter endpoint falls back to the API endpoint.
    """
    api_endpoint = config.api_endpoint or str(request.base_url)
    substituter_endpoint = config.substituter_endpoint or api_endpoint
    return api_endpoint, substituter_endpoint


def create_app(config: Config) -> FastAPI:
    """Create FastAPI application.

    Args:
        config: Resolved server configuration, shared read-only.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="atticd",
        description="Self-hosted Nix binary cache server",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan and request access
    app.state.config = config

    # An empty list means every Host header is allowed
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=list(config.allowed_hosts) or ["*"],
    )

    @app.get("/")
    async def root(request: Request):
        api_endpoint, substituter_endpoint = resolve_endpoints(request.app.state.config, request)
        return {
            "service": "atticd",
            "version": __version__,
            "api_endpoint": api_endpoint,
            "substituter_endpoint": substituter_endpoint,
        }

    return app


def run_server(config: Config, log_level: str = "info", listen: Optional[str] = None):
    """Run the HTTP server.

    Args:
        config: Resolved server configuration.
        log_level: Logging level.
        listen: Override the socket address from config.
    """
    app = create_app(config)

    if listen is None:
        host, port = config.listen_address()
    else:
        host, port = parse_socket_address(listen)

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=log_level,
    )
