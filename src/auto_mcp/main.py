# FastAPI application entry point
# Example weather API with its operations exposed over MCP

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import BaseModel

from .api import weather
from .api.weather import WeatherRepository
from .config import Settings, get_config
from .integration import mount_auto_mcp

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str


def create_app(
    repository: WeatherRepository | None = None, settings: Settings | None = None
) -> FastAPI:
    """Build the example application and mount its MCP server."""
    settings = settings or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle"""
        logger.info("Starting Auto MCP example...")
        async with app.state.mcp_server.run():
            yield
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Auto MCP",
        description="Weather forecast API exposed as MCP tools",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.weather_repository = repository or WeatherRepository.generate()

    app.include_router(weather.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Welcome to Auto MCP"}

    @app.get("/health", response_model=HealthResponse, include_in_schema=False)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", message="Service is running")

    # Mount AFTER all routes are defined so discovery sees them
    app.state.mcp_server = mount_auto_mcp(app, settings)
    return app


logging.basicConfig(level=get_config().log_level)

app = create_app()
