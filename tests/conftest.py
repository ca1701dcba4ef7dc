"""
Test configuration and shared fixtures for Auto MCP tests.

Provides an example application with deterministic forecast data and the
pieces needed to invoke its operations as tools outside an MCP session.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from auto_mcp.api.weather import WeatherRepository
from auto_mcp.config import Settings
from auto_mcp.main import create_app
from auto_mcp.models.tool import ToolCallContext
from auto_mcp.serialization.options import SerializerOptions
from auto_mcp.services.dependencies import RequestAccessor, ServiceProvider
from auto_mcp.services.operation_provider import ApiDescriptionProvider

START_DATE = date(2024, 1, 1)


def make_request(app=None, path: str = "/mcp", method: str = "POST") -> Request:
    """An HTTP request standing in for the MCP transport's request."""
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json")],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
        "app": app,
    }

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def repository():
    """Forecasts for 1000 consecutive days starting 2024-01-01"""
    return WeatherRepository.generate(start=START_DATE, days=1000, seed=42)


@pytest.fixture
def settings():
    return Settings(server_name="auto-mcp-test")


@pytest.fixture
def app(repository, settings):
    """Example application with deterministic data"""
    return create_app(repository=repository, settings=settings)


@pytest.fixture
def client(app):
    """Test client with the application lifespan running"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def serializer_options():
    return SerializerOptions()


@pytest.fixture
def provider(app, serializer_options):
    return ApiDescriptionProvider(app, serializer_options)


@pytest.fixture
def operations(provider):
    """Operation descriptors of the example app, by route name"""
    return {
        item.operation.name: item.operation
        for group in provider.groups
        for item in group.items
        if item.operation is not None
    }


class FixedRequestAccessor(RequestAccessor):
    """Accessor that always reports the same request."""

    def __init__(self, request: Request) -> None:
        super().__init__()
        self._request = request

    @property
    def request(self) -> Request:
        return self._request


@pytest.fixture
def services(app, serializer_options):
    """Service provider with an ambient request present"""
    accessor = FixedRequestAccessor(make_request(app))
    return ServiceProvider(app, request_accessor=accessor, serializer_options=serializer_options)


@pytest.fixture
def call_context(services):
    return ToolCallContext(services=services)
