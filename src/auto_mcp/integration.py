# MCP integration for FastAPI applications
# Wires discovery, service resolution and the MCP transport onto an app

import logging

from fastapi import FastAPI

from .config import Settings, get_config
from .mcp_server import McpToolServer
from .serialization.options import SerializerOptions, default_converters
from .services.dependencies import RequestAccessor, RequestContextMiddleware, ServiceProvider
from .services.discovery import discover_tools
from .services.operation_provider import ApiDescriptionProvider

logger = logging.getLogger(__name__)


def mount_auto_mcp(app: FastAPI, settings: Settings | None = None) -> McpToolServer:
    """Expose the operations of ``app`` as MCP tools.

    Call after every route has been registered. The returned server's
    ``run()`` context must be entered from the application lifespan.
    """
    settings = settings or get_config()
    serializer_options = SerializerOptions(
        default_converters(query_options=settings.enable_query_options)
    )

    accessor = RequestAccessor()
    app.add_middleware(RequestContextMiddleware, accessor=accessor)
    services = ServiceProvider(
        app, request_accessor=accessor, serializer_options=serializer_options
    )

    provider = ApiDescriptionProvider(app, serializer_options)
    tools = discover_tools(provider, serializer_options, settings.api_group)

    server = McpToolServer(
        settings.server_name,
        services,
        instructions=settings.instructions,
        stateless=settings.stateless_http,
        json_response=settings.json_response,
        structured_content=settings.structured_content,
    )
    server.add_tools(tools)
    server.mount(app, settings.mount_path)
    return server
