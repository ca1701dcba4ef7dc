"""
MCP server wrapper for discovered API tools

This module serves the tools built from a FastAPI application over the MCP
protocol, using the streamable HTTP transport mounted on the same app so
that every tool call runs inside a real HTTP request.
"""

import json
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Iterable

import mcp.types as types
from fastapi import FastAPI
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.requests import Request
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .errors import ToolNameCollisionError
from .models.tool import ProblemDetails, ToolCallContext, ToolDescriptor
from .services.dependencies import ServiceProvider

logger = logging.getLogger(__name__)


def wrap_output_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """MCP output schemas describe an object; results travel under ``result``
    and failures under ``problem``."""
    schema = dict(schema)
    definitions = schema.pop("$defs", None)
    wrapped: dict[str, Any] = {
        "type": "object",
        "properties": {
            "result": schema,
            "problem": ProblemDetails.model_json_schema(),
        },
    }
    if definitions:
        wrapped["$defs"] = definitions
    return wrapped


class _StreamableHTTPEndpoint:
    """ASGI app forwarding requests to the session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager) -> None:
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)


class McpToolServer:
    """Serves registered tools through the low-level MCP server."""

    def __init__(
        self,
        name: str,
        services: ServiceProvider,
        *,
        instructions: str | None = None,
        stateless: bool = True,
        json_response: bool = True,
        structured_content: bool = True,
    ) -> None:
        self.name = name
        self.services = services
        self.stateless = stateless
        self.json_response = json_response
        self.structured_content = structured_content
        self.tools: dict[str, ToolDescriptor] = {}

        self.server: Server[Any, Any] = Server(name, instructions=instructions)
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)
        self.session_manager: StreamableHTTPSessionManager | None = None

    def add_tool(self, tool: ToolDescriptor) -> None:
        if tool.name in self.tools:
            raise ToolNameCollisionError(f"Tool '{tool.name}' is already registered")
        self.tools[tool.name] = tool

    def add_tools(self, tools: Iterable[ToolDescriptor]) -> None:
        for tool in tools:
            self.add_tool(tool)

    async def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema,
                outputSchema=wrap_output_schema(tool.output_schema) if self.structured_content else None,
            )
            for tool in self.tools.values()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        tool = self.tools.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")

        token = None
        request = self._transport_request()
        if request is not None:
            token = self.services.request_accessor.set(request)
        try:
            value = await tool.invoke(arguments or {}, ToolCallContext(services=self.services))
        finally:
            if token is not None:
                self.services.request_accessor.reset(token)

        data = self.services.serializer_options.to_jsonable(value)
        content = [types.TextContent(type="text", text=json.dumps(data))]
        if not self.structured_content:
            return content
        key = "problem" if isinstance(value, ProblemDetails) else "result"
        return content, {key: data}

    def _transport_request(self) -> Request | None:
        try:
            request = self.server.request_context.request
        except LookupError:
            return None
        return request if isinstance(request, Request) else None

    def mount(self, app: FastAPI, path: str = "/mcp") -> None:
        """Serve the streamable HTTP transport at ``path`` on ``app``."""
        self.session_manager = StreamableHTTPSessionManager(
            app=self.server,
            json_response=self.json_response,
            stateless=self.stateless,
        )
        app.router.routes.append(
            Route(path, endpoint=_StreamableHTTPEndpoint(self.session_manager), include_in_schema=False)
        )
        logger.info(f"MCP server '{self.name}' mounted at {path} with {len(self.tools)} tools")

    def run(self) -> AbstractAsyncContextManager[None]:
        """Session manager lifetime; enter it from the application lifespan."""
        if self.session_manager is None:
            raise RuntimeError("MCP server is not mounted")
        return self.session_manager.run()
