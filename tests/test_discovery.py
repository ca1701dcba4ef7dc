# Test cases for tool discovery
# Group selection, failure isolation and name collisions

import logging
from unittest.mock import patch

from fastapi import APIRouter, FastAPI

from auto_mcp.serialization.options import SerializerOptions
from auto_mcp.services import discovery
from auto_mcp.services.discovery import discover_tools, select_group
from auto_mcp.services.operation_provider import API_GROUP_EXTENSION, ApiDescriptionProvider


def grouped_app() -> FastAPI:
    app = FastAPI()
    v1 = APIRouter(prefix="/v1", tags=["Orders"])
    v2 = APIRouter(prefix="/v2", tags=["Orders"])

    @v1.get("/orders", openapi_extra={API_GROUP_EXTENSION: "v1"})
    def list_orders() -> list[int]:
        return [1]

    @v2.get("/orders", openapi_extra={API_GROUP_EXTENSION: "v2"})
    def list_orders_v2() -> list[int]:
        return [2]

    @v2.get("/orders/{order_id}", openapi_extra={API_GROUP_EXTENSION: "v2"})
    def get_order(order_id: int) -> int:
        return order_id

    app.include_router(v1)
    app.include_router(v2)
    return app


class TestDiscovery:
    def test_example_app_tools(self, provider, serializer_options):
        tools = discover_tools(provider, serializer_options)

        assert [t.name for t in tools] == ["WeatherForecast_get", "WeatherForecast_get_multiple"]

    def test_last_group_used_by_default(self):
        options = SerializerOptions()
        tools = discover_tools(ApiDescriptionProvider(grouped_app(), options), options)

        assert [t.name for t in tools] == ["Orders_list_orders_v2", "Orders_get_order"]

    def test_pinned_group(self):
        options = SerializerOptions()
        tools = discover_tools(ApiDescriptionProvider(grouped_app(), options), options, "v1")

        assert [t.name for t in tools] == ["Orders_list_orders"]

    def test_unknown_group_yields_no_tools(self, caplog):
        options = SerializerOptions()

        with caplog.at_level(logging.WARNING):
            tools = discover_tools(ApiDescriptionProvider(grouped_app(), options), options, "v9")

        assert tools == []
        assert "No API group found" in caplog.text

    def test_select_group_empty(self):
        assert select_group([]) is None

    def test_name_collision_keeps_first(self, caplog):
        app = FastAPI()
        first = APIRouter(prefix="/a", tags=["Shared"])
        second = APIRouter(prefix="/b", tags=["Shared"])

        @first.get("/status")
        def status() -> str:
            return "a"

        second.add_api_route("/status", lambda: "b", name="status")
        app.include_router(first)
        app.include_router(second)

        options = SerializerOptions()
        with caplog.at_level(logging.ERROR):
            tools = discover_tools(ApiDescriptionProvider(app, options), options)

        assert len(tools) == 1
        assert tools[0].operation.path == "/a/status"
        assert "Shared_status" in caplog.text

    def test_failing_operation_is_skipped(self, provider, serializer_options, caplog):
        original = discovery.OperationTool

        def factory(operation, options):
            if operation.name == "get":
                raise RuntimeError("schema failure")
            return original(operation, options)

        with patch.object(discovery, "OperationTool", side_effect=factory):
            with caplog.at_level(logging.ERROR):
                tools = discover_tools(provider, serializer_options)

        assert [t.name for t in tools] == ["WeatherForecast_get_multiple"]
        assert "schema failure" in caplog.text
