# Operation tool adapter
# Exposes one discovered API operation as an invocable MCP tool

import inspect
import logging
import traceback
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.routing import NoMatchFound

from ..errors import ConfigurationError, InvocationContextError
from ..models.operation import OperationDescriptor, ParameterDescriptor
from ..models.tool import ProblemDetails, ToolCallContext
from ..serialization.action_result import unwrap_action_result
from ..serialization.options import SerializerOptions
from ..serialization.schema import SchemaBuilder
from .dependencies import ServiceScope

logger = logging.getLogger(__name__)

_NUMERIC_ROUTE_TYPES = (int, float, Decimal)


def coerce_route_value(value: Any, annotation: Any) -> Any:
    """Reduce a JSON argument to a primitive route value.

    Strings and booleans are kept, numbers take the declared numeric type and
    everything else becomes None.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if annotation is int:
            return int(value) if float(value).is_integer() else None
        if annotation is float:
            return float(value)
        if annotation is Decimal:
            return Decimal(str(value))
    return None


class OperationTool:
    """An API operation presented as an MCP tool.

    Schemas are computed once at construction. Each call opens its own
    service scope, re-points the ambient HTTP request at the operation,
    binds the arguments and runs the endpoint. Failures are reported as a
    ``ProblemDetails`` payload instead of being raised.
    """

    def __init__(self, operation: OperationDescriptor, serializer_options: SerializerOptions) -> None:
        if serializer_options is None:
            raise ValueError("serializer_options is required")

        self.operation = operation
        self.serializer_options = serializer_options
        self.name = operation.tool_name
        self.description = operation.description or ""

        schemas = SchemaBuilder(serializer_options)
        self.input_schema = schemas.parameters_schema(f"{self.name}Arguments", operation.parameters)
        declared = dict.fromkeys(operation.response_types + operation.error_response_types)
        self.output_schema = schemas.one_of([*declared, operation.return_type])

    def __repr__(self) -> str:
        return f"OperationTool(name={self.name!r})"

    async def invoke(
        self, arguments: Mapping[str, Any], context: ToolCallContext | None = None
    ) -> Any:
        """Run the operation with the given tool arguments.

        Args:
            arguments: Tool-call arguments as decoded from JSON
            context: Call context carrying the service provider

        Returns:
            The operation's result value, or a ``ProblemDetails`` describing
            why the call failed
        """
        try:
            services = context.services if context is not None else None
            if services is None:
                raise InvocationContextError("Tool call context has no service provider.")

            async with services.create_scope() as scope:
                ambient = scope.get_request()
                options = scope.serializer_options
                raw = MappingProxyType(dict(arguments or {}))

                request = self.prepare_request(ambient, raw)
                bound = self.bind_arguments(raw, options)
                return await self.execute(scope, request, bound)
        except Exception as e:
            logger.warning(f"Tool {self.name} failed: {e}")
            return ProblemDetails(
                detail=str(e),
                status=500,
                title=f"An error occurred while invoking {self.operation.display_name}",
                extensions={
                    "exceptionType": type(e).__name__,
                    "stackTrace": "".join(traceback.format_exception(e)),
                },
            )

    def http_method(self) -> str:
        operation = self.operation
        for methods in (operation.http_methods, operation.method_constraints):
            if methods:
                return methods[0]
        raise ConfigurationError(
            f"No HTTP method found for the target operation '{operation.display_name}'.",
            {"tool": self.name},
        )

    def route_values(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        values = dict(self.operation.route_values)
        for parameter in self.operation.parameters:
            if parameter.name in arguments:
                values[parameter.name] = coerce_route_value(
                    arguments[parameter.name], parameter.annotation
                )
        return values

    def resolve_path(self, route_values: Mapping[str, Any]) -> str | None:
        route = self.operation.route
        convertors = getattr(route, "param_convertors", None)
        if route is None or convertors is None:
            return None

        # Values that could not be coerced are left out of the path
        path_params = {
            name: route_values[name] for name in convertors if route_values.get(name) is not None
        }
        try:
            return route.url_path_for(route.name, **path_params)
        except (NoMatchFound, AssertionError, TypeError, ValueError):
            return None

    def prepare_request(self, ambient: Request, arguments: Mapping[str, Any]) -> Request:
        """Build the request the operation sees, derived from the ambient one."""
        method = self.http_method()
        route_values = self.route_values(arguments)

        scope = dict(ambient.scope)
        scope["method"] = method
        scope["path_params"] = route_values
        scope["endpoint"] = self.operation.endpoint
        scope["route"] = self.operation.route

        path = self.resolve_path(route_values)
        if path is not None:
            scope["path"] = path
            scope["raw_path"] = path.encode()

        return Request(scope, ambient.receive)

    def bind_arguments(
        self, arguments: Mapping[str, Any], options: SerializerOptions
    ) -> Mapping[str, Any]:
        bound = {
            parameter.name: self.bind_argument(parameter, arguments, options)
            for parameter in self.operation.parameters
        }
        return MappingProxyType(bound)

    def bind_argument(
        self, parameter: ParameterDescriptor, arguments: Mapping[str, Any], options: SerializerOptions
    ) -> Any:
        if parameter.name in arguments:
            payload = arguments[parameter.name]
        else:
            # Query options may arrive as "$"-prefixed top-level arguments
            gather = getattr(options.find_converter(parameter.annotation), "gather", None)
            payload = gather(arguments) if gather is not None else None
            if not payload:
                if parameter.has_literal_default:
                    return parameter.default
                return options.zero_value(parameter.annotation)

        try:
            return options.deserialize(payload, parameter.annotation)
        except ValueError as e:
            logger.debug(f"Could not bind argument '{parameter.name}' of {self.name}: {e}")
            return options.zero_value(parameter.annotation)

    async def execute(
        self, scope: ServiceScope, request: Request, arguments: Mapping[str, Any]
    ) -> Any:
        handler = await scope.create_handler(self.operation, request)
        if inspect.iscoroutinefunction(self.operation.endpoint):
            result = await handler(**arguments)
        else:
            result = await run_in_threadpool(handler, **arguments)
        if inspect.isawaitable(result):
            result = await result
        return unwrap_action_result(result)
