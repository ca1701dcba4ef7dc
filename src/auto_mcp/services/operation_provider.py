# Operation discovery provider
# Describes the routes of a FastAPI application as operation descriptors

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from decimal import Decimal
from enum import Enum
from types import UnionType
from typing import Any, Iterable, Iterator, Union, get_args, get_origin, get_type_hints

from fastapi import FastAPI, params
from fastapi.routing import APIRoute
from pydantic import BaseModel
from pydantic_core import PydanticUndefined
from starlette.applications import Starlette
from starlette.routing import BaseRoute, Mount, Route

from ..models.operation import (
    DEPENDENCY_DEFAULT,
    OperationDescriptor,
    ParameterDescriptor,
    ParameterSource,
    ServiceParameter,
)
from ..serialization.options import SerializerOptions
from ..serialization.schema import JsonSchemaWriter
from .dependencies import find_depends, is_framework_type, split_annotation, typed_signature

logger = logging.getLogger(__name__)

# openapi_extra key assigning a route to a named API group
API_GROUP_EXTENSION = "x-api-group"

_METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE")
_SCALAR_TYPES = (str, int, float, bool, bytes, Decimal, uuid.UUID, date, time, timedelta, Enum)


@dataclass(frozen=True)
class ApiDescription:
    """One routed endpoint; ``operation`` is None when it has no described handler."""

    relative_path: str
    http_methods: tuple[str, ...]
    operation: OperationDescriptor | None = None


@dataclass
class OperationGroup:
    name: str | None
    items: list[ApiDescription] = field(default_factory=list)


def _ordered_methods(methods: set[str] | None) -> tuple[str, ...]:
    methods = {m.upper() for m in methods or ()}
    known = [m for m in _METHOD_ORDER if m in methods]
    return tuple(known + sorted(methods - set(known)))


def _tag_name(tag: Any) -> str:
    return str(tag.value) if isinstance(tag, Enum) else str(tag)


def _is_scalar(annotation: Any) -> bool:
    """Whether FastAPI would read a parameter of this type from the query string."""
    if get_origin(annotation) in (Union, UnionType):
        return all(_is_scalar(arg) for arg in get_args(annotation) if arg is not type(None))
    if not inspect.isclass(annotation) or issubclass(annotation, BaseModel):
        return False
    return issubclass(annotation, _SCALAR_TYPES)


def iter_routes(routes: Iterable[BaseRoute]) -> Iterator[BaseRoute]:
    """Flatten included and mounted routers into the routes they carry.

    Mounted applications keep their own routes and are not descended into.
    """
    for route in routes:
        if isinstance(route, Route):
            yield route
            continue
        if isinstance(route, Mount) and isinstance(route.app, Starlette):
            continue
        nested = getattr(route, "routes", None)
        if nested is None:
            nested = getattr(getattr(route, "router", None), "routes", None)
        if nested:
            yield from iter_routes(nested)


def _return_type(endpoint: Any) -> Any:
    try:
        hints = get_type_hints(endpoint, include_extras=True)
    except (NameError, TypeError):
        hints = {}
    if "return" in hints:
        return hints["return"]
    annotation = inspect.signature(endpoint).return_annotation
    return None if annotation is inspect.Signature.empty else annotation


class ApiDescriptionProvider:
    """Enumerates the operations of a FastAPI application, grouped by API group.

    Routes join the group named by ``openapi_extra["x-api-group"]``, or the
    unnamed group. Groups are listed in the order they first appear.
    """

    def __init__(self, app: FastAPI, serializer_options: SerializerOptions | None = None) -> None:
        self.app = app
        self.serializer_options = serializer_options or SerializerOptions()

    @property
    def groups(self) -> list[OperationGroup]:
        groups: dict[str | None, OperationGroup] = {}
        for route in iter_routes(self.app.routes):
            description = self.describe(route)
            if description is None:
                continue
            group_name = None
            if isinstance(route, APIRoute) and route.openapi_extra:
                group_name = route.openapi_extra.get(API_GROUP_EXTENSION)
            groups.setdefault(group_name, OperationGroup(group_name)).items.append(description)
        return list(groups.values())

    def describe(self, route: BaseRoute) -> ApiDescription | None:
        if isinstance(route, APIRoute):
            if not route.include_in_schema:
                return None
            return ApiDescription(
                relative_path=route.path,
                http_methods=_ordered_methods(route.methods),
                operation=self.describe_operation(route),
            )
        if isinstance(route, Route) and route.include_in_schema:
            return ApiDescription(route.path, _ordered_methods(route.methods))
        return None

    def describe_operation(self, route: APIRoute) -> OperationDescriptor:
        """Build the operation descriptor for one FastAPI route."""
        endpoint = route.endpoint
        if route.tags:
            group = _tag_name(route.tags[0])
        else:
            group = endpoint.__module__.rsplit(".", 1)[-1]

        parameters: list[ParameterDescriptor] = []
        services: list[ServiceParameter] = []
        for name, parameter, hint in typed_signature(endpoint):
            if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            descriptor = self._describe_parameter(route, name, parameter, hint)
            if isinstance(descriptor, ServiceParameter):
                services.append(descriptor)
            else:
                parameters.append(descriptor)

        return_type = _return_type(endpoint)
        if return_type is None:
            return_type = route.response_model if route.response_model is not None else Any

        response_types, error_types = self._declared_responses(route)
        return OperationDescriptor(
            group=group,
            name=route.name,
            endpoint=endpoint,
            parameters=tuple(parameters),
            services=tuple(services),
            return_type=return_type,
            response_types=response_types,
            error_response_types=error_types,
            http_methods=_ordered_methods(route.methods),
            route_values={"group": group, "operation": route.name},
            path=route.path,
            description=route.description or route.summary or None,
            route=route,
        )

    def _describe_parameter(
        self, route: APIRoute, name: str, parameter: inspect.Parameter, hint: Any
    ) -> ParameterDescriptor | ServiceParameter:
        annotation, metadata = split_annotation(hint)
        if annotation is inspect.Parameter.empty:
            annotation = Any
        depends = find_depends(parameter.default, metadata)
        field_info = next(
            (m for m in (*metadata, parameter.default) if isinstance(m, (params.Param, params.Body))),
            None,
        )

        # Types that render their own schema travel on the wire even when a
        # dependency produces them for plain HTTP requests
        converter = self.serializer_options.find_converter(annotation)
        if isinstance(converter, JsonSchemaWriter):
            default = DEPENDENCY_DEFAULT if depends is not None else self._default(parameter, field_info)
            return ParameterDescriptor(name, annotation, ParameterSource.QUERY, default)

        if depends is not None:
            return ServiceParameter(
                name,
                annotation,
                depends.dependency or annotation,
                depends.use_cache,
                tuple(getattr(depends, "scopes", None) or ()),
            )
        if is_framework_type(annotation):
            return ServiceParameter(name, annotation)

        if isinstance(field_info, params.Param):
            source = ParameterSource(field_info.in_.value)
        elif isinstance(field_info, params.Body):
            source = ParameterSource.BODY
        elif name in route.param_convertors:
            source = ParameterSource.PATH
        elif _is_scalar(annotation):
            source = ParameterSource.QUERY
        else:
            source = ParameterSource.BODY

        return ParameterDescriptor(
            name,
            annotation,
            source,
            self._default(parameter, field_info),
            getattr(field_info, "description", None),
        )

    @staticmethod
    def _default(parameter: inspect.Parameter, field_info: Any) -> Any:
        # Annotated markers leave the literal default on the parameter itself
        if field_info is None or field_info is not parameter.default:
            return parameter.default
        default = field_info.default
        if default is PydanticUndefined or default is Ellipsis:
            return inspect.Parameter.empty
        return default

    @staticmethod
    def _declared_responses(route: APIRoute) -> tuple[tuple[Any, ...], tuple[Any, ...]]:
        """Models declared in ``responses``, split into success and error types."""
        response_types: list[Any] = []
        error_types: list[Any] = []
        for status, response in (route.responses or {}).items():
            model = response.get("model") if isinstance(response, dict) else None
            if model is None:
                continue
            code = str(status)
            if code == "default" or code[:1] in ("4", "5"):
                error_types.append(model)
            else:
                response_types.append(model)
        return tuple(response_types), tuple(error_types)
