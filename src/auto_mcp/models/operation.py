# Operation domain models
# Immutable metadata describing one discovered API endpoint

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping


class ParameterSource(str, Enum):
    """Where the HTTP request carries a business parameter."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    BODY = "body"


# Marks a parameter whose value is produced by a dependency rather than a literal default
DEPENDENCY_DEFAULT = object()


@dataclass(frozen=True)
class ParameterDescriptor:
    """A business parameter declared by an endpoint."""

    name: str
    annotation: Any
    source: ParameterSource
    default: Any = inspect.Parameter.empty
    description: str | None = None

    @property
    def required(self) -> bool:
        return self.default is inspect.Parameter.empty

    @property
    def has_literal_default(self) -> bool:
        return not self.required and self.default is not DEPENDENCY_DEFAULT


@dataclass(frozen=True)
class ServiceParameter:
    """An endpoint parameter satisfied by the service scope instead of the caller."""

    name: str
    annotation: Any
    dependency: Callable[..., Any] | None = None
    use_cache: bool = True
    scopes: tuple[str, ...] = ()


@dataclass(frozen=True)
class OperationDescriptor:
    """Discovered metadata about one API operation."""

    group: str
    name: str
    endpoint: Callable[..., Any]
    parameters: tuple[ParameterDescriptor, ...] = ()
    services: tuple[ServiceParameter, ...] = ()
    return_type: Any = Any
    response_types: tuple[Any, ...] = ()
    error_response_types: tuple[Any, ...] = ()
    http_methods: tuple[str, ...] = ()
    method_constraints: tuple[str, ...] = ()
    route_values: Mapping[str, Any] = field(default_factory=dict)
    path: str = ""
    description: str | None = None
    route: Any = None

    @property
    def tool_name(self) -> str:
        return f"{self.group}_{self.name}"

    @property
    def display_name(self) -> str:
        return f"{self.group}.{self.name}"
