# Service resolution
# Scoped resolution of FastAPI dependencies and the ambient request accessor

import inspect
import logging
from contextlib import AsyncExitStack
from contextvars import ContextVar, Token
from functools import partial
from typing import (
    Annotated,
    Any,
    Callable,
    Iterable,
    Sequence,
    get_args,
    get_origin,
    get_type_hints,
)

from fastapi import BackgroundTasks, FastAPI, Response, params
from fastapi.dependencies.models import Dependant
from fastapi.dependencies.utils import (
    get_dependant,
    get_parameterless_sub_dependant,
    solve_dependencies,
)
from fastapi.security import SecurityScopes
from starlette.requests import HTTPConnection, Request
from starlette.types import ASGIApp, Receive, Scope, Send

from ..errors import AmbientRequestError, DependencyResolutionError
from ..models.operation import OperationDescriptor, ServiceParameter
from ..serialization.options import SerializerOptions

logger = logging.getLogger(__name__)

# Request-scope keys under which FastAPI looks up the exit stack for generator dependencies
_EXIT_STACK_SCOPE_KEYS = ("fastapi_astack", "fastapi_inner_astack", "fastapi_function_astack")


class RequestAccessor:
    """Gives access to the HTTP request being served by the current task."""

    def __init__(self) -> None:
        self._current: ContextVar[Request | None] = ContextVar(
            "auto_mcp_request", default=None
        )

    @property
    def request(self) -> Request | None:
        return self._current.get()

    def set(self, request: Request | None) -> Token[Request | None]:
        return self._current.set(request)

    def reset(self, token: Token[Request | None]) -> None:
        self._current.reset(token)


class RequestContextMiddleware:
    """ASGI middleware publishing each HTTP request through a ``RequestAccessor``."""

    def __init__(self, app: ASGIApp, accessor: RequestAccessor) -> None:
        self.app = app
        self.accessor = accessor

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = self.accessor.set(Request(scope, receive))
        try:
            await self.app(scope, receive, send)
        finally:
            self.accessor.reset(token)


def split_annotation(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Separate ``Annotated[T, *metadata]`` into ``T`` and its metadata."""
    if get_origin(annotation) is Annotated:
        inner, *metadata = get_args(annotation)
        return inner, tuple(metadata)
    return annotation, ()


def find_depends(default: Any, metadata: tuple[Any, ...]) -> params.Depends | None:
    for marker in (*metadata, default):
        if isinstance(marker, params.Depends):
            return marker
    return None


def is_framework_type(annotation: Any) -> bool:
    """Types FastAPI injects itself rather than reading from the request."""
    return inspect.isclass(annotation) and issubclass(
        annotation, (HTTPConnection, Response, BackgroundTasks, SecurityScopes)
    )


def typed_signature(call: Callable[..., Any]) -> list[tuple[str, inspect.Parameter, Any]]:
    """Parameters of ``call`` with annotations resolved, including extras."""
    signature = inspect.signature(call)
    target = call.__init__ if inspect.isclass(call) else call
    try:
        hints = get_type_hints(target, include_extras=True)
    except (NameError, TypeError):
        hints = {}
    return [
        (name, parameter, hints.get(name, parameter.annotation))
        for name, parameter in signature.parameters.items()
    ]


def service_dependant(
    path: str,
    services: Iterable[ServiceParameter],
    route_dependencies: Sequence[params.Depends] = (),
) -> Dependant:
    """A FastAPI dependant whose parameters are exactly ``services``.

    Route-level dependencies are prepended the way ``APIRoute`` does it, so
    they run before the endpoint's own.
    """
    parameters = []
    for service in services:
        if service.dependency is None:
            default: Any = inspect.Parameter.empty
        elif service.scopes:
            default = params.Security(
                service.dependency, scopes=list(service.scopes), use_cache=service.use_cache
            )
        else:
            default = params.Depends(service.dependency, use_cache=service.use_cache)
        parameters.append(
            inspect.Parameter(
                service.name,
                inspect.Parameter.KEYWORD_ONLY,
                default=default,
                annotation=service.annotation,
            )
        )

    def collect_services(**values: Any) -> dict[str, Any]:
        return values

    collect_services.__signature__ = inspect.Signature(parameters)  # type: ignore[attr-defined]
    dependant = get_dependant(path=path, call=collect_services)
    for depends in reversed(route_dependencies):
        dependant.dependencies.insert(0, get_parameterless_sub_dependant(depends=depends, path=path))
    return dependant


def _format_errors(errors: Sequence[Any]) -> str:
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(messages)


class ServiceProvider:
    """Service-resolution context for tool calls against a FastAPI application."""

    def __init__(
        self,
        app: FastAPI | None = None,
        *,
        request_accessor: RequestAccessor | None = None,
        serializer_options: SerializerOptions | None = None,
    ) -> None:
        self.app = app
        self.request_accessor = request_accessor or RequestAccessor()
        self.serializer_options = serializer_options or SerializerOptions()

    def create_scope(self) -> "ServiceScope":
        return ServiceScope(self)


class ServiceScope:
    """A per-call scope; dependencies with teardown are released when it exits.

    Dependencies are solved by FastAPI itself against the request the
    operation sees, so headers, cookies, query parameters, overrides and
    generator teardown behave as for a routed request.
    """

    def __init__(self, provider: ServiceProvider) -> None:
        self.provider = provider
        self._exit_stack = AsyncExitStack()
        self._cache: dict[Any, Any] = {}

    async def __aenter__(self) -> "ServiceScope":
        await self._exit_stack.__aenter__()
        return self

    async def __aexit__(self, *exc_info: Any) -> bool | None:
        return await self._exit_stack.__aexit__(*exc_info)

    @property
    def serializer_options(self) -> SerializerOptions:
        return self.provider.serializer_options

    def get_request(self) -> Request:
        request = self.provider.request_accessor.request
        if request is None:
            raise AmbientRequestError("No request present.")
        return request

    async def create_handler(
        self, operation: OperationDescriptor, request: Request
    ) -> Callable[..., Any]:
        """Bind the endpoint's service parameters, returning the callable to execute."""
        route_dependencies = getattr(operation.route, "dependencies", None) or ()
        dependant = service_dependant(operation.path, operation.services, route_dependencies)
        values = await self.solve(dependant, request)
        services = {service.name: values[service.name] for service in operation.services}
        return partial(operation.endpoint, **services)

    async def resolve(
        self, dependency: Callable[..., Any], request: Request, use_cache: bool = True
    ) -> Any:
        """Resolve a single ``Depends`` callable and its sub-dependencies."""
        service = ServiceParameter("dependency", Any, dependency, use_cache)
        values = await self.solve(service_dependant("", [service]), request)
        return values["dependency"]

    async def solve(self, dependant: Dependant, request: Request) -> dict[str, Any]:
        """Solve ``dependant`` against ``request`` within this scope.

        Raises:
            DependencyResolutionError: If a parameter could not be read from
                the request
        """
        for key in _EXIT_STACK_SCOPE_KEYS:
            request.scope[key] = self._exit_stack

        solved = await solve_dependencies(
            request=request,
            dependant=dependant,
            dependency_overrides_provider=self.provider.app,
            dependency_cache=self._cache,
            async_exit_stack=self._exit_stack,
            embed_body_fields=False,
        )
        self._cache = solved.dependency_cache
        if solved.errors:
            logger.debug(f"Dependency errors for {request.url.path}: {solved.errors}")
            raise DependencyResolutionError(
                f"Cannot resolve dependencies: {_format_errors(solved.errors)}",
                {"errors": [dict(error) for error in solved.errors]},
            )
        return solved.values
