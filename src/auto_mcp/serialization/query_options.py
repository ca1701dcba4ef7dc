# Query options codec
# Converts between sigil-prefixed wire parameters and QueryOptions[T]

import json
from typing import Any, Callable, Mapping, get_args, get_origin

from fastapi import HTTPException, Request

from ..errors import QueryOptionsError
from ..query.options import (
    QueryOptions,
    QueryOptionsFactory,
    RawQueryOptions,
    default_query_options_factory,
)

# Marks query-control parameters on the wire and in generated schemas
QUERY_OPTION_SIGIL = "$"


def add_sigil(name: str) -> str:
    return QUERY_OPTION_SIGIL + name


def strip_sigil(name: str) -> str:
    if name.startswith(QUERY_OPTION_SIGIL):
        return name[len(QUERY_OPTION_SIGIL):]
    return name


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


class QueryOptionsCodec:
    """Bidirectional conversion between wire parameters and query options."""

    def __init__(self, factory: QueryOptionsFactory | None = None) -> None:
        self.factory = factory or default_query_options_factory

    def decode(self, payload: Any, entity_type: type) -> QueryOptions[Any]:
        """Build query options for ``entity_type`` from a JSON object.

        Args:
            payload: Mapping of ``$``-prefixed option names to values, or the
                same object as JSON text
            entity_type: Entity type the options are scoped to

        Raises:
            QueryOptionsError: If the payload is not an object or names an
                unknown or invalid option
        """
        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise QueryOptionsError(f"Query options are not valid JSON: {e}") from e
        if not isinstance(payload, Mapping):
            raise QueryOptionsError(
                f"Query options must be a JSON object, got {type(payload).__name__}"
            )

        parameters = {strip_sigil(str(key)): _stringify(value) for key, value in payload.items()}
        return self.factory.create(entity_type, parameters)

    def encode(self, options: QueryOptions[Any]) -> dict[str, str]:
        """Echo back the raw values that were recognized, sigil-prefixed."""
        raw = options.raw_values.model_dump(exclude_none=True)
        return {add_sigil(name): value for name, value in raw.items()}

    @staticmethod
    def json_schema() -> dict[str, Any]:
        """Schema of the raw query options with every property name sigil-prefixed."""
        schema = RawQueryOptions.model_json_schema()
        properties = schema.get("properties")
        if isinstance(properties, dict):
            schema["properties"] = {add_sigil(name): value for name, value in properties.items()}
        return schema


class QueryOptionsConverter:
    """Converter for ``QueryOptions[T]`` that writes its own JSON schema."""

    def __init__(self, entity_type: Any, codec: QueryOptionsCodec | None = None) -> None:
        self.entity_type = entity_type
        self.codec = codec or QueryOptionsCodec()

    def read(self, payload: Any) -> QueryOptions[Any]:
        if isinstance(payload, QueryOptions):
            return payload
        return self.codec.decode(payload, self.entity_type)

    def write(self, value: QueryOptions[Any]) -> dict[str, str]:
        return self.codec.encode(value)

    def empty(self) -> QueryOptions[Any]:
        return self.codec.decode({}, self.entity_type)

    def gather(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        """Collect sigil-prefixed top-level arguments into one options payload."""
        return {
            name: value
            for name, value in arguments.items()
            if name.startswith(QUERY_OPTION_SIGIL)
        }

    def get_json_schema(self) -> dict[str, Any]:
        return self.codec.json_schema()


class QueryOptionsConverterFactory:
    """Creates a ``QueryOptionsConverter`` for each closed ``QueryOptions[T]``."""

    def __init__(self, factory: QueryOptionsFactory | None = None) -> None:
        self.codec = QueryOptionsCodec(factory)

    def can_convert(self, type_: Any) -> bool:
        return get_origin(type_) is QueryOptions

    def create_converter(self, type_: Any) -> QueryOptionsConverter:
        return QueryOptionsConverter(get_args(type_)[0], self.codec)


def query_options(
    entity_type: type, codec: QueryOptionsCodec | None = None
) -> Callable[[Request], QueryOptions[Any]]:
    """FastAPI dependency parsing ``$``-prefixed query string parameters.

    Usage::

        def get_multiple(
            options: QueryOptions[Forecast] = Depends(query_options(Forecast)),
        ): ...
    """
    codec = codec or QueryOptionsCodec()

    def dependency(request: Request) -> QueryOptions[Any]:
        parameters = {
            name: value
            for name, value in request.query_params.items()
            if name.startswith(QUERY_OPTION_SIGIL)
        }
        try:
            return codec.decode(parameters, entity_type)
        except QueryOptionsError as e:
            raise HTTPException(status_code=400, detail=e.message) from e

    return dependency
