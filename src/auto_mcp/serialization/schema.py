# JSON schema composition
# Policy for turning parameter lists and response types into tool schemas

import collections.abc
import copy
import inspect
import logging
from typing import Any, Iterable, Protocol, get_args, get_origin, runtime_checkable

from pydantic import Field, create_model

from ..models.operation import DEPENDENCY_DEFAULT, ParameterDescriptor
from .options import SerializerOptions

logger = logging.getLogger(__name__)

_AWAITABLE_ORIGINS = (
    collections.abc.Awaitable,
    collections.abc.Coroutine,
)


@runtime_checkable
class JsonSchemaWriter(Protocol):
    """Capability of a converter to render the JSON schema of its type."""

    def get_json_schema(self) -> dict[str, Any]: ...


def _absent() -> None:
    return None


def unwrap_awaitable(type_: Any) -> Any:
    """``Awaitable[T]`` and ``Coroutine[..., T]`` render as ``T``."""
    if get_origin(type_) in _AWAITABLE_ORIGINS:
        args = get_args(type_)
        return args[-1] if args else Any
    return type_


class SchemaBuilder:
    """Builds tool input and output schemas with one consistent override:
    types whose converter is a ``JsonSchemaWriter`` render their own schema.
    """

    def __init__(self, options: SerializerOptions) -> None:
        self.options = options

    def type_schema(self, type_: Any) -> dict[str, Any]:
        """JSON schema for a single type, in serialization mode."""
        if type_ is inspect.Signature.empty:
            type_ = Any
        type_ = unwrap_awaitable(type_)

        converter = self.options.find_converter(type_)
        if isinstance(converter, JsonSchemaWriter):
            return copy.deepcopy(converter.get_json_schema())
        return self.options.adapter_for(type_).json_schema(
            mode="serialization", by_alias=self.options.by_alias
        )

    def parameters_schema(
        self, model_name: str, parameters: Iterable[ParameterDescriptor]
    ) -> dict[str, Any]:
        """Object schema with one property per parameter."""
        fields: dict[str, Any] = {}
        for parameter in parameters:
            if parameter.required:
                info = Field(description=parameter.description)
            elif parameter.default is DEPENDENCY_DEFAULT:
                info = Field(default_factory=_absent, description=parameter.description)
            else:
                info = Field(default=parameter.default, description=parameter.description)
            fields[parameter.name] = (parameter.annotation, info)

        model = create_model(model_name, **fields)
        schema = model.model_json_schema(by_alias=self.options.by_alias)
        schema.pop("title", None)
        return schema

    def one_of(self, types: Iterable[Any]) -> dict[str, Any]:
        """Union schema; nested definitions are hoisted to the union root."""
        definitions: dict[str, Any] = {}
        members = []
        for type_ in types:
            schema = self.type_schema(type_)
            for name, definition in schema.pop("$defs", {}).items():
                existing = definitions.setdefault(name, definition)
                if existing != definition:
                    logger.warning(
                        f"Conflicting schema definitions named '{name}'; keeping the first one"
                    )
            members.append(schema)

        union: dict[str, Any] = {"oneOf": members}
        if definitions:
            union["$defs"] = definitions
        return union
