# Serializer options
# Active serialization configuration with a per-type converter registry

import inspect
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Iterable, Protocol

from pydantic import TypeAdapter
from pydantic_core import to_jsonable_python

from ..models.results import HttpResult
from .action_result import ActionResultConverterFactory, write_http_result
from .query_options import QueryOptionsConverterFactory

# Values used when a value-typed parameter cannot be bound
_ZERO_VALUES: dict[Any, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    complex: 0j,
    Decimal: Decimal(0),
    date: date.min,
    datetime: datetime.min,
    time: time(),
    timedelta: timedelta(0),
    uuid.UUID: uuid.UUID(int=0),
}


class Converter(Protocol):
    """Reads wire values into a type and writes instances back out."""

    def read(self, payload: Any) -> Any: ...

    def write(self, value: Any) -> Any: ...


class ConverterFactory(Protocol):
    """Creates converters for a family of types."""

    def can_convert(self, type_: Any) -> bool: ...

    def create_converter(self, type_: Any) -> Converter: ...


def default_converters(query_options: bool = True) -> list[ConverterFactory]:
    """Converters registered for every application."""
    converters: list[ConverterFactory] = [ActionResultConverterFactory()]
    if query_options:
        converters.append(QueryOptionsConverterFactory())
    return converters


class SerializerOptions:
    """Serialization configuration shared by schema generation and binding.

    Converters are looked up through their factories once per type and the
    result is cached, so each closed generic type gets one converter.
    """

    def __init__(
        self,
        converters: Iterable[ConverterFactory] | None = None,
        *,
        by_alias: bool = True,
        strict: bool = False,
    ) -> None:
        self.converters = list(converters) if converters is not None else default_converters()
        self.by_alias = by_alias
        self.strict = strict
        self._resolved: dict[Any, Converter | None] = {}
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    def add_converter(self, factory: ConverterFactory, *, first: bool = False) -> None:
        if first:
            self.converters.insert(0, factory)
        else:
            self.converters.append(factory)
        self._resolved.clear()

    def find_converter(self, type_: Any) -> Converter | None:
        """Return the converter registered for ``type_``, if any."""
        try:
            return self._resolved[type_]
        except KeyError:
            pass
        except TypeError:
            # Unhashable annotation; resolve without caching
            return self._create_converter(type_)

        converter = self._create_converter(type_)
        self._resolved[type_] = converter
        return converter

    def _create_converter(self, type_: Any) -> Converter | None:
        for factory in self.converters:
            if factory.can_convert(type_):
                return factory.create_converter(type_)
        return None

    def adapter_for(self, type_: Any) -> TypeAdapter[Any]:
        try:
            return self._adapters[type_]
        except KeyError:
            adapter = self._adapters[type_] = TypeAdapter(type_)
            return adapter
        except TypeError:
            return TypeAdapter(type_)

    def deserialize(self, payload: Any, type_: Any) -> Any:
        """Deserialize a JSON wire value into ``type_``.

        Raises:
            ValueError: If the payload does not fit the type; this includes
                pydantic ``ValidationError``.
        """
        converter = self.find_converter(type_)
        if converter is not None:
            return converter.read(payload)
        if type_ is Any or type_ is inspect.Parameter.empty:
            return payload
        return self.adapter_for(type_).validate_python(payload, strict=self.strict)

    def zero_value(self, type_: Any) -> Any:
        """The value a parameter of ``type_`` takes when it cannot be bound."""
        converter = self.find_converter(type_)
        empty = getattr(converter, "empty", None)
        if empty is not None:
            return empty()
        try:
            return _ZERO_VALUES.get(type_)
        except TypeError:
            return None

    def to_jsonable(self, value: Any) -> Any:
        """Convert a handler result into JSON-compatible Python data."""
        return to_jsonable_python(value, by_alias=self.by_alias, fallback=self._fallback)

    def _fallback(self, value: Any) -> Any:
        converter = self.find_converter(type(value))
        if converter is not None:
            return converter.write(value)
        if isinstance(value, HttpResult):
            return write_http_result(value)
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
