# Result envelope codec
# Serialization and schema handling for ActionResult[T]

from typing import Any, get_args, get_origin

from pydantic import TypeAdapter
from pydantic_core import to_jsonable_python

from ..models.results import ActionResult, HttpResult, ObjectResult, SupportsActionResult


def write_http_result(result: HttpResult) -> Any:
    """Serialize an HTTP result wrapper on its own."""
    if isinstance(result, ObjectResult):
        return to_jsonable_python(result.value)
    return {"status_code": result.status_code}


def unwrap_action_result(result: Any) -> Any:
    """Reduce a handler's return value to the payload it would send."""
    if isinstance(result, SupportsActionResult):
        result = result.convert_to_action_result()
    if isinstance(result, ObjectResult):
        return result.value
    return result


class ActionResultConverter:
    """Converter for ``ActionResult[T]``; its schema is exactly the schema of ``T``."""

    def __init__(self, value_type: Any = Any) -> None:
        self.value_type = value_type
        self._adapter: TypeAdapter[Any] = TypeAdapter(value_type)

    def wrap(self, value: Any) -> ActionResult[Any]:
        return ActionResult(result=ObjectResult(value))

    def coerce(self, value: Any) -> ActionResult[Any]:
        """Accept anything a handler may return for an ``ActionResult[T]`` annotation."""
        if isinstance(value, ActionResult):
            return value
        if isinstance(value, HttpResult):
            return ActionResult(result=value)
        return self.wrap(self._adapter.validate_python(value))

    def read(self, payload: Any) -> ActionResult[Any]:
        # Always produces the object-result shape, whatever was written
        return self.wrap(self._adapter.validate_python(payload))

    def write(self, envelope: Any) -> Any:
        if isinstance(envelope, HttpResult):
            return write_http_result(envelope)
        if isinstance(envelope.result, ObjectResult):
            return to_jsonable_python(envelope.result.value)
        if envelope.result is not None:
            return write_http_result(envelope.result)
        return to_jsonable_python(envelope.value)

    def get_json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema(mode="serialization")


class ActionResultConverterFactory:
    """Creates an ``ActionResultConverter`` for each closed ``ActionResult[T]``."""

    def can_convert(self, type_: Any) -> bool:
        return type_ is ActionResult or get_origin(type_) is ActionResult

    def create_converter(self, type_: Any) -> ActionResultConverter:
        args = get_args(type_)
        return ActionResultConverter(args[0] if args else Any)
