# Action results
# HTTP-style result wrappers that handlers may return instead of plain values

from typing import Any, Generic, Protocol, TypeVar, get_args, runtime_checkable

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

T = TypeVar("T")


class HttpResult:
    """Base class for results that carry HTTP semantics."""

    def __init__(self, status_code: int | None = None) -> None:
        self.status_code = status_code

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and vars(other) == vars(self)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({fields})"


class StatusCodeResult(HttpResult):
    """A result consisting only of a status code."""

    def __init__(self, status_code: int) -> None:
        super().__init__(status_code)


class ObjectResult(HttpResult):
    """A result wrapping a value to be serialized as the response body."""

    def __init__(self, value: Any, status_code: int | None = None) -> None:
        super().__init__(status_code)
        self.value = value


@runtime_checkable
class SupportsActionResult(Protocol):
    """Capability of converting a return value into its final HTTP result."""

    def convert_to_action_result(self) -> Any: ...


class ActionResult(Generic[T]):
    """Either a plain value of type ``T`` or an HTTP result wrapper.

    Used as an endpoint return annotation; its schema is the schema of ``T``.
    """

    def __init__(self, value: T | None = None, result: HttpResult | None = None) -> None:
        self.value = value
        self.result = result

    def convert_to_action_result(self) -> HttpResult:
        if self.result is not None:
            return self.result
        return ObjectResult(self.value)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ActionResult)
            and other.value == self.value
            and other.result == self.result
        )

    def __repr__(self) -> str:
        return f"ActionResult(value={self.value!r}, result={self.result!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        from ..serialization.action_result import ActionResultConverter

        args = get_args(source_type)
        value_type = args[0] if args else Any
        converter = ActionResultConverter(value_type)
        value_schema = handler.generate_schema(value_type)

        return core_schema.json_or_python_schema(
            json_schema=core_schema.no_info_after_validator_function(
                converter.wrap, value_schema
            ),
            python_schema=core_schema.no_info_plain_validator_function(converter.coerce),
            serialization=core_schema.plain_serializer_function_ser_schema(
                converter.write, return_schema=value_schema
            ),
        )


def ok(value: Any = None) -> ObjectResult:
    return ObjectResult(value, 200)


def created(value: Any = None) -> ObjectResult:
    return ObjectResult(value, 201)


def no_content() -> StatusCodeResult:
    return StatusCodeResult(204)


def bad_request(value: Any = None) -> HttpResult:
    if value is None:
        return StatusCodeResult(400)
    return ObjectResult(value, 400)


def not_found(value: Any = None) -> HttpResult:
    if value is None:
        return StatusCodeResult(404)
    return ObjectResult(value, 404)


def problem(detail: str | None = None, status: int = 500, title: str | None = None) -> ObjectResult:
    """Wrap a ``ProblemDetails`` body, as returned for handled failures."""
    from .tool import ProblemDetails

    return ObjectResult(ProblemDetails(detail=detail, status=status, title=title), status)
