# $filter expressions
# Parses the supported OData filter subset into predicates over entities

import operator
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, NamedTuple

from ..errors import QueryOptionsError
from .model import EntityModel

Evaluator = Callable[[Any], Any]

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<string>'(?:[^']|'')*')
    | (?P<datetime>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:\d{2})?)
    | (?P<date>\d{4}-\d{2}-\d{2})
    | (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
    | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<punct>[(),])
    """,
    re.VERBOSE,
)

_ORDERING = {
    "gt": operator.gt,
    "ge": operator.ge,
    "lt": operator.lt,
    "le": operator.le,
}
_COMPARISONS = {"eq", "ne", *_ORDERING}


def _optional(func: Callable[..., Any]) -> Callable[..., Any]:
    def call(*args: Any) -> Any:
        if any(arg is None for arg in args):
            return None
        return func(*args)
    return call


_FUNCTIONS: dict[str, tuple[int, Callable[..., Any]]] = {
    "contains": (2, _optional(lambda value, part: str(part) in str(value))),
    "startswith": (2, _optional(lambda value, part: str(value).startswith(str(part)))),
    "endswith": (2, _optional(lambda value, part: str(value).endswith(str(part)))),
    "tolower": (1, _optional(lambda value: str(value).lower())),
    "toupper": (1, _optional(lambda value: str(value).upper())),
    "trim": (1, _optional(lambda value: str(value).strip())),
    "length": (1, _optional(lambda value: len(value))),
    "year": (1, _optional(lambda value: value.year)),
    "month": (1, _optional(lambda value: value.month)),
    "day": (1, _optional(lambda value: value.day)),
}


class Token(NamedTuple):
    kind: str
    value: str
    position: int


def tokenize(text: str) -> Iterator[Token]:
    """Split a filter expression into tokens, dropping whitespace."""
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise QueryOptionsError(
                f"Syntax error at position {position} in '$filter': '{text}'"
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            yield Token(kind, match.group(), position)
        position = match.end()


def _constant(value: Any) -> Evaluator:
    return lambda item: value


def _property(name: str) -> Evaluator:
    def get(item: Any) -> Any:
        if isinstance(item, Mapping):
            return item.get(name)
        return getattr(item, name, None)
    return get


def _align(left: Any, right: Any) -> tuple[Any, Any]:
    """Bring two operands into comparable representations."""
    if isinstance(left, Enum):
        left = left.value
    if isinstance(right, Enum):
        right = right.value
    if isinstance(left, datetime) and type(right) is date:
        left = left.date()
    elif isinstance(right, datetime) and type(left) is date:
        right = right.date()
    if isinstance(left, Decimal) and isinstance(right, float):
        right = Decimal(str(right))
    elif isinstance(right, Decimal) and isinstance(left, float):
        left = Decimal(str(left))
    return left, right


def compare(op: str, left: Any, right: Any) -> bool:
    """Evaluate a comparison operator with OData null semantics."""
    left, right = _align(left, right)
    if op == "eq":
        return left == right
    if op == "ne":
        return left != right
    if left is None or right is None:
        return False
    try:
        return bool(_ORDERING[op](left, right))
    except TypeError as e:
        raise QueryOptionsError(
            f"Cannot compare {type(left).__name__} and {type(right).__name__} with '{op}'"
        ) from e


class FilterParser:
    """Recursive-descent parser for ``$filter`` expressions."""

    def __init__(self, text: str, model: EntityModel) -> None:
        self._text = text
        self._model = model
        self._tokens = list(tokenize(text))
        self._position = 0

    def parse(self) -> Evaluator:
        if not self._tokens:
            raise QueryOptionsError("The '$filter' expression is empty.")
        expression = self._or()
        token = self._peek()
        if token is not None:
            raise self._error(token, "Unexpected token")
        return expression

    def _or(self) -> Evaluator:
        left = self._and()
        while self._accept_keyword("or"):
            right = self._and()
            left = (lambda a, b: lambda item: bool(a(item)) or bool(b(item)))(left, right)
        return left

    def _and(self) -> Evaluator:
        left = self._not()
        while self._accept_keyword("and"):
            right = self._not()
            left = (lambda a, b: lambda item: bool(a(item)) and bool(b(item)))(left, right)
        return left

    def _not(self) -> Evaluator:
        if self._accept_keyword("not"):
            operand = self._not()
            return lambda item: not operand(item)
        return self._comparison()

    def _comparison(self) -> Evaluator:
        left = self._primary()
        token = self._peek()
        if token is not None and token.kind == "name" and token.value.lower() in _COMPARISONS:
            self._position += 1
            op = token.value.lower()
            right = self._primary()
            return lambda item: compare(op, left(item), right(item))
        return left

    def _primary(self) -> Evaluator:
        token = self._next()
        if token.kind == "punct" and token.value == "(":
            expression = self._or()
            self._expect(")")
            return expression
        if token.kind == "string":
            return _constant(token.value[1:-1].replace("''", "'"))
        if token.kind == "number":
            text = token.value
            if any(c in text for c in ".eE"):
                return _constant(float(text))
            return _constant(int(text))
        if token.kind == "date":
            return _constant(date.fromisoformat(token.value))
        if token.kind == "datetime":
            return _constant(datetime.fromisoformat(token.value.replace("Z", "+00:00")))
        if token.kind == "name":
            return self._name(token)
        raise self._error(token, "Unexpected token")

    def _name(self, token: Token) -> Evaluator:
        lowered = token.value.lower()
        if lowered == "true":
            return _constant(True)
        if lowered == "false":
            return _constant(False)
        if lowered == "null":
            return _constant(None)

        following = self._peek()
        if following is not None and following.value == "(":
            if lowered not in _FUNCTIONS:
                raise self._error(token, "Unknown function")
            return self._function(lowered)

        prop = self._model.find_property(token.value)
        if prop is None:
            raise QueryOptionsError(
                f"Could not find a property named '{token.value}' on type '{self._model.entity_set}'."
            )
        return _property(prop.name)

    def _function(self, name: str) -> Evaluator:
        arity, func = _FUNCTIONS[name]
        self._expect("(")
        arguments = [self._or()]
        while self._accept_punct(","):
            arguments.append(self._or())
        self._expect(")")
        if len(arguments) != arity:
            raise QueryOptionsError(
                f"Function '{name}' expects {arity} argument(s), got {len(arguments)}."
            )
        return lambda item: func(*(argument(item) for argument in arguments))

    def _peek(self) -> Token | None:
        if self._position < len(self._tokens):
            return self._tokens[self._position]
        return None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise QueryOptionsError(f"Unexpected end of '$filter' expression: '{self._text}'")
        self._position += 1
        return token

    def _accept_keyword(self, keyword: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "name" and token.value.lower() == keyword:
            self._position += 1
            return True
        return False

    def _accept_punct(self, value: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "punct" and token.value == value:
            self._position += 1
            return True
        return False

    def _expect(self, value: str) -> None:
        if not self._accept_punct(value):
            token = self._peek()
            if token is None:
                raise QueryOptionsError(f"Expected '{value}' at end of '$filter' expression.")
            raise self._error(token, f"Expected '{value}'")

    def _error(self, token: Token, message: str) -> QueryOptionsError:
        return QueryOptionsError(
            f"{message} '{token.value}' at position {token.position} in '$filter': '{self._text}'"
        )


class FilterClause:
    """A parsed ``$filter`` expression bound to an entity model."""

    def __init__(self, raw_value: str, model: EntityModel) -> None:
        self.raw_value = raw_value
        self._predicate = FilterParser(raw_value, model).parse()

    def matches(self, item: Any) -> bool:
        return bool(self._predicate(item))

    def apply_to(self, source: Iterable[Any]) -> list[Any]:
        return [item for item in source if self.matches(item)]
