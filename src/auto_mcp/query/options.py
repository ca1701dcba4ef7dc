# Query options
# Structured, entity-scoped representation of $filter/$orderby/$top/$skip/$select/$count

from dataclasses import dataclass
from typing import Any, Generic, Iterable, Mapping, TypeVar, get_args

from pydantic import BaseModel, Field, GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema

from ..errors import QueryOptionsError
from ..services.schema_cache import SchemaCache
from .filter import FilterClause
from .model import EntityModel, QueryContext, build_entity_model

EntityT = TypeVar("EntityT")

# Recognized but not evaluated by this implementation
UNSUPPORTED_OPTIONS = ("expand", "search", "apply", "compute", "skiptoken", "deltatoken")


class RawQueryOptions(BaseModel):
    """Raw, unparsed query option values as they appeared on the wire."""

    filter: str | None = Field(None, description="Filter expression, e.g. \"summary eq 'Warm'\"")
    apply: str | None = Field(None, description="Aggregation transformations")
    compute: str | None = Field(None, description="Computed properties")
    search: str | None = Field(None, description="Free-text search expression")
    orderby: str | None = Field(None, description="Comma-separated sort clauses, e.g. \"date desc\"")
    top: str | None = Field(None, description="Maximum number of results to return")
    skip: str | None = Field(None, description="Number of results to skip")
    select: str | None = Field(None, description="Comma-separated properties to return")
    expand: str | None = Field(None, description="Related entities to include")
    count: str | None = Field(None, description="Whether to compute the total count (true/false)")
    format: str | None = Field(None, description="Response format")
    skiptoken: str | None = Field(None, description="Server-driven paging token")
    deltatoken: str | None = Field(None, description="Delta tracking token")


@dataclass(frozen=True)
class OrderByClause:
    property: str
    descending: bool = False


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class QueryOptions(Generic[EntityT]):
    """Query options parsed against the entity model of ``EntityT``.

    Instances are normally produced by the query options codec, either from a
    tool call's arguments or from an HTTP query string.
    """

    def __init__(self, context: QueryContext, raw_values: RawQueryOptions) -> None:
        self.context = context
        self.raw_values = raw_values

        for name in UNSUPPORTED_OPTIONS:
            if not _blank(getattr(raw_values, name)):
                raise QueryOptionsError(f"The query option '${name}' is not supported.")

        model = context.model
        self.filter = None if _blank(raw_values.filter) else FilterClause(raw_values.filter, model)
        self.order_by = self._parse_order_by(raw_values.orderby, model)
        self.top = self._parse_non_negative("top", raw_values.top)
        self.skip = self._parse_non_negative("skip", raw_values.skip)
        self.select = self._parse_select(raw_values.select, model)
        self.count = self._parse_count(raw_values.count)

    @classmethod
    def from_parameters(cls, context: QueryContext, parameters: Mapping[str, str]) -> "QueryOptions[Any]":
        """Build query options from a map of sigil-free option names to raw values."""
        known = RawQueryOptions.model_fields
        values: dict[str, str] = {}
        for name, value in parameters.items():
            key = name.lower()
            if key not in known:
                raise QueryOptionsError(f"The query parameter '${name}' is not supported.")
            values[key] = value
        return cls(context, RawQueryOptions(**values))

    @staticmethod
    def _parse_non_negative(name: str, value: str | None) -> int | None:
        if _blank(value):
            return None
        try:
            number = int(value.strip())
        except ValueError as e:
            raise QueryOptionsError(f"Invalid value '{value}' for '${name}'; expected an integer.") from e
        if number < 0:
            raise QueryOptionsError(f"Invalid value '{value}' for '${name}'; it must be non-negative.")
        return number

    @staticmethod
    def _parse_count(value: str | None) -> bool | None:
        if _blank(value):
            return None
        lowered = value.strip().lower()
        if lowered not in ("true", "false"):
            raise QueryOptionsError(f"Invalid value '{value}' for '$count'; expected true or false.")
        return lowered == "true"

    @staticmethod
    def _parse_order_by(value: str | None, model: EntityModel) -> list[OrderByClause]:
        if _blank(value):
            return []
        clauses = []
        for part in value.split(","):
            tokens = part.split()
            if not tokens or len(tokens) > 2:
                raise QueryOptionsError(f"Invalid '$orderby' clause: '{part.strip()}'")
            prop = model.find_property(tokens[0])
            if prop is None:
                raise QueryOptionsError(
                    f"Could not find a property named '{tokens[0]}' on type '{model.entity_set}'."
                )
            direction = tokens[1].lower() if len(tokens) == 2 else "asc"
            if direction not in ("asc", "desc"):
                raise QueryOptionsError(f"Invalid sort direction '{tokens[1]}' in '$orderby'.")
            clauses.append(OrderByClause(prop.name, direction == "desc"))
        return clauses

    @staticmethod
    def _parse_select(value: str | None, model: EntityModel) -> list[str]:
        if _blank(value) or value.strip() == "*":
            return []
        selected = []
        for part in value.split(","):
            prop = model.find_property(part.strip())
            if prop is None:
                raise QueryOptionsError(
                    f"Could not find a property named '{part.strip()}' on type '{model.entity_set}'."
                )
            selected.append(prop.name)
        return selected

    def count_of(self, source: Iterable[EntityT]) -> int:
        """Number of items matching the filter, ignoring paging."""
        items = list(source)
        if self.filter is not None:
            items = self.filter.apply_to(items)
        return len(items)

    def apply_to(self, source: Iterable[EntityT]) -> list[Any]:
        """Apply filter, ordering, paging and projection to ``source``."""
        items = list(source)
        if self.filter is not None:
            items = self.filter.apply_to(items)

        # Stable sorts applied from the least significant clause
        for clause in reversed(self.order_by):
            items.sort(
                key=lambda item, name=clause.property: _sort_key(_value_of(item, name)),
                reverse=clause.descending,
            )

        if self.skip is not None:
            items = items[self.skip:]
        if self.top is not None:
            items = items[: self.top]

        if self.select:
            items = [{name: _value_of(item, name) for name in self.select} for item in items]
        return items

    def __repr__(self) -> str:
        raw = self.raw_values.model_dump(exclude_none=True)
        return f"QueryOptions[{self.context.model.entity_set}]({raw})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        from ..serialization.query_options import QueryOptionsConverter

        args = get_args(source_type)
        if not args:
            raise TypeError("QueryOptions must be parametrized with an entity type")
        converter = QueryOptionsConverter(args[0])
        return core_schema.no_info_plain_validator_function(
            converter.read,
            serialization=core_schema.plain_serializer_function_ser_schema(converter.write),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        from ..serialization.query_options import QueryOptionsCodec

        return QueryOptionsCodec.json_schema()


def _value_of(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is not None, value if value is not None else 0)


class QueryOptionsFactory:
    """Creates query options, caching one entity model per entity type."""

    def __init__(self, cache: SchemaCache[type, EntityModel] | None = None) -> None:
        self.models = cache if cache is not None else SchemaCache(build_entity_model)

    def create_context(self, entity_type: type) -> QueryContext:
        return QueryContext(self.models.get_or_build(entity_type))

    def create(self, entity_type: type, parameters: Mapping[str, str]) -> QueryOptions[Any]:
        return QueryOptions.from_parameters(self.create_context(entity_type), parameters)


# Process-wide factory; its schema cache is the only state shared across calls
default_query_options_factory = QueryOptionsFactory()
