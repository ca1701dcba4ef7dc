"""Minimal OData-style query sublanguage for in-memory sequences."""

from .filter import FilterClause
from .model import EntityModel, EntityProperty, QueryContext, build_entity_model
from .options import (
    OrderByClause,
    QueryOptions,
    QueryOptionsFactory,
    RawQueryOptions,
    default_query_options_factory,
)

__all__ = [
    "EntityModel",
    "EntityProperty",
    "FilterClause",
    "OrderByClause",
    "QueryContext",
    "QueryOptions",
    "QueryOptionsFactory",
    "RawQueryOptions",
    "build_entity_model",
    "default_query_options_factory",
]
