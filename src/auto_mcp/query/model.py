# Entity models for query options
# Minimal structural models scoping query options to one entity type

import dataclasses
import typing
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class EntityProperty:
    """A queryable property of an entity type."""

    name: str
    annotation: Any


@dataclass(frozen=True)
class EntityModel:
    """Model containing exactly one entity type exposed as its own entity set."""

    entity_type: type
    entity_set: str
    properties: tuple[EntityProperty, ...]

    def find_property(self, name: str) -> EntityProperty | None:
        """Resolve a property name, case-insensitively."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        lowered = name.lower()
        for prop in self.properties:
            if prop.name.lower() == lowered:
                return prop
        return None


@dataclass(frozen=True)
class QueryContext:
    """Scoping context required to construct query options for an entity type."""

    model: EntityModel

    @property
    def entity_type(self) -> type:
        return self.model.entity_type


def build_entity_model(entity_type: type) -> EntityModel:
    """Reflect over ``entity_type`` and build its entity model.

    Pydantic models and dataclasses contribute their declared fields; any
    other class contributes its annotated attributes.
    """
    if not isinstance(entity_type, type):
        raise TypeError(f"Entity type must be a class, got {entity_type!r}")

    if issubclass(entity_type, BaseModel):
        properties = [
            EntityProperty(name, field.annotation)
            for name, field in entity_type.model_fields.items()
        ]
        properties.extend(
            EntityProperty(name, info.return_type)
            for name, info in entity_type.model_computed_fields.items()
        )
    elif dataclasses.is_dataclass(entity_type):
        hints = typing.get_type_hints(entity_type)
        properties = [
            EntityProperty(f.name, hints.get(f.name, Any))
            for f in dataclasses.fields(entity_type)
        ]
    else:
        hints = typing.get_type_hints(entity_type)
        properties = [
            EntityProperty(name, annotation)
            for name, annotation in hints.items()
            if not name.startswith("_")
        ]

    return EntityModel(
        entity_type=entity_type,
        entity_set=entity_type.__name__,
        properties=tuple(properties),
    )
