"""
Output schema construction.

Merges the requested fields of every selected object into one schema.
With a single object the schema is that object's matched fields as
declared in the catalog. With several objects the schema is the union of
their matched fields, all nullable, led by a discriminator column naming
the object each row came from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .catalog import CATALOG, FieldDefinition, FieldType, ObjectCatalog, ObjectDefinition
from .selection import is_multi_object_mode

logger = logging.getLogger(__name__)

DISCRIMINATOR_FIELD = "object"


@dataclass(frozen=True)
class SchemaField:
    """One output column."""

    name: str
    type: FieldType
    nullable: bool

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type.value, "nullable": self.nullable}


@dataclass(frozen=True)
class Schema:
    """Ordered output columns, optionally led by the discriminator."""

    fields: tuple[SchemaField, ...]
    multi_object_mode: bool = False

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def has_discriminator(self) -> bool:
        return self.multi_object_mode

    def get_field(self, name: str) -> SchemaField | None:
        for schema_field in self.fields:
            if schema_field.name == name:
                return schema_field
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "multi_object_mode": self.multi_object_mode,
            "discriminator": DISCRIMINATOR_FIELD if self.multi_object_mode else None,
            "fields": [f.to_dict() for f in self.fields],
        }


def matched_fields(
    definition: ObjectDefinition, requested_fields: Iterable[str]
) -> list[FieldDefinition]:
    """Fields of an object that were requested, in catalog order."""
    requested = set(requested_fields)
    return [f for f in definition.fields if f.name in requested]


def build_schema(
    objects: Iterable[str],
    requested_fields: Iterable[str],
    multi_object_mode: bool | None = None,
    catalog: ObjectCatalog = CATALOG,
) -> Schema:
    """
    Build the output schema for the selected objects.

    Args:
        objects: Selected object names, in selection order
        requested_fields: Field names requested by the user
        multi_object_mode: Force the mode; derived from objects when None
        catalog: Catalog to resolve object names against

    Returns:
        Schema for the selection

    Raises:
        UnknownObjectError: If an object name is not in the catalog
    """
    names = [name for name in objects if name]
    requested = list(requested_fields)
    if multi_object_mode is None:
        multi_object_mode = is_multi_object_mode(names)

    definitions = [catalog.get(name) for name in names]

    if not multi_object_mode:
        single: dict[str, SchemaField] = {}
        for definition in definitions:
            for f in matched_fields(definition, requested):
                single.setdefault(
                    f.name, SchemaField(name=f.name, type=f.type, nullable=f.nullable)
                )
        return Schema(fields=tuple(single.values()), multi_object_mode=False)

    # First object in selection order that declares a field fixes its type
    merged: dict[str, SchemaField] = {
        DISCRIMINATOR_FIELD: SchemaField(
            name=DISCRIMINATOR_FIELD, type=FieldType.STRING, nullable=True
        )
    }
    for definition in definitions:
        for field_def in matched_fields(definition, requested):
            existing = merged.get(field_def.name)
            if existing is None:
                merged[field_def.name] = SchemaField(
                    name=field_def.name, type=field_def.type, nullable=True
                )
            elif existing.type != field_def.type:
                logger.debug(
                    "Field '%s' is %s in %s; keeping %s from an earlier object",
                    field_def.name,
                    field_def.type.value,
                    definition.name,
                    existing.type.value,
                )

    return Schema(fields=tuple(merged.values()), multi_object_mode=True)
