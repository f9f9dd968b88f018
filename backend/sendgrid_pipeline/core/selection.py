"""
Selection resolver.

Parses the raw, comma-delimited category/object/field properties of a
source configuration into a typed, frozen Selection. Raw strings are parsed
here once; everything downstream works on the resolved values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .catalog import CATALOG, DataSourceCategory, ObjectCatalog

if TYPE_CHECKING:
    from .config_models import SourceConfig


DELIMITER = ","


@dataclass(frozen=True)
class CategoryResolution:
    """Categories recognised in the user tokens plus the ones that were not."""

    categories: tuple[DataSourceCategory, ...]
    unknown: tuple[str, ...]


@dataclass(frozen=True)
class Selection:
    """Resolved view of what a source configuration asks for."""

    category_tokens: tuple[str, ...]
    categories: tuple[DataSourceCategory, ...]
    unknown_categories: tuple[str, ...]
    objects: tuple[str, ...]
    fields: tuple[str, ...]
    multi_object_mode: bool

    def known_objects(self, catalog: ObjectCatalog = CATALOG) -> list[str]:
        """Selected object names that exist in the catalog, in selection order."""
        return [name for name in self.objects if name in catalog]

    def unknown_objects(self, catalog: ObjectCatalog = CATALOG) -> list[str]:
        """Selected object names missing from the catalog."""
        return [name for name in self.objects if name not in catalog]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "categories": [c.value for c in self.categories],
            "unknown_categories": list(self.unknown_categories),
            "objects": list(self.objects),
            "fields": list(self.fields),
            "multi_object_mode": self.multi_object_mode,
        }


def split_tokens(raw: str | None) -> list[str]:
    """Split a comma-delimited property, dropping empty entries."""
    if not raw:
        return []
    return [token.strip() for token in raw.split(DELIMITER) if token.strip()]


def resolve_categories(tokens: list[str]) -> CategoryResolution:
    """
    Map category tokens onto DataSourceCategory values.

    Unknown tokens do not raise; they are returned separately so the
    validator can report each of them.
    """
    categories: list[DataSourceCategory] = []
    unknown: list[str] = []
    for token in tokens:
        category = DataSourceCategory.from_token(token)
        if category is None:
            unknown.append(token)
        else:
            categories.append(category)
    return CategoryResolution(categories=tuple(categories), unknown=tuple(unknown))


def resolve_objects(
    marketing: str | None,
    stats: str | None,
    suppressions: str | None,
) -> list[str]:
    """
    Concatenate the per-category object slots into one ordered list.

    The slot order (marketing, statistics, suppressions) is the order in
    which rows of different objects are emitted in multi-object mode.
    """
    objects: list[str] = []
    for group in (marketing, stats, suppressions):
        objects.extend(split_tokens(group))
    return objects


def resolve_fields(raw: str | None) -> list[str]:
    """Requested field names in the order given; duplicates are kept."""
    return split_tokens(raw)


def is_multi_object_mode(objects: list[str] | tuple[str, ...]) -> bool:
    """True when more than one distinct, non-empty object is selected."""
    return len({name for name in objects if name}) > 1


def resolve(config: SourceConfig) -> Selection:
    """Build the Selection for a source configuration."""
    category_tokens = split_tokens(config.data_source_types)
    resolution = resolve_categories(category_tokens)
    objects = resolve_objects(
        config.data_source_marketing,
        config.data_source_stats,
        config.data_source_suppressions,
    )
    return Selection(
        category_tokens=tuple(category_tokens),
        categories=resolution.categories,
        unknown_categories=resolution.unknown,
        objects=tuple(objects),
        fields=tuple(resolve_fields(config.data_source_fields)),
        multi_object_mode=is_multi_object_mode(objects),
    )
