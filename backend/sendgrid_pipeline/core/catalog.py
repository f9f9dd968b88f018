"""
Static catalog of the SendGrid objects this pipeline can read.

Each ObjectDefinition describes one remote resource: the category it is
grouped under, the fields it exposes, and the query arguments it needs.
The module-level CATALOG is built once at import time and never mutated,
so it can be shared freely between threads.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import UnknownObjectError
from .properties import (
    PROPERTY_END_DATE,
    PROPERTY_START_DATE,
    PROPERTY_STAT_CATEGORIES,
)


# =============================================================================
# ENUMS
# =============================================================================


class DataSourceCategory(str, Enum):
    """Coarse groups of SendGrid objects."""

    MARKETING_CAMPAIGN = "MarketingCampaign"
    STATISTIC = "Statistic"
    SUPPRESSION = "Suppression"

    @classmethod
    def from_token(cls, token: str) -> DataSourceCategory | None:
        """Return the category for a config token, or None if unknown."""
        token = token.strip()
        for category in cls:
            if category.value == token:
                return category
        return None


class FieldType(str, Enum):
    """Primitive semantic types of object fields."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


class ResponseShape(str, Enum):
    """Where the records live in an API response body."""

    LIST = "list"  # bare JSON array
    RESULT = "result"  # {"result": [...]}
    RESULTS = "results"  # {"results": [...]}
    STATS = "stats"  # [{"date": ..., "stats": [{"metrics": {...}}]}]


# =============================================================================
# DEFINITION MODELS
# =============================================================================


class FieldDefinition(BaseModel):
    """A single field exposed by a catalog object."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Field name in API records")
    type: FieldType = Field(..., description="Semantic type of the field")
    nullable: bool = Field(default=False, description="Whether values may be missing")


class ObjectDefinition(BaseModel):
    """
    Immutable definition of a SendGrid object.

    The catalog-facing attributes (name, category, fields, required
    arguments) drive resolution and validation; the endpoint attributes are
    only read by the remote client.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Canonical object name")
    category: DataSourceCategory = Field(..., description="Category of the object")
    fields: tuple[FieldDefinition, ...] = Field(
        ..., min_length=1, description="Fields in declaration order"
    )
    required_arguments: frozenset[str] = Field(
        default_factory=frozenset,
        description="Argument property keys that must be supplied",
    )
    optional_arguments: frozenset[str] = Field(
        default_factory=frozenset,
        description="Argument property keys sent along when supplied",
    )
    endpoint: str = Field(..., description="API path relative to the v3 base URL")
    response_shape: ResponseShape = Field(
        default=ResponseShape.LIST, description="Location of records in the response"
    )
    paginated: bool = Field(
        default=False, description="Follow _metadata.next links when fetching"
    )

    @model_validator(mode="after")
    def check_unique_field_names(self) -> "ObjectDefinition":
        """Field names must be unique within an object."""
        seen: set[str] = set()
        for field_def in self.fields:
            if field_def.name in seen:
                raise ValueError(
                    f"Object '{self.name}' declares field '{field_def.name}' twice"
                )
            seen.add(field_def.name)
        return self

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def accepted_arguments(self) -> frozenset[str]:
        """All argument keys the object sends when present."""
        return self.required_arguments | self.optional_arguments


# =============================================================================
# CATALOG
# =============================================================================


class ObjectCatalog:
    """
    Read-only registry of object definitions keyed by canonical name.

    Supports:
    - Lookup by name (None when absent)
    - Strict lookup raising UnknownObjectError
    - Listing definitions per category in declaration order
    """

    def __init__(self, definitions: Iterable[ObjectDefinition]):
        """
        Build the catalog.

        Args:
            definitions: Object definitions in declaration order

        Raises:
            ValueError: If two definitions share a name
        """
        by_name: dict[str, ObjectDefinition] = {}
        for definition in definitions:
            if definition.name in by_name:
                raise ValueError(f"Duplicate catalog object: {definition.name}")
            by_name[definition.name] = definition
        self._definitions = MappingProxyType(by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self):
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def lookup(self, name: str) -> ObjectDefinition | None:
        """Return the definition for a name, or None if it is not known."""
        return self._definitions.get(name)

    def get(self, name: str) -> ObjectDefinition:
        """
        Return the definition for a name that must exist.

        Raises:
            UnknownObjectError: If the name is not in the catalog
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownObjectError(name)
        return definition

    def definitions_for_category(
        self, category: DataSourceCategory
    ) -> tuple[ObjectDefinition, ...]:
        """Return definitions belonging to a category, in declaration order."""
        return tuple(d for d in self._definitions.values() if d.category == category)

    def names(self) -> list[str]:
        """Return all object names in declaration order."""
        return list(self._definitions.keys())


# =============================================================================
# SENDGRID OBJECTS
# =============================================================================


def _fields(*specs: tuple) -> tuple[FieldDefinition, ...]:
    """Build field definitions from (name, type[, nullable]) tuples."""
    return tuple(
        FieldDefinition(name=spec[0], type=spec[1], nullable=spec[2] if len(spec) > 2 else False)
        for spec in specs
    )


_S = FieldType.STRING
_I = FieldType.INTEGER
_B = FieldType.BOOLEAN
_T = FieldType.TIMESTAMP

_STAT_METRICS = (
    "blocks",
    "bounce_drops",
    "bounces",
    "clicks",
    "deferred",
    "delivered",
    "invalid_emails",
    "opens",
    "processed",
    "requests",
    "spam_report_drops",
    "spam_reports",
    "unique_clicks",
    "unique_opens",
    "unsubscribe_drops",
    "unsubscribes",
)

_DATE_RANGE = frozenset({PROPERTY_START_DATE})
_OPTIONAL_END = frozenset({PROPERTY_END_DATE})


def _stats_object(
    name: str,
    endpoint: str,
    metrics: tuple[str, ...] = _STAT_METRICS,
    named: bool = True,
    optional_arguments: frozenset[str] = _OPTIONAL_END,
) -> ObjectDefinition:
    """Build a statistics object: a date, optional name/type and metric columns."""
    specs: list[tuple] = [("date", _S)]
    if named:
        specs += [("name", _S, True), ("type", _S, True)]
    specs += [(metric, _I) for metric in metrics]
    return ObjectDefinition(
        name=name,
        category=DataSourceCategory.STATISTIC,
        fields=_fields(*specs),
        required_arguments=_DATE_RANGE,
        optional_arguments=optional_arguments,
        endpoint=endpoint,
        response_shape=ResponseShape.STATS,
    )


def _suppression_object(name: str, endpoint: str, *extra: tuple) -> ObjectDefinition:
    return ObjectDefinition(
        name=name,
        category=DataSourceCategory.SUPPRESSION,
        fields=_fields(("created", _I), ("email", _S), *extra),
        endpoint=endpoint,
    )


_DEFINITIONS = (
    # Marketing
    ObjectDefinition(
        name="Contacts",
        category=DataSourceCategory.MARKETING_CAMPAIGN,
        fields=_fields(
            ("id", _S),
            ("email", _S),
            ("first_name", _S),
            ("last_name", _S),
            ("address_line_1", _S, True),
            ("address_line_2", _S, True),
            ("city", _S, True),
            ("state_province_region", _S, True),
            ("postal_code", _S, True),
            ("country", _S, True),
            ("phone_number", _S, True),
            ("created_at", _T),
            ("updated_at", _T),
        ),
        endpoint="marketing/contacts",
        response_shape=ResponseShape.RESULT,
    ),
    ObjectDefinition(
        name="Lists",
        category=DataSourceCategory.MARKETING_CAMPAIGN,
        fields=_fields(("id", _S), ("name", _S), ("contact_count", _I)),
        endpoint="marketing/lists",
        response_shape=ResponseShape.RESULT,
        paginated=True,
    ),
    ObjectDefinition(
        name="Segments",
        category=DataSourceCategory.MARKETING_CAMPAIGN,
        fields=_fields(
            ("id", _S),
            ("name", _S),
            ("contacts_count", _I),
            ("created_at", _T),
            ("updated_at", _T),
            ("sample_updated_at", _T, True),
            ("next_sample_update", _T, True),
        ),
        endpoint="marketing/segments",
        response_shape=ResponseShape.RESULTS,
    ),
    ObjectDefinition(
        name="SingleSends",
        category=DataSourceCategory.MARKETING_CAMPAIGN,
        fields=_fields(
            ("id", _S),
            ("name", _S),
            ("status", _S),
            ("send_at", _T, True),
            ("is_abtest", _B),
            ("created_at", _T),
            ("updated_at", _T),
        ),
        endpoint="marketing/singlesends",
        response_shape=ResponseShape.RESULT,
        paginated=True,
    ),
    ObjectDefinition(
        name="Senders",
        category=DataSourceCategory.MARKETING_CAMPAIGN,
        fields=_fields(
            ("id", _I),
            ("nickname", _S),
            ("address", _S),
            ("address_2", _S, True),
            ("city", _S),
            ("state", _S, True),
            ("zip", _S, True),
            ("country", _S),
            ("locked", _B),
            ("created_at", _I),
            ("updated_at", _I),
        ),
        endpoint="senders",
    ),
    # Statistics
    _stats_object("GlobalStats", "stats", named=False),
    _stats_object(
        "CategoryStats",
        "categories/stats",
        optional_arguments=frozenset({PROPERTY_END_DATE, PROPERTY_STAT_CATEGORIES}),
    ),
    _stats_object(
        "MailboxProviderStats",
        "mailbox_providers/stats",
        metrics=(
            "blocks",
            "bounces",
            "clicks",
            "deferred",
            "delivered",
            "drops",
            "opens",
            "processed",
            "requests",
            "spam_reports",
            "unique_clicks",
            "unique_opens",
        ),
    ),
    _stats_object("BrowserStats", "browsers/stats", metrics=("clicks", "unique_clicks")),
    _stats_object("DeviceStats", "devices/stats", metrics=("opens", "unique_opens")),
    # Suppressions
    _suppression_object("Bounces", "suppression/bounces", ("reason", _S), ("status", _S)),
    _suppression_object("Blocks", "suppression/blocks", ("reason", _S), ("status", _S)),
    _suppression_object("InvalidEmails", "suppression/invalid_emails", ("reason", _S)),
    _suppression_object("SpamReports", "suppression/spam_reports", ("ip", _S)),
    _suppression_object("GlobalUnsubscribes", "suppression/unsubscribes"),
    ObjectDefinition(
        name="UnsubscribeGroups",
        category=DataSourceCategory.SUPPRESSION,
        fields=_fields(
            ("id", _I),
            ("name", _S),
            ("description", _S, True),
            ("is_default", _B),
            ("unsubscribes", _I),
        ),
        endpoint="asm/groups",
    ),
)

CATALOG = ObjectCatalog(_DEFINITIONS)
