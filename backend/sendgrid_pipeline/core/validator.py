"""
Configuration validators.

Runs an ordered battery of checks over a SourceConfig or a
SendGridSinkConfig and collects every problem against the property it
belongs to. No check stops the others; only the live connectivity probe
is conditional, running when the credentials are complete and probing is
enabled. The probe client is built for that check alone and closed after.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from .catalog import CATALOG, ObjectCatalog
from .config_models import (
    AuthConfig,
    AuthMode,
    AuthType,
    BasicAuth,
    ClientSettings,
    SendGridSinkConfig,
    SourceConfig,
    ToAddressSource,
)
from .errors import ConfigValidationError, FailureKind, InvalidAuthTypeError
from .properties import (
    PROPERTY_AUTH_PASSWORD,
    PROPERTY_AUTH_TYPE,
    PROPERTY_AUTH_USERNAME,
    PROPERTY_BODY_COLUMN,
    PROPERTY_DATA_SOURCE,
    PROPERTY_DATA_SOURCE_FIELDS,
    PROPERTY_DATA_SOURCE_TYPES,
    PROPERTY_END_DATE,
    PROPERTY_FOOTER_HTML,
    PROPERTY_FROM,
    PROPERTY_MAIL_SUBJECT,
    PROPERTY_RECIPIENT_ADDRESSES,
    PROPERTY_RECIPIENT_COLUMN,
    PROPERTY_SENDGRID_API_KEY,
    PROPERTY_START_DATE,
)
from .schema_builder import Schema, build_schema, matched_fields
from .selection import Selection

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{1,2})")


class ConnectionProbe(Protocol):
    """What the validator needs from a remote client."""

    def check_connection(self) -> None: ...

    def close(self) -> None: ...


ClientFactory = Callable[[AuthMode], ConnectionProbe]


def make_client_factory(settings: ClientSettings | None = None) -> ClientFactory:
    """
    Build a factory producing SendGridClient instances.

    Args:
        settings: Base URL, timeout and User-Agent for every client built
    """
    # Import here to avoid circular imports
    from ..client.sendgrid_client import SendGridClient

    def factory(auth: AuthMode) -> ConnectionProbe:
        return SendGridClient.from_auth(auth, settings)

    return factory


# =============================================================================
# FAILURES
# =============================================================================


@dataclass(frozen=True)
class ValidationFailure:
    """A configuration problem attributed to one or more properties."""

    message: str
    property_keys: tuple[str, ...]
    kind: FailureKind
    detail: str | None = None

    @property
    def property_key(self) -> str | None:
        """The primary property the failure is reported on."""
        return self.property_keys[0] if self.property_keys else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "message": self.message,
            "property_keys": list(self.property_keys),
            "kind": self.kind.value,
            "detail": self.detail,
        }


class FailureCollector:
    """Accumulates validation failures in the order they are found."""

    def __init__(self):
        self._failures: list[ValidationFailure] = []

    def add_failure(
        self,
        message: str,
        *property_keys: str,
        kind: FailureKind,
        detail: str | None = None,
    ) -> ValidationFailure:
        """Record a failure and return it."""
        failure = ValidationFailure(
            message=message, property_keys=tuple(property_keys), kind=kind, detail=detail
        )
        self._failures.append(failure)
        logger.debug("Validation failure on %s: %s", ",".join(property_keys), message)
        return failure

    @property
    def failures(self) -> list[ValidationFailure]:
        return list(self._failures)

    def for_property(self, key: str) -> list[ValidationFailure]:
        """Failures reported on a given property."""
        return [f for f in self._failures if key in f.property_keys]

    def __len__(self) -> int:
        return len(self._failures)


# =============================================================================
# VALIDATORS
# =============================================================================


class BaseConfigValidator:
    """
    Checks shared by every SendGrid plugin configuration.

    Subclasses add their own checks in `_check_properties`. The auth checks
    run first and the connectivity probe last.
    """

    def __init__(
        self,
        config: AuthConfig,
        client_factory: ClientFactory | None = None,
        check_connection: bool = True,
    ):
        """
        Initialize the validator.

        Args:
            config: Configuration to validate
            client_factory: Builds a client from credentials; defaults to
                SendGridClient with default client settings
            check_connection: Run the live connectivity probe
        """
        self.config = config
        self.client_factory = client_factory
        self.check_connection = check_connection
        self.collector = FailureCollector()

    def validate(self) -> list[ValidationFailure]:
        """Run every check and return the failures (empty when valid)."""
        self.collector = FailureCollector()

        auth_type = self._check_auth_type()
        auth = self._check_auth_data() if auth_type is not None else None
        self._check_properties()

        # No probe when authType or credentials were rejected above
        if auth is not None and self.check_connection:
            self._check_client_connectivity(auth_type, auth)

        failures = self.collector.failures
        if failures:
            logger.info(
                "'%s' has %d validation failure(s)",
                self.config.reference_name,
                len(failures),
            )
        return failures

    def _check_properties(self) -> None:
        """Plugin-specific checks."""

    def _check_auth_type(self) -> AuthType | None:
        try:
            return self.config.get_auth_type()
        except InvalidAuthTypeError as e:
            self.collector.add_failure(
                f"Wrong authentication method selected: {e}",
                PROPERTY_AUTH_TYPE,
                kind=FailureKind.INVALID_ENUM_VALUE,
            )
            return None

    def _check_auth_data(self) -> AuthMode | None:
        """Report missing credentials; return them when complete."""
        auth = self.config.auth_mode()

        if isinstance(auth, BasicAuth):
            if not auth.username:
                self.collector.add_failure(
                    "User name is not set",
                    PROPERTY_AUTH_USERNAME,
                    kind=FailureKind.MISSING_REQUIRED_FIELD,
                )
            if not auth.password:
                self.collector.add_failure(
                    "Password is not set",
                    PROPERTY_AUTH_PASSWORD,
                    kind=FailureKind.MISSING_REQUIRED_FIELD,
                )
        elif not auth.api_key:
            self.collector.add_failure(
                "API Key is not set",
                PROPERTY_SENDGRID_API_KEY,
                kind=FailureKind.MISSING_REQUIRED_FIELD,
            )

        return auth if auth.is_complete else None

    def _check_required(self, value: str | None, property_key: str, label: str) -> None:
        if not value:
            self.collector.add_failure(
                f"{label} is not set",
                property_key,
                kind=FailureKind.MISSING_REQUIRED_FIELD,
            )

    def _check_client_connectivity(self, auth_type: AuthType, auth: AuthMode) -> None:
        factory = self.client_factory or make_client_factory()
        client = factory(auth)
        try:
            client.check_connection()
        except OSError as e:
            if auth_type == AuthType.BASIC:
                keys = (PROPERTY_AUTH_USERNAME, PROPERTY_AUTH_PASSWORD)
            else:
                keys = (PROPERTY_SENDGRID_API_KEY,)
            self.collector.add_failure(
                f"Connectivity issues: {e}",
                *keys,
                kind=FailureKind.CONNECTIVITY_FAILURE,
                detail=repr(e),
            )
        finally:
            client.close()


class ConfigValidator(BaseConfigValidator):
    """
    Validates a SourceConfig.

    Checks, in order:
    1. authType is supported
    2. credentials for that auth type are present
    3. at least one category is selected and every category is known
    4. selected objects exist and every category has an object
    5. every object has at least one requested field
    6. every object's required arguments are supplied
    7. start/end dates look like YYYY-MM-DD with month and day in range
    8. the API is reachable with the credentials (when they are complete)
    """

    def __init__(
        self,
        config: SourceConfig,
        client_factory: ClientFactory | None = None,
        check_connection: bool = True,
        catalog: ObjectCatalog = CATALOG,
    ):
        super().__init__(config, client_factory=client_factory, check_connection=check_connection)
        self.catalog = catalog

    @property
    def selection(self) -> Selection:
        return self.config.selection

    def _check_properties(self) -> None:
        self._check_categories_selection()
        self._check_objects_selection()
        self._check_field_selection()
        self._check_required_arguments()
        self._check_date_arguments()

    def _check_categories_selection(self) -> None:
        if not self.selection.category_tokens:
            self.collector.add_failure(
                "Object categories are not set",
                PROPERTY_DATA_SOURCE_TYPES,
                kind=FailureKind.EMPTY_SELECTION,
            )

        for token in self.selection.unknown_categories:
            self.collector.add_failure(
                f"Unknown '{token}' data source type",
                PROPERTY_DATA_SOURCE_TYPES,
                kind=FailureKind.INVALID_ENUM_VALUE,
            )

    def _check_objects_selection(self) -> None:
        for name in self.selection.unknown_objects(self.catalog):
            self.collector.add_failure(
                f"Unknown object '{name}'",
                PROPERTY_DATA_SOURCE,
                kind=FailureKind.INVALID_ENUM_VALUE,
            )

        selected_categories = {
            self.catalog.get(name).category
            for name in self.selection.known_objects(self.catalog)
        }
        for category in self.selection.categories:
            if category not in selected_categories:
                self.collector.add_failure(
                    f"No objects selected for the category: {category.value}",
                    PROPERTY_DATA_SOURCE,
                    kind=FailureKind.EMPTY_SELECTION,
                )

    def _check_field_selection(self) -> None:
        fields = self.selection.fields
        for name in self.selection.known_objects(self.catalog):
            if not matched_fields(self.catalog.get(name), fields):
                self.collector.add_failure(
                    f"No fields selected for object '{name}'",
                    PROPERTY_DATA_SOURCE_FIELDS,
                    kind=FailureKind.EMPTY_SELECTION,
                )

    def _check_required_arguments(self) -> None:
        arguments = self.config.get_request_arguments()
        for name in self.selection.known_objects(self.catalog):
            for argument in sorted(self.catalog.get(name).required_arguments):
                if argument not in arguments:
                    self.collector.add_failure(
                        f"Argument {argument} cannot be empty",
                        argument,
                        kind=FailureKind.MISSING_REQUIRED_FIELD,
                    )

    def _check_date_arguments(self) -> None:
        self._check_date_format(self.config.start_date, PROPERTY_START_DATE)
        self._check_date_format(self.config.end_date, PROPERTY_END_DATE)

    def _check_date_format(self, date: str | None, property_key: str) -> None:
        """
        Check a date string against YYYY-MM-DD.

        The range check is loose: month in 1..12 and day in
        1..31 pass regardless of the month's real length.
        """
        if not date:
            return

        match = DATE_PATTERN.fullmatch(date)
        if match is None:
            self.collector.add_failure(
                "Input format should match YYYY-MM-DD",
                property_key,
                kind=FailureKind.MALFORMED_DATE,
            )
            return

        month = int(match.group("month"))
        day = int(match.group("day"))
        problems = []
        if month < 1 or month > 12:
            problems.append("MM should be in range from 1 to 12")
        if day < 1 or day > 31:
            problems.append("DD should be in range from 1 to 31")

        if problems:
            self.collector.add_failure(
                "Input format should match YYYY-MM-DD and " + " and ".join(problems),
                property_key,
                kind=FailureKind.OUT_OF_RANGE_DATE,
            )


class SinkConfigValidator(BaseConfigValidator):
    """
    Validates a SendGridSinkConfig.

    Besides the auth checks: sender and subject are set, the recipients
    match the recipient address source, the body column is set and an
    enabled footer has HTML.
    """

    config: SendGridSinkConfig

    def _check_properties(self) -> None:
        self._check_required(self.config.from_address, PROPERTY_FROM, "Sender address")
        self._check_required(self.config.mail_subject, PROPERTY_MAIL_SUBJECT, "Mail subject")

        if self.config.recipient_address_source == ToAddressSource.CONFIG:
            if not self.config.get_recipient_addresses():
                self.collector.add_failure(
                    "Recipient addresses are not set",
                    PROPERTY_RECIPIENT_ADDRESSES,
                    kind=FailureKind.MISSING_REQUIRED_FIELD,
                )
        else:
            self._check_required(
                self.config.recipient_column_name, PROPERTY_RECIPIENT_COLUMN, "Recipient column"
            )

        self._check_required(self.config.body_column_name, PROPERTY_BODY_COLUMN, "Body column")

        if self.config.footer_enable:
            self._check_required(self.config.footer_html, PROPERTY_FOOTER_HTML, "Footer HTML")


def validate(
    config: SourceConfig,
    client_factory: ClientFactory | None = None,
    check_connection: bool = True,
) -> list[ValidationFailure]:
    """Validate a source configuration (convenience function)."""
    return ConfigValidator(
        config, client_factory=client_factory, check_connection=check_connection
    ).validate()


def validate_sink(
    config: SendGridSinkConfig,
    client_factory: ClientFactory | None = None,
    check_connection: bool = True,
) -> list[ValidationFailure]:
    """Validate a mail sink configuration (convenience function)."""
    return SinkConfigValidator(
        config, client_factory=client_factory, check_connection=check_connection
    ).validate()


# =============================================================================
# PREPARED SOURCE
# =============================================================================


@dataclass(frozen=True)
class PreparedSource:
    """A validated configuration frozen together with its selection and schema."""

    config: SourceConfig
    selection: Selection
    schema: Schema
    request_arguments: dict[str, str] = field(default_factory=dict)

    def object_schema(self, name: str) -> Schema:
        """Schema of the rows one object contributes, in the run's mode."""
        return build_schema([name], self.selection.fields, self.selection.multi_object_mode)


def prepare(
    config: SourceConfig,
    client_factory: ClientFactory | None = None,
    check_connection: bool = False,
) -> PreparedSource:
    """
    Validate a configuration and freeze it for the read stage.

    Raises:
        ConfigValidationError: If validation reports any failure
    """
    failures = validate(
        config, client_factory=client_factory, check_connection=check_connection
    )
    if failures:
        raise ConfigValidationError(failures)

    selection = config.selection
    schema = build_schema(selection.objects, selection.fields, selection.multi_object_mode)
    return PreparedSource(
        config=config,
        selection=selection,
        schema=schema,
        request_arguments=config.get_request_arguments(),
    )
