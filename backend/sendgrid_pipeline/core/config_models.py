"""
Pydantic models for configuration schema.

These models define the complete configuration structure for:
- Global settings (API client, output files)
- SendGrid source configurations (auth, selected objects, fields, dates)
- The SendGrid mail sink
- The email notification post-action
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from .errors import InvalidAuthTypeError
from .properties import (
    PROPERTY_AUTH_PASSWORD,
    PROPERTY_AUTH_TYPE,
    PROPERTY_AUTH_USERNAME,
    PROPERTY_BODY_COLUMN,
    PROPERTY_CLICK_TRACKING,
    PROPERTY_DATA_SOURCE_FIELDS,
    PROPERTY_DATA_SOURCE_MARKETING,
    PROPERTY_DATA_SOURCE_STATS,
    PROPERTY_DATA_SOURCE_SUPPRESSIONS,
    PROPERTY_DATA_SOURCE_TYPES,
    PROPERTY_END_DATE,
    PROPERTY_FOOTER_ENABLE,
    PROPERTY_FOOTER_HTML,
    PROPERTY_FROM,
    PROPERTY_MAIL_SUBJECT,
    PROPERTY_OPEN_TRACKING,
    PROPERTY_RECIPIENT_ADDRESS_SOURCE,
    PROPERTY_RECIPIENT_ADDRESSES,
    PROPERTY_RECIPIENT_COLUMN,
    PROPERTY_REFERENCE_NAME,
    PROPERTY_REPLY_TO,
    PROPERTY_SANDBOX_MODE,
    PROPERTY_SENDGRID_API_KEY,
    PROPERTY_START_DATE,
    PROPERTY_STAT_CATEGORIES,
    PROPERTY_SUBSCRIPTION_TRACKING,
)
from .selection import Selection, resolve, split_tokens


# =============================================================================
# ENUMS
# =============================================================================


class AuthType(str, Enum):
    """Supported ways of authenticating against SendGrid."""

    API = "api"
    BASIC = "basic"


class RunCondition(str, Enum):
    """Pipeline outcomes a post-action can be bound to."""

    COMPLETION = "completion"
    SUCCESS = "success"
    FAILURE = "failure"


# =============================================================================
# GLOBAL CONFIG MODELS
# =============================================================================


class ClientSettings(BaseModel):
    """Settings for the SendGrid HTTP client."""

    base_url: str = Field(
        default="https://api.sendgrid.com/v3", description="API base URL"
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Timeout per request (seconds)"
    )
    page_size: int = Field(
        default=100, ge=1, le=1000, description="Page size for paginated objects"
    )
    user_agent: str = Field(
        default="sendgrid-pipeline/1.0", min_length=1, description="User-Agent header"
    )


class OutputConfig(BaseModel):
    """Output file configuration."""

    delimiter: str = Field(default=",", description="Field delimiter")
    include_header: bool = Field(default=True, description="Include header row")
    include_index: bool = Field(default=False, description="Include row index")
    encoding: str = Field(default="utf-8", description="File encoding")
    filename_template: str = Field(
        default="{source} - {run_date}.csv",
        description="Output filename template",
    )


class GlobalConfig(BaseModel):
    """
    Global configuration shared across all sources.

    Contains API client settings and output settings.
    """

    version: str = Field(default="1.0", description="Config schema version")

    client: ClientSettings = Field(
        default_factory=ClientSettings,
        description="SendGrid API client settings",
    )

    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description="Output file settings",
    )


# =============================================================================
# AUTH MODES
# =============================================================================


class ApiKeyAuth(BaseModel):
    """Authentication with a SendGrid API key."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key)


class BasicAuth(BaseModel):
    """Authentication with an account username and password."""

    model_config = ConfigDict(frozen=True)

    username: str | None = None
    password: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.username) and bool(self.password)


AuthMode = ApiKeyAuth | BasicAuth


# =============================================================================
# AUTHENTICATED CONFIG
# =============================================================================


class AuthConfig(BaseModel):
    """
    Properties shared by every plugin that talks to SendGrid.

    Holds the reference name and the credentials selected by authType.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    reference_name: str = Field(
        default="SendGrid", alias=PROPERTY_REFERENCE_NAME,
        description="Name identifying this plugin in lineage and output files",
    )
    auth_type: str | None = Field(
        default=None, alias=PROPERTY_AUTH_TYPE,
        description="How to authenticate: 'api' or 'basic'",
    )
    sendgrid_api_key: str | None = Field(
        default=None, alias=PROPERTY_SENDGRID_API_KEY,
        description="The SendGrid API key",
    )
    auth_username: str | None = Field(
        default=None, alias=PROPERTY_AUTH_USERNAME,
        description="Login name for the SendGrid account",
    )
    auth_password: str | None = Field(
        default=None, alias=PROPERTY_AUTH_PASSWORD,
        description="Password for the SendGrid account",
    )

    def get_auth_type(self) -> AuthType:
        """
        Return the authentication type.

        Raises:
            InvalidAuthTypeError: If authType is missing or unsupported
        """
        for auth_type in AuthType:
            if auth_type.value == self.auth_type:
                return auth_type
        raise InvalidAuthTypeError(self.auth_type)

    def auth_mode(self) -> AuthMode:
        """
        Return the credentials for the configured auth type.

        Raises:
            InvalidAuthTypeError: If authType is missing or unsupported
        """
        if self.get_auth_type() == AuthType.BASIC:
            return BasicAuth(username=self.auth_username, password=self.auth_password)
        return ApiKeyAuth(api_key=self.sendgrid_api_key)

    def to_properties(self, include_secrets: bool = False) -> dict[str, Any]:
        """Dump the non-empty properties keyed by their stable names."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not include_secrets:
            for key in (PROPERTY_SENDGRID_API_KEY, PROPERTY_AUTH_PASSWORD):
                if key in data:
                    data[key] = "***"
        return data


# =============================================================================
# SOURCE CONFIG
# =============================================================================


class SourceConfig(AuthConfig):
    """
    Configuration of one SendGrid source, keyed by the stable property names.

    Instances are frozen. The Selection and request arguments are computed
    once at construction and cannot go stale afterwards.
    """

    data_source_types: str | None = Field(
        default=None, alias=PROPERTY_DATA_SOURCE_TYPES,
        description="Comma-separated object categories",
    )
    data_source_marketing: str | None = Field(
        default=None, alias=PROPERTY_DATA_SOURCE_MARKETING,
        description="Objects selected from the MarketingCampaign category",
    )
    data_source_stats: str | None = Field(
        default=None, alias=PROPERTY_DATA_SOURCE_STATS,
        description="Objects selected from the Statistic category",
    )
    data_source_suppressions: str | None = Field(
        default=None, alias=PROPERTY_DATA_SOURCE_SUPPRESSIONS,
        description="Objects selected from the Suppression category",
    )
    data_source_fields: str | None = Field(
        default=None, alias=PROPERTY_DATA_SOURCE_FIELDS,
        description="Comma-separated fields to retrieve",
    )
    start_date: str | None = Field(
        default=None, alias=PROPERTY_START_DATE,
        description="Start of the requested range, YYYY-MM-DD",
    )
    end_date: str | None = Field(
        default=None, alias=PROPERTY_END_DATE,
        description="End of the requested range, YYYY-MM-DD",
    )
    stat_categories: str | None = Field(
        default=None, alias=PROPERTY_STAT_CATEGORIES,
        description="Categories requested from CategoryStats",
    )

    _selection: Selection = PrivateAttr()
    _request_arguments: dict[str, str] = PrivateAttr(default_factory=dict)

    @field_validator(
        "data_source_types",
        "data_source_marketing",
        "data_source_stats",
        "data_source_suppressions",
        "data_source_fields",
        "stat_categories",
        mode="before",
    )
    @classmethod
    def join_lists(cls, v: Any) -> Any:
        """Allow YAML lists where a comma-separated string is expected."""
        if isinstance(v, (list, tuple)):
            return ",".join(str(item) for item in v)
        return v

    def model_post_init(self, __context: Any) -> None:
        self._selection = resolve(self)

        arguments: dict[str, str] = {}
        if self.start_date:
            arguments[PROPERTY_START_DATE] = self.start_date
        if self.end_date:
            arguments[PROPERTY_END_DATE] = self.end_date
        if self.stat_categories:
            arguments[PROPERTY_STAT_CATEGORIES] = self.stat_categories
        self._request_arguments = arguments

    @property
    def selection(self) -> Selection:
        """The resolved category/object/field selection."""
        return self._selection

    @property
    def multi_object_mode(self) -> bool:
        return self._selection.multi_object_mode

    def get_fields(self) -> list[str]:
        """All fields selected by the user."""
        return list(self._selection.fields)

    def get_data_source(self) -> list[str]:
        """Selected objects across the three category slots."""
        return list(self._selection.objects)

    def get_data_source_types(self) -> list[str]:
        """Category tokens as given by the user."""
        return list(self._selection.category_tokens)

    def get_request_arguments(self) -> dict[str, str]:
        """Query arguments that were supplied, keyed by property name."""
        return dict(self._request_arguments)


# =============================================================================
# MAIL SINK CONFIG
# =============================================================================


class ToAddressSource(str, Enum):
    """Where the mail sink takes recipient addresses from."""

    INPUT = "input"
    CONFIG = "config"


class SendGridSinkConfig(AuthConfig):
    """
    Configuration of the SendGrid mail sink.

    Every input record becomes one email. Recipients come either from a
    column of the record (INPUT) or from the configured address list
    (CONFIG); the body comes from the body column.
    """

    mail_subject: str | None = Field(
        default=None, alias=PROPERTY_MAIL_SUBJECT, description="Subject of every email"
    )
    from_address: str | None = Field(
        default=None, alias=PROPERTY_FROM, description="Sender address"
    )
    recipient_address_source: ToAddressSource = Field(
        default=ToAddressSource.INPUT, alias=PROPERTY_RECIPIENT_ADDRESS_SOURCE,
        description="Take recipients from an input column or from recipientAddresses",
    )
    recipient_addresses: str | None = Field(
        default=None, alias=PROPERTY_RECIPIENT_ADDRESSES,
        description="Comma-separated recipients used with the 'config' source",
    )
    recipient_column_name: str | None = Field(
        default=None, alias=PROPERTY_RECIPIENT_COLUMN,
        description="Input column holding recipients used with the 'input' source",
    )
    body_column_name: str | None = Field(
        default=None, alias=PROPERTY_BODY_COLUMN, description="Input column holding the body"
    )
    reply_to: str | None = Field(
        default=None, alias=PROPERTY_REPLY_TO, description="Reply-To address"
    )
    footer_enable: bool = Field(
        default=False, alias=PROPERTY_FOOTER_ENABLE, description="Append a footer"
    )
    footer_html: str | None = Field(
        default=None, alias=PROPERTY_FOOTER_HTML, description="HTML of the footer"
    )
    sandbox_mode: bool = Field(
        default=False, alias=PROPERTY_SANDBOX_MODE,
        description="Validate requests without delivering mail",
    )
    click_tracking: bool = Field(default=False, alias=PROPERTY_CLICK_TRACKING)
    open_tracking: bool = Field(default=False, alias=PROPERTY_OPEN_TRACKING)
    subscription_tracking: bool = Field(default=False, alias=PROPERTY_SUBSCRIPTION_TRACKING)

    @field_validator("recipient_address_source", mode="before")
    @classmethod
    def lower_address_source(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("recipient_addresses", mode="before")
    @classmethod
    def join_addresses(cls, v: Any) -> Any:
        """Allow a YAML list of addresses."""
        if isinstance(v, (list, tuple)):
            return ",".join(str(item) for item in v)
        return v

    def get_recipient_addresses(self) -> list[str]:
        """Configured recipients, split on commas."""
        return split_tokens(self.recipient_addresses)

    def mail_settings(self) -> dict[str, Any]:
        """The mail_settings block of a mail/send request."""
        footer: dict[str, Any] = {"enable": self.footer_enable}
        if self.footer_enable and self.footer_html:
            footer["html"] = self.footer_html
        return {
            "footer": footer,
            "sandbox_mode": {"enable": self.sandbox_mode},
        }

    def tracking_settings(self) -> dict[str, Any]:
        """The tracking_settings block of a mail/send request."""
        return {
            "click_tracking": {"enable": self.click_tracking},
            "open_tracking": {"enable": self.open_tracking},
            "subscription_tracking": {"enable": self.subscription_tracking},
        }


# =============================================================================
# EMAIL POST-ACTION CONFIG
# =============================================================================


class EmailActionConfig(BaseModel):
    """Configuration for the end-of-run notification email."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    from_address: str = Field(..., alias="from", min_length=3, description="Sender address")
    to: str = Field(..., min_length=3, description="Recipient address")
    subject: str = Field(..., description="Subject of the email")
    api_key: str = Field(..., alias="apiKey", min_length=1, description="SendGrid API key")
    content: str = Field(default="", description="Plain-text body of the email")
    run_condition: RunCondition = Field(
        default=RunCondition.COMPLETION,
        alias="runCondition",
        description="Pipeline outcome that triggers the email",
    )

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, v: Any) -> Any:
        """A missing body becomes an empty one."""
        return "" if v is None else v

    def should_run(self, pipeline_succeeded: bool) -> bool:
        """Decide whether the email is sent for a given pipeline outcome."""
        if self.run_condition == RunCondition.SUCCESS:
            return pipeline_succeeded
        if self.run_condition == RunCondition.FAILURE:
            return not pipeline_succeeded
        return True
