"""
SendGrid mail sink.

Turns every row of a DataFrame into one email. Recipients come from the
recipient column of the row or from the configured address list; the body
comes from the body column.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import pandas as pd

from ..core.config_models import ClientSettings, SendGridSinkConfig, ToAddressSource
from ..core.errors import ConfigValidationError, FailureKind
from ..core.properties import PROPERTY_BODY_COLUMN, PROPERTY_RECIPIENT_COLUMN
from ..core.selection import split_tokens
from ..core.validator import ValidationFailure

logger = logging.getLogger(__name__)


class MailSender(Protocol):
    def send_mail(
        self,
        from_address: str,
        to: str | list[str],
        subject: str,
        content: str = "",
        content_type: str = "text/plain",
        reply_to: str | None = None,
        mail_settings: dict[str, Any] | None = None,
        tracking_settings: dict[str, Any] | None = None,
    ) -> None: ...

    def close(self) -> None: ...


@dataclass
class SinkResult:
    """Outcome of writing a DataFrame through the mail sink."""

    sink_name: str
    rows: int = 0
    sent: int = 0
    skipped_rows: list[int] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.skipped_rows)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sink_name": self.sink_name,
            "rows": self.rows,
            "sent": self.sent,
            "skipped": self.skipped,
            "skipped_rows": list(self.skipped_rows),
        }


class MailSink:
    """
    Sends one email per input row.

    The sender is expected to be a SendGridClient or anything with the same
    send_mail signature.
    """

    def __init__(self, config: SendGridSinkConfig, sender: MailSender):
        """
        Initialize the sink.

        Args:
            config: Validated mail sink configuration
            sender: Client used to send every email
        """
        self.config = config
        self.sender = sender

    @classmethod
    def from_config(
        cls, config: SendGridSinkConfig, settings: ClientSettings | None = None
    ) -> MailSink:
        """Build a sink sending through a SendGridClient."""
        from ..client.sendgrid_client import SendGridClient

        return cls(config, SendGridClient.from_auth(config.auth_mode(), settings))

    def check_columns(self, df: pd.DataFrame) -> None:
        """
        Check that the columns the sink reads exist in the input.

        Raises:
            ConfigValidationError: If the body or recipient column is missing
        """
        failures = []
        required = [(self.config.body_column_name, PROPERTY_BODY_COLUMN)]
        if self.config.recipient_address_source == ToAddressSource.INPUT:
            required.append((self.config.recipient_column_name, PROPERTY_RECIPIENT_COLUMN))

        for column, property_key in required:
            if column not in df.columns:
                failures.append(
                    ValidationFailure(
                        message=f"Column '{column}' is not present in the input",
                        property_keys=(property_key,),
                        kind=FailureKind.INVALID_ENUM_VALUE,
                    )
                )
        if failures:
            raise ConfigValidationError(failures)

    def recipients_for(self, row: pd.Series) -> list[str]:
        """Recipients of the email built from one row."""
        if self.config.recipient_address_source == ToAddressSource.CONFIG:
            return self.config.get_recipient_addresses()
        value = row.get(self.config.recipient_column_name)
        if value is None or pd.isna(value):
            return []
        return split_tokens(str(value))

    def write(
        self,
        df: pd.DataFrame,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> SinkResult:
        """
        Send one email per row of the DataFrame.

        Rows without recipients are skipped. A failed send stops the write.

        Args:
            df: Input rows
            progress_callback: Optional callback(current, total)

        Returns:
            SinkResult counting sent and skipped rows

        Raises:
            ConfigValidationError: If a column the sink reads is missing
            SendGridConnectionError: If the API rejects a request
        """
        self.check_columns(df)
        result = SinkResult(sink_name=self.config.reference_name, rows=len(df))
        mail_settings = self.config.mail_settings()
        tracking_settings = self.config.tracking_settings()

        for i, (index, row) in enumerate(df.iterrows()):
            if progress_callback:
                progress_callback(i + 1, len(df))

            recipients = self.recipients_for(row)
            if not recipients:
                logger.warning("Row %s has no recipients, skipping", index)
                result.skipped_rows.append(i)
                continue

            body = row.get(self.config.body_column_name)
            self.sender.send_mail(
                from_address=self.config.from_address,
                to=recipients,
                subject=self.config.mail_subject,
                content="" if body is None or pd.isna(body) else str(body),
                reply_to=self.config.reply_to,
                mail_settings=mail_settings,
                tracking_settings=tracking_settings,
            )
            result.sent += 1

        logger.info(
            "Sent %d email(s) for '%s', skipped %d row(s)",
            result.sent,
            self.config.reference_name,
            result.skipped,
        )
        return result

    def close(self) -> None:
        self.sender.close()
