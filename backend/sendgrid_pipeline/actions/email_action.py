"""
Email notification post-action.

Sends one plain-text email through the SendGrid mail/send endpoint once a
pipeline run finishes, provided the configured run condition matches the
outcome of the run.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from ..core.config_models import ClientSettings, EmailActionConfig

logger = logging.getLogger(__name__)


class MailSender(Protocol):
    def send_mail(
        self,
        from_address: str,
        to: str,
        subject: str,
        content: str = "",
        content_type: str = "text/plain",
    ) -> None: ...

    def close(self) -> None: ...


MailSenderFactory = Callable[[str], MailSender]


def _default_sender_factory(api_key: str, settings: ClientSettings | None = None) -> MailSender:
    from ..client.sendgrid_client import SendGridClient

    return SendGridClient(api_key=api_key, settings=settings)


def send_notification(
    config: EmailActionConfig,
    pipeline_succeeded: bool,
    sender_factory: MailSenderFactory | None = None,
    settings: ClientSettings | None = None,
) -> bool:
    """
    Send the notification email if the run condition matches.

    Args:
        config: Email post-action configuration
        pipeline_succeeded: Outcome of the pipeline run
        sender_factory: Builds a mail sender from an API key
        settings: Client settings for the default sender

    Returns:
        True if an email was sent, False if the run condition skipped it

    Raises:
        SendGridConnectionError: If the API rejects or cannot receive the request
    """
    if not config.should_run(pipeline_succeeded):
        logger.debug(
            "Skipping email: run condition '%s' does not match outcome (succeeded=%s)",
            config.run_condition.value,
            pipeline_succeeded,
        )
        return False

    if sender_factory is None:
        sender = _default_sender_factory(config.api_key, settings)
    else:
        sender = sender_factory(config.api_key)
    try:
        sender.send_mail(
            from_address=config.from_address,
            to=config.to,
            subject=config.subject,
            content=config.content,
        )
    finally:
        sender.close()
    logger.debug("Sent email from %s to %s successfully", config.from_address, config.to)
    return True
