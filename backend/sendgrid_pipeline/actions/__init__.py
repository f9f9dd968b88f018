"""Post-actions run at the end of a pipeline."""

from .email_action import send_notification

__all__ = [
    "send_notification",
]
