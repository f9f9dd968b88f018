"""SendGrid API client."""

from .sendgrid_client import SendGridClient, extract_records, flatten_stats

__all__ = [
    "SendGridClient",
    "extract_records",
    "flatten_stats",
]
