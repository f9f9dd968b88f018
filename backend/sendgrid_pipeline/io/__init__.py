"""File and mail output handlers."""

from .file_writer import FileWriter
from .mail_sink import MailSink, SinkResult

__all__ = [
    "FileWriter",
    "MailSink",
    "SinkResult",
]
