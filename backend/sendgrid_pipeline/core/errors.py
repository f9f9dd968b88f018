"""
Exception hierarchy and failure taxonomy.

Validation problems are reported as ValidationFailure values tagged with a
FailureKind. Exceptions are reserved for conditions a caller cannot turn
into a user-facing message on a configuration property.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import ValidationFailure


class FailureKind(str, Enum):
    """Classes of configuration problems reported by the validator."""

    INVALID_ENUM_VALUE = "invalid_enum_value"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    EMPTY_SELECTION = "empty_selection"
    MALFORMED_DATE = "malformed_date"
    OUT_OF_RANGE_DATE = "out_of_range_date"
    CONNECTIVITY_FAILURE = "connectivity_failure"


class SendGridPipelineError(Exception):
    """Base error for the package."""


class InvalidAuthTypeError(SendGridPipelineError, ValueError):
    """The authType discriminator is not one of the supported values."""

    def __init__(self, auth_type: str | None):
        self.auth_type = auth_type
        super().__init__(f"Authentication using '{auth_type}' is not supported")


class UnknownObjectError(SendGridPipelineError, LookupError):
    """
    An object name expected to be in the catalog is missing.

    Raised only where the caller has already established that the name
    belongs to the selection, so it signals a resolver/catalog mismatch
    rather than bad user input.
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Object '{name}' is not defined in the catalog")


class ConfigValidationError(SendGridPipelineError):
    """Raised by prepare() when a configuration has validation failures."""

    def __init__(self, failures: list[ValidationFailure]):
        self.failures = list(failures)
        summary = "; ".join(f.message for f in self.failures[:5])
        super().__init__(
            f"Configuration has {len(self.failures)} problem(s): {summary}"
        )


class SendGridConnectionError(SendGridPipelineError, IOError):
    """Transport or HTTP-level failure talking to the SendGrid API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
