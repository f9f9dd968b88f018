"""
Read context and result models.

The ReadContext holds shared state while a source is read, including the
prepared source, the object currently being fetched, and error tracking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .validator import PreparedSource


class ErrorSeverity(str, Enum):
    """Severity level for read errors."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ReadError:
    """Error or warning raised while reading an object."""

    object_name: str | None
    message: str
    severity: ErrorSeverity
    column: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "object_name": self.object_name,
            "column": self.column,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }


@dataclass
class ObjectResult:
    """Result from fetching a single object."""

    object_name: str
    records: int
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "object_name": self.object_name,
            "records": self.records,
            "duration_ms": self.duration_ms,
        }


@dataclass
class ReadResult:
    """Complete result from reading a source."""

    reference_name: str
    success: bool
    output_rows: int
    object_results: list[ObjectResult] = field(default_factory=list)
    errors: list[ReadError] = field(default_factory=list)
    warnings: list[ReadError] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    output_file: str | None = None

    @property
    def duration_ms(self) -> float:
        """Total read duration in milliseconds."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds() * 1000
        return 0.0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "reference_name": self.reference_name,
            "success": self.success,
            "output_rows": self.output_rows,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "duration_ms": self.duration_ms,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "output_file": self.output_file,
            "object_results": [r.to_dict() for r in self.object_results],
            "errors": [e.to_dict() for e in self.errors[:100]],  # Limit for response size
            "warnings": [w.to_dict() for w in self.warnings[:100]],
        }


class ReadContext:
    """
    Shared context while a source is read.

    Holds the prepared source and accumulates errors/warnings and
    per-object results.
    """

    def __init__(self, prepared: PreparedSource):
        self.prepared = prepared
        self.current_object: str | None = None

        self._errors: list[ReadError] = []
        self._warnings: list[ReadError] = []
        self._object_results: list[ObjectResult] = []

    def add_error(
        self,
        message: str,
        column: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Add an error or warning against the current object."""
        error = ReadError(
            object_name=self.current_object,
            message=message,
            severity=severity,
            column=column,
            details=details,
        )

        if severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self._errors.append(error)
        else:
            self._warnings.append(error)

    def add_warning(self, message: str, column: str | None = None) -> None:
        """Convenience method to add a warning."""
        self.add_error(message=message, column=column, severity=ErrorSeverity.WARNING)

    def add_object_result(self, result: ObjectResult) -> None:
        self._object_results.append(result)

    def get_result(
        self,
        output_rows: int,
        success: bool = True,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        output_file: str | None = None,
    ) -> ReadResult:
        """Build the final read result."""
        return ReadResult(
            reference_name=self.prepared.config.reference_name,
            success=success and len(self._errors) == 0,
            output_rows=output_rows,
            object_results=self._object_results,
            errors=self._errors,
            warnings=self._warnings,
            started_at=started_at,
            completed_at=completed_at,
            output_file=output_file,
        )
