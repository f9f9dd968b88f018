"""Core configuration, validation and read components."""

from .catalog import (
    CATALOG,
    DataSourceCategory,
    FieldDefinition,
    FieldType,
    ObjectCatalog,
    ObjectDefinition,
    ResponseShape,
)
from .config_models import (
    ApiKeyAuth,
    AuthType,
    BasicAuth,
    ClientSettings,
    EmailActionConfig,
    GlobalConfig,
    OutputConfig,
    RunCondition,
    SourceConfig,
)
from .config_loader import ConfigLoader, load_source_file
from .errors import (
    ConfigValidationError,
    FailureKind,
    InvalidAuthTypeError,
    SendGridConnectionError,
    SendGridPipelineError,
    UnknownObjectError,
)
from .pipeline_engine import PipelineEngine
from .read_context import ReadContext, ReadError, ReadResult
from .schema_builder import DISCRIMINATOR_FIELD, Schema, SchemaField, build_schema
from .selection import Selection, resolve
from .validator import ConfigValidator, PreparedSource, ValidationFailure, prepare, validate

__all__ = [
    "CATALOG",
    "DataSourceCategory",
    "FieldDefinition",
    "FieldType",
    "ObjectCatalog",
    "ObjectDefinition",
    "ResponseShape",
    "ApiKeyAuth",
    "AuthType",
    "BasicAuth",
    "ClientSettings",
    "EmailActionConfig",
    "GlobalConfig",
    "OutputConfig",
    "RunCondition",
    "SourceConfig",
    "ConfigLoader",
    "load_source_file",
    "ConfigValidationError",
    "FailureKind",
    "InvalidAuthTypeError",
    "SendGridConnectionError",
    "SendGridPipelineError",
    "UnknownObjectError",
    "PipelineEngine",
    "ReadContext",
    "ReadError",
    "ReadResult",
    "DISCRIMINATOR_FIELD",
    "Schema",
    "SchemaField",
    "build_schema",
    "Selection",
    "resolve",
    "ConfigValidator",
    "PreparedSource",
    "ValidationFailure",
    "prepare",
    "validate",
]
