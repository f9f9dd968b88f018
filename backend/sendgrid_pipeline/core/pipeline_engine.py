"""
Read stage execution engine.

Fetches every selected object of a prepared source, projects the records
onto the output schema and returns one DataFrame. In multi-object mode the
rows of each object follow one another in selection order and carry the
discriminator column.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Protocol

import pandas as pd

from .catalog import CATALOG, FieldType, ObjectCatalog, ObjectDefinition
from .config_models import GlobalConfig
from .errors import SendGridConnectionError
from .read_context import ErrorSeverity, ObjectResult, ReadContext, ReadResult
from .schema_builder import DISCRIMINATOR_FIELD, Schema, matched_fields

if TYPE_CHECKING:
    from .validator import PreparedSource

logger = logging.getLogger(__name__)


class RecordFetcher(Protocol):
    """What the engine needs from a remote client."""

    def fetch(
        self, definition: ObjectDefinition, arguments: dict[str, str] | None = None
    ) -> list[dict[str, Any]]: ...


class PipelineEngine:
    """
    Executes the read stage for prepared sources.

    The engine:
    1. Creates a read context
    2. Fetches each selected object in selection order
    3. Projects records onto the schema and coerces column types
    4. Returns the DataFrame with a comprehensive result
    """

    def __init__(self, global_config: GlobalConfig | None = None, catalog: ObjectCatalog = CATALOG):
        """
        Initialize the pipeline engine.

        Args:
            global_config: Global configuration
            catalog: Catalog to resolve object names against
        """
        self.global_config = global_config or GlobalConfig()
        self.catalog = catalog

    def read(
        self,
        prepared: PreparedSource,
        client: RecordFetcher,
        progress_callback: Callable[[str, int, int], None] | None = None,
    ) -> tuple[pd.DataFrame | None, ReadResult]:
        """
        Read a prepared source into a DataFrame.

        Args:
            prepared: Validated source with its selection and schema
            client: Remote client used to fetch records
            progress_callback: Optional callback(object_name, current, total)

        Returns:
            Tuple of (output DataFrame or None, ReadResult)
        """
        started_at = datetime.now()
        context = ReadContext(prepared)
        schema = prepared.schema
        # An object listed twice is fetched once
        objects = list(dict.fromkeys(prepared.selection.objects))
        frames: list[pd.DataFrame] = []

        for i, name in enumerate(objects):
            context.current_object = name

            if progress_callback:
                progress_callback(name, i + 1, len(objects))

            definition = self.catalog.get(name)
            fetch_start = time.time()
            try:
                records = client.fetch(definition, prepared.request_arguments)
            except SendGridConnectionError as e:
                logger.error("Fetching %s failed: %s", name, e)
                context.add_error(
                    f"Fetching '{name}' failed: {e}",
                    severity=ErrorSeverity.CRITICAL,
                    details={"status_code": e.status_code},
                )
                return None, context.get_result(
                    output_rows=0,
                    success=False,
                    started_at=started_at,
                    completed_at=datetime.now(),
                )

            frames.append(self._object_frame(definition, records, prepared, schema))
            context.add_object_result(
                ObjectResult(
                    object_name=name,
                    records=len(records),
                    duration_ms=(time.time() - fetch_start) * 1000,
                )
            )

        context.current_object = None
        if frames:
            output_df = pd.concat(frames, ignore_index=True)
        else:
            output_df = pd.DataFrame()
        output_df = output_df.reindex(columns=schema.field_names)
        output_df = self._apply_schema_types(output_df, schema, context)

        if len(output_df) == 0:
            context.add_warning("Source produced no output rows")

        self._check_nullability(output_df, schema, context)
        logger.info(
            "Read %d row(s) from %d object(s) for '%s'",
            len(output_df),
            len(objects),
            prepared.config.reference_name,
        )

        return output_df, context.get_result(
            output_rows=len(output_df),
            success=True,
            started_at=started_at,
            completed_at=datetime.now(),
        )

    def _object_frame(
        self,
        definition: ObjectDefinition,
        records: list[dict[str, Any]],
        prepared: PreparedSource,
        schema: Schema,
    ) -> pd.DataFrame:
        """Project one object's records onto its matched fields."""
        columns = [f.name for f in matched_fields(definition, prepared.selection.fields)]
        rows = [{column: record.get(column) for column in columns} for record in records]
        frame = pd.DataFrame(rows, columns=columns)

        if schema.multi_object_mode:
            frame.insert(0, DISCRIMINATOR_FIELD, definition.name)

        return frame

    def _apply_schema_types(
        self,
        df: pd.DataFrame,
        schema: Schema,
        context: ReadContext,
    ) -> pd.DataFrame:
        """Coerce each column to the pandas dtype of its schema type."""
        for schema_field in schema.fields:
            column = schema_field.name
            try:
                df[column] = _coerce(df[column], schema_field.type)
            except (TypeError, ValueError) as e:
                context.add_warning(
                    f"Could not convert column to {schema_field.type.value}: {e}",
                    column=column,
                )
        return df

    def _check_nullability(
        self,
        df: pd.DataFrame,
        schema: Schema,
        context: ReadContext,
    ) -> None:
        """Warn about missing values in columns declared non-nullable."""
        for schema_field in schema.fields:
            if schema_field.nullable or schema_field.name not in df.columns:
                continue
            missing = int(df[schema_field.name].isna().sum())
            if missing:
                context.add_warning(
                    f"{missing} row(s) have no value for non-nullable field",
                    column=schema_field.name,
                )


def _coerce(series: pd.Series, field_type: FieldType) -> pd.Series:
    if field_type == FieldType.INTEGER:
        return pd.to_numeric(series, errors="coerce").astype("Int64")
    if field_type == FieldType.FLOAT:
        return pd.to_numeric(series, errors="coerce").astype("Float64")
    if field_type == FieldType.BOOLEAN:
        return series.astype("boolean")
    if field_type == FieldType.TIMESTAMP:
        return pd.to_datetime(series, utc=True, errors="coerce", format="ISO8601")
    return series.astype("string")
