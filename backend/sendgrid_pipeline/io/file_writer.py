"""File writer for read-stage output."""

from __future__ import annotations

from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

from ..core.config_models import OutputConfig

if TYPE_CHECKING:
    from ..core.schema_builder import Schema


class FileWriter:
    """
    Writes DataFrames as delimited text.

    Supports:
    - CSV with configurable delimiter, header and encoding
    - In-memory bytes for downloads
    """

    def __init__(self, output_config: OutputConfig | None = None):
        """
        Initialize the writer.

        Args:
            output_config: Output configuration (uses defaults if None)
        """
        self.config = output_config or OutputConfig()

    def write_csv(
        self,
        df: pd.DataFrame,
        output_path: str | Path,
        schema: Schema | None = None,
    ) -> str:
        """
        Write DataFrame to CSV file.

        Args:
            df: DataFrame to write
            output_path: Path to output file
            schema: When given, columns are written in schema order

        Returns:
            Path to written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if schema is not None:
            df = df.reindex(columns=schema.field_names)

        df.to_csv(
            output_path,
            sep=self.config.delimiter,
            header=self.config.include_header,
            index=self.config.include_index,
            encoding=self.config.encoding,
        )

        return str(output_path)

    def write_csv_bytes(self, df: pd.DataFrame) -> bytes:
        """
        Write DataFrame to CSV bytes (for downloads).

        Returns:
            CSV content as bytes
        """
        buffer = StringIO()
        df.to_csv(
            buffer,
            sep=self.config.delimiter,
            header=self.config.include_header,
            index=self.config.include_index,
        )

        return buffer.getvalue().encode(self.config.encoding)

    def format_filename(
        self,
        source: str,
        run_date: str,
        template: str | None = None,
    ) -> str:
        """
        Format output filename using template.

        Args:
            source: Reference name of the source
            run_date: Run date string (e.g., "2024-01-31")
            template: Filename template (overrides config)

        Returns:
            Formatted filename
        """
        template = template or self.config.filename_template
        return template.format(source=source, run_date=run_date)
