"""SendGrid source pipeline: catalog, selection, schema and validation."""

__version__ = "1.0.0"
