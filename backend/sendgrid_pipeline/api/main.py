"""
FastAPI application for the SendGrid pipeline.

Provides REST endpoints for:
- Browsing the object catalog
- Source configuration management
- Configuration validation and schema building
- Mail sink configuration listing and validation
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from ..core.catalog import CATALOG, DataSourceCategory, ObjectDefinition
from ..core.config_loader import ConfigLoader
from ..core.config_models import SendGridSinkConfig, SourceConfig
from ..core.errors import ConfigValidationError
from ..core.validator import (
    ClientFactory,
    ConnectionProbe,
    make_client_factory,
    prepare,
    validate,
    validate_sink,
)


def _definition_summary(definition: ObjectDefinition) -> dict[str, Any]:
    return {
        "name": definition.name,
        "category": definition.category.value,
        "fields": [
            {"name": f.name, "type": f.type.value, "nullable": f.nullable}
            for f in definition.fields
        ],
        "required_arguments": sorted(definition.required_arguments),
        "optional_arguments": sorted(definition.optional_arguments),
    }


def _parse_source(properties: dict[str, Any]) -> SourceConfig:
    try:
        return SourceConfig(**properties)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _parse_sink(properties: dict[str, Any]) -> SendGridSinkConfig:
    try:
        return SendGridSinkConfig(**properties)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def create_app(
    config_dir: str | Path | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="SendGrid Source Pipeline",
        description="Configuration, validation and schema service for SendGrid sources",
        version="1.0.0",
    )

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Initialize services
    config_loader = ConfigLoader(config_dir)

    # Store in app state
    app.state.config_loader = config_loader
    app.state.client_factory = client_factory

    def default_client_factory(auth) -> ConnectionProbe:
        # Settings are read per call so a reloaded global config applies
        return make_client_factory(config_loader.global_config.client)(auth)

    def get_client_factory() -> ClientFactory:
        return app.state.client_factory or default_client_factory

    # ==========================================================================
    # HEALTH CHECK
    # ==========================================================================

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": "1.0.0"}

    # ==========================================================================
    # CATALOG ENDPOINTS
    # ==========================================================================

    @app.get("/api/catalog")
    async def get_catalog() -> dict:
        """List every object, grouped by category."""
        return {
            "categories": {
                category.value: [
                    _definition_summary(d) for d in CATALOG.definitions_for_category(category)
                ]
                for category in DataSourceCategory
            }
        }

    @app.get("/api/catalog/{category}")
    async def get_category(category: str) -> dict:
        """List the objects of one category."""
        resolved = DataSourceCategory.from_token(category)
        if resolved is None:
            raise HTTPException(status_code=404, detail=f"Unknown category '{category}'")
        return {
            "category": resolved.value,
            "objects": [
                _definition_summary(d) for d in CATALOG.definitions_for_category(resolved)
            ],
        }

    # ==========================================================================
    # SOURCE CONFIG ENDPOINTS
    # ==========================================================================

    @app.get("/api/sources")
    async def list_sources() -> dict:
        """List all configured sources."""
        sources = config_loader.load_all_sources()
        return {
            "sources": [
                {
                    "name": config.reference_name,
                    "auth_type": config.auth_type,
                    "objects": config.get_data_source(),
                    "multi_object_mode": config.multi_object_mode,
                }
                for config in sources.values()
            ]
        }

    @app.get("/api/sources/{name}")
    async def get_source(name: str) -> dict:
        """Get a source configuration with secrets masked."""
        config = config_loader.get_source_config(name)
        if not config:
            raise HTTPException(status_code=404, detail=f"Source '{name}' not found")
        return config.to_properties()

    @app.post("/api/sources")
    async def create_source(properties: dict[str, Any]) -> dict:
        """Create a new source configuration."""
        config = _parse_source(properties)

        if config_loader.get_source_config(config.reference_name):
            raise HTTPException(
                status_code=409, detail=f"Source '{config.reference_name}' already exists"
            )

        config_loader.save_source_config(config)
        return {"success": True, "source": config.reference_name}

    @app.delete("/api/sources/{name}")
    async def delete_source(name: str) -> dict:
        """Delete a source configuration."""
        if config_loader.delete_source_config(name):
            return {"success": True, "deleted": name}
        raise HTTPException(status_code=404, detail=f"Source '{name}' not found")

    # ==========================================================================
    # VALIDATION / SCHEMA ENDPOINTS
    # ==========================================================================

    @app.post("/api/config/validate")
    def validate_config(properties: dict[str, Any], check_connection: bool = False) -> dict:
        """Validate source properties and report every problem found."""
        config = _parse_source(properties)
        failures = validate(
            config,
            client_factory=get_client_factory(),
            check_connection=check_connection,
        )
        return {
            "valid": not failures,
            "failures": [f.to_dict() for f in failures],
            "selection": config.selection.to_dict(),
        }

    @app.post("/api/config/schema")
    def build_config_schema(properties: dict[str, Any]) -> dict:
        """Build the output schema of valid source properties."""
        config = _parse_source(properties)
        try:
            prepared = prepare(config, client_factory=get_client_factory())
        except ConfigValidationError as e:
            raise HTTPException(
                status_code=422,
                detail={"failures": [f.to_dict() for f in e.failures]},
            )
        return prepared.schema.to_dict()

    # ==========================================================================
    # MAIL SINK ENDPOINTS
    # ==========================================================================

    @app.get("/api/sinks")
    def list_sinks() -> dict:
        """List all configured mail sinks."""
        sinks = config_loader.load_all_sinks()
        return {
            "sinks": [
                {
                    "name": config.reference_name,
                    "auth_type": config.auth_type,
                    "recipient_address_source": config.recipient_address_source.value,
                }
                for config in sinks.values()
            ]
        }

    @app.post("/api/sinks/validate")
    def validate_sink_config(properties: dict[str, Any], check_connection: bool = False) -> dict:
        """Validate mail sink properties and report every problem found."""
        config = _parse_sink(properties)
        failures = validate_sink(
            config,
            client_factory=get_client_factory(),
            check_connection=check_connection,
        )
        return {
            "valid": not failures,
            "failures": [f.to_dict() for f in failures],
        }

    return app


# Default app instance
app = create_app()
