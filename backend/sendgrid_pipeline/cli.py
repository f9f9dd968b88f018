"""
Command-line interface for the SendGrid pipeline.

Usage:
    sendgrid-pipeline list-objects [--category=<category>]
    sendgrid-pipeline validate <source> [--no-connect]
    sendgrid-pipeline schema <source>
    sendgrid-pipeline fetch <source> <output_dir> [--run-date=<date>]
    sendgrid-pipeline notify <action> --status=<success|failure>
    sendgrid-pipeline send <sink> <input_csv>
    sendgrid-pipeline serve [--host=<host>] [--port=<port>]

<source> is either a source reference name under config/sources or a path
to a YAML file. <sink> works the same way with config/sinks.

Examples:
    sendgrid-pipeline validate marketing_contacts
    sendgrid-pipeline schema ./my_source.yaml
    sendgrid-pipeline fetch "Daily Stats" ./output --run-date=2024-01-31
    sendgrid-pipeline send customer_notices ./notices.csv
    sendgrid-pipeline serve --port=8000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="SendGrid Source Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # List objects command
    list_parser = subparsers.add_parser(
        "list-objects", help="List the objects SendGrid sources can read"
    )
    list_parser.add_argument("--category", help="Only list objects of this category")

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Validate a source configuration"
    )
    validate_parser.add_argument("source", help="Source name or YAML file")
    validate_parser.add_argument(
        "--no-connect", action="store_true", help="Skip the live connectivity check"
    )
    validate_parser.add_argument("--config", help="Path to config directory")

    # Schema command
    schema_parser = subparsers.add_parser(
        "schema", help="Print the output schema of a source"
    )
    schema_parser.add_argument("source", help="Source name or YAML file")
    schema_parser.add_argument("--config", help="Path to config directory")

    # Fetch command
    fetch_parser = subparsers.add_parser(
        "fetch", help="Read a source and export it to CSV"
    )
    fetch_parser.add_argument("source", help="Source name or YAML file")
    fetch_parser.add_argument("output_dir", help="Output directory for the CSV file")
    fetch_parser.add_argument(
        "--run-date", default=None, help="Run date for the output filename (default: today)"
    )
    fetch_parser.add_argument("--config", help="Path to config directory")

    # Notify command
    notify_parser = subparsers.add_parser(
        "notify", help="Run an email post-action"
    )
    notify_parser.add_argument("action", help="Action name under config/actions")
    notify_parser.add_argument(
        "--status", choices=["success", "failure"], required=True,
        help="Outcome of the pipeline run",
    )
    notify_parser.add_argument("--config", help="Path to config directory")

    # Send command
    send_parser = subparsers.add_parser(
        "send", help="Send one email per row of a CSV file through a mail sink"
    )
    send_parser.add_argument("sink", help="Sink name or YAML file")
    send_parser.add_argument("input_csv", help="CSV file with the rows to send")
    send_parser.add_argument(
        "--no-connect", action="store_true", help="Skip the live connectivity check"
    )
    send_parser.add_argument("--config", help="Path to config directory")

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve", help="Start the API server"
    )
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    serve_parser.add_argument("--config", help="Path to config directory")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    # Execute command
    if args.command == "list-objects":
        cmd_list_objects(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command == "schema":
        cmd_schema(args)
    elif args.command == "fetch":
        cmd_fetch(args)
    elif args.command == "notify":
        cmd_notify(args)
    elif args.command == "send":
        cmd_send(args)
    elif args.command == "serve":
        cmd_serve(args)


def _load_source(args):
    """Resolve <source> as a YAML path first, then as a configured source name."""
    from .core.config_loader import ConfigLoader, load_source_file

    path = Path(args.source)
    if path.suffix in (".yaml", ".yml") and path.exists():
        return load_source_file(path)

    config = ConfigLoader(args.config).get_source_config(args.source)
    if config is None:
        print(f"Error: Source '{args.source}' not found")
        sys.exit(1)
    return config


def _client_settings(args):
    """Client settings from the global config."""
    from .core.config_loader import ConfigLoader

    return ConfigLoader(args.config).global_config.client


def _print_failures(failures) -> None:
    for failure in failures:
        keys = ", ".join(failure.property_keys)
        print(f"  ✗ [{keys}] {failure.message}")


def cmd_list_objects(args):
    """List catalog objects."""
    from .core.catalog import CATALOG, DataSourceCategory

    if args.category:
        category = DataSourceCategory.from_token(args.category)
        if category is None:
            print(f"Error: Unknown category '{args.category}'")
            sys.exit(1)
        categories = [category]
    else:
        categories = list(DataSourceCategory)

    for category in categories:
        definitions = CATALOG.definitions_for_category(category)
        print(f"{category.value} ({len(definitions)}):")
        print("-" * 60)
        for definition in definitions:
            print(f"  {definition.name}")
            print(f"      Fields: {', '.join(definition.field_names)}")
            if definition.required_arguments:
                print(f"      Required: {', '.join(sorted(definition.required_arguments))}")
        print()


def cmd_validate(args):
    """Validate a source configuration."""
    from .core.validator import make_client_factory, validate

    config = _load_source(args)
    failures = validate(
        config,
        client_factory=make_client_factory(_client_settings(args)),
        check_connection=not args.no_connect,
    )

    print(f"Validating source '{config.reference_name}'")
    print("-" * 60)

    if failures:
        _print_failures(failures)
        print(f"\n✗ INVALID: {len(failures)} problem(s)")
        sys.exit(1)

    print("✓ VALID")


def cmd_schema(args):
    """Print the output schema of a source."""
    from .core.errors import ConfigValidationError
    from .core.validator import make_client_factory, prepare

    config = _load_source(args)
    try:
        prepared = prepare(config, client_factory=make_client_factory(_client_settings(args)))
    except ConfigValidationError as e:
        _print_failures(e.failures)
        sys.exit(1)

    print(json.dumps(prepared.schema.to_dict(), indent=2))


def cmd_fetch(args):
    """Read a source and write it to CSV."""
    from .client.sendgrid_client import SendGridClient
    from .core.config_loader import ConfigLoader
    from .core.errors import ConfigValidationError
    from .core.pipeline_engine import PipelineEngine
    from .core.validator import make_client_factory, prepare
    from .io.file_writer import FileWriter

    config_loader = ConfigLoader(args.config)
    global_config = config_loader.global_config
    config = _load_source(args)

    try:
        prepared = prepare(config, client_factory=make_client_factory(global_config.client))
    except ConfigValidationError as e:
        _print_failures(e.failures)
        sys.exit(1)

    client = SendGridClient.from_auth(config.auth_mode(), global_config.client)
    engine = PipelineEngine(global_config)

    def progress(name: str, current: int, total: int) -> None:
        print(f"[{current}/{total}] Fetching {name}...")

    try:
        output_df, result = engine.read(prepared, client, progress_callback=progress)
    finally:
        client.close()

    for object_result in result.object_results:
        print(f"  ✓ {object_result.object_name}: {object_result.records} records")

    if output_df is None:
        for error in result.errors:
            print(f"  ✗ {error.message}")
        sys.exit(1)

    if result.warning_count > 0:
        print(f"({result.warning_count} warnings)")
        for warning in result.warnings[:5]:
            column = f"{warning.column}: " if warning.column else ""
            print(f"  - {column}{warning.message}")

    writer = FileWriter(global_config.output)
    run_date = args.run_date or date.today().isoformat()
    output_path = Path(args.output_dir) / writer.format_filename(config.reference_name, run_date)
    writer.write_csv(output_df, output_path, schema=prepared.schema)

    print("-" * 60)
    print(f"✓ Exported {output_path} ({len(output_df)} rows)")


def cmd_notify(args):
    """Run an email post-action."""
    from .actions.email_action import send_notification
    from .core.config_loader import ConfigLoader
    from .core.errors import SendGridConnectionError

    config_loader = ConfigLoader(args.config)
    action = config_loader.get_email_action(args.action)
    if action is None:
        print(f"Error: Action '{args.action}' not found")
        sys.exit(1)

    try:
        sent = send_notification(
            action,
            pipeline_succeeded=args.status == "success",
            settings=config_loader.global_config.client,
        )
    except SendGridConnectionError as e:
        print(f"✗ {e}")
        sys.exit(1)

    if sent:
        print(f"✓ Sent email to {action.to}")
    else:
        print(f"Skipped: run condition is '{action.run_condition.value}'")


def cmd_send(args):
    """Send one email per row of a CSV file."""
    import pandas as pd

    from .core.config_loader import ConfigLoader, load_sink_file
    from .core.errors import ConfigValidationError, SendGridConnectionError
    from .core.validator import make_client_factory, validate_sink
    from .io.mail_sink import MailSink

    config_loader = ConfigLoader(args.config)
    settings = config_loader.global_config.client

    path = Path(args.sink)
    if path.suffix in (".yaml", ".yml") and path.exists():
        config = load_sink_file(path)
    else:
        config = config_loader.get_sink_config(args.sink)
        if config is None:
            print(f"Error: Sink '{args.sink}' not found")
            sys.exit(1)

    failures = validate_sink(
        config,
        client_factory=make_client_factory(settings),
        check_connection=not args.no_connect,
    )
    if failures:
        _print_failures(failures)
        sys.exit(1)

    df = pd.read_csv(args.input_csv, dtype=str, keep_default_na=False)
    sink = MailSink.from_config(config, settings)

    try:
        result = sink.write(df)
    except ConfigValidationError as e:
        _print_failures(e.failures)
        sys.exit(1)
    except SendGridConnectionError as e:
        print(f"✗ {e}")
        sys.exit(1)
    finally:
        sink.close()

    print("-" * 60)
    print(f"✓ Sent {result.sent} email(s) from {len(df)} row(s)")
    if result.skipped:
        print(f"({result.skipped} row(s) had no recipients)")


def cmd_serve(args):
    """Start the API server."""
    import uvicorn
    from .api.main import create_app

    app = create_app(args.config)
    print(f"Starting server on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
