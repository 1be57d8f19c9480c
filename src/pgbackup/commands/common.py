"""Common command infrastructure for docker-pg-backup CLI commands.

This module provides shared functionality for all CLI commands including:
- Standard setting options (flag names match config-file keys)
- Settings resolution from flags, environment and config file
- Logging setup driven by the resolved settings
"""

from typing import Any, Dict, Optional

import typer
from rich.console import Console

from ..backup.exceptions import ConfigurationError
from ..utils.config import BackupSettings, resolve_settings
from ..utils.logging_config import LoggingConfig, redact_secrets, setup_logging

# Shared console
console = Console()


def config_option() -> Any:
    """Create the --config option pointing at a YAML settings file."""
    return typer.Option(None, "--config", "-c", help="Path to a YAML config file")


def container_option() -> Any:
    return typer.Option(None, "--container", help="Container name or ID running PostgreSQL")


def db_name_option() -> Any:
    return typer.Option(None, "--db.name", help="Database name")


def db_user_option() -> Any:
    return typer.Option(None, "--db.user", help="Database user")


def bucket_option() -> Any:
    return typer.Option(None, "--s3.bucket", help="Bucket name")


def endpoint_option() -> Any:
    return typer.Option(None, "--s3.endpoint", help="S3 endpoint URL")


def prefix_option() -> Any:
    return typer.Option(
        None, "--s3.prefix", help="Object name prefix (default: postgres-backups)"
    )


def region_option() -> Any:
    return typer.Option(
        None, "--s3.region", help="S3 region (derived from the endpoint if not specified)"
    )


def access_key_option() -> Any:
    return typer.Option(None, "--aws.access_key_id", help="AWS access key id")


def secret_key_option() -> Any:
    return typer.Option(None, "--aws.secret_access_key", help="AWS secret access key")


def log_level_option() -> Any:
    return typer.Option(None, "--log.level", help="Log level: DEBUG, INFO, WARNING, ERROR")


def log_format_option() -> Any:
    return typer.Option(None, "--log.format", help="Log format: simple, detailed, json")


def log_file_option() -> Any:
    return typer.Option(None, "--log.file", help="Also write logs to this rotating file")


def collect_settings(
    config: Optional[str],
    container: Optional[str],
    db_name: Optional[str],
    db_user: Optional[str],
    bucket: Optional[str],
    endpoint: Optional[str],
    prefix: Optional[str],
    region: Optional[str],
    access_key_id: Optional[str],
    secret_access_key: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
    log_file: Optional[str],
) -> BackupSettings:
    """
    Resolve settings from command line values, environment and config file.

    Raises:
        typer.Exit: If the config file cannot be loaded
    """
    cli_values: Dict[str, Optional[str]] = {
        "container": container,
        "db.name": db_name,
        "db.user": db_user,
        "s3.bucket": bucket,
        "s3.endpoint": endpoint,
        "s3.prefix": prefix,
        "s3.region": region,
        "aws.access_key_id": access_key_id,
        "aws.secret_access_key": secret_access_key,
        "log.level": log_level,
        "log.format": log_format,
        "log.file": log_file,
    }
    try:
        return resolve_settings(cli_values, config_path=config)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def configure_logging(settings: BackupSettings) -> None:
    """
    Set up logging from the resolved settings.

    Raises:
        typer.Exit: If the log level or format is not recognised
    """
    try:
        logging_config = LoggingConfig.from_settings(
            settings.log_level, settings.log_format, settings.log_file
        )
    except ValueError:
        console.print(
            f"[red]Error: Invalid log settings (level '{settings.log_level}', "
            f"format '{settings.log_format}').[/red]"
        )
        console.print(
            "[yellow]Valid levels: DEBUG, INFO, WARNING, ERROR, CRITICAL. "
            "Valid formats: simple, detailed, json.[/yellow]"
        )
        raise typer.Exit(1)

    setup_logging(logging_config)
    redact_secrets(settings.aws_secret_access_key)
