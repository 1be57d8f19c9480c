"""Run backup command for docker-pg-backup."""

import json
import logging
from typing import Optional

import typer
from rich.table import Table

from ..backup.exceptions import BackupError
from ..backup.pipeline import BackupPipeline
from .common import (
    access_key_option,
    bucket_option,
    collect_settings,
    config_option,
    configure_logging,
    console,
    container_option,
    db_name_option,
    db_user_option,
    endpoint_option,
    log_file_option,
    log_format_option,
    log_level_option,
    prefix_option,
    region_option,
    secret_key_option,
)

logger = logging.getLogger(__name__)


def run_backup(
    config: Optional[str] = config_option(),
    container: Optional[str] = container_option(),
    db_name: Optional[str] = db_name_option(),
    db_user: Optional[str] = db_user_option(),
    bucket: Optional[str] = bucket_option(),
    endpoint: Optional[str] = endpoint_option(),
    prefix: Optional[str] = prefix_option(),
    region: Optional[str] = region_option(),
    access_key_id: Optional[str] = access_key_option(),
    secret_access_key: Optional[str] = secret_key_option(),
    log_level: Optional[str] = log_level_option(),
    log_format: Optional[str] = log_format_option(),
    log_file: Optional[str] = log_file_option(),
    output_format: str = typer.Option(
        "table", "--format", "-f", help="Result output format: table or json"
    ),
):
    """Dump a database from its container, gzip it and upload it to S3.

    Every flag can also be given as an S3_BACKUP_* environment variable
    (e.g. S3_BACKUP_DB_NAME) or as a key in the YAML config file.

    Examples:
        # Back up the "app" database from the "postgres" container
        $ pgbackup run --container postgres --db.name app --db.user postgres \\
            --s3.bucket backups --s3.endpoint https://s3.eu-west-1.amazonaws.com

        # Read everything from a config file
        $ pgbackup run --config /etc/pgbackup.yaml
    """
    if output_format not in ("table", "json"):
        console.print(f"[red]Error: Invalid output format '{output_format}'.[/red]")
        console.print("[yellow]Output format must be either 'table' or 'json'.[/yellow]")
        raise typer.Exit(1)

    settings = collect_settings(
        config,
        container,
        db_name,
        db_user,
        bucket,
        endpoint,
        prefix,
        region,
        access_key_id,
        secret_access_key,
        log_level,
        log_format,
        log_file,
    )
    configure_logging(settings)

    try:
        result = BackupPipeline(settings).run()
    except BackupError as e:
        logger.debug(f"Backup failed with context {e.context}")
        console.print(f"[red]Backup failed: {e}[/red]")
        raise typer.Exit(1)

    if output_format == "json":
        typer.echo(
            json.dumps(
                {
                    "bucket": result.bucket,
                    "key": result.key,
                    "database": result.database,
                    "bytes_dumped": result.bytes_dumped,
                    "bytes_uploaded": result.bytes_uploaded,
                    "duration_seconds": round(result.duration_seconds, 3),
                    "credentials": result.credentials_method,
                },
                indent=2,
            )
        )
        return

    table = Table(title="Backup Complete")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Database", result.database)
    table.add_row("Location", result.uri)
    table.add_row("Dump size", f"{result.bytes_dumped} bytes")
    table.add_row("Uploaded size", f"{result.bytes_uploaded} bytes")
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    table.add_row("Credentials", result.credentials_method or "-")
    console.print(table)
