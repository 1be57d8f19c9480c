"""Configuration commands for docker-pg-backup."""

import json
from typing import Optional

import typer
from rich.table import Table

from ..aws_clients.credentials import build_credential_chain, resolve_credentials
from ..aws_clients.manager import parse_endpoint, region_from_endpoint
from ..backup.exceptions import BackupError
from ..utils.config import SETTING_FLAGS, env_var_name
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

app = typer.Typer(help="Inspect and validate the resolved backup settings.")


@app.command("show")
def show_config(
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
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Show the settings a backup run would use, with secrets masked."""
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
    view = settings.redacted()

    if format == "json":
        typer.echo(json.dumps(view, indent=2))
        return

    table = Table(title="Backup Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Environment Variable", style="dim")
    table.add_column("Value", style="green")
    for flag in SETTING_FLAGS:
        value = view[flag]
        table.add_row(flag, env_var_name(flag), value if value else "[dim]not set[/dim]")
    console.print(table)

    if settings.config_file:
        console.print(f"[green]Config file:[/green] {settings.config_file}")


@app.command("validate")
def validate_config(
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
) -> None:
    """Check required settings, the endpoint and credentials without dumping."""
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

    console.print("[blue]Validating configuration...[/blue]")
    errors = []

    missing = settings.missing_required()
    for flag in missing:
        errors.append(f"Missing required setting {flag} (--{flag} or {env_var_name(flag)})")

    if settings.endpoint:
        try:
            _, hostname = parse_endpoint(settings.endpoint)
            derived = region_from_endpoint(hostname)
            effective_region = settings.region or derived or "default"
            console.print(f"[green]✓[/green] Endpoint: {settings.endpoint}")
            console.print(f"[green]✓[/green] Region: {effective_region}")
        except BackupError as e:
            errors.append(str(e))

    try:
        credentials = resolve_credentials(
            build_credential_chain(settings.aws_access_key_id, settings.aws_secret_access_key)
        )
        console.print(f"[green]✓[/green] Credentials: provided by '{credentials.method}'")
    except BackupError as e:
        errors.append(str(e))

    if errors:
        console.print(f"[red]✗ Configuration validation failed with {len(errors)} error(s):[/red]")
        for error in errors:
            console.print(f"  [red]• {error}[/red]")
        raise typer.Exit(1)

    console.print("[green]✓ Configuration validation passed[/green]")
