"""Configuration utilities for docker-pg-backup.

Settings are merged from three sources. Command line flags win over
``S3_BACKUP_*`` environment variables, which win over the optional YAML
config file, which wins over the built-in defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..backup.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_VAR_PREFIX = "S3_BACKUP"
CONFIG_FLAG = "config"

# Flag name -> BackupSettings attribute
SETTING_FLAGS = {
    "container": "container",
    "db.name": "db_name",
    "db.user": "db_user",
    "s3.bucket": "bucket",
    "s3.endpoint": "endpoint",
    "s3.prefix": "prefix",
    "s3.region": "region",
    "aws.access_key_id": "aws_access_key_id",
    "aws.secret_access_key": "aws_secret_access_key",
    "log.level": "log_level",
    "log.format": "log_format",
    "log.file": "log_file",
}

REQUIRED_FLAGS = ["container", "db.name", "db.user", "s3.bucket", "s3.endpoint"]

SECRET_FLAGS = {"aws.secret_access_key"}

PATH_FLAGS = {"log.file"}

DEFAULT_SETTINGS = {
    "s3.prefix": "postgres-backups",
    "log.level": "INFO",
    "log.format": "detailed",
}


@dataclass
class BackupSettings:
    """Resolved settings for a single backup run."""

    container: Optional[str] = None
    db_name: Optional[str] = None
    db_user: Optional[str] = None
    bucket: Optional[str] = None
    endpoint: Optional[str] = None
    prefix: str = DEFAULT_SETTINGS["s3.prefix"]
    region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    log_level: str = DEFAULT_SETTINGS["log.level"]
    log_format: str = DEFAULT_SETTINGS["log.format"]
    log_file: Optional[str] = None
    config_file: Optional[str] = None

    def missing_required(self) -> List[str]:
        """Return the flag names of required settings that are unset."""
        return [flag for flag in REQUIRED_FLAGS if not getattr(self, SETTING_FLAGS[flag])]

    def validate(self) -> None:
        """
        Ensure every required setting is present.

        Raises:
            ConfigurationError: If one or more required settings are missing
        """
        missing = self.missing_required()
        if missing:
            hints = ", ".join(f"--{flag} / {env_var_name(flag)}" for flag in missing)
            raise ConfigurationError(f"Missing required settings: {hints}", missing=missing)

    def redacted(self) -> Dict[str, Optional[str]]:
        """Return a flag-keyed view of the settings with secrets masked."""
        view: Dict[str, Optional[str]] = {}
        for flag, attr in SETTING_FLAGS.items():
            value = getattr(self, attr)
            if flag in SECRET_FLAGS and value:
                value = "********"
            view[flag] = value
        return view


def env_var_name(flag: str) -> str:
    """
    Map a flag name to its environment variable.

    Args:
        flag: Flag name such as ``db.name``

    Returns:
        Environment variable name such as ``S3_BACKUP_DB_NAME``
    """
    return f"{ENV_VAR_PREFIX}_{flag.upper().replace('.', '_').replace('-', '_')}"


def _flatten(data: Mapping[str, Any], parent: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        name = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat


def load_config_file(path: str) -> Dict[str, str]:
    """
    Load settings from a YAML config file.

    Nested sections and dotted keys are equivalent, so ``s3: {bucket: b}``
    and ``s3.bucket: b`` both set the bucket.

    Args:
        path: Path to the YAML file

    Returns:
        Flag-keyed dictionary of string values

    Raises:
        ConfigurationError: If the file is missing, unreadable, not valid YAML,
            or contains unknown keys
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file {config_path} is not valid YAML: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error reading config file {config_path}: {e}") from e

    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    values = _flatten(raw)
    unknown = sorted(key for key in values if key not in SETTING_FLAGS)
    if unknown:
        raise ConfigurationError(
            f"Unknown setting(s) in {config_path}: {', '.join(unknown)}"
        )

    settings: Dict[str, str] = {}
    for key, value in values.items():
        if value is None:
            continue
        text = str(value)
        if key in PATH_FLAGS and text.startswith("~"):
            text = str(Path(text).expanduser())
        settings[key] = text

    logger.debug(f"Loaded {len(settings)} setting(s) from {config_path}")
    return settings


def _present(value: Optional[str]) -> bool:
    return value is not None and value != ""


def resolve_settings(
    cli_values: Optional[Mapping[str, Optional[str]]] = None,
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[str] = None,
) -> BackupSettings:
    """
    Merge flags, environment variables and the config file into settings.

    Args:
        cli_values: Flag-keyed values given on the command line (None = unset)
        environ: Environment mapping, defaults to ``os.environ``
        config_path: Explicit config file path; falls back to ``S3_BACKUP_CONFIG``

    Returns:
        Resolved BackupSettings (not yet validated)
    """
    cli_values = cli_values or {}
    environ = os.environ if environ is None else environ

    if not _present(config_path):
        config_path = environ.get(env_var_name(CONFIG_FLAG)) or None

    file_values: Dict[str, str] = {}
    if config_path:
        file_values = load_config_file(config_path)

    resolved: Dict[str, Any] = {}
    for flag, attr in SETTING_FLAGS.items():
        candidates = (
            cli_values.get(flag),
            environ.get(env_var_name(flag)),
            file_values.get(flag),
            DEFAULT_SETTINGS.get(flag),
        )
        for candidate in candidates:
            if _present(candidate):
                resolved[attr] = candidate
                break

    settings = BackupSettings(config_file=config_path, **resolved)
    logger.debug(f"Resolved settings: {settings.redacted()}")
    return settings
