"""Logging configuration for docker-pg-backup."""

import json
import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

ROOT_LOGGER_NAME = "pgbackup"

_TRACEBACK_FORMATTER = logging.Formatter()


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


@dataclass
class LoggingConfig:
    """Configuration for logging system."""

    level: LogLevel = LogLevel.INFO
    format_type: LogFormat = LogFormat.DETAILED
    log_file: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_colors: bool = True
    sensitive_data_patterns: List[str] = field(
        default_factory=lambda: [
            r"(secret_access_key|secret_key|password|session_token)(\s*[=:]\s*)\S+",
        ]
    )
    secrets: List[str] = field(default_factory=list)

    @classmethod
    def from_settings(
        cls, level: str, format_type: str, log_file: Optional[str] = None
    ) -> "LoggingConfig":
        """
        Build a logging configuration from resolved string settings.

        Args:
            level: Level name, case-insensitive
            format_type: One of simple, detailed, json
            log_file: Optional path for a rotating log file

        Raises:
            ValueError: If level or format is not recognised
        """
        return cls(
            level=LogLevel(level.upper()),
            format_type=LogFormat(format_type.lower()),
            log_file=log_file,
        )


class SensitiveDataFilter(logging.Filter):
    """Filter to redact sensitive data from log messages."""

    def __init__(self, patterns: List[str], secrets: Optional[Iterable[str]] = None) -> None:
        """
        Initialize the filter with sensitive data patterns.

        Args:
            patterns: Regex patterns whose first group names a secret and whose
                second group is the separator; the value that follows is redacted
            secrets: Literal secret values to redact wherever they appear
        """
        super().__init__()
        self.compiled_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
        self.secrets = [s for s in (secrets or []) if s]

    def add_secret(self, secret: Optional[str]) -> None:
        """Register a literal value to redact."""
        if secret and secret not in self.secrets:
            self.secrets.append(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Redact sensitive data in place.

        Returns:
            bool: Always True (we modify but don't filter out records)
        """
        if record.args:
            message = record.getMessage()
            record.args = None
        else:
            message = str(record.msg)
        record.msg = self.redact(message)
        if record.exc_info:
            traceback_text = record.exc_text or _TRACEBACK_FORMATTER.formatException(
                record.exc_info
            )
            record.exc_text = self.redact(traceback_text)
        return True

    def redact(self, text: str) -> str:
        """Redact sensitive data from text."""
        for secret in self.secrets:
            text = text.replace(secret, "[REDACTED]")
        for pattern in self.compiled_patterns:
            text = pattern.sub(r"\1\2[REDACTED]", text)
        return text


class StructuredFormatter(logging.Formatter):
    """Formatter for structured logging with JSON output."""

    STANDARD_ATTRS = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as structured JSON.

        Args:
            record: Log record to format

        Returns:
            str: JSON formatted log message
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = record.exc_text or self.formatException(record.exc_info)

        extra_data = {}
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    extra_data[key] = value
                except (TypeError, ValueError):
                    extra_data[key] = str(value)

        if extra_data:
            log_data["extra"] = extra_data

        return json.dumps(log_data, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self) -> bool:
        """Check if the terminal supports colors."""
        return (
            hasattr(sys.stderr, "isatty")
            and sys.stderr.isatty()
            and os.environ.get("TERM") != "dumb"
        )

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            formatted = (
                f"{color}[{timestamp}] {record.levelname:<8}{reset} - "
                f"{record.name} - {record.getMessage()}"
            )
        else:
            formatted = (
                f"[{timestamp}] {record.levelname:<8} - {record.name} - {record.getMessage()}"
            )

        if record.exc_info:
            formatted += f"\n{record.exc_text or self.formatException(record.exc_info)}"

        return formatted


class LoggingManager:
    """
    Manager for docker-pg-backup logging configuration.

    Attaches handlers to the ``pgbackup`` logger so that every module
    logging through ``logging.getLogger(__name__)`` is covered.
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self.sensitive_filter = SensitiveDataFilter(
            self.config.sensitive_data_patterns, self.config.secrets
        )
        self._handlers_configured = False

    def setup_logging(self) -> None:
        """Set up logging configuration for all components."""
        if self._handlers_configured:
            return

        handlers = [self._create_console_handler()]
        if self.config.log_file:
            handlers.append(self._create_file_handler())

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        self._attach_handlers(root_logger, handlers)
        root_logger.setLevel(getattr(logging, self.config.level.value))

        self._configure_aws_logging(handlers)
        self._handlers_configured = True

    @staticmethod
    def _attach_handlers(logger: logging.Logger, handlers: List[logging.Handler]) -> None:
        logger.handlers.clear()
        logger.propagate = False
        for handler in handlers:
            logger.addHandler(handler)

    def _create_console_handler(self) -> logging.Handler:
        """Create console handler with appropriate formatter."""
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(getattr(logging, self.config.level.value))

        formatter: logging.Formatter
        if self.config.format_type == LogFormat.JSON:
            formatter = StructuredFormatter()
        elif self.config.format_type == LogFormat.DETAILED:
            formatter = ColoredConsoleFormatter(use_colors=self.config.console_colors)
        else:
            formatter = logging.Formatter("%(levelname)s %(message)s")

        handler.setFormatter(formatter)
        handler.addFilter(self.sensitive_filter)
        return handler

    def _create_file_handler(self) -> logging.Handler:
        """Create rotating file handler."""
        log_file = Path(self.config.log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=self.config.max_file_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, self.config.level.value))

        formatter: logging.Formatter
        if self.config.format_type == LogFormat.JSON:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)-8s - %(name)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        handler.setFormatter(formatter)
        handler.addFilter(self.sensitive_filter)
        return handler

    def _configure_aws_logging(self, handlers: List[logging.Handler]) -> None:
        """Route AWS SDK warnings through the redacting handlers."""
        aws_loggers = ["boto3", "botocore", "s3transfer", "urllib3"]

        for logger_name in aws_loggers:
            logger = logging.getLogger(logger_name)
            self._attach_handlers(logger, handlers)
            logger.setLevel(logging.WARNING)


# Global logging manager instance
_global_logging_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """Get the global logging manager instance."""
    global _global_logging_manager
    if _global_logging_manager is None:
        _global_logging_manager = LoggingManager()
    return _global_logging_manager


def setup_logging(config: Optional[LoggingConfig] = None) -> LoggingManager:
    """
    Set up logging for the backup tool.

    Args:
        config: Logging configuration

    Returns:
        LoggingManager: The configured manager, whose filter accepts new secrets
    """
    global _global_logging_manager
    _global_logging_manager = LoggingManager(config)
    _global_logging_manager.setup_logging()
    return _global_logging_manager


def redact_secrets(*secrets: Optional[str]) -> None:
    """Register secret values with the active logging filter."""
    manager = get_logging_manager()
    for value in secrets:
        manager.sensitive_filter.add_secret(value)
