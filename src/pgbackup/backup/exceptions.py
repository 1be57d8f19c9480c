"""Custom exception classes for backup operations."""

from typing import Any, Dict, List, Optional


class BackupError(Exception):
    """Base exception for backup operations."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Initialize backup error.

        Args:
            message: Error message
            context: Additional context information
        """
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(BackupError):
    """Exception raised when settings are missing or malformed."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        """Initialize configuration error.

        Args:
            message: Error message
            missing: Names of required settings that were not provided
        """
        super().__init__(message, context={"missing": missing or []})
        self.missing = missing or []


class CredentialsNotFoundError(BackupError):
    """Exception raised when no credential provider yields object storage keys."""

    def __init__(self, providers: List[str]):
        """Initialize credentials not found error.

        Args:
            providers: Names of the providers that were tried, in order
        """
        super().__init__(
            f"No object storage credentials found (tried: {', '.join(providers)})",
            context={"providers": providers},
        )
        self.providers = providers


class DumpError(BackupError):
    """Exception raised when the database dump command fails."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        """Initialize dump error.

        Args:
            message: Error message
            returncode: Exit status of the dump command, if it ran
        """
        super().__init__(message, context={"returncode": returncode})
        self.returncode = returncode


class UploadError(BackupError):
    """Exception raised when the compressed dump cannot be stored."""

    def __init__(self, bucket: str, key: str, reason: str):
        """Initialize upload error.

        Args:
            bucket: Target bucket name
            key: Target object key
            reason: Underlying failure description
        """
        super().__init__(
            f"Failed to upload s3://{bucket}/{key}: {reason}",
            context={"bucket": bucket, "key": key},
        )
        self.bucket = bucket
        self.key = key


class WorkspaceError(BackupError):
    """Exception raised when the local working directory cannot be used."""
