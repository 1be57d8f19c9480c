"""Object storage client and credential resolution."""

from .credentials import ResolvedCredentials, build_credential_chain, resolve_credentials
from .manager import (
    S3ClientManager,
    addressing_style_for,
    parse_endpoint,
    region_from_endpoint,
)

__all__ = [
    "ResolvedCredentials",
    "S3ClientManager",
    "addressing_style_for",
    "build_credential_chain",
    "parse_endpoint",
    "region_from_endpoint",
    "resolve_credentials",
]
