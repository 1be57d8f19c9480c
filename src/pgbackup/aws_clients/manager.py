"""S3 client utilities for docker-pg-backup."""

import logging
import re
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlsplit

import boto3
from botocore.config import Config as BotoConfig

from ..backup.exceptions import ConfigurationError
from ..utils.config import BackupSettings
from .credentials import ResolvedCredentials, build_credential_chain, resolve_credentials

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "https"

_AWS_HOST_SUFFIXES = (".amazonaws.com", ".amazonaws.com.cn")

# Ordered: the more specific hostname shapes must be tried first.
_REGION_PATTERNS = [
    re.compile(r"^s3-fips-(us-gov-[a-z0-9-]+)\.amazonaws\.com$"),
    re.compile(r"^s3-fips\.dualstack\.([a-z0-9-]+)\.amazonaws\.com$"),
    re.compile(r"^s3-fips\.([a-z0-9-]+)\.amazonaws\.com$"),
    re.compile(r"^s3\.dualstack\.(cn-[a-z0-9-]+)\.amazonaws\.com\.cn$"),
    re.compile(r"^s3\.dualstack\.([a-z0-9-]+)\.amazonaws\.com$"),
    re.compile(r"^(?:.+\.)?s3\.(cn-[a-z0-9-]+)\.amazonaws\.com\.cn$"),
    re.compile(r"^(?:bucket|accesspoint)\.vpce-.+\.s3\.([a-z0-9-]+)\.vpce\.amazonaws\.com$"),
    re.compile(r"^(?:.+\.)?s3-(?!external-1\.)([a-z0-9-]+)\.amazonaws\.com$"),
    re.compile(r"^(?:.+\.)?s3\.([a-z0-9-]+)\.amazonaws\.com$"),
]


def parse_endpoint(endpoint: str) -> Tuple[str, str]:
    """
    Normalise an object storage endpoint.

    Args:
        endpoint: URL such as ``https://s3.eu-west-1.amazonaws.com`` or a bare host

    Returns:
        Tuple of (endpoint URL with scheme and host only, lower-cased hostname)

    Raises:
        ConfigurationError: If the endpoint has no host or an unsupported scheme
    """
    if not endpoint:
        raise ConfigurationError("Object storage endpoint is empty")

    text = endpoint.strip()
    if "://" not in text:
        text = f"{DEFAULT_SCHEME}://{text}"

    parts = urlsplit(text)
    if parts.scheme not in ("http", "https"):
        raise ConfigurationError(f"Unsupported endpoint scheme '{parts.scheme}' in {endpoint}")
    if not parts.hostname:
        raise ConfigurationError(f"Endpoint {endpoint} has no host")

    return f"{parts.scheme}://{parts.netloc}", parts.hostname.lower()


def addressing_style_for(hostname: str) -> str:
    """
    Pick the bucket addressing style for an endpoint.

    AWS hosts get virtual-hosted buckets; every other S3-compatible service
    (MinIO, Ceph, ...) gets path-style requests.
    """
    if hostname.endswith(_AWS_HOST_SUFFIXES):
        return "virtual"
    return "path"


def region_from_endpoint(hostname: str) -> Optional[str]:
    """
    Derive the AWS region encoded in an S3 hostname.

    Args:
        hostname: Endpoint host name

    Returns:
        Region name, or None for global and non-AWS endpoints
    """
    for pattern in _REGION_PATTERNS:
        match = pattern.match(hostname)
        if match:
            return match.group(1)
    return None


class S3ClientManager:
    """Builds the S3 client used to store backups."""

    def __init__(
        self,
        endpoint: str,
        credentials: ResolvedCredentials,
        region: Optional[str] = None,
    ):
        """
        Initialize the S3 client manager.

        Args:
            endpoint: Object storage endpoint (URL or host)
            credentials: Resolved static credentials
            region: Explicit region; derived from the endpoint when omitted
        """
        self.endpoint_url, self.hostname = parse_endpoint(endpoint)
        self.region = region or region_from_endpoint(self.hostname)
        self.addressing_style = addressing_style_for(self.hostname)
        self.credentials = credentials
        self.session = boto3.Session(
            aws_access_key_id=credentials.access_key,
            aws_secret_access_key=credentials.secret_key,
            aws_session_token=credentials.token,
            region_name=self.region,
        )
        logger.debug(
            f"Initialized S3 session for {self.endpoint_url} (region: {self.region or 'default'})"
        )

    @classmethod
    def from_settings(
        cls, settings: BackupSettings, environ: Optional[Mapping[str, str]] = None
    ) -> "S3ClientManager":
        """
        Resolve credentials through the provider chain and build a manager.

        Args:
            settings: Resolved backup settings
            environ: Environment mapping for the credential chain

        Returns:
            Configured S3ClientManager
        """
        providers = build_credential_chain(
            access_key=settings.aws_access_key_id,
            secret_key=settings.aws_secret_access_key,
            environ=environ,
        )
        credentials = resolve_credentials(providers)
        return cls(endpoint=settings.endpoint, credentials=credentials, region=settings.region)

    def get_s3_client(self) -> Any:
        """
        Get an S3 client for the configured endpoint.

        Buckets are virtual-hosted on AWS and path-style elsewhere.

        Returns:
            boto3 S3 client
        """
        return self.session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            config=BotoConfig(
                signature_version="s3v4", s3={"addressing_style": self.addressing_style}
            ),
        )
