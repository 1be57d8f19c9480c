"""Credential provider chain for object storage access.

Providers are consulted in order and the first one that yields keys wins:

1. explicit keys passed on the command line / config
2. ``AWS_ACCESS_KEY_ID`` / ``AWS_SECRET_ACCESS_KEY`` environment variables
3. the shared credentials file (``AWS_SHARED_CREDENTIALS_FILE``, ``AWS_PROFILE``)
4. the EC2 instance metadata service (IAM role)
5. MinIO environment variables
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from botocore.credentials import (
    CredentialProvider,
    CredentialResolver,
    Credentials,
    EnvProvider,
    InstanceMetadataFetcher,
    InstanceMetadataProvider,
    SharedCredentialProvider,
)
from botocore.exceptions import PartialCredentialsError

from ..backup.exceptions import ConfigurationError, CredentialsNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SHARED_CREDENTIALS_FILE = "~/.aws/credentials"
DEFAULT_PROFILE = "default"

METADATA_TIMEOUT_SECONDS = 1
METADATA_ATTEMPTS = 1


class ExplicitCredentialProvider(CredentialProvider):
    """Provider for keys given directly to the tool."""

    METHOD = "explicit"

    def __init__(self, access_key: Optional[str], secret_key: Optional[str]):
        super().__init__()
        self._access_key = access_key
        self._secret_key = secret_key

    def load(self) -> Optional[Credentials]:
        if not self._access_key and not self._secret_key:
            return None
        if not self._secret_key:
            raise PartialCredentialsError(provider=self.METHOD, cred_var="aws.secret_access_key")
        if not self._access_key:
            raise PartialCredentialsError(provider=self.METHOD, cred_var="aws.access_key_id")
        return Credentials(self._access_key, self._secret_key, method=self.METHOD)


class MinioEnvProvider(EnvProvider):
    """Environment provider reading MinIO-style variable names."""

    METHOD = "minio-env"


@dataclass
class ResolvedCredentials:
    """Static credentials plus the name of the provider that produced them."""

    access_key: str
    secret_key: str
    token: Optional[str]
    method: str


def build_credential_chain(
    access_key: Optional[str] = None,
    secret_key: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> List[CredentialProvider]:
    """
    Build the ordered list of credential providers.

    Args:
        access_key: Explicit access key id
        secret_key: Explicit secret access key
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Providers in precedence order
    """
    environ = os.environ if environ is None else environ

    creds_file = environ.get("AWS_SHARED_CREDENTIALS_FILE") or DEFAULT_SHARED_CREDENTIALS_FILE
    profile = environ.get("AWS_PROFILE") or DEFAULT_PROFILE

    return [
        ExplicitCredentialProvider(access_key, secret_key),
        EnvProvider(environ=environ),
        SharedCredentialProvider(os.path.expanduser(creds_file), profile_name=profile),
        InstanceMetadataProvider(
            iam_role_fetcher=InstanceMetadataFetcher(
                timeout=METADATA_TIMEOUT_SECONDS, num_attempts=METADATA_ATTEMPTS
            )
        ),
        MinioEnvProvider(
            environ=environ,
            mapping={
                "access_key": "MINIO_ROOT_USER",
                "secret_key": "MINIO_ROOT_PASSWORD",
                "token": "MINIO_SESSION_TOKEN",
            },
        ),
        MinioEnvProvider(
            environ=environ,
            mapping={
                "access_key": "MINIO_ACCESS_KEY",
                "secret_key": "MINIO_SECRET_KEY",
                "token": "MINIO_SESSION_TOKEN",
            },
        ),
    ]


def resolve_credentials(providers: List[CredentialProvider]) -> ResolvedCredentials:
    """
    Walk the provider chain and freeze the first credentials found.

    Args:
        providers: Providers in precedence order

    Returns:
        ResolvedCredentials from the first provider that produced keys

    Raises:
        ConfigurationError: If a provider found only half of a key pair
        CredentialsNotFoundError: If no provider produced keys
    """
    try:
        credentials = CredentialResolver(providers=providers).load_credentials()
    except PartialCredentialsError as e:
        raise ConfigurationError(f"Incomplete object storage credentials: {e}") from e

    if credentials is None:
        raise CredentialsNotFoundError(list(dict.fromkeys(p.METHOD for p in providers)))

    frozen = credentials.get_frozen_credentials()
    logger.info(f"Using object storage credentials from provider '{credentials.method}'")
    return ResolvedCredentials(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        token=frozen.token,
        method=credentials.method,
    )
