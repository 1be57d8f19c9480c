"""Tests for endpoint parsing and the S3 client manager."""

from unittest.mock import patch

import pytest

from src.pgbackup.aws_clients.credentials import ResolvedCredentials
from src.pgbackup.aws_clients.manager import (
    S3ClientManager,
    addressing_style_for,
    parse_endpoint,
    region_from_endpoint,
)
from src.pgbackup.backup.exceptions import ConfigurationError
from tests.fixtures.common import sample_settings  # noqa: F401

CREDENTIALS = ResolvedCredentials(
    access_key="AKIDEXAMPLE", secret_key="SECRET", token=None, method="explicit"
)


class TestParseEndpoint:
    """Test cases for parse_endpoint."""

    def test_full_url(self):
        assert parse_endpoint("https://s3.eu-west-1.amazonaws.com") == (
            "https://s3.eu-west-1.amazonaws.com",
            "s3.eu-west-1.amazonaws.com",
        )

    def test_bare_host_defaults_to_https(self):
        assert parse_endpoint("minio.internal:9000") == (
            "https://minio.internal:9000",
            "minio.internal",
        )

    def test_plain_http_is_kept(self):
        url, host = parse_endpoint("http://localhost:9000")

        assert url == "http://localhost:9000"
        assert host == "localhost"

    def test_path_is_dropped(self):
        url, _ = parse_endpoint("https://storage.example.com/some/path?x=1")

        assert url == "https://storage.example.com"

    def test_hostname_is_lower_cased(self):
        _, host = parse_endpoint("https://S3.US-EAST-2.AmazonAWS.com")

        assert host == "s3.us-east-2.amazonaws.com"

    @pytest.mark.parametrize("endpoint", ["", "https://", "ftp://files.example.com"])
    def test_invalid_endpoints(self, endpoint):
        with pytest.raises(ConfigurationError):
            parse_endpoint(endpoint)


class TestRegionFromEndpoint:
    """Test cases for region_from_endpoint."""

    @pytest.mark.parametrize(
        "hostname,region",
        [
            ("s3.eu-west-1.amazonaws.com", "eu-west-1"),
            ("s3-us-west-2.amazonaws.com", "us-west-2"),
            ("s3.dualstack.ap-south-1.amazonaws.com", "ap-south-1"),
            ("s3-fips.us-east-2.amazonaws.com", "us-east-2"),
            ("s3-fips.dualstack.us-east-1.amazonaws.com", "us-east-1"),
            ("s3-fips-us-gov-west-1.amazonaws.com", "us-gov-west-1"),
            ("mybucket.s3.eu-central-1.amazonaws.com", "eu-central-1"),
            ("s3.cn-north-1.amazonaws.com.cn", "cn-north-1"),
            ("s3.dualstack.cn-northwest-1.amazonaws.com.cn", "cn-northwest-1"),
            (
                "bucket.vpce-1a2b3c4d-5e6f.s3.us-east-1.vpce.amazonaws.com",
                "us-east-1",
            ),
        ],
    )
    def test_aws_hostnames(self, hostname, region):
        assert region_from_endpoint(hostname) == region

    @pytest.mark.parametrize(
        "hostname",
        ["s3.amazonaws.com", "s3-external-1.amazonaws.com", "minio.internal", "localhost"],
    )
    def test_hostnames_without_region(self, hostname):
        assert region_from_endpoint(hostname) is None


class TestAddressingStyle:
    @pytest.mark.parametrize(
        "hostname,style",
        [
            ("s3.eu-west-1.amazonaws.com", "virtual"),
            ("s3.amazonaws.com", "virtual"),
            ("s3.cn-north-1.amazonaws.com.cn", "virtual"),
            ("minio.internal", "path"),
            ("localhost", "path"),
            ("amazonaws.com.example.org", "path"),
        ],
    )
    def test_style_by_host(self, hostname, style):
        assert addressing_style_for(hostname) == style


class TestS3ClientManager:
    """Test cases for S3ClientManager."""

    def test_session_uses_resolved_credentials(self):
        manager = S3ClientManager("https://s3.eu-west-1.amazonaws.com", CREDENTIALS)

        frozen = manager.session.get_credentials().get_frozen_credentials()
        assert frozen.access_key == "AKIDEXAMPLE"
        assert frozen.secret_key == "SECRET"
        assert manager.region == "eu-west-1"

    def test_explicit_region_wins(self):
        manager = S3ClientManager(
            "https://s3.eu-west-1.amazonaws.com", CREDENTIALS, region="us-east-1"
        )

        assert manager.region == "us-east-1"

    def test_client_targets_endpoint(self):
        manager = S3ClientManager("http://minio.internal:9000", CREDENTIALS, region="us-east-1")

        client = manager.get_s3_client()

        assert client.meta.endpoint_url == "http://minio.internal:9000"
        assert client.meta.region_name == "us-east-1"
        assert client.meta.config.s3["addressing_style"] == "path"

    def test_aws_buckets_are_virtual_hosted(self):
        manager = S3ClientManager("https://s3.eu-west-1.amazonaws.com", CREDENTIALS)

        url = manager.get_s3_client().generate_presigned_url(
            "get_object", Params={"Bucket": "backups", "Key": "k.sql.gz"}
        )

        assert url.startswith("https://backups.s3.eu-west-1.amazonaws.com/k.sql.gz?")

    def test_other_endpoints_use_path_style(self):
        manager = S3ClientManager("http://minio.internal:9000", CREDENTIALS, region="us-east-1")

        url = manager.get_s3_client().generate_presigned_url(
            "get_object", Params={"Bucket": "backups", "Key": "k.sql.gz"}
        )

        assert url.startswith("http://minio.internal:9000/backups/k.sql.gz?")

    def test_bad_endpoint_raises(self):
        with pytest.raises(ConfigurationError):
            S3ClientManager("gopher://nowhere", CREDENTIALS)

    def test_from_settings_walks_credential_chain(self, sample_settings):
        with patch(
            "src.pgbackup.aws_clients.manager.resolve_credentials", return_value=CREDENTIALS
        ) as mock_resolve, patch(
            "src.pgbackup.aws_clients.manager.build_credential_chain", return_value=["chain"]
        ) as mock_chain:
            manager = S3ClientManager.from_settings(sample_settings, environ={})

        mock_chain.assert_called_once_with(
            access_key="AKIDEXAMPLE", secret_key="wJalrXUtnFEMI/K7MDENG", environ={}
        )
        mock_resolve.assert_called_once_with(["chain"])
        assert manager.credentials is CREDENTIALS
        assert manager.endpoint_url == "https://s3.eu-west-1.amazonaws.com"
