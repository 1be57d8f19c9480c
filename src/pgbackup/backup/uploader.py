"""Upload of compressed dumps to object storage."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import UploadError

logger = logging.getLogger(__name__)

OBJECT_SUFFIX = ".sql.gz"


def format_backup_timestamp(moment: datetime) -> str:
    """
    Format a timestamp for use in an object key.

    The result is ``YYYY-MM-DDTHH_MM_SS`` in UTC, followed by the fractional
    seconds with trailing zeros removed. Whole seconds carry no fraction.

    Args:
        moment: Aware or naive datetime; naive values are taken as UTC

    Returns:
        Formatted timestamp, e.g. ``2024-03-01T02_30_00.25``
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)

    text = moment.strftime("%Y-%m-%dT%H_%M_%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    return text


def build_object_key(prefix: str, db_name: str, moment: Optional[datetime] = None) -> str:
    """
    Build the object key for a backup.

    Args:
        prefix: Key prefix, may be empty or carry stray slashes
        db_name: Database name
        moment: Backup time, defaults to now (UTC)

    Returns:
        Key of the form ``prefix/db_name/<timestamp>.sql.gz``
    """
    moment = moment or datetime.now(timezone.utc)
    parts = [segment for part in (prefix, db_name) for segment in (part or "").split("/") if segment]
    parts.append(format_backup_timestamp(moment) + OBJECT_SUFFIX)
    return "/".join(parts)


class S3Uploader:
    """Streams local backup files to a bucket."""

    def __init__(self, s3_client: Any, bucket: str):
        """
        Initialize the uploader.

        Args:
            s3_client: boto3 S3 client
            bucket: Destination bucket name
        """
        self.s3_client = s3_client
        self.bucket = bucket

    def upload(self, path: Union[str, Path], key: str) -> None:
        """
        Upload a file to the bucket.

        The file is streamed through boto3's managed transfer, which switches
        to multipart upload for large dumps.

        Args:
            path: Local file to upload
            key: Destination object key

        Raises:
            UploadError: If the file cannot be read or the service rejects it
        """
        logger.info(f"Uploading backup to s3://{self.bucket}/{key}")
        try:
            with open(path, "rb") as f:
                self.s3_client.upload_fileobj(f, self.bucket, key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise UploadError(self.bucket, key, f"{error_code}: {e}") from e
        except (Boto3Error, BotoCoreError, OSError) as e:
            raise UploadError(self.bucket, key, str(e)) from e

        logger.info(f"Uploaded backup to s3://{self.bucket}/{key}")
