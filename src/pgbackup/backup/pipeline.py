"""
Backup pipeline: dump, compress, upload.

One run performs exactly one backup attempt. The dump stream is compressed
into a file in a private temporary directory, the file is uploaded, and the
directory is removed whether or not the run succeeded.
"""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..aws_clients.manager import S3ClientManager
from ..utils.config import BackupSettings
from .compressor import CompressionStats, compress_stream
from .dump import DumpProcess, build_dump_command
from .exceptions import WorkspaceError
from .uploader import S3Uploader, build_object_key

logger = logging.getLogger(__name__)

TEMP_DIR_SUFFIX = "-pg-backup"
DUMP_FILENAME = "db.sql.gz"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BackupResult:
    """Outcome of a successful backup run."""

    bucket: str
    key: str
    database: str
    bytes_dumped: int
    bytes_uploaded: int
    duration_seconds: float
    credentials_method: Optional[str] = None

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class BackupPipeline:
    """Runs a single dump-compress-upload backup."""

    def __init__(
        self,
        settings: BackupSettings,
        client_manager: Optional[S3ClientManager] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Resolved backup settings
            client_manager: Pre-built S3 client manager; resolved from the
                settings and the credential chain when omitted
            clock: Source of the backup timestamp
        """
        self.settings = settings
        self.client_manager = client_manager
        self.clock = clock

    def run(self) -> BackupResult:
        """
        Perform the backup.

        Returns:
            BackupResult describing the uploaded object

        Raises:
            BackupError: Any configuration, credential, dump or upload failure
        """
        self.settings.validate()
        started = time.monotonic()

        # Endpoint and credential errors surface before the dump starts.
        manager = self.client_manager or S3ClientManager.from_settings(self.settings)
        uploader = S3Uploader(manager.get_s3_client(), self.settings.bucket)

        try:
            tmp_dir = tempfile.mkdtemp(suffix=TEMP_DIR_SUFFIX)
        except OSError as e:
            raise WorkspaceError(f"Failed to create working directory: {e}") from e
        logger.debug(f"Created working directory {tmp_dir}")
        try:
            dump_path = Path(tmp_dir) / DUMP_FILENAME
            stats = self.dump_to_file(dump_path)

            key = build_object_key(self.settings.prefix, self.settings.db_name, self.clock())
            uploader.upload(dump_path, key)
        finally:
            self._remove_working_directory(tmp_dir)

        result = BackupResult(
            bucket=self.settings.bucket,
            key=key,
            database=self.settings.db_name,
            bytes_dumped=stats.bytes_read,
            bytes_uploaded=stats.bytes_written,
            duration_seconds=time.monotonic() - started,
            credentials_method=manager.credentials.method,
        )
        logger.info(
            f"Backup of '{result.database}' stored at {result.uri} "
            f"({result.bytes_uploaded} bytes in {result.duration_seconds:.1f}s)"
        )
        return result

    def dump_to_file(self, path: Path) -> CompressionStats:
        """
        Stream the database dump through gzip into ``path``.

        Args:
            path: Destination of the compressed dump

        Returns:
            CompressionStats for the written file

        Raises:
            DumpError: If the dump command cannot start or exits non-zero
            WorkspaceError: If the compressed file cannot be written
        """
        command = build_dump_command(
            self.settings.container, self.settings.db_name, self.settings.db_user
        )
        logger.info(
            f"Dumping database '{self.settings.db_name}' from container '{self.settings.container}'"
        )
        try:
            with DumpProcess(command) as dump:
                return compress_stream(dump.stdout, path)
        except OSError as e:
            raise WorkspaceError(f"Failed to write compressed dump {path}: {e}") from e

    @staticmethod
    def _remove_working_directory(tmp_dir: str) -> None:
        try:
            shutil.rmtree(tmp_dir)
            logger.debug(f"Removed working directory {tmp_dir}")
        except OSError as e:
            logger.error(f"Failed to remove working directory {tmp_dir}: {e}")
