"""Tests for the backup pipeline."""

import gzip
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from src.pgbackup.backup.exceptions import (
    BackupError,
    ConfigurationError,
    DumpError,
    UploadError,
    WorkspaceError,
)
from src.pgbackup.backup.pipeline import BackupPipeline
from tests.fixtures.common import (  # noqa: F401
    SAMPLE_DUMP,
    dump_command,
    failing_dump_command,
    mock_client_manager,
    sample_settings,
    working_dir,
)

FIXED_TIME = datetime(2024, 3, 1, 2, 30, 5, tzinfo=timezone.utc)


@pytest.fixture
def pipeline(sample_settings, mock_client_manager):
    return BackupPipeline(sample_settings, client_manager=mock_client_manager, clock=lambda: FIXED_TIME)


class TestBackupPipeline:
    """Test cases for BackupPipeline.run."""

    def test_successful_run_uploads_gzipped_dump(
        self, pipeline, mock_client_manager, dump_command, working_dir
    ):
        s3_client = mock_client_manager.get_s3_client.return_value
        received = {}

        def capture(fileobj, bucket, key):
            received["data"] = gzip.decompress(fileobj.read())
            received["bucket"] = bucket
            received["key"] = key

        s3_client.upload_fileobj.side_effect = capture

        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ):
            result = pipeline.run()

        assert received["data"] == SAMPLE_DUMP
        assert received["bucket"] == "backups"
        assert received["key"] == "postgres-backups/app/2024-03-01T02_30_05.sql.gz"
        assert result.key == received["key"]
        assert result.uri == "s3://backups/postgres-backups/app/2024-03-01T02_30_05.sql.gz"
        assert result.bytes_dumped == len(SAMPLE_DUMP)
        assert 0 < result.bytes_uploaded < result.bytes_dumped
        assert result.credentials_method == "explicit"

    def test_dump_command_built_from_settings(self, pipeline, dump_command, working_dir):
        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ) as mock_build, patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ):
            pipeline.run()

        mock_build.assert_called_once_with("postgres", "app", "postgres")

    def test_working_directory_removed_after_success(self, pipeline, dump_command, working_dir):
        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ):
            pipeline.run()

        assert not working_dir.exists()

    def test_working_directory_removed_after_dump_failure(
        self, pipeline, mock_client_manager, failing_dump_command, working_dir
    ):
        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=failing_dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ):
            with pytest.raises(DumpError) as exc_info:
                pipeline.run()

        assert exc_info.value.returncode == 2
        assert not working_dir.exists()
        mock_client_manager.get_s3_client.return_value.upload_fileobj.assert_not_called()

    def test_working_directory_removed_after_upload_failure(
        self, pipeline, mock_client_manager, dump_command, working_dir
    ):
        s3_client = mock_client_manager.get_s3_client.return_value
        s3_client.upload_fileobj.side_effect = ClientError(
            {"Error": {"Code": "NoSuchBucket", "Message": "missing"}}, "PutObject"
        )

        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ):
            with pytest.raises(UploadError, match="NoSuchBucket"):
                pipeline.run()

        assert not working_dir.exists()

    def test_cleanup_failure_is_logged_not_raised(self, pipeline, dump_command, working_dir):
        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ), patch(
            "src.pgbackup.backup.pipeline.shutil.rmtree", side_effect=PermissionError("busy")
        ), patch(
            "src.pgbackup.backup.pipeline.logger"
        ) as mock_logger:
            result = pipeline.run()

        assert result.key.endswith(".sql.gz")
        mock_logger.error.assert_called_once()
        assert "busy" in mock_logger.error.call_args[0][0]

    def test_missing_settings_fail_before_any_work(self, mock_client_manager):
        from src.pgbackup.utils.config import BackupSettings

        pipeline = BackupPipeline(BackupSettings(container="postgres"), client_manager=mock_client_manager)

        with patch("src.pgbackup.backup.pipeline.tempfile.mkdtemp") as mock_mkdtemp:
            with pytest.raises(ConfigurationError) as exc_info:
                pipeline.run()

        assert "db.name" in exc_info.value.missing
        mock_mkdtemp.assert_not_called()
        mock_client_manager.get_s3_client.assert_not_called()

    def test_client_manager_resolved_from_settings_when_not_given(
        self, sample_settings, mock_client_manager, dump_command, working_dir
    ):
        with patch(
            "src.pgbackup.backup.pipeline.S3ClientManager.from_settings",
            return_value=mock_client_manager,
        ) as mock_from_settings, patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(working_dir)
        ):
            BackupPipeline(sample_settings, clock=lambda: FIXED_TIME).run()

        mock_from_settings.assert_called_once_with(sample_settings)

    def test_unwritable_working_directory_is_a_backup_error(
        self, pipeline, mock_client_manager, dump_command, tmp_path
    ):
        missing_dir = tmp_path / "gone"

        with patch(
            "src.pgbackup.backup.pipeline.build_dump_command", return_value=dump_command
        ), patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp", return_value=str(missing_dir)
        ):
            with pytest.raises(WorkspaceError, match="Failed to write compressed dump"):
                pipeline.run()

        mock_client_manager.get_s3_client.return_value.upload_fileobj.assert_not_called()

    def test_working_directory_creation_failure_is_a_backup_error(
        self, pipeline, mock_client_manager
    ):
        with patch(
            "src.pgbackup.backup.pipeline.tempfile.mkdtemp",
            side_effect=PermissionError("read-only file system"),
        ), patch("src.pgbackup.backup.pipeline.build_dump_command") as mock_build:
            with pytest.raises(BackupError, match="read-only file system"):
                pipeline.run()

        mock_build.assert_not_called()
        mock_client_manager.get_s3_client.return_value.upload_fileobj.assert_not_called()
