"""Common test fixtures shared across docker-pg-backup tests."""

import sys
from unittest.mock import MagicMock

import pytest

from src.pgbackup.aws_clients.credentials import ResolvedCredentials
from src.pgbackup.utils.config import BackupSettings

DUMP_LINE = b"INSERT INTO items (id, name) VALUES (1, 'widget');\n"
DUMP_REPEAT = 5000
SAMPLE_DUMP = DUMP_LINE * DUMP_REPEAT


def _python_command(script: str) -> list:
    return [sys.executable, "-c", script]


@pytest.fixture
def sample_settings():
    """Fully populated settings for a backup run."""
    return BackupSettings(
        container="postgres",
        db_name="app",
        db_user="postgres",
        bucket="backups",
        endpoint="https://s3.eu-west-1.amazonaws.com",
        prefix="postgres-backups",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="wJalrXUtnFEMI/K7MDENG",
    )


@pytest.fixture
def dump_command():
    """A command that writes SAMPLE_DUMP to stdout and exits 0."""
    script = (
        "import sys\n"
        f"data = {DUMP_LINE!r} * {DUMP_REPEAT}\n"
        "sys.stdout.buffer.write(data)\n"
        "sys.stdout.flush()\n"
    )
    return _python_command(script)


@pytest.fixture
def failing_dump_command():
    """A command that writes a partial dump, complains on stderr and exits 2."""
    script = (
        "import sys\n"
        "sys.stdout.buffer.write(b'-- partial dump\\n')\n"
        "sys.stderr.write('pg_dump: error: connection to server failed\\n')\n"
        "sys.exit(2)\n"
    )
    return _python_command(script)


@pytest.fixture
def mock_client_manager():
    """An S3ClientManager stand-in whose client records uploads."""
    manager = MagicMock()
    manager.credentials = ResolvedCredentials(
        access_key="AKIDEXAMPLE", secret_key="secret", token=None, method="explicit"
    )
    s3_client = MagicMock()
    manager.get_s3_client.return_value = s3_client
    return manager


@pytest.fixture
def working_dir(tmp_path):
    """A directory path handed out in place of tempfile.mkdtemp()."""
    path = tmp_path / "run-pg-backup"
    path.mkdir()
    return path
