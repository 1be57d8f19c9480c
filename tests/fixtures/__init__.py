"""Test fixtures package for docker-pg-backup.

Usage:
    from tests.fixtures.common import sample_settings, mock_client_manager
"""

from .common import (
    dump_command,
    failing_dump_command,
    mock_client_manager,
    sample_settings,
    working_dir,
)

__all__ = [
    "dump_command",
    "failing_dump_command",
    "mock_client_manager",
    "sample_settings",
    "working_dir",
]
