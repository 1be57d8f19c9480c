"""Database dump producer.

Runs ``pg_dump`` inside a running container through ``docker exec`` and
exposes the command's standard output as a byte stream.
"""

import logging
import subprocess
from typing import BinaryIO, List, Optional, Sequence

from .exceptions import DumpError

logger = logging.getLogger(__name__)

DOCKER_BINARY = "docker"
DUMP_BINARY = "pg_dump"


def build_dump_command(container: str, db_name: str, db_user: str) -> List[str]:
    """
    Build the argument vector for dumping a database inside a container.

    Args:
        container: Container name or ID
        db_name: Database to dump
        db_user: Database role used for the dump

    Returns:
        Command argument list, suitable for ``subprocess.Popen``
    """
    return [DOCKER_BINARY, "exec", container, DUMP_BINARY, "-U", db_user, db_name]


class DumpProcess:
    """
    Context manager around a running dump command.

    ``stdout`` is the dump stream. The process's stderr is inherited so that
    diagnostics from ``pg_dump`` reach the operator unchanged. Leaving the
    block waits for the command and raises DumpError on a non-zero exit.
    If the block itself raises, the command is killed first.
    """

    def __init__(self, command: Sequence[str]):
        self.command = list(command)
        self._process: Optional[subprocess.Popen] = None

    @property
    def stdout(self) -> BinaryIO:
        if self._process is None or self._process.stdout is None:
            raise DumpError("Dump process is not running")
        return self._process.stdout

    def __enter__(self) -> "DumpProcess":
        logger.debug(f"Starting dump command: {' '.join(self.command)}")
        try:
            self._process = subprocess.Popen(self.command, stdout=subprocess.PIPE)
        except FileNotFoundError as e:
            raise DumpError(f"Dump command not found: {self.command[0]}") from e
        except OSError as e:
            raise DumpError(f"Failed to start dump command: {e}") from e
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        process = self._process
        if process is None:
            return

        if exc_type is not None:
            logger.debug("Stream consumer failed, killing dump command")
            process.kill()

        if process.stdout is not None:
            process.stdout.close()
        returncode = process.wait()

        if exc_type is None and returncode != 0:
            raise DumpError(
                f"Dump command exited with status {returncode}", returncode=returncode
            )
        logger.debug(f"Dump command finished with status {returncode}")
