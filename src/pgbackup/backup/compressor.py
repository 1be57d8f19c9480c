"""Streaming gzip compressor for dump output."""

import gzip
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class CompressionStats:
    """Byte counts for one compression run."""

    bytes_read: int
    bytes_written: int

    @property
    def ratio(self) -> float:
        """Compressed size relative to the input size (0.0 for empty input)."""
        if self.bytes_read == 0:
            return 0.0
        return self.bytes_written / self.bytes_read


def compress_stream(
    source: BinaryIO,
    destination: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> CompressionStats:
    """
    Copy a byte stream into a gzip file chunk by chunk.

    At most ``chunk_size`` bytes of the source are held in memory at once.

    Args:
        source: Readable binary stream, e.g. a process's stdout
        destination: Path of the ``.gz`` file to create
        chunk_size: Read size in bytes

    Returns:
        CompressionStats with the uncompressed and compressed sizes
    """
    destination = Path(destination)
    bytes_read = 0

    with open(destination, "wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw) as compressed:
            while True:
                chunk = source.read(chunk_size)
                if not chunk:
                    break
                compressed.write(chunk)
                bytes_read += len(chunk)

    stats = CompressionStats(bytes_read=bytes_read, bytes_written=destination.stat().st_size)
    logger.debug(
        f"Compressed {stats.bytes_read} bytes to {stats.bytes_written} bytes "
        f"({stats.ratio:.1%}) at {destination}"
    )
    return stats
