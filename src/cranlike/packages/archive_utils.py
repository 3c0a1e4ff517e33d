"""Archive Extraction Utilities.

This module reads single entries out of compressed tar archives while they
are being downloaded. R source packages are ``.tar.gz`` archives with a
top-level directory named after the package:

    allhomes/
    ├── DESCRIPTION
    ├── NAMESPACE
    ├── R/
    └── man/

Only the entry of interest is read; the rest of the archive is never
materialized.
"""

import logging
import tarfile
import zlib
from typing import BinaryIO


class ArchiveExtractionError(Exception):
    """Raised when an entry cannot be read from an archive."""

    pass


class EntryNotFoundError(ArchiveExtractionError):
    """Raised when the archive ends without the requested entry."""

    pass


class CorruptArchiveError(ArchiveExtractionError):
    """Raised when the stream is not a readable compressed tar archive."""

    pass


def extract_tar_entry(fileobj: BinaryIO, entry_path: str, compression: str = "gz") -> bytes:
    """Extract one file from a tar stream into memory.

    Members are visited in stream order and compared to ``entry_path`` by
    exact string equality. Scanning stops at the first regular file that
    matches, so nothing past that member is read from ``fileobj``.

    Args:
        fileobj: Readable stream of the archive (only sequential reads are used)
        entry_path: Path of the entry inside the archive (e.g., "allhomes/DESCRIPTION")
        compression: Stream compression, "gz" or "" for a plain tar stream

    Returns:
        Content of the entry

    Raises:
        EntryNotFoundError: If no regular file named ``entry_path`` exists
        CorruptArchiveError: If the stream cannot be decompressed or parsed
    """
    mode = f"r|{compression}" if compression else "r|"
    try:
        with tarfile.open(fileobj=fileobj, mode=mode) as tar:
            for member in tar:
                if member.name != entry_path or not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                if extracted is None:
                    break
                data = extracted.read()
                logging.debug(f"Extracted {entry_path} ({len(data)} bytes)")
                return data
    except (tarfile.ReadError, tarfile.CompressionError, zlib.error, EOFError) as e:
        raise CorruptArchiveError(f"Could not read tar archive: {e}") from e

    raise EntryNotFoundError(f"Could not find file '{entry_path}' in tarball")
