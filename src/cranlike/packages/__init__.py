"""Repository access for cranlike.

This module handles parsing package metadata, reading repository indexes,
resolving source archives and downloading them.
"""

from .archive_utils import ArchiveExtractionError, CorruptArchiveError, EntryNotFoundError, extract_tar_entry
from .control_file import ControlFileSplitter
from .description import PackageDescription, ParseError, parse_description
from .downloader import ChecksumError, DownloadError, PackageDownloader
from .model import CandidateFailure, FailureReason, RPackage
from .repository import CranLikeRepository, PackageNotFoundError, archive_candidates
from .result import Err, Ok, Result, is_err, is_ok
from .streams import ChunkStreamReader, StreamCancelled, decode_chunks, gunzip_chunks
from .transport import (
    DEFAULT_CRAN_URL,
    DEFAULT_HTTP_AGENT,
    RepositoryConnectionError,
    RepositoryError,
    RepositoryHTTPError,
    RepositoryTransport,
)

__all__ = [
    "CranLikeRepository",
    "PackageNotFoundError",
    "archive_candidates",
    "RepositoryTransport",
    "RepositoryError",
    "RepositoryHTTPError",
    "RepositoryConnectionError",
    "DEFAULT_CRAN_URL",
    "DEFAULT_HTTP_AGENT",
    "PackageDescription",
    "ParseError",
    "parse_description",
    "ControlFileSplitter",
    "RPackage",
    "CandidateFailure",
    "FailureReason",
    "Ok",
    "Err",
    "Result",
    "is_ok",
    "is_err",
    "extract_tar_entry",
    "ArchiveExtractionError",
    "EntryNotFoundError",
    "CorruptArchiveError",
    "ChunkStreamReader",
    "StreamCancelled",
    "decode_chunks",
    "gunzip_chunks",
    "PackageDownloader",
    "DownloadError",
    "ChecksumError",
]
