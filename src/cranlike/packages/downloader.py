"""Source archive downloader with progress tracking and checksum verification.

This module downloads resolved source archives through the repository
transport, so the same credentials and agent apply, and verifies them
against the MD5 checksum published in the repository index.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests
from tqdm import tqdm

from .model import RPackage
from .transport import RepositoryError, RepositoryTransport


class DownloadError(Exception):
    """Raised when download fails."""

    pass


class ChecksumError(Exception):
    """Raised when checksum verification fails."""

    pass


class PackageDownloader:
    """Downloads source archives with progress tracking."""

    def __init__(self, transport: RepositoryTransport, chunk_size: int = 8192):
        """Initialize downloader.

        Args:
            transport: Repository transport used for requests
            chunk_size: Size of chunks for downloading and hashing
        """
        self.transport = transport
        self.chunk_size = chunk_size

    def download(
        self,
        url: str,
        dest_path: Path,
        checksum: Optional[str] = None,
        show_progress: bool = True,
    ) -> Path:
        """Download a file from a URL.

        Args:
            url: Absolute URL or path relative to the repository
            dest_path: Destination file path
            checksum: Optional MD5 checksum for verification
            show_progress: Whether to show progress bar

        Returns:
            Path to the downloaded file

        Raises:
            DownloadError: If download fails
            ChecksumError: If checksum verification fails
        """
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        # Use temporary file during download
        temp_file = dest_path.with_suffix(dest_path.suffix + ".tmp")

        try:
            with self.transport.stream_get(url) as response:
                total_size = int(response.headers.get("content-length", 0))

                progress_bar = None
                if show_progress and total_size > 0:
                    filename = Path(urlparse(url).path).name
                    progress_bar = tqdm(
                        total=total_size,
                        unit="B",
                        unit_scale=True,
                        unit_divisor=1024,
                        desc=f"Downloading {filename}",
                    )

                md5 = hashlib.md5() if checksum else None

                with open(temp_file, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
                            if progress_bar:
                                progress_bar.update(len(chunk))
                            if md5:
                                md5.update(chunk)

                if progress_bar:
                    progress_bar.close()

            if checksum and md5:
                actual_checksum = md5.hexdigest()
                if actual_checksum.lower() != checksum.lower():
                    temp_file.unlink()
                    raise ChecksumError(
                        f"Checksum mismatch for {url}\n"
                        + f"Expected: {checksum}\n"
                        + f"Got: {actual_checksum}"
                    )

            if dest_path.exists():
                dest_path.unlink()
            temp_file.rename(dest_path)

            logging.info(f"Downloaded {url} to {dest_path}")
            return dest_path

        except (RepositoryError, requests.RequestException) as e:
            if temp_file.exists():
                temp_file.unlink()
            raise DownloadError(f"Failed to download {url}: {e}") from e

        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def download_package(
        self,
        package: RPackage,
        dest_dir: Path,
        checksum: Optional[str] = None,
        show_progress: bool = True,
    ) -> Path:
        """Download the source archive of a resolved package.

        Args:
            package: Resolved package
            dest_dir: Directory to store the archive in
            checksum: Optional MD5 checksum (e.g., from the index record)
            show_progress: Whether to show progress bar

        Returns:
            Path to the downloaded archive
        """
        filename = Path(urlparse(package.source_download_url).path).name
        return self.download(package.source_download_url, Path(dest_dir) / filename, checksum, show_progress)

    def verify_checksum(self, file_path: Path, expected: str) -> bool:
        """Verify MD5 checksum of a file.

        Args:
            file_path: Path to file to verify
            expected: Expected MD5 checksum (hex string)

        Returns:
            True if checksum matches

        Raises:
            ChecksumError: If checksum doesn't match
        """
        md5 = hashlib.md5()

        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(self.chunk_size), b""):
                md5.update(chunk)

        actual = md5.hexdigest()
        if actual.lower() != expected.lower():
            raise ChecksumError(
                f"Checksum mismatch for {file_path}\n"
                + f"Expected: {expected}\n"
                + f"Got: {actual}"
            )

        return True
