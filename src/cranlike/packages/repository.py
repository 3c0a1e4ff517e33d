"""Client for CRAN-like R package repositories.

This module looks up packages in a repository index and resolves a package
version to its source archive. Repository implementations store archives
under different paths, so every known layout is tried at once:

    {repo}/src/contrib/Archive/{pkg}/{pkg}_{version}.tar.gz   (CRAN archive)
    {repo}/src/contrib/Archive/{pkg}_{version}.tar.gz         (flat archive, e.g. Artifactory)
    {repo}/src/contrib/{pkg}_{version}.tar.gz                 (current release, e.g. Nexus)

The first candidate whose archive contains a parsable ``{pkg}/DESCRIPTION``
wins and the remaining downloads are cancelled.
"""

import logging
import threading
import zlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Tuple

import requests

from .archive_utils import CorruptArchiveError, EntryNotFoundError, extract_tar_entry
from .control_file import ControlFileSplitter
from .description import PackageDescription, ParseError, parse_description
from .model import CandidateFailure, FailureReason, RPackage
from .result import Result, is_err, is_ok
from .streams import ChunkStreamReader, StreamCancelled, decode_chunks, gunzip_chunks
from .transport import (
    DEFAULT_CRAN_URL,
    DEFAULT_HTTP_AGENT,
    DEFAULT_TIMEOUT,
    RepositoryConnectionError,
    RepositoryError,
    RepositoryHTTPError,
    RepositoryTransport,
)

if TYPE_CHECKING:
    from cranlike.config import RepositoryConfig

INDEX_PATH = "src/contrib/PACKAGES"
INDEX_GZ_PATH = "src/contrib/PACKAGES.gz"
DEFAULT_CHUNK_SIZE = 64 * 1024


class PackageNotFoundError(RepositoryError):
    """Raised when no candidate URL yields a usable source archive."""

    def __init__(self, failures: List[CandidateFailure]):
        self.failures = failures
        details = "; ".join(str(failure) for failure in failures)
        super().__init__(f"Failed to get package's source archive from: {', '.join(self.urls)} [{details}]")

    @property
    def urls(self) -> List[str]:
        return [failure.url for failure in self.failures]


class _CandidateRejected(Exception):
    """Internal signal that one candidate URL is disqualified."""

    def __init__(self, failure: CandidateFailure):
        self.failure = failure
        super().__init__(str(failure))


class _OpenResponses:
    """Responses of in-flight candidates, closed together when the race ends."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._responses: List[requests.Response] = []
        self._closed = False

    def track(self, response: requests.Response) -> None:
        """Register a response, closing it at once if the race is over.

        Raises:
            StreamCancelled: If close_all() was already called
        """
        with self._lock:
            if not self._closed:
                self._responses.append(response)
                return
        response.close()
        raise StreamCancelled("Race already finished")

    def close_all(self) -> None:
        with self._lock:
            self._closed = True
            responses, self._responses = self._responses, []
        for response in responses:
            response.close()


def archive_candidates(pkg_name: str, pkg_version: str) -> List[str]:
    """Relative source archive paths for every known repository layout.

    Args:
        pkg_name: Package name (case sensitive)
        pkg_version: Package version

    Returns:
        Candidate paths, CRAN archive layout first
    """
    archive_name = f"{pkg_name}_{pkg_version}.tar.gz"
    return [
        f"src/contrib/Archive/{pkg_name}/{archive_name}",
        f"src/contrib/Archive/{archive_name}",
        f"src/contrib/{archive_name}",
    ]


class CranLikeRepository:
    """Client for a CRAN-like repository.

    Usage:
        repo = CranLikeRepository("https://cran.r-project.org")
        versions = repo.get_latest_package_version("geosphere")
        package = repo.resolve_package("geosphere", "1.0.0")
    """

    def __init__(
        self,
        repo_url: str = DEFAULT_CRAN_URL,
        user: Optional[str] = None,
        password: Optional[str] = None,
        agent: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        session: Optional[requests.Session] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ):
        """Initialize repository client.

        Args:
            repo_url: Repository root URL
            user: Optional user name for Basic authentication
            password: Optional password for Basic authentication
            agent: User-Agent value (defaults to DEFAULT_HTTP_AGENT)
            timeout: Request timeout in seconds
            chunk_size: Size of network reads
            session: Optional requests session
            session_factory: Optional callable creating the per-candidate
                sessions used by resolve_package
        """
        self.repo_url = repo_url
        self.agent = agent if agent is not None else DEFAULT_HTTP_AGENT
        self.chunk_size = chunk_size
        self.transport = RepositoryTransport(
            repo_url,
            user=user,
            password=password,
            agent=self.agent,
            timeout=timeout,
            session=session,
            session_factory=session_factory,
        )

    @classmethod
    def from_config(
        cls,
        config: "RepositoryConfig",
        session: Optional[requests.Session] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ) -> "CranLikeRepository":
        """Create a client from a loaded RepositoryConfig."""
        return cls(
            config.repo_url,
            user=config.user,
            password=config.password,
            agent=config.agent,
            timeout=config.timeout,
            chunk_size=config.chunk_size,
            session=session,
            session_factory=session_factory,
        )

    def _choose_index(self) -> Tuple[str, bool]:
        """Pick the compressed index if the repository serves it.

        Returns:
            Tuple of (index path, whether it is gzip compressed)

        Raises:
            RepositoryConnectionError: If the repository cannot be reached
        """
        try:
            self.transport.head(INDEX_GZ_PATH)
        except RepositoryHTTPError as e:
            # Artifactory and some mirrors only serve the plain index
            logging.info(f"{INDEX_GZ_PATH} unavailable ({e.status_code}), falling back to {INDEX_PATH}")
            return INDEX_PATH, False
        return INDEX_GZ_PATH, True

    def iter_package_index(self) -> Iterator[Result[PackageDescription, ParseError]]:
        """Stream every record of the repository index.

        Yields:
            Parse result of each index record, in index order

        Raises:
            RepositoryHTTPError: If the index cannot be downloaded
            RepositoryConnectionError: If the repository cannot be reached
            RepositoryError: If the compressed index is corrupt
        """
        path, compressed = self._choose_index()
        url = self.transport.url_for(path)
        logging.debug(f"Reading package index {url}")

        with self.transport.stream_get(path) as response:
            chunks = response.iter_content(chunk_size=self.chunk_size)
            if compressed:
                chunks = gunzip_chunks(chunks)
            try:
                yield from ControlFileSplitter().split(decode_chunks(chunks))
            except requests.RequestException as e:
                raise RepositoryConnectionError(url, e) from e
            except zlib.error as e:
                raise RepositoryError(f"Corrupt package index {url}: {e}") from e

    def get_latest_package_version(self, pkg_name: str) -> List[PackageDescription]:
        """Find the index records of a package.

        Repositories usually list only the latest version of each package,
        so the result normally has one element. When several versions are
        listed, all of them are returned in index order. Malformed records
        are skipped.

        Args:
            pkg_name: Package name (case sensitive)

        Returns:
            Matching package descriptions (empty if the package is unknown)

        Raises:
            RepositoryHTTPError: If the index cannot be downloaded
            RepositoryConnectionError: If the repository cannot be reached
        """
        matches = [
            result.value
            for result in self.iter_package_index()
            if is_ok(result) and result.value.package == pkg_name
        ]
        logging.info(f"Found {len(matches)} index record(s) for {pkg_name}")
        return matches

    def resolve_package(self, pkg_name: str, pkg_version: str) -> RPackage:
        """Resolve a package version to its source archive.

        All candidate layouts are fetched concurrently. The first archive
        containing a valid ``{pkg_name}/DESCRIPTION`` is returned and the
        other downloads are cancelled.

        Args:
            pkg_name: Package name (case sensitive)
            pkg_version: Package version

        Returns:
            RPackage with the archive's description and URL

        Raises:
            PackageNotFoundError: If no candidate yields a valid archive
        """
        urls = [self.transport.url_for(path) for path in archive_candidates(pkg_name, pkg_version)]
        cancel_event = threading.Event()
        open_responses = _OpenResponses()
        failures: Dict[str, CandidateFailure] = {}

        executor = ThreadPoolExecutor(max_workers=len(urls), thread_name_prefix="cranlike-candidate")
        try:
            futures = {
                executor.submit(self._fetch_candidate, pkg_name, url, cancel_event, open_responses): url
                for url in urls
            }
            for future in as_completed(futures):
                url = futures[future]
                try:
                    rpackage = future.result()
                except _CandidateRejected as e:
                    failures[url] = e.failure
                    logging.debug(f"Rejected candidate {e.failure}")
                    continue

                logging.info(f"Resolved {pkg_name} {pkg_version} from {url}")
                pending = len(urls) - len(failures) - 1
                if pending:
                    logging.debug(f"Cancelling {pending} remaining candidate download(s)")
                return rpackage
        finally:
            cancel_event.set()
            # Unblocks losers stalled inside a network read
            open_responses.close_all()
            executor.shutdown(wait=False, cancel_futures=True)

        raise PackageNotFoundError([failures[url] for url in urls])

    def _fetch_candidate(
        self,
        pkg_name: str,
        url: str,
        cancel_event: threading.Event,
        open_responses: _OpenResponses,
    ) -> RPackage:
        """Fetch one candidate archive and read its DESCRIPTION.

        Runs on a worker thread with its own transport session. The streaming
        response is registered in ``open_responses`` so the caller can close
        it once another candidate wins.

        Raises:
            _CandidateRejected: If the candidate is disqualified
            StreamCancelled: If another candidate already won
        """
        with self.transport.fork() as transport:
            return self._read_candidate(transport, pkg_name, url, cancel_event, open_responses)

    def _read_candidate(
        self,
        transport: RepositoryTransport,
        pkg_name: str,
        url: str,
        cancel_event: threading.Event,
        open_responses: _OpenResponses,
    ) -> RPackage:
        if cancel_event.is_set():
            raise StreamCancelled(f"Skipped {url}")

        try:
            transport.head(url)
        except RepositoryHTTPError as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.UNAVAILABLE, str(e.status_code))) from e
        except RepositoryConnectionError as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.UNREACHABLE, str(e.cause))) from e

        if cancel_event.is_set():
            raise StreamCancelled(f"Skipped {url}")

        entry_path = f"{pkg_name}/DESCRIPTION"
        try:
            with transport.stream_get(url) as response:
                open_responses.track(response)
                reader = ChunkStreamReader(response.iter_content(chunk_size=self.chunk_size), cancel_event)
                content = extract_tar_entry(reader, entry_path)
        except RepositoryHTTPError as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.UNAVAILABLE, str(e.status_code))) from e
        except RepositoryConnectionError as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.UNREACHABLE, str(e.cause))) from e
        except requests.RequestException as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.UNREACHABLE, str(e))) from e
        except EntryNotFoundError as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.ENTRY_MISSING, entry_path)) from e
        except CorruptArchiveError as e:
            raise _CandidateRejected(CandidateFailure(url, FailureReason.CORRUPT, str(e))) from e

        result = parse_description(content.decode("utf-8", errors="replace"))
        if is_err(result):
            missing = ", ".join(result.value.missing)
            raise _CandidateRejected(CandidateFailure(url, FailureReason.UNPARSABLE, f"missing {missing}"))

        return RPackage(description=result.value, source_download_url=url)
