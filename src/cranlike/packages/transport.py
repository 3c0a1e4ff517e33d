"""HTTP access to a CRAN-like repository.

This module builds authenticated HEAD and streaming GET requests relative to
a repository base URL and sorts failures into two kinds:

- RepositoryHTTPError: the server answered with a non-success status. This is
  a recoverable "not present" signal (e.g., PACKAGES.gz missing on
  Artifactory).
- RepositoryConnectionError: DNS, connection, TLS or timeout failures. These
  are fatal and must not trigger any layout fallback.
"""

import base64
import logging
from typing import Callable, Dict, Optional

import requests

DEFAULT_CRAN_URL = "https://cran.r-project.org"
DEFAULT_HTTP_AGENT = "CranLikeRepository-agent"
DEFAULT_TIMEOUT = 30.0


class RepositoryError(Exception):
    """Base exception for repository access errors."""

    pass


class RepositoryHTTPError(RepositoryError):
    """Raised when the repository answers with a non-success status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Received {status_code} {reason}".rstrip() + f" from {url}")


class RepositoryConnectionError(RepositoryError):
    """Raised when the repository cannot be reached at all."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"Could not connect to {url}: {cause}")


class RepositoryTransport:
    """Issues requests against a repository base URL.

    Credentials, agent and timeout are fixed at construction. A
    ``requests.Session`` is not thread-safe, so concurrent workers each take
    their own transport from ``fork()``.
    """

    def __init__(
        self,
        base_url: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        agent: str = DEFAULT_HTTP_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ):
        """Initialize transport.

        Args:
            base_url: Repository root (e.g., "https://cran.r-project.org")
            user: Optional user name for Basic authentication
            password: Optional password for Basic authentication
            agent: Value of the User-Agent header
            timeout: Connect and read timeout in seconds
            session: Optional requests session (defaults to a new one)
            session_factory: Optional callable creating sessions for this
                transport and its forks (defaults to requests.Session)
        """
        self._base_url = base_url.rstrip("/")
        self._user = user
        self._password = password
        self._agent = agent
        self._timeout = timeout
        self._headers = self._build_headers()
        self._session_factory = session_factory
        self._owns_session = session is None
        self.session = session if session is not None else (session_factory or requests.Session)()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def agent(self) -> str:
        return self._agent

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def headers(self) -> Dict[str, str]:
        """Headers sent with every request."""
        return dict(self._headers)

    def fork(self) -> "RepositoryTransport":
        """Create a transport with the same settings and its own session.

        A session passed in without a factory cannot be copied and is
        shared with the fork.
        """
        shared = self.session if self._session_factory is None and not self._owns_session else None
        return RepositoryTransport(
            self._base_url,
            user=self._user,
            password=self._password,
            agent=self._agent,
            timeout=self._timeout,
            session=shared,
            session_factory=self._session_factory,
        )

    def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RepositoryTransport":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self._agent}
        if self._user and self._password:
            token = base64.b64encode(f"{self._user}:{self._password}".encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {token}"
        return headers

    def url_for(self, path: str) -> str:
        """Build the absolute URL of a repository path.

        Absolute http(s) URLs are returned unchanged.
        """
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def head(self, path: str) -> requests.Response:
        """Send a HEAD request for a repository path.

        Raises:
            RepositoryHTTPError: If the status is not a success
            RepositoryConnectionError: If the repository cannot be reached
        """
        response = self.request("HEAD", self.url_for(path))
        response.close()
        return response

    def stream_get(self, path: str) -> requests.Response:
        """Start a streaming GET for a repository path.

        The caller owns the returned response and must close it (it can be
        used as a context manager).

        Raises:
            RepositoryHTTPError: If the status is not a success
            RepositoryConnectionError: If the repository cannot be reached
        """
        return self.request("GET", self.url_for(path), stream=True)

    def request(self, method: str, url: str, stream: bool = False) -> requests.Response:
        """Send a request to an absolute URL with the transport's headers.

        Args:
            method: HTTP method ("HEAD" or "GET")
            url: Absolute URL
            stream: Whether to defer reading the body

        Returns:
            Response with a success status

        Raises:
            RepositoryHTTPError: If the status is not a success
            RepositoryConnectionError: If the repository cannot be reached
        """
        logging.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers,
                timeout=self._timeout,
                stream=stream,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise RepositoryConnectionError(url, e) from e

        if not response.ok:
            response.close()
            raise RepositoryHTTPError(url, response.status_code, response.reason or "")

        return response
