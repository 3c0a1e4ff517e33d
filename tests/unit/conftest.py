"""Shared fixtures for unit tests: in-memory HTTP session and tarballs."""

import gzip
import io
import tarfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pytest
import requests

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


class FakeResponse:
    """Minimal stand-in for requests.Response used by the transport."""

    def __init__(
        self,
        body: Union[bytes, Iterable[bytes]] = b"",
        status_code: int = 200,
        reason: str = "OK",
        headers: Optional[Dict[str, str]] = None,
        chunk_size: Optional[int] = None,
    ):
        self._body = body
        self.status_code = status_code
        self.reason = reason
        self.headers = headers or {}
        self.forced_chunk_size = chunk_size
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def iter_content(self, chunk_size: int = 1):
        if not isinstance(self._body, (bytes, bytearray)):
            yield from self._body
            return
        size = self.forced_chunk_size or chunk_size
        for start in range(0, len(self._body), size):
            yield self._body[start : start + size]

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class FakeSession:
    """Routes (method, url) pairs to canned responses or exceptions.

    Unrouted URLs answer 404. Every request is recorded in ``calls``.
    """

    def __init__(self, routes: Optional[Dict[tuple, object]] = None):
        self.routes = dict(routes or {})
        self.calls: List[dict] = []
        self.closed = False
        self._lock = threading.Lock()

    def route(self, method: str, url: str, response) -> None:
        self.routes[(method, url)] = response

    def request(self, method, url, headers=None, timeout=None, stream=False, allow_redirects=True):
        with self._lock:
            self.calls.append(
                {
                    "method": method,
                    "url": url,
                    "headers": dict(headers or {}),
                    "timeout": timeout,
                    "stream": stream,
                    "allow_redirects": allow_redirects,
                }
            )
        target = self.routes.get((method, url))
        if target is None:
            return FakeResponse(status_code=404, reason="Not Found")
        if isinstance(target, Exception):
            raise target
        if callable(target):
            return target()
        return target

    def urls_requested(self, method: str) -> List[str]:
        return [call["url"] for call in self.calls if call["method"] == method]

    def close(self) -> None:
        self.closed = True


def build_tarball(files: Dict[str, bytes]) -> bytes:
    """Build a gzip compressed tar archive from a name -> content mapping."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture
def fake_session():
    """Empty FakeSession; tests add routes as needed."""
    return FakeSession()


@pytest.fixture
def session_factory(fake_session):
    """Factory of FakeSessions sharing the routes of fake_session.

    Every session it creates is appended to ``session_factory.created``.
    """
    created: List[FakeSession] = []

    def factory() -> FakeSession:
        session = FakeSession(fake_session.routes)
        created.append(session)
        return session

    factory.created = created
    return factory


@pytest.fixture
def make_response():
    """Factory for FakeResponse objects."""
    return FakeResponse


@pytest.fixture
def make_tarball():
    """Factory building .tar.gz bytes."""
    return build_tarball


@pytest.fixture
def gzip_bytes():
    """Factory gzip-compressing bytes."""
    return gzip.compress


@pytest.fixture
def fixture_text():
    """Read a fixture file as text."""

    def read(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")

    return read


@pytest.fixture
def connection_error():
    """A transport-level failure as raised by requests."""
    return requests.ConnectionError("Name or service not known")
