"""Splitting of a package index stream into control file records.

The repository index (``PACKAGES``) separates records with a blank line:

    Package: A3
    Version: 1.0.0
    Depends: R (>= 2.15.0), xtable, pbapply
    License: GPL (>= 2)
    MD5sum: 027ebdd8affce8f0effaecfcd5f5ade2
    NeedsCompilation: no

    Package: AATtools
    Version: 0.0.2
    ...

The index arrives as arbitrarily sized text chunks, so a separator may be cut
in half by a chunk boundary. ControlFileSplitter keeps the unsplit tail and
the offset where the next search has to resume.
"""

from typing import Iterable, Iterator

from .description import PackageDescription, ParseError, parse_description
from .result import Result


class ControlFileSplitter:
    """Stateful splitter turning text chunks into parsed records.

    Usage:
        splitter = ControlFileSplitter()
        for result in splitter.split(text_chunks):
            if is_ok(result):
                print(result.value.package)
    """

    SEPARATOR = "\n\n"

    def __init__(self) -> None:
        self._buffer = ""
        self._scan_from = 0

    @property
    def pending(self) -> str:
        """Text received but not yet emitted as a record."""
        return self._buffer

    def feed(self, chunk: str) -> Iterator[Result[PackageDescription, ParseError]]:
        """Add a chunk and yield every record it completes.

        Args:
            chunk: Next piece of index text

        Yields:
            Parse result of each complete record, in stream order
        """
        self._buffer += chunk
        sep_len = len(self.SEPARATOR)

        while True:
            idx = self._buffer.find(self.SEPARATOR, self._scan_from)
            if idx < 0:
                # A separator may straddle the next chunk boundary
                self._scan_from = max(len(self._buffer) - sep_len + 1, 0)
                return

            end = idx + sep_len
            record = self._buffer[:end]
            self._buffer = self._buffer[end:]
            self._scan_from = 0
            yield parse_description(record)

    def split(self, chunks: Iterable[str]) -> Iterator[Result[PackageDescription, ParseError]]:
        """Lazily split a whole stream of chunks.

        A trailing record without a closing separator is dropped.

        Args:
            chunks: Iterable of index text chunks

        Yields:
            Parse result of each complete record, in stream order
        """
        for chunk in chunks:
            yield from self.feed(chunk)
