"""Adapters between HTTP chunk iterators and the stream consumers.

HTTP bodies are consumed as iterators of byte chunks. The tar reader wants a
file object, the record splitter wants decoded text, and a compressed index
needs incremental decompression in between.
"""

import codecs
import io
import threading
import zlib
from typing import Iterable, Iterator, Optional

# Accept both gzip and zlib headers
_AUTO_HEADER_WBITS = zlib.MAX_WBITS | 32


class StreamCancelled(Exception):
    """Raised when a stream is read after its cancellation event was set."""

    pass


class ChunkStreamReader(io.RawIOBase):
    """Read-only file object over an iterator of byte chunks.

    The optional cancellation event is checked before pulling every chunk,
    so a reader blocked in a consumer such as ``tarfile`` stops at the next
    network read once another party sets the event.
    """

    def __init__(self, chunks: Iterable[bytes], cancel_event: Optional[threading.Event] = None):
        """Initialize reader.

        Args:
            chunks: Byte chunks in stream order
            cancel_event: Optional event that aborts further reads
        """
        super().__init__()
        self._chunks = iter(chunks)
        self._cancel_event = cancel_event
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._pending:
            if self._cancel_event is not None and self._cancel_event.is_set():
                raise StreamCancelled("Stream read cancelled")
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0

        size = min(len(b), len(self._pending))
        b[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def gunzip_chunks(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Incrementally decompress gzip (or zlib) compressed chunks.

    Concatenated gzip members are decompressed one after another. Zero
    padding between or after members is skipped, as ``gzip`` does.

    Raises:
        zlib.error: If the data is not valid compressed data
    """
    decompressor = None
    for chunk in chunks:
        while chunk:
            if decompressor is None:
                # Gzip and zlib headers never start with a NUL byte
                chunk = chunk.lstrip(b"\x00")
                if not chunk:
                    break
                decompressor = zlib.decompressobj(_AUTO_HEADER_WBITS)
            data = decompressor.decompress(chunk)
            if data:
                yield data
            if not decompressor.eof:
                break
            # Next gzip member or padding starts in the unused tail
            chunk = decompressor.unused_data
            decompressor = None

    if decompressor is not None:
        tail = decompressor.flush()
        if tail:
            yield tail


def decode_chunks(chunks: Iterable[bytes], encoding: str = "utf-8") -> Iterator[str]:
    """Incrementally decode byte chunks to text with ``\\n`` line endings.

    Multi-byte characters and ``\\r\\n`` pairs split across chunk boundaries
    are handled. Undecodable bytes are replaced.
    """
    decoder = io.IncrementalNewlineDecoder(
        codecs.getincrementaldecoder(encoding)(errors="replace"), translate=True
    )
    for chunk in chunks:
        text = decoder.decode(chunk)
        if text:
            yield text

    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail
