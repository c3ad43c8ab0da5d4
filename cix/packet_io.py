"""
Reliable packet I/O over a stream connection.

Stream transports may move fewer bytes per call than requested. Everything
above this module relies on send_exact/recv_exact to transfer whole
messages or fail with TransportError.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Protocol

from .errors import TransportError
from .protocol import HEADER_SIZE, Header, decode, encode

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024


class Stream(Protocol):
    """Blocking duplex byte stream. A connected socket satisfies this."""

    def recv(self, bufsize: int) -> bytes: ...

    def send(self, data: bytes) -> int: ...


def send_exact(stream: Stream, data: bytes) -> None:
    """Write all of data to the stream, looping over partial writes."""
    view = memoryview(data)
    while view:
        try:
            sent = stream.send(view)
        except OSError as e:
            raise TransportError(f"send failed: {e}") from e
        if sent <= 0:
            raise TransportError(
                f"connection closed after {len(data) - len(view)} of {len(data)} bytes sent"
            )
        view = view[sent:]


def recv_exact(stream: Stream, length: int) -> bytes:
    """Read exactly length bytes from the stream.

    Raises:
        TransportError: If the stream ends first (short packet) or the
            underlying read fails.
    """
    buf = bytearray()
    while len(buf) < length:
        try:
            chunk = stream.recv(length - len(buf))
        except OSError as e:
            raise TransportError(f"recv failed: {e}") from e
        if not chunk:
            if buf:
                raise TransportError(f"short packet: expected {length} bytes, got {len(buf)}")
            raise TransportError("connection closed by peer")
        buf += chunk
    return bytes(buf)


def send_header(stream: Stream, header: Header) -> None:
    logger.debug("sending header %s", header)
    send_exact(stream, encode(header))


def recv_header(stream: Stream) -> Header:
    header = decode(recv_exact(stream, HEADER_SIZE))
    logger.debug("received header %s", header)
    return header


def send_file(
    stream: Stream, source: BinaryIO, nbytes: int, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> None:
    """Stream exactly nbytes from source in chunk_size pieces.

    The peer expects nbytes once the header is out, so a source that ends
    early or fails to read leaves the connection unframed and is reported
    as TransportError.
    """
    remaining = nbytes
    while remaining > 0:
        try:
            chunk = source.read(min(chunk_size, remaining))
        except OSError as e:
            raise TransportError(
                f"read failed after {nbytes - remaining} of {nbytes} bytes: {e}"
            ) from e
        if not chunk:
            raise TransportError(f"source ended after {nbytes - remaining} of {nbytes} bytes")
        send_exact(stream, chunk)
        remaining -= len(chunk)


def recv_file(
    stream: Stream,
    sink: BinaryIO | None,
    nbytes: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Receive exactly nbytes from the stream and write them to sink.

    With sink=None the bytes are discarded. If writing to sink fails, the
    rest of the payload is still drained so the next header stays aligned,
    then the write error is raised.
    """
    remaining = nbytes
    write_error: OSError | None = None
    while remaining > 0:
        chunk = recv_exact(stream, min(chunk_size, remaining))
        remaining -= len(chunk)
        if sink is None or write_error is not None:
            continue
        try:
            sink.write(chunk)
        except OSError as e:
            logger.warning("write failed, discarding remaining %d bytes: %s", remaining, e)
            write_error = e
    if write_error is not None:
        raise write_error
