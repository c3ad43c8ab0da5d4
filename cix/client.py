"""
Client side of the cix protocol.

Each public operation is exactly one round: one request header (plus
payload for PUT) followed by one response. Arguments are validated before
anything is sent.
"""

from __future__ import annotations

import logging
import socket
import stat
import threading
import time
from pathlib import Path

from .config import ClientConfig, ConnectionConfig
from .errors import ProtocolViolation, RemoteOperationError, TransportError, UsageError
from .packet_io import Stream, recv_exact, recv_file, recv_header, send_file, send_header
from .protocol import MAX_PAYLOAD_LENGTH, PAYLOAD_COMMANDS, Command, Header, check_filename

logger = logging.getLogger(__name__)


def validate_filename(operation: str, filename: str) -> None:
    """Pre-flight check for a remote filename.

    Raises:
        UsageError: If the name is empty, too long, or contains a path separator.
    """
    problem = check_filename(filename)
    if problem is not None:
        raise UsageError(f"{operation}: {problem}")


class CixClient:
    """
    Drives cix protocol rounds over one connection.

    Rounds are strictly sequential; the lock keeps them so when the client
    is shared between threads.
    """

    def __init__(
        self,
        client_config: ClientConfig | None = None,
        conn_config: ConnectionConfig | None = None,
        stream: Stream | None = None,
    ):
        self.client_config = client_config or ClientConfig()
        self.conn_config = conn_config or ConnectionConfig()
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._stream is not None

    @property
    def local_dir(self) -> Path:
        return Path(self.client_config.local_dir)

    def connect(self) -> None:
        """
        Open the TCP connection to the server, retrying on failure.

        Raises:
            ConnectionError: If every attempt fails.
        """
        host, port = self.client_config.host, self.client_config.port
        last_exception: OSError | None = None

        for attempt in range(self.conn_config.retry_attempts):
            try:
                sock = socket.create_connection(
                    (host, port), timeout=self.conn_config.timeout_seconds
                )
            except OSError as e:
                last_exception = e
                logger.warning(
                    "Connect to %s:%d failed (attempt %d/%d): %s",
                    host,
                    port,
                    attempt + 1,
                    self.conn_config.retry_attempts,
                    e,
                )
                if attempt < self.conn_config.retry_attempts - 1:
                    time.sleep(self.conn_config.retry_delay_seconds)
                continue
            # The protocol itself has no timeouts
            sock.settimeout(None)
            self._stream = sock
            logger.info("Connected to %s:%d", host, port)
            return

        message = f"Could not connect to {host}:{port}: {last_exception}"
        raise ConnectionError(message) from last_exception

    def disconnect(self) -> None:
        """Close the connection if this client owns a socket."""
        stream, self._stream = self._stream, None
        if isinstance(stream, socket.socket):
            stream.close()
            logger.debug("Connection closed")

    def _require_stream(self) -> Stream:
        if self._stream is None:
            raise TransportError("not connected")
        return self._stream

    def _round(self, func, *args):
        """Run one protocol round; a transport failure drops the connection."""
        with self._lock:
            stream = self._require_stream()
            try:
                return func(stream, *args)
            except TransportError:
                logger.error("Transport failure, closing connection")
                self.disconnect()
                raise

    def _expect(self, stream: Stream, header: Header, expected: Command, operation: str) -> None:
        if header.command == expected:
            return
        if header.command == Command.NAK:
            raise RemoteOperationError(header.payload_length, header.filename or None)
        logger.warning("sent %s, server did not return %s: %s", operation, expected.name, header)
        if header.command in PAYLOAD_COMMANDS:
            # Skip its payload so the next header stays aligned
            recv_file(stream, None, header.payload_length, self.conn_config.chunk_size)
        raise ProtocolViolation(
            f"sent {operation}, server did not return {expected.name}; got {header}"
        )

    # ---- ls ----

    def list_files(self) -> str:
        """
        Fetch the server's directory listing.

        Returns:
            The listing text.

        Raises:
            ProtocolViolation: If the server replied with something other than LIST_RESULT.
            RemoteOperationError: If the server could not list its directory.
        """
        return self._round(self._list)

    def _list(self, stream: Stream) -> str:
        send_header(stream, Header(Command.LIST))
        reply = recv_header(stream)
        self._expect(stream, reply, Command.LIST_RESULT, "LIST")
        if reply.payload_length > self.conn_config.max_list_bytes:
            raise TransportError(
                f"listing of {reply.payload_length} bytes exceeds limit of "
                f"{self.conn_config.max_list_bytes}"
            )
        payload = recv_exact(stream, reply.payload_length)
        logger.info("received listing, %d bytes", len(payload))
        return payload.decode("utf-8", "replace")

    # ---- put ----

    def put(self, filename: str) -> int:
        """
        Upload a local file to the server under the same name.

        Args:
            filename: Name of the file in local_dir; also the remote name.

        Returns:
            Number of bytes sent.

        Raises:
            UsageError: If the name is invalid or the local file is not a
                regular file of sendable size. Nothing is sent.
            OSError: If the local file cannot be opened. Nothing is sent.
            RemoteOperationError: If the server answered NAK.
        """
        validate_filename("put", filename)
        path = self.local_dir / filename
        try:
            st = path.stat()
        except OSError as e:
            raise UsageError(f"put: stat failed: {e.strerror}") from e
        if stat.S_ISDIR(st.st_mode):
            raise UsageError("put: cannot put a directory")
        if not stat.S_ISREG(st.st_mode):
            raise UsageError("put: not a regular file")
        if st.st_size > MAX_PAYLOAD_LENGTH:
            raise UsageError("put: file is too large")

        with open(path, "rb") as source:
            return self._round(self._put, filename, source, st.st_size)

    def _put(self, stream: Stream, filename: str, source, size: int) -> int:
        send_header(stream, Header(Command.PUT, size, filename))
        send_file(stream, source, size, self.conn_config.chunk_size)
        logger.info("sent %d bytes", size)
        reply = recv_header(stream)
        self._expect(stream, reply, Command.ACK, "PUT")
        return size

    # ---- get ----

    def get(self, filename: str) -> int:
        """
        Download a remote file into local_dir.

        Returns:
            Number of bytes received.

        Raises:
            UsageError: If the name is invalid. Nothing is sent.
            RemoteOperationError: If the server answered NAK. No local file
                is created.
            OSError: If the local file could not be written. The payload is
                still consumed so the connection stays usable.
        """
        validate_filename("get", filename)
        return self._round(self._get, filename)

    def _get(self, stream: Stream, filename: str) -> int:
        send_header(stream, Header(Command.GET, 0, filename))
        reply = recv_header(stream)
        self._expect(stream, reply, Command.FILE_DATA, "GET")
        nbytes = reply.payload_length
        chunk_size = self.conn_config.chunk_size

        target = reply.filename
        problem = check_filename(target)
        if problem is not None or target in (".", ".."):
            recv_file(stream, None, nbytes, chunk_size)
            raise ProtocolViolation(f"server sent unusable filename {target!r}")

        path = self.local_dir / target
        try:
            out = open(path, "wb")
        except OSError as e:
            logger.warning("get: failed to open %s: %s", path, e)
            recv_file(stream, None, nbytes, chunk_size)
            raise

        try:
            with out:
                recv_file(stream, out, nbytes, chunk_size)
        except TransportError:
            self._discard_partial(path)
            raise
        logger.info("received %d bytes", nbytes)
        return nbytes

    @staticmethod
    def _discard_partial(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove partial file %s: %s", path, e)

    # ---- rm ----

    def remove(self, filename: str) -> None:
        """
        Remove a file on the server.

        Raises:
            UsageError: If the name is invalid. Nothing is sent.
            RemoteOperationError: If the server answered NAK.
        """
        validate_filename("rm", filename)
        self._round(self._remove, filename)

    def _remove(self, stream: Stream, filename: str) -> None:
        send_header(stream, Header(Command.REMOVE, 0, filename))
        reply = recv_header(stream)
        self._expect(stream, reply, Command.ACK, "REMOVE")
        logger.info("removed %s", filename)
