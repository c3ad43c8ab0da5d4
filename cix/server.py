"""
Server side of the cix protocol.

ConnectionHandler serves one already-open connection: it reads a header,
dispatches to the matching reply, and repeats until the transport fails.
Server is the thin accept loop that runs one handler per connection.
"""

from __future__ import annotations

import errno
import logging
import socket
import threading

from .config import ConnectionConfig, ServerConfig
from .errors import TransportError
from .filesystem import FileSystem
from .packet_io import Stream, recv_file, recv_header, send_exact, send_file, send_header
from .protocol import MAX_FILENAME_LENGTH, MAX_PAYLOAD_LENGTH, REQUEST_COMMANDS, Command, Header

logger = logging.getLogger(__name__)


def _error_code(error: OSError) -> int:
    return error.errno or errno.EIO


def _reply_name(filename: str) -> str:
    """The filename to echo in a reply; one that cannot fit a header is left out."""
    if len(filename.encode("utf-8", "surrogateescape")) > MAX_FILENAME_LENGTH:
        return ""
    return filename


class ConnectionHandler:
    """
    Serves cix requests arriving on a single connection.

    The handler keeps no state between rounds; the only thing shared with
    other handlers is the filesystem.
    """

    def __init__(
        self,
        stream: Stream,
        filesystem: FileSystem,
        conn_config: ConnectionConfig | None = None,
        peer: str = "client",
    ):
        self.stream = stream
        self.filesystem = filesystem
        self.conn_config = conn_config or ConnectionConfig()
        self.peer = peer
        # reply_list, reply_put, reply_remove, reply_get
        self._handlers = {
            command: getattr(self, f"reply_{command.name.lower()}") for command in REQUEST_COMMANDS
        }

    def serve(self) -> None:
        """Serve requests until the connection ends."""
        logger.info("[%s] serving connection", self.peer)
        try:
            while True:
                self.handle_one(recv_header(self.stream))
        except TransportError as e:
            logger.info("[%s] connection ended: %s", self.peer, e)

    def handle_one(self, header: Header) -> None:
        handler = self._handlers.get(header.command)
        if handler is None:
            logger.warning(
                "[%s] invalid header from client: command=%s payload_length=%d filename=%r",
                self.peer,
                header.command,
                header.payload_length,
                header.filename,
            )
            return
        handler(header)

    def _nak(self, header: Header, error: OSError) -> None:
        code = _error_code(error)
        logger.warning(
            "[%s] %s %r failed: %s", self.peer, Command(header.command).name, header.filename, error
        )
        send_header(self.stream, Header(Command.NAK, code, _reply_name(header.filename)))

    def _ack(self, header: Header) -> None:
        send_header(self.stream, Header(Command.ACK, 0, _reply_name(header.filename)))

    def reply_list(self, header: Header) -> None:
        try:
            listing = self.filesystem.list_directory().encode("utf-8", "surrogateescape")
        except OSError as e:
            self._nak(header, e)
            return
        send_header(self.stream, Header(Command.LIST_RESULT, len(listing)))
        send_exact(self.stream, listing)
        logger.info("[%s] sent listing, %d bytes", self.peer, len(listing))

    def reply_put(self, header: Header) -> None:
        nbytes = header.payload_length
        try:
            out = self.filesystem.create_write(header.filename)
        except OSError as e:
            # Keep the stream framed: the payload is already on its way
            recv_file(self.stream, None, nbytes, self.conn_config.chunk_size)
            self._nak(header, e)
            return

        try:
            with out:
                recv_file(self.stream, out, nbytes, self.conn_config.chunk_size)
        except TransportError as e:
            logger.warning("[%s] PUT %r aborted: %s", self.peer, header.filename, e)
            self._discard_partial(header.filename)
            send_header(self.stream, Header(Command.NAK, errno.EPIPE, header.filename))
            raise
        except OSError as e:
            self._nak(header, e)
            return
        logger.info("[%s] received %r, %d bytes", self.peer, header.filename, nbytes)
        self._ack(header)

    def _discard_partial(self, filename: str) -> None:
        try:
            self.filesystem.unlink(filename)
        except OSError as e:
            logger.warning("[%s] could not remove partial file %r: %s", self.peer, filename, e)

    def reply_get(self, header: Header) -> None:
        try:
            stats = self.filesystem.stat(header.filename)
            if stats.is_dir:
                raise IsADirectoryError(errno.EISDIR, "cannot get a directory", header.filename)
            if stats.size > MAX_PAYLOAD_LENGTH:
                raise OSError(errno.EFBIG, "file too large for one transfer", header.filename)
            source = self.filesystem.open_read(header.filename)
        except OSError as e:
            self._nak(header, e)
            return

        with source:
            send_header(self.stream, Header(Command.FILE_DATA, stats.size, header.filename))
            send_file(self.stream, source, stats.size, self.conn_config.chunk_size)
        logger.info("[%s] sent %r, %d bytes", self.peer, header.filename, stats.size)

    def reply_remove(self, header: Header) -> None:
        try:
            self.filesystem.unlink(header.filename)
        except OSError as e:
            self._nak(header, e)
            return
        logger.info("[%s] removed %r", self.peer, header.filename)
        self._ack(header)


class Server:
    """
    TCP acceptor that runs a ConnectionHandler per accepted connection,
    each in its own daemon thread.
    """

    def __init__(
        self,
        server_config: ServerConfig,
        filesystem: FileSystem,
        conn_config: ConnectionConfig | None = None,
    ):
        self.server_config = server_config
        self.filesystem = filesystem
        self.conn_config = conn_config or ConnectionConfig()
        self._sock: socket.socket | None = None
        self._shutdown = threading.Event()

    def bind(self) -> tuple[str, int]:
        """Create the listening socket. Returns the bound (host, port)."""
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            self._sock.bind((self.server_config.host, self.server_config.port))
            self._sock.listen(10)
        except OSError:
            self._sock.close()
            self._sock = None
            raise
        address = self._sock.getsockname()[:2]
        logger.info("Listening on %s:%d", *address)
        return address

    def serve_forever(self) -> None:
        """Accept connections until shutdown() is called."""
        if self._sock is None and not self._shutdown.is_set():
            self.bind()
        sock = self._sock
        while sock is not None and not self._shutdown.is_set():
            try:
                conn, address = sock.accept()
            except OSError:
                if self._shutdown.is_set():
                    break
                raise
            peer = f"{address[0]}:{address[1]}"
            logger.info("Accepted connection from %s", peer)
            thread = threading.Thread(
                target=self._run_handler, args=(conn, peer), name=f"cix-{peer}", daemon=True
            )
            thread.start()

    def _run_handler(self, conn: socket.socket, peer: str) -> None:
        try:
            with conn:
                ConnectionHandler(conn, self.filesystem, self.conn_config, peer).serve()
        except Exception:
            logger.exception("[%s] handler failed", peer)

    def shutdown(self) -> None:
        """Stop accepting connections. Running handlers finish on their own."""
        self._shutdown.set()
        if self._sock is not None:
            try:
                self._sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # Listening sockets are not connected on every platform
            self._sock.close()
            self._sock = None
