"""
Shared pytest fixtures for cix tests.
"""

import socket
import threading
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from cix.client import CixClient
from cix.config import (
    AppConfig,
    ClientConfig,
    ConnectionConfig,
    LogConfig,
    ServerConfig,
)
from cix.filesystem import LocalFileSystem
from cix.server import ConnectionHandler


class ChunkedStream:
    """
    In-memory stream that moves at most `step` bytes per call.

    Reads are served from `incoming`; writes are collected in `sent`.
    Used to exercise partial reads and writes.
    """

    def __init__(self, incoming: bytes = b"", step: int = 3):
        self.incoming = bytearray(incoming)
        self.sent = bytearray()
        self.step = step
        self.recv_calls = 0
        self.send_calls = 0

    def recv(self, bufsize: int) -> bytes:
        self.recv_calls += 1
        n = min(bufsize, self.step, len(self.incoming))
        data = bytes(self.incoming[:n])
        del self.incoming[:n]
        return data

    def send(self, data) -> int:
        self.send_calls += 1
        chunk = bytes(data[: self.step])
        self.sent += chunk
        return len(chunk)


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[server]
host = 127.0.0.1
port = 6000
root = /srv/cix

[client]
host = fileserver.local
port = 6001
local_dir = /home/user/downloads

[connection]
timeout_seconds = 45
retry_attempts = 5
retry_delay_seconds = 2
chunk_size = 4096
max_list_bytes = 65536

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Creates an INI file that only sets the client host."""
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text("[client]\nhost = minimal.server.com\n", encoding="utf-8")
    yield config_path


@pytest.fixture
def conn_config() -> ConnectionConfig:
    """Creates a ConnectionConfig with a small chunk size so transfers span many chunks."""
    return ConnectionConfig(
        timeout_seconds=5,
        retry_attempts=1,
        retry_delay_seconds=0,
        chunk_size=7,
        max_list_bytes=1024 * 1024,
    )


@pytest.fixture
def server_root(tmp_path: Path) -> Path:
    """Directory served by the server under test."""
    root = tmp_path / "server"
    root.mkdir()
    return root


@pytest.fixture
def local_dir(tmp_path: Path) -> Path:
    """Client-side working directory."""
    local = tmp_path / "local"
    local.mkdir()
    return local


@pytest.fixture
def served_pair(
    server_root: Path, conn_config: ConnectionConfig
) -> Generator[dict[str, Any], None, None]:
    """
    A connected socket pair with a ConnectionHandler serving one end in a
    background thread.

    Yields:
        Dict containing:
        - sock: the client end of the connection
        - thread: the handler thread (finishes once sock is closed)
    """
    client_sock, server_sock = socket.socketpair()
    handler = ConnectionHandler(server_sock, LocalFileSystem(server_root), conn_config)
    thread = threading.Thread(target=handler.serve, daemon=True)
    thread.start()

    yield {"sock": client_sock, "thread": thread}

    client_sock.close()
    thread.join(timeout=5)
    server_sock.close()


@pytest.fixture
def cix_client(
    served_pair: dict[str, Any], local_dir: Path, conn_config: ConnectionConfig
) -> CixClient:
    """CixClient talking to a real ConnectionHandler over a socket pair."""
    return CixClient(
        ClientConfig(local_dir=str(local_dir)), conn_config, stream=served_pair["sock"]
    )


@pytest.fixture
def app_config(conn_config: ConnectionConfig) -> AppConfig:
    """Creates a complete AppConfig for testing."""
    return AppConfig(
        server=ServerConfig(host="127.0.0.1", port=0, root="."),
        client=ClientConfig(host="127.0.0.1", port=0, local_dir="."),
        connection=conn_config,
        logging=LogConfig(level="DEBUG", file="", console=False),
    )


@pytest.fixture
def chunked_stream() -> type[ChunkedStream]:
    """The ChunkedStream class, for tests that build their own streams."""
    return ChunkedStream
