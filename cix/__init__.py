__version__ = "0.2.0"

# Public API exports
from .client import CixClient
from .config import (
    AppConfig,
    ClientConfig,
    ConnectionConfig,
    LogConfig,
    ServerConfig,
    load_config,
)
from .errors import ProtocolViolation, RemoteOperationError, TransportError, UsageError
from .filesystem import FileStats, FileSystem, LocalFileSystem
from .packet_io import recv_exact, send_exact
from .protocol import HEADER_SIZE, Command, Header, decode, encode
from .server import ConnectionHandler, Server
from .shell import CommandShell

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "ServerConfig",
    "ClientConfig",
    "ConnectionConfig",
    "LogConfig",
    "load_config",
    # Wire protocol
    "Command",
    "Header",
    "HEADER_SIZE",
    "encode",
    "decode",
    "send_exact",
    "recv_exact",
    # Errors
    "TransportError",
    "ProtocolViolation",
    "UsageError",
    "RemoteOperationError",
    # Endpoints
    "CixClient",
    "CommandShell",
    "ConnectionHandler",
    "Server",
    # Filesystem
    "FileSystem",
    "FileStats",
    "LocalFileSystem",
]
