"""
Exception types for the cix protocol.

Local filesystem failures are not wrapped: they surface as the builtin
OSError family and their errno becomes the NAK error code.
"""

import os


class TransportError(ConnectionError):
    """The connection can no longer carry framed messages.

    Raised on short reads/writes, peer disconnects mid-message, and
    failures of the underlying stream. Always ends the command loop.
    """


class ProtocolViolation(Exception):
    """The peer answered a request with an unexpected command."""


class UsageError(ValueError):
    """A client command failed validation before any bytes were sent."""


class RemoteOperationError(OSError):
    """The server answered NAK; errno holds the remote error code."""

    def __init__(self, code: int, filename: str | None = None):
        try:
            message = os.strerror(code)
        except (ValueError, OverflowError):
            message = f"Unknown error {code}"
        if filename:
            super().__init__(code, message, filename)
        else:
            super().__init__(code, message)
