"""
Wire codec for the cix remote file protocol.

Every message starts with a fixed 64-byte header:

    +---------+------------------+---------------------------+
    | command | payload_length   | filename                  |
    | 1 byte  | 4 bytes, big-end | 59 bytes, NUL padded      |
    +---------+------------------+---------------------------+

An optional payload of exactly payload_length bytes follows the header.
On NAK responses payload_length carries the errno of the failed operation
instead of a byte count.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

HEADER_FORMAT = "!BI59s"  # command, payload_length, filename
HEADER_STRUCT = struct.Struct(HEADER_FORMAT)
HEADER_SIZE = HEADER_STRUCT.size
FILENAME_SIZE = 59
MAX_FILENAME_LENGTH = FILENAME_SIZE - 1
MAX_PAYLOAD_LENGTH = 0xFFFFFFFF
PATH_SEPARATORS = ("/", "\\")


class Command(enum.IntEnum):
    ERROR = 0
    GET = 2
    LIST = 4
    PUT = 5
    REMOVE = 6
    FILE_DATA = 7
    LIST_RESULT = 8
    ACK = 9
    NAK = 10


REQUEST_COMMANDS = frozenset({Command.LIST, Command.PUT, Command.REMOVE, Command.GET})
PAYLOAD_COMMANDS = frozenset({Command.PUT, Command.FILE_DATA, Command.LIST_RESULT})
COMMAND_VALUES = frozenset(int(c) for c in Command)


@dataclass(frozen=True)
class Header:
    command: int
    payload_length: int = 0
    filename: str = ""

    def __str__(self) -> str:
        try:
            name = Command(self.command).name
        except ValueError:
            name = str(self.command)
        return f'{{{name}, {self.payload_length}, "{self.filename}"}}'


def encode(header: Header) -> bytes:
    """Serialize a header to its 64-byte wire form.

    struct zero-fills the unused tail of the filename field, so no stale
    bytes are ever transmitted.

    Raises:
        ValueError: If the filename does not fit with its NUL terminator.
    """
    name = header.filename.encode("utf-8", "surrogateescape")
    if len(name) > MAX_FILENAME_LENGTH:
        raise ValueError(
            f"filename is {len(name)} bytes, at most {MAX_FILENAME_LENGTH} fit in a header"
        )
    return HEADER_STRUCT.pack(int(header.command), header.payload_length, name)


def decode(raw: bytes) -> Header:
    """Parse a 64-byte wire header.

    The command is returned as a Command member when it is a known value
    and as a plain int otherwise; range checking is left to the caller.
    """
    command, payload_length, filename = HEADER_STRUCT.unpack(raw)
    if command in COMMAND_VALUES:
        command = Command(command)
    name = filename.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")
    return Header(command=command, payload_length=payload_length, filename=name)


def check_filename(filename: str) -> str | None:
    """Return a description of what makes filename illegal, or None if it is legal."""
    if not filename:
        return "filename required"
    if len(filename.encode("utf-8", "surrogateescape")) > MAX_FILENAME_LENGTH:
        return "filename is too long"
    if any(sep in filename for sep in PATH_SEPARATORS):
        return "filename cannot contain /"
    if "\0" in filename:
        return "filename cannot contain NUL"
    return None
