"""
Unit tests for cix.protocol module.

Tests cover:
- Header size and field layout
- Network byte order of payload_length
- Zero padding of the filename field
- Decoding of unknown command values
- Filename legality checks
"""

import struct

import pytest

from cix.protocol import (
    FILENAME_SIZE,
    HEADER_SIZE,
    MAX_FILENAME_LENGTH,
    REQUEST_COMMANDS,
    Command,
    Header,
    check_filename,
    decode,
    encode,
)


class TestHeaderLayout:
    """Tests for the fixed wire layout."""

    def test_header_is_64_bytes(self):
        assert HEADER_SIZE == 64
        assert len(encode(Header(Command.LIST))) == 64

    def test_field_order(self):
        raw = encode(Header(Command.PUT, 11, "notes.txt"))
        assert raw[0] == Command.PUT
        assert raw[1:5] == b"\x00\x00\x00\x0b"
        assert raw[5:14] == b"notes.txt"

    @pytest.mark.parametrize("value", [0, 1, 255, 256, 0x01020304, 0xFFFFFFFF])
    def test_payload_length_is_big_endian(self, value):
        raw = encode(Header(Command.FILE_DATA, value, "f"))
        assert int.from_bytes(raw[1:5], "big") == value
        assert struct.unpack("!I", raw[1:5])[0] == value

    def test_unused_filename_bytes_are_zero(self):
        raw = encode(Header(Command.GET, 0, "a"))
        assert raw[6:] == b"\0" * (FILENAME_SIZE - 1)

    def test_list_header_has_empty_filename(self):
        raw = encode(Header(Command.LIST))
        assert raw[5:] == b"\0" * FILENAME_SIZE

    def test_longest_name_keeps_terminator(self):
        raw = encode(Header(Command.GET, 0, "n" * MAX_FILENAME_LENGTH))
        assert raw[-1:] == b"\0"

    @pytest.mark.parametrize("name", ["n" * FILENAME_SIZE, "n" * 80, "\u00e9" * 30])
    def test_name_that_does_not_fit_is_refused(self, name):
        with pytest.raises(ValueError, match="at most 58"):
            encode(Header(Command.PUT, 1, name))


class TestDecode:
    """Tests for decode."""

    def test_decode_reverses_encode(self):
        headers = [
            Header(Command.LIST),
            Header(Command.PUT, 11, "notes.txt"),
            Header(Command.NAK, 2, "missing"),
            Header(Command.FILE_DATA, 0xFFFFFFFF, "x" * MAX_FILENAME_LENGTH),
            Header(Command.ACK, 0, "résumé.txt"),
        ]
        for header in headers:
            assert decode(encode(header)) == header

    def test_known_command_decodes_to_enum(self):
        header = decode(encode(Header(Command.ACK)))
        assert header.command is Command.ACK

    def test_unknown_command_decodes_to_int(self):
        raw = bytes([200]) + b"\0" * (HEADER_SIZE - 1)
        header = decode(raw)
        assert header.command == 200
        assert not isinstance(header.command, Command)

    def test_filename_stops_at_first_nul(self):
        raw = bytes([Command.GET]) + b"\0\0\0\0" + b"abc\0junk".ljust(FILENAME_SIZE, b"\0")
        assert decode(raw).filename == "abc"

    def test_decode_rejects_wrong_size(self):
        with pytest.raises(struct.error):
            decode(b"\0" * (HEADER_SIZE - 1))


class TestHeaderText:
    """Tests for the log rendering of a header."""

    def test_str_uses_command_name(self):
        assert str(Header(Command.ACK, 11, "notes.txt")) == '{ACK, 11, "notes.txt"}'

    def test_str_with_unknown_command(self):
        assert str(Header(99, 0, "")) == '{99, 0, ""}'


class TestCommands:
    def test_request_commands(self):
        assert REQUEST_COMMANDS == {Command.LIST, Command.PUT, Command.REMOVE, Command.GET}

    def test_wire_values(self):
        assert Command.ERROR == 0
        assert Command.GET == 2
        assert Command.LIST == 4
        assert Command.PUT == 5
        assert Command.REMOVE == 6
        assert Command.FILE_DATA == 7
        assert Command.LIST_RESULT == 8
        assert Command.ACK == 9
        assert Command.NAK == 10


class TestCheckFilename:
    """Tests for check_filename."""

    def test_plain_name_is_legal(self):
        assert check_filename("notes.txt") is None

    def test_longest_legal_name(self):
        assert check_filename("n" * MAX_FILENAME_LENGTH) is None

    def test_too_long(self):
        assert check_filename("n" * (MAX_FILENAME_LENGTH + 1)) == "filename is too long"

    def test_length_counts_encoded_bytes(self):
        # 30 two-byte characters: 60 bytes on the wire
        assert check_filename("é" * 30) == "filename is too long"

    def test_empty(self):
        assert check_filename("") == "filename required"

    @pytest.mark.parametrize("name", ["dir/file", "/etc/passwd", "..\\up", "a/"])
    def test_separator(self, name):
        assert check_filename(name) == "filename cannot contain /"

    def test_nul(self):
        assert check_filename("a\0b") == "filename cannot contain NUL"
