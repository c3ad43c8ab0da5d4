"""
Interactive command loop for the cix client.

Reads one command per line and runs at most one protocol round for it.
Only a transport failure ends the loop early; every other error is
reported and the next line is read.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from .client import CixClient
from .errors import ProtocolViolation, TransportError, UsageError

logger = logging.getLogger(__name__)

PROMPT = "cix> "

HELP_TEXT = [
    "exit         - Exit the program.  Equivalent to EOF.",
    "get filename - Copy remote file to local host.",
    "help         - Print help summary.",
    "ls           - List names of files on remote server.",
    "put filename - Copy local file to remote host.",
    "rm filename  - Remove file from remote server.",
]


class CommandShell:
    """
    Line-oriented front end over a connected CixClient.

    Args:
        client: Connected client used for the protocol rounds.
        stdin: Source of command lines.
        stdout: Destination for listings and status messages.
    """

    def __init__(
        self, client: CixClient, stdin: TextIO | None = None, stdout: TextIO | None = None
    ):
        self.client = client
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        # name -> (number of arguments, handler)
        self.commands = {
            "exit": (0, None),
            "help": (0, self.do_help),
            "ls": (0, self.do_ls),
            "put": (1, self.do_put),
            "get": (1, self.do_get),
            "rm": (1, self.do_rm),
        }

    def _print(self, text: str = "") -> None:
        print(text, file=self.stdout)

    def _interactive(self) -> bool:
        isatty = getattr(self.stdin, "isatty", None)
        return bool(isatty and isatty())

    def run(self) -> None:
        """
        Read and execute commands until exit or end of input.

        Raises:
            TransportError: If the connection fails; the session cannot continue.
        """
        while True:
            if self._interactive():
                self.stdout.write(PROMPT)
                self.stdout.flush()
            line = self.stdin.readline()
            if not line:
                logger.debug("end of input")
                return
            if not self.execute(line):
                return

    def execute(self, line: str) -> bool:
        """
        Execute one command line.

        Returns:
            False if the session should end, True otherwise.
        """
        words = line.split()
        if not words:
            return True
        logger.debug("command %s", line.strip())
        name, args = words[0], words[1:]

        if name not in self.commands:
            self._print(f"[ERROR] {line.strip()}: invalid command")
            return True

        nargs, handler = self.commands[name]
        try:
            if len(args) < nargs:
                raise UsageError(f"{name}: filename required")
            if len(args) > nargs:
                raise UsageError(f"{name}: too many arguments")
            if handler is None:
                return False
            handler(*args)
        except TransportError:
            raise
        except (UsageError, ProtocolViolation, OSError) as e:
            self._print(f"[ERROR] {e}")
        return True

    def do_help(self) -> None:
        for line in HELP_TEXT:
            self._print(line)

    def do_ls(self) -> None:
        self.stdout.write(self.client.list_files())
        self.stdout.flush()

    def do_put(self, filename: str) -> None:
        nbytes = self.client.put(filename)
        self._print(f"[OK] put {filename} ({nbytes} bytes)")

    def do_get(self, filename: str) -> None:
        nbytes = self.client.get(filename)
        self._print(f"[OK] get {filename} ({nbytes} bytes)")

    def do_rm(self, filename: str) -> None:
        self.client.remove(filename)
        self._print(f"[OK] removed {filename}")
