"""
Filesystem access used by the server to satisfy requests.

Defines the interface the protocol handlers depend on, and a local
implementation that serves a single flat directory.
"""

from __future__ import annotations

import errno
import logging
import os
import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from .protocol import check_filename

logger = logging.getLogger(__name__)


@dataclass
class FileStats:
    """What a request handler needs to know about one entry."""

    size: int
    is_dir: bool


@runtime_checkable
class FileSystem(Protocol):
    """Protocol defining the filesystem interface used by ConnectionHandler.

    All methods raise OSError (with errno set) on failure.
    """

    def stat(self, name: str) -> FileStats:
        """Get metadata for a single entry.

        Raises:
            FileNotFoundError: If name does not exist.
        """
        ...

    def open_read(self, name: str) -> BinaryIO:
        """Open a regular file for reading in binary mode."""
        ...

    def create_write(self, name: str) -> BinaryIO:
        """Create or truncate a file for writing in binary mode."""
        ...

    def unlink(self, name: str) -> None:
        """Remove a file."""
        ...

    def list_directory(self) -> str:
        """Render a textual listing of the served directory."""
        ...


class LocalFileSystem:
    """
    Serves the files of one local directory.

    Names are taken relative to root and must be plain filenames; anything
    that could escape the directory is refused with EINVAL.
    """

    def __init__(self, root: str | Path = "."):
        self.root = Path(root)

    def _resolve(self, name: str) -> Path:
        problem = check_filename(name)
        if problem is None and name in (".", ".."):
            problem = "filename cannot be a directory reference"
        if problem is not None:
            raise OSError(errno.EINVAL, f"Invalid filename: {problem}", name)
        return self.root / name

    def stat(self, name: str) -> FileStats:
        st = self._resolve(name).stat()
        return FileStats(size=st.st_size, is_dir=stat.S_ISDIR(st.st_mode))

    def open_read(self, name: str) -> BinaryIO:
        path = self._resolve(name)
        if path.is_dir():
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), name)
        return open(path, "rb")

    def create_write(self, name: str) -> BinaryIO:
        return open(self._resolve(name), "wb")

    def unlink(self, name: str) -> None:
        self._resolve(name).unlink()

    def list_directory(self) -> str:
        """
        Render the directory in the style of `ls -l`.

        Returns:
            One line per entry, sorted by name: mode, links, size,
            modification time and name.
        """
        lines = []
        with os.scandir(self.root) as entries:
            for entry in sorted(entries, key=lambda e: e.name):
                st = entry.stat(follow_symlinks=False)
                mtime = datetime.fromtimestamp(st.st_mtime).strftime("%b %d %H:%M")
                lines.append(
                    f"{stat.filemode(st.st_mode)} {st.st_nlink:>3} {st.st_size:>10} "
                    f"{mtime} {entry.name}\n"
                )
        logger.debug("Listed %d entries in %s", len(lines), self.root)
        return "".join(lines)
