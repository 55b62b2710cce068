"""
File-system abstraction used by the archive reader and metadata service.

Provides a uniform interface for reading source files so the pipeline can
run against the real disk or an in-memory double.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO


@dataclass(frozen=True)
class FileInfo:
    """Size and last-write time of a file."""

    size: int
    last_write_ns: int

    @property
    def last_write(self) -> str:
        """Last-write time as an ISO-8601 UTC string with microsecond precision."""
        seconds, remainder = divmod(self.last_write_ns, 1_000_000_000)
        stamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
        return stamp.replace(microsecond=remainder // 1000).isoformat()


class FileSystem(ABC):
    """Abstract interface for reading source files."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Check if a regular file exists."""

    @abstractmethod
    def read_all_text(self, path: str) -> str:
        """Read a whole file as UTF-8 text. Raises FileNotFoundError if missing."""

    @abstractmethod
    def read_all_lines(self, path: str) -> list[str]:
        """Read a file as a list of lines without line endings."""

    @abstractmethod
    def open_read(self, path: str) -> BinaryIO:
        """Open a file for binary random-access reading."""

    @abstractmethod
    def get_file_info(self, path: str) -> FileInfo:
        """Return size and last-write time. Raises FileNotFoundError if missing."""


class LocalFileSystem(FileSystem):
    """Reads files from the local disk."""

    def file_exists(self, path: str) -> bool:
        return bool(path) and os.path.isfile(path)

    def read_all_text(self, path: str) -> str:
        with open(path, encoding='utf-8-sig') as f:
            return f.read()

    def read_all_lines(self, path: str) -> list[str]:
        return self.read_all_text(path).splitlines()

    def open_read(self, path: str) -> BinaryIO:
        return open(path, 'rb')

    def get_file_info(self, path: str) -> FileInfo:
        st = os.stat(path)
        return FileInfo(size=st.st_size, last_write_ns=st.st_mtime_ns)
