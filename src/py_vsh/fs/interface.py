"""The filesystem contract the shell runs against.

The shell never touches a real disk.  Everything it reads or writes goes
through an object satisfying ``FileSystem`` — by default the in-memory
``VirtualFs``, but any backend (a remote store, a sandboxed real
directory, a test double) can be plugged in.

All data operations are ``async``: they are the only points where the
engine suspends.  ``resolve_path`` and ``get_all_paths`` are pure
bookkeeping and stay synchronous.

Failures are reported with the builtin ``OSError`` family, carrying an
errno and the offending path:

=====================  ===================================
``FileNotFoundError``   path (or a parent) does not exist
``FileExistsError``     path already exists
``NotADirectoryError``  a directory was required
``IsADirectoryError``   a file was required
``OSError(ENOTEMPTY)``  directory not empty
=====================  ===================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class FsStat:
    """Metadata returned by ``FileSystem.stat``."""

    is_file: bool
    is_directory: bool
    mode: int
    size: int = 0
    mtime: float = 0.0


class FileSystem(Protocol):
    """Asynchronous filesystem contract used by the shell and its commands."""

    async def read_file(self, path: str) -> str:
        """Return the contents of a file."""
        ...

    async def write_file(self, path: str, content: str) -> None:
        """Replace the contents of a file, creating it if needed."""
        ...

    async def append_file(self, path: str, content: str) -> None:
        """Append to a file, creating it if needed."""
        ...

    async def exists(self, path: str) -> bool:
        """Return whether *path* exists."""
        ...

    async def stat(self, path: str) -> FsStat:
        """Return metadata for *path*."""
        ...

    async def mkdir(self, path: str, *, recursive: bool = False) -> None:
        """Create a directory (and its parents when *recursive*)."""
        ...

    async def readdir(self, path: str) -> list[str]:
        """Return the sorted child names of a directory."""
        ...

    async def rm(self, path: str, *, recursive: bool = False, force: bool = False) -> None:
        """Remove a file or directory."""
        ...

    async def cp(self, src: str, dest: str, *, recursive: bool = False) -> None:
        """Copy a file, or a directory tree when *recursive*."""
        ...

    async def mv(self, src: str, dest: str) -> None:
        """Move or rename a file or directory."""
        ...

    def resolve_path(self, base: str, path: str) -> str:
        """Resolve *path* against *base* into an absolute normalised path."""
        ...

    def get_all_paths(self) -> list[str]:
        """Return every path known to the filesystem (used for globbing)."""
        ...
