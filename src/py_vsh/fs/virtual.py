"""In-memory file system with inodes, directories, and path resolution.

Models the Unix file system architecture:

- **Inode**: metadata record for a file or directory (type, mode, data).
  The name does NOT live in the inode — it lives in the parent directory.

- **Directory**: a special inode whose ``children`` map child names to
  inode numbers.

- **Path resolution**: ``/foo/bar/baz.txt`` is walked component by
  component from the root inode, looking up each name in the current
  directory's entries.

The public surface is the asynchronous ``FileSystem`` contract.  The
``*_sync`` helpers exist so a shell can seed the tree from its
constructor, where there is no event loop to await on.
"""

from __future__ import annotations

import errno
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from itertools import count
from typing import TypeVar

from py_vsh.fs.interface import FsStat

FILE_MODE = 0o644
DIRECTORY_MODE = 0o755


class FileType(StrEnum):
    """The kind of object an inode represents."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class _Inode:
    """Internal inode — the core metadata record.

    For files, ``data`` holds the text content.
    For directories, ``children`` maps names to inode numbers.
    """

    inode_number: int
    file_type: FileType
    mode: int
    mtime: float
    data: str = ""
    children: dict[str, int] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]

    @property
    def size(self) -> int:
        """Return the size of the file data in bytes."""
        return len(self.data.encode())

    def to_stat(self) -> FsStat:
        """Create a read-only snapshot of this inode."""
        return FsStat(
            is_file=self.file_type is FileType.FILE,
            is_directory=self.file_type is FileType.DIRECTORY,
            mode=self.mode,
            size=self.size,
            mtime=self.mtime,
        )


# Module-level inode counter, shared by every VirtualFs instance.
_inode_counter = count(start=0)


def normalize_path(path: str) -> str:
    """Return *path* as an absolute path with ``.``/``..`` resolved.

    Examples::

        "foo/./bar/"   → "/foo/bar"
        "/a/b/../c"    → "/a/c"
        "/.."          → "/"

    """
    resolved: list[str] = []
    for part in path.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if resolved:
                resolved.pop()
        else:
            resolved.append(part)
    return "/" + "/".join(resolved)


def _split_path(path: str) -> tuple[str, str]:
    """Split a normalised path into (parent_path, child_name).

    Examples::

        "/foo/bar/baz.txt" → ("/foo/bar", "baz.txt")
        "/hello.txt"       → ("/", "hello.txt")
        "/"                → ("", "")

    """
    if path == "/":
        return ("", "")
    last_slash = path.rfind("/")
    if last_slash == 0:
        return ("/", path[1:])
    return (path[:last_slash], path[last_slash + 1 :])


E = TypeVar("E", bound=OSError)


def _error(exc_type: type[E], code: int, path: str) -> E:
    """Build an ``OSError`` subclass carrying errno, message, and path."""
    return exc_type(code, os.strerror(code), path)


class VirtualFs:
    """An in-memory file system with inodes and hierarchical directories.

    The file system is initialised with a root directory at ``/``.  All
    operations normalise their paths first; relative paths are treated
    as relative to ``/``.
    """

    def __init__(
        self,
        files: Mapping[str, str] | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Create a file system, optionally seeded with files.

        Args:
            files: Mapping of path to content; missing parent directories
                are created.
            clock: Source of modification timestamps.

        """
        self._clock = clock
        root = self._new_inode(FileType.DIRECTORY)
        self._inodes: dict[int, _Inode] = {root.inode_number: root}
        self._root_ino: int = root.inode_number
        for path, content in (files or {}).items():
            self.write_file_sync(path, content, parents=True)

    # -- inode bookkeeping -------------------------------------------------

    def _new_inode(self, file_type: FileType, data: str = "") -> _Inode:
        mode = DIRECTORY_MODE if file_type is FileType.DIRECTORY else FILE_MODE
        return _Inode(
            inode_number=next(_inode_counter),
            file_type=file_type,
            mode=mode,
            mtime=self._clock(),
            data=data,
        )

    def _resolve(self, path: str) -> _Inode | None:
        """Walk a normalised path from root and return its inode, if any."""
        current = self._inodes[self._root_ino]
        if path == "/":
            return current
        for part in path.strip("/").split("/"):
            if current.file_type is not FileType.DIRECTORY:
                return None
            child_ino = current.children.get(part)
            if child_ino is None:
                return None
            current = self._inodes[child_ino]
        return current

    def _parent_dir(self, path: str) -> tuple[_Inode, str]:
        """Return the directory inode that holds *path*, plus the child name.

        Raises:
            FileNotFoundError: If the parent does not exist.
            NotADirectoryError: If the parent is a file.

        """
        parent_path, name = _split_path(path)
        parent = self._resolve(parent_path or "/")
        if parent is None:
            raise _error(FileNotFoundError, errno.ENOENT, path)
        if parent.file_type is not FileType.DIRECTORY:
            raise _error(NotADirectoryError, errno.ENOTDIR, path)
        return parent, name

    def _link(self, parent: _Inode, name: str, inode: _Inode) -> None:
        self._inodes[inode.inode_number] = inode
        parent.children[name] = inode.inode_number
        parent.mtime = self._clock()

    def _forget(self, inode: _Inode) -> None:
        """Drop *inode* and everything below it from the inode table."""
        for child_ino in inode.children.values():
            self._forget(self._inodes[child_ino])
        self._inodes.pop(inode.inode_number, None)

    # -- synchronous helpers -------------------------------------------------

    def write_file_sync(self, path: str, content: str, *, parents: bool = False) -> None:
        """Write *content* to a file, creating it (and optionally its parents).

        Raises:
            IsADirectoryError: If the path is a directory.
            FileNotFoundError: If the parent is missing and *parents* is false.

        """
        normalized = normalize_path(path)
        inode = self._resolve(normalized)
        if inode is not None:
            if inode.file_type is FileType.DIRECTORY:
                raise _error(IsADirectoryError, errno.EISDIR, path)
            inode.data = content
            inode.mtime = self._clock()
            return
        if parents:
            parent_path, _ = _split_path(normalized)
            self.mkdir_sync(parent_path, recursive=True)
        parent, name = self._parent_dir(normalized)
        self._link(parent, name, self._new_inode(FileType.FILE, content))

    def mkdir_sync(self, path: str, *, recursive: bool = False) -> None:
        """Create a directory.

        Raises:
            FileExistsError: If the path exists (a directory is fine when
                *recursive*).
            FileNotFoundError: If the parent is missing and not *recursive*.

        """
        normalized = normalize_path(path)
        existing = self._resolve(normalized)
        if existing is not None:
            if existing.file_type is FileType.DIRECTORY and recursive:
                return
            raise _error(FileExistsError, errno.EEXIST, path)
        parent_path, _ = _split_path(normalized)
        if recursive and self._resolve(parent_path) is None:
            self.mkdir_sync(parent_path, recursive=True)
        parent, name = self._parent_dir(normalized)
        self._link(parent, name, self._new_inode(FileType.DIRECTORY))

    # -- FileSystem contract ---------------------------------------------------

    async def read_file(self, path: str) -> str:
        """Return the contents of a file.

        Raises:
            FileNotFoundError: If the path does not exist.
            IsADirectoryError: If the path is a directory.

        """
        inode = self._resolve(normalize_path(path))
        if inode is None:
            raise _error(FileNotFoundError, errno.ENOENT, path)
        if inode.file_type is FileType.DIRECTORY:
            raise _error(IsADirectoryError, errno.EISDIR, path)
        return inode.data

    async def write_file(self, path: str, content: str) -> None:
        """Replace a file's contents, creating the file if needed."""
        self.write_file_sync(path, content)

    async def append_file(self, path: str, content: str) -> None:
        """Append to a file, creating the file if needed."""
        normalized = normalize_path(path)
        inode = self._resolve(normalized)
        if inode is None:
            self.write_file_sync(normalized, content)
            return
        if inode.file_type is FileType.DIRECTORY:
            raise _error(IsADirectoryError, errno.EISDIR, path)
        inode.data += content
        inode.mtime = self._clock()

    async def exists(self, path: str) -> bool:
        """Check whether a path exists in the file system."""
        return self._resolve(normalize_path(path)) is not None

    async def stat(self, path: str) -> FsStat:
        """Return metadata for the given path.

        Raises:
            FileNotFoundError: If the path does not exist.

        """
        inode = self._resolve(normalize_path(path))
        if inode is None:
            raise _error(FileNotFoundError, errno.ENOENT, path)
        return inode.to_stat()

    async def mkdir(self, path: str, *, recursive: bool = False) -> None:
        """Create a directory (see ``mkdir_sync``)."""
        self.mkdir_sync(path, recursive=recursive)

    async def readdir(self, path: str) -> list[str]:
        """List the names in a directory.

        Raises:
            FileNotFoundError: If the path does not exist.
            NotADirectoryError: If the path is not a directory.

        """
        inode = self._resolve(normalize_path(path))
        if inode is None:
            raise _error(FileNotFoundError, errno.ENOENT, path)
        if inode.file_type is not FileType.DIRECTORY:
            raise _error(NotADirectoryError, errno.ENOTDIR, path)
        return sorted(inode.children)

    async def rm(self, path: str, *, recursive: bool = False, force: bool = False) -> None:
        """Remove a file or directory.

        Raises:
            FileNotFoundError: If the path does not exist (unless *force*).
            OSError: ``ENOTEMPTY`` for a non-empty directory without
                *recursive*; ``EBUSY`` for the root directory.

        """
        normalized = normalize_path(path)
        if normalized == "/":
            raise _error(OSError, errno.EBUSY, path)
        inode = self._resolve(normalized)
        if inode is None:
            if force:
                return
            raise _error(FileNotFoundError, errno.ENOENT, path)
        if inode.children and not recursive:
            raise _error(OSError, errno.ENOTEMPTY, path)
        parent, name = self._parent_dir(normalized)
        del parent.children[name]
        parent.mtime = self._clock()
        self._forget(inode)

    async def cp(self, src: str, dest: str, *, recursive: bool = False) -> None:
        """Copy a file, or a whole directory tree when *recursive*.

        Raises:
            FileNotFoundError: If *src* does not exist.
            IsADirectoryError: If *src* is a directory and not *recursive*,
                or *dest* is an existing directory for a file copy.
            OSError: ``EINVAL`` when copying a directory into itself.

        """
        src_norm = normalize_path(src)
        dest_norm = normalize_path(dest)
        source = self._resolve(src_norm)
        if source is None:
            raise _error(FileNotFoundError, errno.ENOENT, src)
        if source.file_type is FileType.FILE:
            self.write_file_sync(dest_norm, source.data)
            return
        if not recursive:
            raise _error(IsADirectoryError, errno.EISDIR, src)
        if dest_norm == src_norm or dest_norm.startswith(src_norm.rstrip("/") + "/"):
            raise _error(OSError, errno.EINVAL, dest)
        self.mkdir_sync(dest_norm, recursive=True)
        for child in sorted(source.children):
            await self.cp(f"{src_norm.rstrip('/')}/{child}", f"{dest_norm}/{child}", recursive=True)

    async def mv(self, src: str, dest: str) -> None:
        """Move or rename *src* to exactly *dest*, replacing a file there.

        Raises:
            FileNotFoundError: If *src* (or the parent of *dest*) is missing.
            IsADirectoryError: If *dest* is an existing directory.
            NotADirectoryError: If a directory would replace a file.
            OSError: ``EINVAL`` when moving a directory into itself.

        """
        src_norm = normalize_path(src)
        dest_norm = normalize_path(dest)
        source = self._resolve(src_norm)
        if source is None:
            raise _error(FileNotFoundError, errno.ENOENT, src)
        if src_norm == dest_norm:
            return
        if src_norm == "/" or dest_norm.startswith(src_norm + "/"):
            raise _error(OSError, errno.EINVAL, dest)
        target = self._resolve(dest_norm)
        new_parent, new_name = self._parent_dir(dest_norm)
        if target is not None:
            if target.file_type is FileType.DIRECTORY:
                raise _error(IsADirectoryError, errno.EISDIR, dest)
            if source.file_type is FileType.DIRECTORY:
                raise _error(NotADirectoryError, errno.ENOTDIR, dest)
            del new_parent.children[new_name]
            self._forget(target)
        old_parent, old_name = self._parent_dir(src_norm)
        del old_parent.children[old_name]
        old_parent.mtime = self._clock()
        self._link(new_parent, new_name, source)

    def resolve_path(self, base: str, path: str) -> str:
        """Resolve *path* relative to *base* (absolute paths ignore *base*)."""
        if path.startswith("/"):
            return normalize_path(path)
        return normalize_path(f"{base}/{path}")

    def get_all_paths(self) -> list[str]:
        """Return every path in the tree, sorted, including ``/``."""
        paths: list[str] = []

        def _walk(inode: _Inode, prefix: str) -> None:
            for name, child_ino in inode.children.items():
                child_path = f"{prefix}/{name}"
                paths.append(child_path)
                _walk(self._inodes[child_ino], child_path)

        paths.append("/")
        _walk(self._inodes[self._root_ino], "")
        return sorted(paths)
