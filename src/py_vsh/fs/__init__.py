"""File system subsystem — the async contract and the in-memory backend.

Re-exports public symbols so callers can write::

    from py_vsh.fs import FileSystem, VirtualFs
"""

from py_vsh.fs.interface import FileSystem, FsStat
from py_vsh.fs.virtual import FileType, VirtualFs, normalize_path

__all__ = [
    "FileSystem",
    "FileType",
    "FsStat",
    "VirtualFs",
    "normalize_path",
]
