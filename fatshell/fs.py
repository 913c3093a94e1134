"""Per-process file table over the console and a FAT32 volume."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import BinaryIO, Union

from fatshell.fat32 import SEEK_CUR, SEEK_END, SEEK_SET, Fat32File, Fat32Volume

__all__ = [
    "SEEK_SET",
    "SEEK_CUR",
    "SEEK_END",
    "FsType",
    "FileError",
    "ConsoleStream",
    "FileTable",
    "get_fs_type",
]

MAX_PATH_LENGTH = 80
MAX_FILE_NUMBER = 16

FILE_READABLE = 0x1
FILE_WRITABLE = 0x2

RED = "\033[31m"
CLEAR = "\033[0m"


class FsType(enum.IntEnum):
    """File systems known by path prefix."""

    FAT32 = 1
    EXT2 = 2


class FileError(OSError):
    """Raised when a file operation cannot be carried out."""


def get_fs_type(path: str) -> FsType | None:
    """Return the file system that ``path`` belongs to, or None if unknown."""
    if path.startswith("/fat32/"):
        return FsType.FAT32
    if path.startswith("/ext2/"):
        return FsType.EXT2
    return None


class ConsoleStream:
    """A console endpoint: readable from a byte source, writable to a byte sink."""

    def __init__(
        self,
        name: str,
        *,
        source: BinaryIO | None = None,
        sink: BinaryIO | None = None,
        color: str | None = None,
    ) -> None:
        self.name = name
        self._source = source
        self._sink = sink
        self._color = color

    def read(self, length: int) -> bytes:
        """Read up to ``length`` bytes, fewer only at end of input."""
        if self._source is None:
            raise FileError(f"{self.name} is not readable")
        if length < 0:
            raise ValueError("length must not be negative")
        return bytes(self._source.read(length) or b"")

    def write(self, data: bytes | str) -> int:
        """Write ``data`` up to its first NUL and return the count written."""
        if self._sink is None:
            raise FileError(f"{self.name} is not writable")
        if isinstance(data, str):
            data = data.encode()
        text = bytes(data).split(b"\0", 1)[0]
        if self._color:
            self._sink.write(self._color.encode())
        self._sink.write(text)
        if self._color:
            self._sink.write(CLEAR.encode())
        self._sink.flush()
        return len(text)


_Handle = Union[ConsoleStream, Fat32File]


@dataclass
class _OpenFile:
    path: str
    perms: int
    fs_type: FsType | None
    handle: _Handle


class FileTable:
    """Open files of a process, indexed by descriptor; 0-2 are the console."""

    def __init__(
        self,
        volume: Fat32Volume | None = None,
        *,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
        stderr: BinaryIO | None = None,
    ) -> None:
        self._volume = volume
        self._slots: list[_OpenFile | None] = [None] * MAX_FILE_NUMBER
        self._slots[0] = _OpenFile(
            "stdin", FILE_READABLE, None,
            ConsoleStream("stdin", source=stdin if stdin is not None else sys.stdin.buffer),
        )
        self._slots[1] = _OpenFile(
            "stdout", FILE_WRITABLE, None,
            ConsoleStream("stdout", sink=stdout if stdout is not None else sys.stdout.buffer),
        )
        self._slots[2] = _OpenFile(
            "stderr", FILE_WRITABLE, None,
            ConsoleStream(
                "stderr",
                sink=stderr if stderr is not None else sys.stderr.buffer,
                color=RED,
            ),
        )

    def _entry(self, fd: int) -> _OpenFile:
        entry = self._slots[fd] if 0 <= fd < MAX_FILE_NUMBER else None
        if entry is None:
            raise FileError(f"bad file descriptor {fd}")
        return entry

    def open(self, path: str, flags: int) -> int:
        """Open ``path`` with permission ``flags`` and return its descriptor."""
        if len(path) >= MAX_PATH_LENGTH:
            raise FileError(f"path too long: {path}")
        fd = next((fd for fd, slot in enumerate(self._slots) if slot is None), None)
        if fd is None:
            raise FileError("too many open files")
        fs_type = get_fs_type(path)
        if fs_type is FsType.EXT2:
            raise FileError("unsupported file system: ext2")
        if fs_type is None:
            raise FileError(f"unknown fs type: {path}")
        if self._volume is None:
            raise FileError("no FAT32 volume mounted")
        try:
            handle = self._volume.open_file(path)
        except FileNotFoundError as exc:
            raise FileError(f"file not found: {path}") from exc
        self._slots[fd] = _OpenFile(path, flags, fs_type, handle)
        return fd

    def read(self, fd: int, length: int) -> bytes:
        """Read up to ``length`` bytes from descriptor ``fd``."""
        entry = self._entry(fd)
        if not entry.perms & FILE_READABLE:
            raise FileError(f"{entry.path} is not open for reading")
        return entry.handle.read(length)

    def write(self, fd: int, data: bytes) -> int:
        """Write ``data`` to descriptor ``fd`` and return the count written."""
        entry = self._entry(fd)
        if not entry.perms & FILE_WRITABLE:
            raise FileError(f"{entry.path} is not open for writing")
        return entry.handle.write(data)

    def seek(self, fd: int, offset: int, whence: int = SEEK_SET) -> int:
        """Move the offset of descriptor ``fd`` and return the new one."""
        entry = self._entry(fd)
        if not isinstance(entry.handle, Fat32File):
            raise FileError(f"{entry.path} is not seekable")
        return entry.handle.seek(offset, whence)

    def close(self, fd: int) -> None:
        """Release descriptor ``fd``."""
        self._entry(fd)
        self._slots[fd] = None