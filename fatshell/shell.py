"""An interactive shell with echo, cat and edit over the file table."""

from __future__ import annotations

import argparse
import sys
from typing import BinaryIO, Sequence

from fatshell.blockdev import BlockDeviceError, open_device
from fatshell.fat32 import mount
from fatshell.fs import SEEK_SET, FileError, FileTable
from fatshell.printf import format_string

__all__ = ["Shell", "atoi", "get_param", "get_string", "main"]

YELLOW = "\033[33m"
CLEAR = "\033[0m"
PROMPT = YELLOW + "SHELL > " + CLEAR

O_RDONLY = 0x0001
O_WRONLY = 0x0002
O_RDWR = 0x0003

CAT_BUF_SIZE = 509

STDOUT = 1
STDERR = 2

_CR = 0x0D
_LF = 0x0A
_DELETE = 0x7F
_ENCODING = "latin-1"


def atoi(text: str) -> int:
    """Read ``text`` as decimal digits into a 32-bit signed int, unchecked."""
    value = 0
    for ch in text:
        value = value * 10 + ord(ch) - ord("0")
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >> 31 else value


def get_param(cmd: str) -> str:
    """Return the first space-delimited word of ``cmd``."""
    return cmd.lstrip(" ").split(" ", 1)[0]


def get_string(cmd: str) -> str:
    """Return a double-quoted string at the start of ``cmd``, or its first word."""
    cmd = cmd.lstrip(" ")
    if cmd.startswith('"'):
        return cmd[1:].split('"', 1)[0]
    return get_param(cmd)


class Shell:
    """Runs commands against a file table whose descriptor 1 is the console."""

    def __init__(self, files: FileTable) -> None:
        self.files = files

    def _printf(self, fmt: str, *args: object) -> int:
        text = format_string(fmt, *args)
        self.files.write(STDOUT, text.encode(_ENCODING, "replace"))
        return len(text)

    def _write_text(self, text: str) -> None:
        self.files.write(STDOUT, text.encode(_ENCODING, "replace"))

    def execute(self, line: str) -> None:
        """Run one command line: ``echo``, ``cat`` or ``edit``."""
        if line.startswith("echo"):
            self._write_text(get_string(line[4:]))
            self._write_text("\n")
        elif line.startswith("cat"):
            self._cat(get_param(line[3:]))
        elif line.startswith("edit"):
            self._edit(line[4:])
        else:
            self._printf("command not found: %s\n", line)

    def _cat(self, filename: str) -> None:
        try:
            fd = self.files.open(filename, O_RDONLY)
        except FileError:
            self._printf("can't open file: %s\n", filename)
            return
        last: int | None = None
        try:
            while chunk := self.files.read(fd, CAT_BUF_SIZE):
                self.files.write(STDOUT, chunk.replace(b"\0", b"x"))
                last = chunk[-1]
            if last != _LF:
                self._printf("$\n")
        finally:
            self.files.close(fd)

    def _edit(self, args: str) -> None:
        rest = args.lstrip(" ")
        filename = get_param(rest)
        rest = rest[len(filename):].lstrip(" ")
        offset = get_param(rest)
        rest = rest[len(offset):].lstrip(" ")
        content = get_string(rest)

        try:
            fd = self.files.open(filename, O_RDWR)
        except FileError:
            self._printf("can't open file: %s\n", filename)
            return
        try:
            self.files.seek(fd, atoi(offset), SEEK_SET)
            self.files.write(fd, content.encode(_ENCODING, "replace"))
        finally:
            self.files.close(fd)

    def run(self, stream: BinaryIO) -> None:
        """Greet, then read keystrokes from ``stream`` until it ends.

        A carriage return or newline ends a line; DEL erases the last character.
        """
        self.files.write(STDOUT, b"hello, stdout!\n")
        self.files.write(STDERR, b"hello, stderr!\n")
        self._printf(PROMPT)
        line = bytearray()
        while byte := stream.read(1):
            ch = byte[0]
            if ch == _DELETE:
                if line:
                    self.files.write(STDOUT, b"\b \b")
                    line.pop()
                continue
            if ch == _CR:
                self.files.write(STDOUT, b"\n")
            self.files.write(STDOUT, bytes(byte))
            if ch in (_CR, _LF):
                self.execute(line.decode(_ENCODING))
                line.clear()
                self._printf(PROMPT)
            else:
                line.append(ch)


def main(argv: Sequence[str] | None = None) -> int:
    """Mount the FAT32 partition of a disk image and run the shell on stdin."""
    parser = argparse.ArgumentParser(
        prog="fatshell", description="Shell over the FAT32 partition of a disk image."
    )
    parser.add_argument("image", help="raw disk image with an MBR partition table")
    args = parser.parse_args(argv)

    try:
        device = open_device(args.image)
    except (OSError, BlockDeviceError) as exc:
        print(f"fatshell: {exc}", file=sys.stderr)
        return 1
    with device:
        try:
            volume = mount(device)
        except ValueError as exc:
            print(f"fatshell: {exc}", file=sys.stderr)
            return 1
        shell = Shell(FileTable(volume))
        shell.run(sys.stdin.buffer)
    return 0