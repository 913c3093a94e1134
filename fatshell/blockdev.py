"""Sector-addressed access to a raw disk image."""

from __future__ import annotations

import os
from typing import BinaryIO

SECTOR_SIZE = 512
BOOT_SIGNATURE = b"\x55\xaa"
_SIGNATURE_OFFSET = SECTOR_SIZE - len(BOOT_SIGNATURE)


class BlockDeviceError(OSError):
    """Raised when the device cannot serve a sector request."""


class BlockDevice:
    """A disk made of fixed 512-byte sectors, backed by a binary stream."""

    sector_size = SECTOR_SIZE

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    @property
    def capacity(self) -> int:
        """Number of whole sectors the device holds."""
        end = self._stream.seek(0, os.SEEK_END)
        return end // SECTOR_SIZE

    def _locate(self, sector: int) -> None:
        if sector < 0:
            raise BlockDeviceError(f"invalid sector number {sector}")
        self._stream.seek(sector * SECTOR_SIZE)

    def read_sector(self, sector: int) -> bytes:
        """Return the 512 bytes stored at ``sector``."""
        self._locate(sector)
        data = self._stream.read(SECTOR_SIZE)
        if len(data) != SECTOR_SIZE:
            raise BlockDeviceError(f"sector {sector} is beyond the end of the device")
        return data

    def write_sector(self, sector: int, data: bytes) -> None:
        """Store exactly 512 bytes of ``data`` at ``sector``."""
        data = bytes(data)
        if len(data) != SECTOR_SIZE:
            raise ValueError(
                f"a sector holds {SECTOR_SIZE} bytes, got {len(data)}"
            )
        if sector >= self.capacity:
            raise BlockDeviceError(f"sector {sector} is beyond the end of the device")
        self._locate(sector)
        self._stream.write(data)
        self._stream.flush()

    def check_boot_signature(self) -> None:
        """Raise BlockDeviceError unless sector 0 ends with the MBR signature."""
        first = self.read_sector(0)
        if first[_SIGNATURE_OFFSET:] != BOOT_SIGNATURE:
            raise BlockDeviceError("mbr boot signature not found")

    def close(self) -> None:
        """Release the underlying stream."""
        self._stream.close()

    def __enter__(self) -> BlockDevice:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_device(path: str | os.PathLike[str]) -> BlockDevice:
    """Open the disk image at ``path`` for reading and writing.

    The image must carry a boot signature in its first sector.
    """
    device = BlockDevice(open(path, "r+b"))
    try:
        device.check_boot_signature()
    except BaseException:
        device.close()
        raise
    return device