"""Master boot record partition table."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from fatshell.blockdev import SECTOR_SIZE, BlockDevice

MBR_MAX_PARTITIONS = 4
LINUX_PARTITION_TYPE = 0x83

_TABLE_OFFSET = 446
_ENTRY = struct.Struct("<B3sB3sII")


@dataclass(frozen=True)
class PartitionEntry:
    """One of the four primary partition slots of an MBR."""

    status: int
    chs_first_sector: bytes
    type: int
    chs_last_sector: bytes
    lba_first_sector: int
    sector_count: int

    @classmethod
    def parse(cls, data: bytes) -> PartitionEntry:
        """Decode a 16-byte table entry."""
        return cls(*_ENTRY.unpack(bytes(data[: _ENTRY.size])))

    def to_bytes(self) -> bytes:
        """Encode the entry in its 16-byte on-disk form."""
        return _ENTRY.pack(
            self.status,
            self.chs_first_sector,
            self.type,
            self.chs_last_sector,
            self.lba_first_sector,
            self.sector_count,
        )


def parse_partition_table(sector: bytes) -> list[PartitionEntry]:
    """Return the four partition entries held in an MBR sector."""
    if len(sector) < SECTOR_SIZE:
        raise ValueError(f"an MBR sector holds {SECTOR_SIZE} bytes, got {len(sector)}")
    return [
        PartitionEntry.parse(sector[offset : offset + _ENTRY.size])
        for offset in range(
            _TABLE_OFFSET, _TABLE_OFFSET + MBR_MAX_PARTITIONS * _ENTRY.size, _ENTRY.size
        )
    ]


def linux_partitions(device: BlockDevice) -> list[tuple[int, PartitionEntry]]:
    """List the Linux-type partitions of ``device`` with their 1-based numbers."""
    table = parse_partition_table(device.read_sector(0))
    return [
        (number, entry)
        for number, entry in enumerate(table, start=1)
        if entry.type == LINUX_PARTITION_TYPE
    ]