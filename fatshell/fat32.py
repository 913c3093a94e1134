"""FAT32 volumes: boot sector, root directory lookup and file access."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Iterator

from fatshell.blockdev import SECTOR_SIZE, BlockDevice
from fatshell.mbr import linux_partitions

logger = logging.getLogger(__name__)

SEEK_SET = 0
SEEK_CUR = 1
SEEK_END = 2

BOOT_SECTOR_SIGNATURE = 0xAA55
END_OF_CHAIN = 0x0FFFFFF8
ROOT_CLUSTER = 2
DIR_ENTRY_SIZE = 32
ENTRIES_PER_SECTOR = SECTOR_SIZE // DIR_ENTRY_SIZE

_DIRENT_NEVER_USED = 0x00
_DIRENT_DELETED = 0xE5
_CLUSTER_MASK = 0x0FFFFFFF
_PATH_PREFIX_LEN = len("/fat32/")
_NAME_LEN = 8

_BPB = struct.Struct("<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s420sH")
_DIRENT = struct.Struct("<8s3sBBBHHHHHHHI")
_FAT_ENTRY = struct.Struct("<I")

_UPPER = str.maketrans("abcdefghijklmnopqrstuvwxyz", "ABCDEFGHIJKLMNOPQRSTUVWXYZ")


@dataclass(frozen=True)
class BootSector:
    """The BIOS parameter block found in the first sector of a FAT32 volume."""

    jmp_boot: bytes
    oem_name: bytes
    bytes_per_sec: int
    sec_per_clus: int
    rsvd_sec_cnt: int
    num_fats: int
    root_ent_cnt: int
    tot_sec16: int
    media: int
    fat_sz16: int
    sec_per_trk: int
    num_heads: int
    hidd_sec: int
    tot_sec32: int
    fat_sz32: int
    ext_flags: int
    fs_ver: int
    root_clus: int
    fs_info: int
    bk_boot_sec: int
    reserved: bytes
    drv_num: int
    reserved1: int
    boot_sig: int
    vol_id: int
    vol_lab: bytes
    fil_sys_type: bytes
    boot_code: bytes
    boot_sector_signature: int

    @classmethod
    def parse(cls, data: bytes) -> BootSector:
        """Decode a 512-byte boot sector."""
        if len(data) < _BPB.size:
            raise ValueError(f"a boot sector holds {_BPB.size} bytes, got {len(data)}")
        return cls(*_BPB.unpack(bytes(data[: _BPB.size])))

    def to_bytes(self) -> bytes:
        """Encode the boot sector in its on-disk form."""
        return _BPB.pack(
            self.jmp_boot, self.oem_name, self.bytes_per_sec, self.sec_per_clus,
            self.rsvd_sec_cnt, self.num_fats, self.root_ent_cnt, self.tot_sec16,
            self.media, self.fat_sz16, self.sec_per_trk, self.num_heads,
            self.hidd_sec, self.tot_sec32, self.fat_sz32, self.ext_flags,
            self.fs_ver, self.root_clus, self.fs_info, self.bk_boot_sec,
            self.reserved, self.drv_num, self.reserved1, self.boot_sig,
            self.vol_id, self.vol_lab, self.fil_sys_type, self.boot_code,
            self.boot_sector_signature,
        )


@dataclass(frozen=True)
class DirEntry:
    """A 32-byte short-name directory entry."""

    name: bytes
    ext: bytes = b"   "
    attr: int = 0
    lcase: int = 0
    ctime_cs: int = 0
    ctime: int = 0
    cdate: int = 0
    adate: int = 0
    starthi: int = 0
    time: int = 0
    date: int = 0
    startlow: int = 0
    size: int = 0

    @classmethod
    def parse(cls, data: bytes) -> DirEntry:
        """Decode a 32-byte directory entry."""
        if len(data) < _DIRENT.size:
            raise ValueError(
                f"a directory entry holds {_DIRENT.size} bytes, got {len(data)}"
            )
        return cls(*_DIRENT.unpack(bytes(data[: _DIRENT.size])))

    @property
    def cluster(self) -> int:
        """First cluster of the entry's data."""
        return self.starthi << 16 | self.startlow

    def to_bytes(self) -> bytes:
        """Encode the entry in its on-disk form."""
        return _DIRENT.pack(
            self.name, self.ext, self.attr, self.lcase, self.ctime_cs,
            self.ctime, self.cdate, self.adate, self.starthi, self.time,
            self.date, self.startlow, self.size,
        )


def is_fat32(device: BlockDevice, lba: int) -> bool:
    """Tell whether the sector at ``lba`` carries a boot-sector signature."""
    return BootSector.parse(device.read_sector(lba)).boot_sector_signature == BOOT_SECTOR_SIGNATURE


def _short_name(path: str) -> bytes:
    text = path.translate(_UPPER)[_PATH_PREFIX_LEN : _PATH_PREFIX_LEN + _NAME_LEN]
    text = text.split("\0", 1)[0]
    return text.encode("latin-1", "replace").ljust(_NAME_LEN, b" ")


def _raw_entries(sector: bytes) -> Iterator[bytes]:
    for offset in range(0, ENTRIES_PER_SECTOR * DIR_ENTRY_SIZE, DIR_ENTRY_SIZE):
        yield sector[offset : offset + DIR_ENTRY_SIZE]


@dataclass
class Fat32Volume:
    """Geometry of a mounted FAT32 volume on a block device."""

    device: BlockDevice
    first_data_sec: int
    first_fat_sec: int
    sec_per_cluster: int
    fat_sz: int

    @classmethod
    def _load(cls, device: BlockDevice, lba: int) -> Fat32Volume:
        bpb = BootSector.parse(device.read_sector(lba))
        first_fat_sec = lba + bpb.rsvd_sec_cnt
        return cls(
            device=device,
            first_data_sec=first_fat_sec + bpb.num_fats * bpb.fat_sz32,
            first_fat_sec=first_fat_sec,
            sec_per_cluster=bpb.sec_per_clus,
            fat_sz=bpb.fat_sz32,
        )

    def cluster_to_sector(self, cluster: int) -> int:
        """Return the first sector of data cluster ``cluster``."""
        return (cluster - 2) * self.sec_per_cluster + self.first_data_sec

    def _next_cluster(self, cluster: int) -> int:
        offset = cluster * _FAT_ENTRY.size
        table = self.device.read_sector(self.first_fat_sec + offset // SECTOR_SIZE)
        (value,) = _FAT_ENTRY.unpack_from(table, offset % SECTOR_SIZE)
        return value & _CLUSTER_MASK

    def _chain_sectors(self, start: int) -> Iterator[int]:
        cluster = start
        seen: set[int] = set()
        while ROOT_CLUSTER <= cluster < END_OF_CHAIN:
            if cluster in seen:
                raise ValueError(f"cluster chain loops back to cluster {cluster:#x}")
            seen.add(cluster)
            first = self.cluster_to_sector(cluster)
            yield from range(first, first + self.sec_per_cluster)
            cluster = self._next_cluster(cluster)

    def open_file(self, path: str) -> Fat32File:
        """Look up ``path`` (``/fat32/NAME``) in the root directory.

        Names are matched case-insensitively on their first eight characters.
        Raises FileNotFoundError when no entry matches or the entry has no data.
        """
        name = _short_name(path)
        root = self.device.read_sector(self.first_data_sec)
        for index, raw in enumerate(_raw_entries(root)):
            if raw[0] == _DIRENT_NEVER_USED:
                break
            if raw[0] == _DIRENT_DELETED:
                continue
            entry = DirEntry.parse(raw)
            if entry.name == name:
                logger.debug(
                    "file: %r, cluster: %#x, dir.cluster: %#x, dir.index: %#x",
                    name, entry.cluster, ROOT_CLUSTER, index,
                )
                if entry.cluster == 0:
                    break
                return Fat32File(self, entry.cluster, ROOT_CLUSTER, index)
        raise FileNotFoundError(f"file not found: {path}")


@dataclass
class Fat32File:
    """An open file on a FAT32 volume with its current offset."""

    volume: Fat32Volume
    cluster: int
    dir_cluster: int
    dir_index: int
    cfo: int = 0

    def _entry(self) -> DirEntry:
        sector = self.volume.device.read_sector(
            self.volume.cluster_to_sector(self.dir_cluster)
        )
        offset = self.dir_index * DIR_ENTRY_SIZE
        return DirEntry.parse(sector[offset : offset + DIR_ENTRY_SIZE])

    def size(self) -> int:
        """Length of the file as recorded in its directory entry."""
        return self._entry().size

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """Move the offset, clamped to ``[0, size]``, and return it."""
        size = self.size()
        if whence == SEEK_SET:
            target = offset
        elif whence == SEEK_CUR:
            target = self.cfo + offset
        elif whence == SEEK_END:
            target = size + offset
        else:
            raise ValueError(f"unsupported whence {whence}")
        self.cfo = min(size, max(0, target))
        return self.cfo

    def _segments(self, start: int, end: int) -> Iterator[tuple[int, int, int]]:
        """Yield (sector, low, high) byte ranges covering file bytes [start, end)."""
        pos = 0
        for sector in self.volume._chain_sectors(self.cluster):
            if pos >= end:
                break
            if pos + SECTOR_SIZE > start:
                yield sector, max(start - pos, 0), min(end - pos, SECTOR_SIZE)
            pos += SECTOR_SIZE

    def _span(self, length: int) -> tuple[int, int] | None:
        if length < 0:
            raise ValueError("length must not be negative")
        size = self.size()
        if self.cfo >= size:
            return None
        return self.cfo, self.cfo + min(length, size - self.cfo)

    def read(self, length: int) -> bytes:
        """Read up to ``length`` bytes from the offset, stopping at end of file."""
        span = self._span(length)
        if span is None:
            return b""
        start, end = span
        out = bytearray()
        for sector, low, high in self._segments(start, end):
            out += self.volume.device.read_sector(sector)[low:high]
        self.cfo = start + len(out)
        return bytes(out)

    def write(self, data: bytes) -> int:
        """Overwrite bytes from the offset; the file never grows. Returns the count."""
        data = bytes(data)
        span = self._span(len(data))
        if span is None:
            return 0
        start, end = span
        device = self.volume.device
        written = 0
        for sector, low, high in self._segments(start, end):
            block = bytearray(device.read_sector(sector))
            block[low:high] = data[written : written + high - low]
            device.write_sector(sector, bytes(block))
            written += high - low
        self.cfo = start + written
        return written


def mount(device: BlockDevice) -> Fat32Volume:
    """Mount the FAT32 volume found among the Linux partitions of ``device``.

    When several qualify, the last one wins. Raises ValueError if none does.
    """
    volume: Fat32Volume | None = None
    for number, entry in linux_partitions(device):
        if is_fat32(device, entry.lba_first_sector):
            volume = Fat32Volume._load(device, entry.lba_first_sector)
            logger.info(
                "FAT32: first_fat_sec = %#x, sec_per_cluster = %#x, "
                "first_data_sec = %#x, fat_sz = %#x",
                volume.first_fat_sec, volume.sec_per_cluster,
                volume.first_data_sec, volume.fat_sz,
            )
            logger.info("fat32 partition #%d init done", number)
    if volume is None:
        raise ValueError("no FAT32 partition found")
    return volume