import io
import struct

import pytest

from fatshell.blockdev import BlockDevice
from fatshell.fat32 import DirEntry, mount
from fatshell.fs import (
    SEEK_END,
    SEEK_SET,
    ConsoleStream,
    FileError,
    FileTable,
    FsType,
    get_fs_type,
)
from fatshell.mbr import PartitionEntry

SECTOR = 512
CONTENT = b"hello, fat32 world\n"
O_RDONLY = 1
O_WRONLY = 2
O_RDWR = 3


def _image():
    image = bytearray(SECTOR * 8)
    entry = PartitionEntry(0, b"\0\0\0", 0x83, b"\0\0\0", 1, 7)
    image[446:462] = entry.to_bytes()
    image[510:512] = b"\x55\xaa"
    boot = SECTOR
    struct.pack_into("<H", image, boot + 11, SECTOR)
    struct.pack_into("<B", image, boot + 13, 1)
    struct.pack_into("<H", image, boot + 14, 1)
    struct.pack_into("<B", image, boot + 16, 1)
    struct.pack_into("<I", image, boot + 36, 1)
    struct.pack_into("<H", image, boot + 510, 0xAA55)
    # FAT at sector 2, data (cluster 2) at sector 3, cluster 3 at sector 4
    struct.pack_into("<4I", image, 2 * SECTOR, 0x0FFFFFF8, 0x0FFFFFFF, 0x0FFFFFFF, 0x0FFFFFFF)
    dirent = DirEntry(name=b"EMAIL   ", startlow=3, size=len(CONTENT))
    image[3 * SECTOR : 3 * SECTOR + 32] = dirent.to_bytes()
    image[4 * SECTOR : 4 * SECTOR + len(CONTENT)] = CONTENT
    return image


@pytest.fixture
def streams():
    return io.BytesIO(b"typed"), io.BytesIO(), io.BytesIO()


@pytest.fixture
def table(streams):
    stdin, stdout, stderr = streams
    volume = mount(BlockDevice(io.BytesIO(bytes(_image()))))
    return FileTable(volume, stdin=stdin, stdout=stdout, stderr=stderr)


def test_get_fs_type():
    assert get_fs_type("/fat32/email") is FsType.FAT32
    assert get_fs_type("/ext2/email") is FsType.EXT2
    assert get_fs_type("/proc/email") is None
    assert get_fs_type("fat32/email") is None


def test_stdout_write_stops_at_nul(table, streams):
    assert table.write(1, b"hi\0junk") == 2
    assert streams[1].getvalue() == b"hi"


def test_stderr_write_is_red(table, streams):
    assert table.write(2, "oops") == 4
    assert streams[2].getvalue() == b"\033[31moops\033[0m"


def test_stdin_read(table):
    assert table.read(0, 3) == b"typ"
    assert table.read(0, 10) == b"ed"


def test_console_direction_enforced(table):
    with pytest.raises(FileError):
        table.write(0, b"x")
    with pytest.raises(FileError):
        table.read(1, 1)


def test_console_stream_without_sink():
    stream = ConsoleStream("null", source=io.BytesIO(b"abc"))
    assert stream.read(2) == b"ab"
    with pytest.raises(FileError):
        stream.write(b"x")


def test_console_not_seekable(table):
    with pytest.raises(FileError):
        table.seek(1, 0, SEEK_SET)


def test_open_read_close(table):
    fd = table.open("/fat32/email", O_RDONLY)
    assert fd == 3
    assert table.read(fd, 100) == CONTENT
    assert table.read(fd, 100) == b""
    table.close(fd)
    with pytest.raises(FileError):
        table.read(fd, 1)


def test_descriptor_reused_after_close(table):
    first = table.open("/fat32/email", O_RDONLY)
    table.close(first)
    assert table.open("/fat32/email", O_RDONLY) == first


def test_seek_and_write_round_trip(table):
    fd = table.open("/fat32/email", O_RDWR)
    assert table.seek(fd, 7, SEEK_SET) == 7
    assert table.write(fd, b"FAT32") == 5
    assert table.seek(fd, 0, SEEK_SET) == 0
    assert table.read(fd, 100) == CONTENT[:7] + b"FAT32" + CONTENT[12:]
    assert table.seek(fd, 0, SEEK_END) == len(CONTENT)


def test_permissions_enforced(table):
    read_only = table.open("/fat32/email", O_RDONLY)
    with pytest.raises(FileError):
        table.write(read_only, b"x")
    write_only = table.open("/fat32/email", O_WRONLY)
    with pytest.raises(FileError):
        table.read(write_only, 1)


def test_open_errors(table):
    with pytest.raises(FileError):
        table.open("/fat32/missing", O_RDONLY)
    with pytest.raises(FileError):
        table.open("/ext2/email", O_RDONLY)
    with pytest.raises(FileError):
        table.open("/other/email", O_RDONLY)
    with pytest.raises(FileError):
        table.open("/fat32/" + "a" * 80, O_RDONLY)


def test_open_without_volume(streams):
    stdin, stdout, stderr = streams
    empty = FileTable(stdin=stdin, stdout=stdout, stderr=stderr)
    with pytest.raises(FileError):
        empty.open("/fat32/email", O_RDONLY)


def test_table_fills_up(table):
    fds = [table.open("/fat32/email", O_RDONLY) for _ in range(13)]
    assert fds == list(range(3, 16))
    with pytest.raises(FileError):
        table.open("/fat32/email", O_RDONLY)


def test_bad_descriptors(table):
    with pytest.raises(FileError):
        table.close(9)
    with pytest.raises(FileError):
        table.read(-1, 1)
    with pytest.raises(FileError):
        table.write(16, b"x")