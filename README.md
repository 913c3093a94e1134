# fatshell

`fatshell` opens a raw disk image that has an MBR partition table. It looks
at the Linux-type partitions (type `0x83`), mounts one that holds a FAT32
filesystem (if several do, the last in the table is used) and gives you a
small interactive shell over the files in that filesystem's root directory.

## Installing

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Using the shell

```
fatshell disk.img
```

The image must carry the boot signature `55 AA` at the end of its first
sector and must contain a FAT32 partition; otherwise `fatshell` prints an
error and exits with status 1.

The shell writes `hello, stdout!` to standard output and `hello, stderr!`
(in red) to standard error, then shows a `SHELL > ` prompt and reads
keystrokes from standard input. A carriage return or a newline ends a line,
and DEL (`0x7f`) erases the last character. The commands are:

| Command | Effect |
| --- | --- |
| `echo TEXT` or `echo "TEXT WITH SPACES"` | prints the text and a newline |
| `cat /fat32/NAME` | prints the file; NUL bytes show as `x`, and a `$` line follows if the output does not end in a newline |
| `edit /fat32/NAME OFFSET TEXT` | overwrites the file from byte `OFFSET` with `TEXT` (which may be double-quoted); the file never grows |

If a file cannot be opened, the shell replies `can't open file: ...`. Any
other line gets the reply `command not found: ...`.

### How names are matched

The part of the path after `/fat32/` is upper-cased and its first eight
characters are compared with the 8-character base name of each entry in the
first sector of the root directory. The extension is not compared, so a
file is addressed by its base name alone, e.g. `/fat32/email`. Paths under
`/ext2/` are recognised but refused as unsupported.

## Using the library

```python
from fatshell.blockdev import open_device
from fatshell.fat32 import mount

with open_device("disk.img") as device:
    volume = mount(device)
    f = volume.open_file("/fat32/email")
    print(f.size())
    print(f.read(64))
```

The modules:

- `fatshell.blockdev`: `BlockDevice` reads and writes 512-byte sectors of a
  binary stream; `open_device` opens an image file and checks its boot
  signature; errors raise `BlockDeviceError`.
- `fatshell.mbr`: `parse_partition_table` decodes the four `PartitionEntry`
  slots of an MBR sector, and `linux_partitions` lists the type-`0x83` ones
  with their 1-based numbers.
- `fatshell.fat32`: `BootSector` and `DirEntry` decode on-disk structures,
  `is_fat32` checks a boot-sector signature, `mount` returns a `Fat32Volume`,
  and `Fat32Volume.open_file` returns a `Fat32File` with `size`, `seek`,
  `read` and `write`. Seeking is clamped to the file's size.
- `fatshell.fs`: `FileTable` holds up to 16 descriptors with `open`, `read`,
  `write`, `seek` and `close`; descriptors 0, 1 and 2 are `ConsoleStream`
  objects. `get_fs_type` maps a path prefix to an `FsType`; failures raise
  `FileError`.
- `fatshell.shell`: `Shell` with `execute` and `run`, the helpers `atoi`,
  `get_param` and `get_string`, and `main`, the `fatshell` command.
- `fatshell.printf`: `format_string`, a printf-style formatter supporting
  the flags `# 0 + space`, width, precision, the length modifiers `l z t j`
  and the conversions `d i u x X p s c n %`, and `strtol`.
- `fatshell.rand`: `Rand`, a 64-bit linear congruential generator with
  `srand` and `rand`.

## What it does not do

- It cannot create, delete, rename or grow files; `edit` only overwrites
  bytes already inside a file.
- Only the first sector of the root directory is searched; subdirectories
  and long file names are not supported.
- ext2 partitions are not read.