"""Read and overwrite files on a FAT32 partition inside a raw MBR disk image."""

__version__ = "0.1.0"