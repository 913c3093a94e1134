[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fatshell"
version = "0.1.0"
description = "A small shell that reads and overwrites files in the root directory of a FAT32 partition inside a raw MBR disk image"
requires-python = ">=3.10"
dependencies = []
keywords = ["fat32", "mbr", "disk image", "filesystem", "shell", "printf"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
fatshell = "fatshell.shell:main"

[tool.hatch.build.targets.wheel]
packages = ["fatshell"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
