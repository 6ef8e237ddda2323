import gzip
from pathlib import Path

import pytest

KERNEL_BYTES = bytes.fromhex("2705195600000004")
INITRD_BYTES = bytes.fromhex("2705195600000008")


def squashfs_bytes() -> bytes:
    data = bytearray(0x900)
    data[0x800:0x804] = b"hsqs"
    return bytes(data)


@pytest.fixture
def kernel_file(tmp_path: Path) -> Path:
    path = tmp_path / "kernel.uImage"
    path.write_bytes(KERNEL_BYTES)
    return path


@pytest.fixture
def initrd_file(tmp_path: Path) -> Path:
    path = tmp_path / "initrd.uImage"
    path.write_bytes(INITRD_BYTES)
    return path


@pytest.fixture
def defaults_file(tmp_path: Path) -> Path:
    path = tmp_path / "defaults.tar.gz"
    path.write_bytes(gzip.compress(b"etc/hostname\x00nas\n" * 8))
    return path


@pytest.fixture
def squashfs_file(tmp_path: Path) -> Path:
    path = tmp_path / "rootfs.squashfs"
    path.write_bytes(squashfs_bytes())
    return path
