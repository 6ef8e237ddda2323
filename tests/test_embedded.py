import dataclasses
import logging

import pytest

from dns323fw.embedded import EmbeddedFile
from dns323fw.errors import ChecksumMismatch, SignatureMismatch
from dns323fw.headers import checksum
from dns323fw.layout import FileRole

from .conftest import KERNEL_BYTES, squashfs_bytes


def test_from_file_computes_checksum(kernel_file):
    embedded = EmbeddedFile.from_file(kernel_file, FileRole.KERNEL)
    assert embedded.contents == KERNEL_BYTES
    assert embedded.checksum == checksum(KERNEL_BYTES)
    assert embedded.origin_filename == str(kernel_file)
    assert embedded.size == 8


def test_from_file_missing(tmp_path):
    with pytest.raises(OSError):
        EmbeddedFile.from_file(tmp_path / "nope", FileRole.KERNEL)


def test_from_parsed_trusts_checksum():
    embedded = EmbeddedFile.from_parsed(KERNEL_BYTES, 0xDEADBEEF, FileRole.KERNEL)
    assert embedded.checksum == 0xDEADBEEF
    assert embedded.origin_filename is None



def test_embedded_file_is_frozen():
    embedded = EmbeddedFile.from_parsed(KERNEL_BYTES, 0, FileRole.KERNEL)
    with pytest.raises(dataclasses.FrozenInstanceError):
        embedded.checksum = 1

def test_valid_kernel(kernel_file):
    assert EmbeddedFile.from_file(kernel_file, FileRole.KERNEL).validate()


def test_checksum_mismatch_is_reported(caplog):
    embedded = EmbeddedFile.from_parsed(KERNEL_BYTES, 1, FileRole.KERNEL)
    with caplog.at_level(logging.WARNING):
        assert not embedded.validate()
    assert "checksum mismatch" in caplog.text

    issues = embedded.issues()
    assert len(issues) == 1
    assert isinstance(issues[0], ChecksumMismatch)
    assert issues[0].stored == 1
    assert issues[0].computed == checksum(KERNEL_BYTES)


def test_strict_raises():
    embedded = EmbeddedFile.from_parsed(KERNEL_BYTES, 1, FileRole.KERNEL)
    with pytest.raises(ChecksumMismatch):
        embedded.validate(strict=True)


@pytest.mark.parametrize("role", [FileRole.KERNEL, FileRole.INITRD])
def test_uimage_magic_required(role):
    data = b"\x00\x01\x02\x03\x04\x05\x06\x07"
    embedded = EmbeddedFile.from_parsed(data, checksum(data), role)
    issues = embedded.issues()
    assert len(issues) == 1
    assert isinstance(issues[0], SignatureMismatch)
    assert "does not appear to be a container image file" in str(issues[0])


def test_defaults_gzip_magic():
    good = b"\x1f\x8b\x08\x00" + bytes(12)
    bad = b"PK\x03\x04" + bytes(12)
    assert EmbeddedFile.from_parsed(good, checksum(good), FileRole.DEFAULTS).validate()
    assert not EmbeddedFile.from_parsed(bad, checksum(bad), FileRole.DEFAULTS).validate()


def test_squashfs_magic_at_offset():
    good = squashfs_bytes()
    assert EmbeddedFile.from_parsed(good, checksum(good), FileRole.SQUASHFS).validate()

    swapped = bytearray(good)
    swapped[0x800:0x804] = b"shsq"
    swapped = bytes(swapped)
    assert EmbeddedFile.from_parsed(swapped, checksum(swapped), FileRole.SQUASHFS).validate()

    # magic at the start of the file is not where the loader looks
    wrong = b"hsqs" + bytes(0x900)
    assert not EmbeddedFile.from_parsed(wrong, checksum(wrong), FileRole.SQUASHFS).validate()


def test_short_squashfs_fails():
    data = b"hsqs"
    issues = EmbeddedFile.from_parsed(data, checksum(data), FileRole.SQUASHFS).issues()
    assert [type(i) for i in issues] == [SignatureMismatch]


def test_both_problems_reported():
    data = b"garbage!"
    issues = EmbeddedFile.from_parsed(data, 0, FileRole.INITRD).issues()
    assert {type(i) for i in issues} == {ChecksumMismatch, SignatureMismatch}


def test_write_to_overwrites(tmp_path):
    target = tmp_path / "out.bin"
    target.write_bytes(b"old contents that are longer")
    EmbeddedFile.from_parsed(KERNEL_BYTES, 0, FileRole.KERNEL).write_to(target)
    assert target.read_bytes() == KERNEL_BYTES
