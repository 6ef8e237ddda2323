import json
import logging

import pytest

from dns323fw import build_firmware, split_firmware

from .conftest import INITRD_BYTES, KERNEL_BYTES


def test_build_then_split(tmp_path, kernel_file, initrd_file):
    image = tmp_path / "fw.bin"
    rc = build_firmware.main([
        str(image),
        "-k", str(kernel_file),
        "-i", str(initrd_file),
        "-t", "dns323",
    ])
    assert rc == 0
    assert len(image.read_bytes()) == 80

    kernel_out = tmp_path / "kernel.out"
    initrd_out = tmp_path / "initrd.out"
    report = tmp_path / "fw.json"
    rc = split_firmware.main([
        str(image),
        "-k", str(kernel_out),
        "-i", str(initrd_out),
        "--json", str(report),
    ])
    assert rc == 0
    assert kernel_out.read_bytes() == KERNEL_BYTES
    assert initrd_out.read_bytes() == INITRD_BYTES
    assert json.loads(report.read_text())["device"]["product_id"] == 7


def test_explicit_ids_override_device(tmp_path, kernel_file, initrd_file):
    image = tmp_path / "fw.bin"
    rc = build_firmware.main([
        str(image),
        "-k", str(kernel_file),
        "-i", str(initrd_file),
        "-t", "dns323",
        "-c", "0x02",
        "--compat-id", "3",
    ])
    assert rc == 0
    data = image.read_bytes()
    assert data[48:53] == bytes([7, 2, 1, 1, 3])


def test_build_without_ids_fails(tmp_path, kernel_file, initrd_file, caplog):
    with caplog.at_level(logging.ERROR):
        rc = build_firmware.main([
            str(tmp_path / "fw.bin"),
            "-k", str(kernel_file),
            "-i", str(initrd_file),
        ])
    assert rc == 1
    assert "product_id" in caplog.text
    assert not (tmp_path / "fw.bin").exists()


def test_build_warns_on_bad_input(tmp_path, initrd_file, caplog):
    kernel = tmp_path / "zImage"
    kernel.write_bytes(b"\x00" * 16)
    with caplog.at_level(logging.WARNING):
        rc = build_firmware.main([
            str(tmp_path / "fw.bin"),
            "-k", str(kernel),
            "-i", str(initrd_file),
            "-t", "dns323",
        ])
    assert rc == 0
    assert "container image" in caplog.text
    assert "brick" in caplog.text


def test_build_strict_aborts_on_bad_input(tmp_path, initrd_file):
    kernel = tmp_path / "zImage"
    kernel.write_bytes(b"\x00" * 16)
    rc = build_firmware.main([
        str(tmp_path / "fw.bin"),
        "-k", str(kernel),
        "-i", str(initrd_file),
        "-t", "dns323",
        "--strict",
    ])
    assert rc == 1
    assert not (tmp_path / "fw.bin").exists()


def test_list_devices(caplog):
    with caplog.at_level(logging.INFO):
        assert build_firmware.main(["--list-devices"]) == 0
    assert "dns323" in caplog.text
    assert "DNS320B" in caplog.text


def test_output_required():
    with pytest.raises(SystemExit) as excinfo:
        build_firmware.main(["-t", "dns323"])
    assert excinfo.value.code == 2


def test_split_rejects_garbage(tmp_path, caplog):
    path = tmp_path / "junk.bin"
    path.write_bytes(bytes(512))
    with caplog.at_level(logging.ERROR):
        assert split_firmware.main([str(path)]) == 1
    assert "no known header layout" in caplog.text


def test_split_strict_on_corruption(tmp_path, kernel_file, initrd_file):
    image = tmp_path / "fw.bin"
    build_firmware.main([
        str(image), "-k", str(kernel_file), "-i", str(initrd_file), "-t", "dns323",
    ])
    data = bytearray(image.read_bytes())
    data[70] ^= 0xFF
    image.write_bytes(bytes(data))

    assert split_firmware.main([str(image)]) == 0
    assert split_firmware.main([str(image), "--strict"]) == 1


def test_split_absent_role_is_not_written(tmp_path, kernel_file, initrd_file):
    image = tmp_path / "fw.bin"
    build_firmware.main([
        str(image), "-k", str(kernel_file), "-i", str(initrd_file), "-t", "dns323",
    ])
    defaults_out = tmp_path / "defaults.tar.gz"
    assert split_firmware.main([str(image), "-d", str(defaults_out)]) == 0
    assert not defaults_out.exists()
