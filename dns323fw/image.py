"""Firmware image model: assemble and split DNS-323 style images."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import header_for_signature
from .embedded import EmbeddedFile
from .errors import TruncatedImageError
from .headers import Header, sniff_header
from .layout import FileRole, ImageLayout, compute_layout

log = logging.getLogger(__name__)


def _check_u8(name: str, value: int) -> int:
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be an integer 0-255, got {value!r}")
    return value


@dataclass
class FirmwareImage:
    """
    A header variant plus the embedded files it describes.

    Built images get their header slots filled by ``compute_layout``;
    parsed images keep the header exactly as read so that mismatches
    stay visible to ``validate``.
    """

    header: Header
    files: dict[FileRole, EmbeddedFile] = field(default_factory=dict)

    # -- build ---------------------------------------------------------------

    @classmethod
    def build(
        cls,
        kernel: Path | str | None,
        initrd: Path | str | None,
        *,
        product_id: int | None,
        custom_id: int | None,
        model_id: int | None,
        signature: str | None,
        defaults: Path | str | None = None,
        squashfs: Path | str | None = None,
        compat_id: int | None = None,
    ) -> "FirmwareImage":
        """Load source files from disk and lay them out behind a fresh header."""
        required = {
            "kernel": kernel,
            "initrd": initrd,
            "product_id": product_id,
            "custom_id": custom_id,
            "model_id": model_id,
            "signature": signature,
        }
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise ValueError(f"Missing required build input: {', '.join(missing)}")

        header_cls = header_for_signature(signature)
        if squashfs is not None and FileRole.SQUASHFS not in header_cls.ROLES:
            raise ValueError(
                f"Signature {signature!r} uses {header_cls.NAME}, "
                "which has no squashfs slot"
            )

        header = header_cls()
        header.signature = signature
        header.product_id = _check_u8("product_id", product_id)
        header.custom_id = _check_u8("custom_id", custom_id)
        header.model_id = _check_u8("model_id", model_id)
        if compat_id is not None:
            header.compat_flag = 1
            header.compat_id = _check_u8("compat_id", compat_id)
        else:
            header.compat_flag = 0
            header.compat_id = 0

        sources = {
            FileRole.KERNEL: kernel,
            FileRole.INITRD: initrd,
            FileRole.DEFAULTS: defaults,
            FileRole.SQUASHFS: squashfs,
        }
        files = {
            role: EmbeddedFile.from_file(path, role)
            for role, path in sources.items()
            if path is not None
        }
        # A zero-size slot reads back as absent
        for role, embedded in files.items():
            if embedded.size == 0:
                raise ValueError(
                    f"{role.value} file {embedded.origin_filename} is empty"
                )

        image = cls(header=header, files=files)
        image.update_header()
        log.info(
            "Built %s image: signature=%s product=%d custom=%d model=%d",
            header.NAME, header.signature,
            header.product_id, header.custom_id, header.model_id,
        )
        return image

    def layout(self) -> ImageLayout:
        return compute_layout(self.header.size_bytes(), self.header.ROLES, self.files)

    def update_header(self) -> None:
        """Rewrite every header slot from the current files."""
        for slot in self.layout().slots:
            self.header.set_slot(slot.role, slot.offset, slot.size, slot.checksum)

    # -- split ---------------------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes) -> "FirmwareImage":
        """Parse an image, detecting which header layout it uses."""
        header = sniff_header(data)
        log.info("Detected %s (%d bytes)", header.NAME, header.size_bytes())

        files: dict[FileRole, EmbeddedFile] = {}
        for role in header.ROLES:
            size = header.size(role)
            if size == 0:
                continue
            offset = header.offset(role)
            if offset + size > len(data):
                raise TruncatedImageError(
                    f"{role.value} slot 0x{offset:x}+0x{size:x} runs past "
                    f"the end of the image (0x{len(data):x} bytes)"
                )
            files[role] = EmbeddedFile.from_parsed(
                data[offset:offset + size], header.checksum(role), role
            )
            log.debug("Found %s at 0x%x (%d bytes)", role.value, offset, size)

        return cls(header=header, files=files)

    @classmethod
    def read(cls, path: Path | str) -> "FirmwareImage":
        with open(path, "rb") as f:
            data = f.read()
        return cls.from_bytes(data)

    # -- accessors -----------------------------------------------------------

    @property
    def header_type(self) -> str:
        return self.header.NAME

    @property
    def signature(self) -> str:
        return self.header.signature

    @property
    def product_id(self) -> int:
        return self.header.product_id

    @property
    def custom_id(self) -> int:
        return self.header.custom_id

    @property
    def model_id(self) -> int:
        return self.header.model_id

    @property
    def compat_id(self) -> int | None:
        return self.header.compat_id_value

    def get(self, role: FileRole) -> EmbeddedFile | None:
        return self.files.get(role)

    # -- validation and output -----------------------------------------------

    def validate(self, strict: bool = False) -> bool:
        """Validate every embedded file; True only if all pass."""
        ok = True
        for role in self.header.ROLES:
            embedded = self.files.get(role)
            if embedded is not None and not embedded.validate(strict=strict):
                ok = False
        return ok

    def to_bytes(self) -> bytes:
        parts = [self.header.encode()]
        for role in self.header.ROLES:
            embedded = self.files.get(role)
            if embedded is not None:
                parts.append(embedded.contents)
        return b"".join(parts)

    def write(self, path: Path | str) -> int:
        """Write the image to ``path``; returns the number of bytes written."""
        data = self.to_bytes()
        with open(path, "wb") as f:
            f.write(data)
        log.info("Wrote %s (%d bytes)", path, len(data))
        return len(data)

    def report(self) -> dict[str, Any]:
        """Describe the image for JSON output."""
        files = {}
        for role in self.header.ROLES:
            embedded = self.files.get(role)
            entry: dict[str, Any] = {
                "offset": self.header.offset(role),
                "size": self.header.size(role),
                "checksum": f"{self.header.checksum(role):08x}",
                "present": embedded is not None,
            }
            if embedded is not None:
                entry["sha256"] = embedded.sha256
                entry["issues"] = [str(issue) for issue in embedded.issues()]
            files[role.value] = entry

        return {
            "header": {
                "type": self.header_type,
                "size_bytes": self.header.size_bytes(),
            },
            "device": {
                "signature": self.signature,
                "product_id": self.product_id,
                "custom_id": self.custom_id,
                "model_id": self.model_id,
                "compat_id": self.compat_id,
            },
            "files": files,
        }


def save_report(image: FirmwareImage, output_path: Path | str) -> None:
    """Save an image report to a JSON file."""
    with open(output_path, "w") as f:
        json.dump(image.report(), f, indent=2)
