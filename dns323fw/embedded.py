"""Sub-files carried inside a firmware image, with per-role sanity checks."""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ChecksumMismatch, SignatureMismatch, ValidationError
from .headers import checksum as compute_checksum
from .layout import FileRole

log = logging.getLogger(__name__)

# U-Boot legacy image magic, wrapped around kernels and initrds
UIMAGE_MAGIC = b"\x27\x05\x19\x56"
GZIP_MAGIC = b"\x1F\x8B"

# Squashfs superblock sits behind a 2 KiB vendor preamble
SQUASHFS_MAGIC_OFFSET = 0x800
SQUASHFS_MAGICS = (b"hsqs", b"shsq")


@dataclass(frozen=True)
class EmbeddedFile:
    """Raw bytes for one role plus the checksum recorded for them."""

    contents: bytes
    checksum: int
    role: FileRole
    origin_filename: str | None = None

    @classmethod
    def from_file(cls, path: Path | str, role: FileRole) -> "EmbeddedFile":
        """Read a file from disk and checksum it. Raises OSError on failure."""
        path = Path(path)
        contents = path.read_bytes()
        log.debug("Loaded %s from %s (%d bytes)", role.value, path, len(contents))
        return cls(
            contents=contents,
            checksum=compute_checksum(contents),
            role=role,
            origin_filename=str(path),
        )

    @classmethod
    def from_parsed(cls, data: bytes, checksum: int, role: FileRole) -> "EmbeddedFile":
        """Wrap bytes carved out of an image, trusting the header checksum."""
        return cls(contents=bytes(data), checksum=checksum, role=role)

    @property
    def size(self) -> int:
        return len(self.contents)

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.contents).hexdigest()

    # -- validation ----------------------------------------------------------

    def _signature_issue(self) -> SignatureMismatch | None:
        data = self.contents

        if self.role in (FileRole.KERNEL, FileRole.INITRD):
            if data[:4] != UIMAGE_MAGIC:
                return SignatureMismatch(
                    self.role,
                    "does not appear to be a container image file "
                    f"(starts with {data[:4].hex() or 'nothing'})",
                )

        elif self.role == FileRole.DEFAULTS:
            if data[:2] != GZIP_MAGIC:
                return SignatureMismatch(
                    self.role,
                    f"does not appear to be a gzip file (starts with {data[:2].hex() or 'nothing'})",
                )

        elif self.role == FileRole.SQUASHFS:
            magic = data[SQUASHFS_MAGIC_OFFSET:SQUASHFS_MAGIC_OFFSET + 4]
            if magic not in SQUASHFS_MAGICS:
                return SignatureMismatch(
                    self.role,
                    "does not appear to be a squashfs image "
                    f"(no hsqs/shsq at offset 0x{SQUASHFS_MAGIC_OFFSET:x})",
                )

        return None

    def issues(self) -> list[ValidationError]:
        """Every checksum and signature problem with this file."""
        found: list[ValidationError] = []

        computed = compute_checksum(self.contents)
        if computed != self.checksum:
            found.append(ChecksumMismatch(self.role, self.checksum, computed))

        signature_issue = self._signature_issue()
        if signature_issue is not None:
            found.append(signature_issue)

        return found

    def validate(self, strict: bool = False) -> bool:
        """
        Check checksum and magic bytes.

        Problems are logged as warnings and reported through the return
        value. With ``strict`` the first problem is raised instead.
        """
        found = self.issues()
        if found and strict:
            raise found[0]
        for issue in found:
            if self.origin_filename:
                log.warning("%s [%s]", issue, self.origin_filename)
            else:
                log.warning("%s", issue)
        return not found

    def write_to(self, path: Path | str) -> None:
        """Write the raw contents to ``path``, replacing any existing file."""
        path = Path(path)
        with open(path, "wb") as f:
            f.write(self.contents)
        log.info("Wrote %s to %s (%d bytes)", self.role.value, path, self.size)
