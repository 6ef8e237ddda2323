"""Fixed-layout header codecs for DNS-323 style firmware images."""

import logging
import struct
from dataclasses import dataclass, field
from typing import ClassVar

from .errors import (
    AmbiguousFormatError,
    SizeMismatchError,
    UnrecognizedFormatError,
)
from .layout import LONG_ROLES, SHORT_ROLES, FileRole

log = logging.getLogger(__name__)

MAGIC = b"\x55\xAA"
SIGNATURE_LENGTH = 8

_WORD = struct.Struct("<I")


def checksum(data: bytes) -> int:
    """
    XOR of every little-endian 32-bit word in ``data``.

    A trailing partial word (1-3 bytes) is left out of the sum. Images
    built by the vendor tools depend on this, so it must not change.
    """
    usable = len(data) - len(data) % _WORD.size
    result = 0
    for (word,) in _WORD.iter_unpack(memoryview(data)[:usable]):
        result ^= word
    return result


def _header_format(num_roles: int, reserved: int) -> str:
    # offset/size pairs, then checksums, then the tagged metadata block
    return (
        "<"
        + "II" * num_roles
        + "I" * num_roles
        + f"2s{SIGNATURE_LENGTH}s2s"
        + "BBBBB"
        + f"{reserved}x"
    )


# ---------------------------------------------------------------------------
# Header variants
# ---------------------------------------------------------------------------


@dataclass
class Header:
    """
    Shared accessors for the fixed-size image headers.

    Subclasses only declare their role schema and struct layout; all
    encoding, decoding and slot access goes through the role list so the
    two variants stay in step.
    """

    NAME: ClassVar[str] = "header"
    ROLES: ClassVar[tuple[FileRole, ...]] = ()
    STRUCT: ClassVar[struct.Struct] = struct.Struct("<")

    offsets: dict[FileRole, int] = field(default_factory=dict)
    sizes: dict[FileRole, int] = field(default_factory=dict)
    checksums: dict[FileRole, int] = field(default_factory=dict)
    magic_pre: bytes = MAGIC
    signature_bytes: bytes = b""
    magic_post: bytes = MAGIC
    product_id: int = 0
    custom_id: int = 0
    model_id: int = 0
    compat_flag: int = 0
    compat_id: int = 0

    @classmethod
    def size_bytes(cls) -> int:
        return cls.STRUCT.size

    # -- slots ---------------------------------------------------------------

    def _check_role(self, role: FileRole) -> None:
        if role not in self.ROLES:
            raise KeyError(f"{self.NAME} has no {role.value} slot")

    def offset(self, role: FileRole) -> int:
        self._check_role(role)
        return self.offsets.get(role, 0)

    def size(self, role: FileRole) -> int:
        self._check_role(role)
        return self.sizes.get(role, 0)

    def checksum(self, role: FileRole) -> int:
        self._check_role(role)
        return self.checksums.get(role, 0)

    def set_slot(self, role: FileRole, offset: int, size: int, checksum: int) -> None:
        self._check_role(role)
        self.offsets[role] = offset
        self.sizes[role] = size
        self.checksums[role] = checksum

    # -- metadata ------------------------------------------------------------

    @property
    def signature(self) -> str:
        return self.signature_bytes.rstrip(b"\x00").decode("ascii", errors="replace")

    @signature.setter
    def signature(self, value: str) -> None:
        raw = value.encode("ascii")
        if len(raw) > SIGNATURE_LENGTH:
            raise ValueError(
                f"Signature {value!r} is {len(raw)} bytes; "
                f"at most {SIGNATURE_LENGTH} fit in the header"
            )
        self.signature_bytes = raw

    @property
    def compat_id_value(self) -> int | None:
        """Compat ID, or None when the compat flag is clear."""
        return self.compat_id if self.compat_flag else None

    def is_valid_magic(self) -> bool:
        return self.magic_pre == MAGIC and self.magic_post == MAGIC

    # -- wire format ---------------------------------------------------------

    @classmethod
    def decode(cls, data: bytes) -> "Header":
        if len(data) != cls.STRUCT.size:
            raise SizeMismatchError(cls.NAME, cls.STRUCT.size, len(data))

        values = cls.STRUCT.unpack(data)
        n = len(cls.ROLES)
        pairs = values[:2 * n]
        sums = values[2 * n:3 * n]
        (
            magic_pre, signature_bytes, magic_post,
            product_id, custom_id, model_id, compat_flag, compat_id,
        ) = values[3 * n:]

        return cls(
            offsets={role: pairs[2 * i] for i, role in enumerate(cls.ROLES)},
            sizes={role: pairs[2 * i + 1] for i, role in enumerate(cls.ROLES)},
            checksums=dict(zip(cls.ROLES, sums)),
            magic_pre=magic_pre,
            signature_bytes=signature_bytes.rstrip(b"\x00"),
            magic_post=magic_post,
            product_id=product_id,
            custom_id=custom_id,
            model_id=model_id,
            compat_flag=compat_flag,
            compat_id=compat_id,
        )

    def encode(self) -> bytes:
        values: list[int | bytes] = []
        for role in self.ROLES:
            values.extend([self.offset(role), self.size(role)])
        values.extend(self.checksum(role) for role in self.ROLES)
        values.extend([
            self.magic_pre,
            self.signature_bytes,
            self.magic_post,
            self.product_id,
            self.custom_id,
            self.model_id,
            self.compat_flag,
            self.compat_id,
        ])
        try:
            return self.STRUCT.pack(*values)
        except struct.error as e:
            raise ValueError(f"Cannot encode {self.NAME}: {e}") from e


@dataclass
class ShortHeader(Header):
    """64-byte header: kernel, initrd and defaults slots."""

    NAME: ClassVar[str] = "ShortHeader"
    ROLES: ClassVar[tuple[FileRole, ...]] = SHORT_ROLES
    STRUCT: ClassVar[struct.Struct] = struct.Struct(_header_format(3, 11))


@dataclass
class LongHeader(Header):
    """128-byte header: adds a squashfs slot between initrd and defaults."""

    NAME: ClassVar[str] = "LongHeader"
    ROLES: ClassVar[tuple[FileRole, ...]] = LONG_ROLES
    STRUCT: ClassVar[struct.Struct] = struct.Struct(_header_format(4, 63))


# ---------------------------------------------------------------------------
# Registry and sniffing
# ---------------------------------------------------------------------------

# Trial order when sniffing an unknown image.
HEADER_REGISTRY: dict[str, type[Header]] = {
    "short": ShortHeader,
    "long": LongHeader,
}


def find_header_candidates(data: bytes) -> list[Header]:
    """Decode ``data`` with every known layout and keep those with valid magic."""
    candidates = []
    for name, header_cls in HEADER_REGISTRY.items():
        try:
            header = header_cls.decode(data[:header_cls.size_bytes()])
        except SizeMismatchError as e:
            log.debug("Skipping %s layout: %s", name, e)
            continue
        if header.is_valid_magic():
            candidates.append(header)
        else:
            log.debug(
                "Skipping %s layout: magic %s/%s",
                name, header.magic_pre.hex(), header.magic_post.hex(),
            )
    return candidates


def sniff_header(data: bytes) -> Header:
    """Return the one header layout that matches ``data``."""
    candidates = find_header_candidates(data)
    if not candidates:
        raise UnrecognizedFormatError(
            "no known header layout matches; the file is corrupted "
            "or not a firmware image"
        )
    if len(candidates) > 1:
        raise AmbiguousFormatError([c.NAME for c in candidates])
    return candidates[0]
