"""Layout engine: role ordering and offset computation for firmware images."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FileRole(Enum):
    KERNEL = "kernel"
    INITRD = "initrd"
    DEFAULTS = "defaults"
    SQUASHFS = "squashfs"


# Canonical role order per header variant. Payloads follow the header in
# exactly this order.
SHORT_ROLES: tuple[FileRole, ...] = (
    FileRole.KERNEL,
    FileRole.INITRD,
    FileRole.DEFAULTS,
)
LONG_ROLES: tuple[FileRole, ...] = (
    FileRole.KERNEL,
    FileRole.INITRD,
    FileRole.SQUASHFS,
    FileRole.DEFAULTS,
)


@dataclass
class RoleSlot:
    """Where one role's payload lives inside an image."""

    role: FileRole
    offset: int
    size: int = 0
    checksum: int = 0

    @property
    def present(self) -> bool:
        return self.size > 0

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass
class ImageLayout:
    """Complete placement of every role of a header variant."""

    header_size: int
    slots: list[RoleSlot]

    @property
    def total_size(self) -> int:
        if not self.slots:
            return self.header_size
        return self.slots[-1].end

    @property
    def present_slots(self) -> list[RoleSlot]:
        return [s for s in self.slots if s.present]

    def slot(self, role: FileRole) -> RoleSlot:
        for s in self.slots:
            if s.role is role:
                return s
        raise KeyError(f"Role not part of this layout: {role.value}")


def compute_layout(
    header_size: int,
    roles: tuple[FileRole, ...],
    files: Mapping[FileRole, Any],
) -> ImageLayout:
    """
    Fold the role schema into contiguous slots.

    The running offset starts right after the header. A role with no file
    keeps the running offset but gets size 0 and checksum 0, so the next
    present role starts in the same place.
    """
    slots: list[RoleSlot] = []
    cursor = header_size

    for role in roles:
        embedded = files.get(role)
        if embedded is None:
            slots.append(RoleSlot(role=role, offset=cursor))
            continue

        size = len(embedded.contents)
        slots.append(RoleSlot(
            role=role,
            offset=cursor,
            size=size,
            checksum=embedded.checksum,
        ))
        cursor += size

    return ImageLayout(header_size=header_size, slots=slots)
