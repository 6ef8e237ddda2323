"""Build and split firmware images for DNS-323 style NAS devices."""

from .config import (
    DEFAULT_SIGNATURE,
    DEVICE_TABLE,
    LONG_SIGNATURE_PREFIXES,
    DeviceInfo,
    ToolConfig,
    get_device,
    header_for_signature,
    load_device_table,
)
from .embedded import EmbeddedFile
from .errors import (
    AmbiguousFormatError,
    ChecksumMismatch,
    FirmwareError,
    FormatError,
    SignatureMismatch,
    SizeMismatchError,
    TruncatedImageError,
    UnrecognizedFormatError,
    ValidationError,
)
from .headers import (
    HEADER_REGISTRY,
    Header,
    LongHeader,
    ShortHeader,
    checksum,
    find_header_candidates,
    sniff_header,
)
from .image import FirmwareImage, save_report
from .layout import (
    FileRole,
    ImageLayout,
    RoleSlot,
    compute_layout,
)

__all__ = [
    # Config
    "DEFAULT_SIGNATURE",
    "DEVICE_TABLE",
    "LONG_SIGNATURE_PREFIXES",
    "DeviceInfo",
    "ToolConfig",
    "get_device",
    "header_for_signature",
    "load_device_table",
    # Embedded files
    "EmbeddedFile",
    # Errors
    "AmbiguousFormatError",
    "ChecksumMismatch",
    "FirmwareError",
    "FormatError",
    "SignatureMismatch",
    "SizeMismatchError",
    "TruncatedImageError",
    "UnrecognizedFormatError",
    "ValidationError",
    # Headers
    "HEADER_REGISTRY",
    "Header",
    "LongHeader",
    "ShortHeader",
    "checksum",
    "find_header_candidates",
    "sniff_header",
    # Image
    "FirmwareImage",
    "save_report",
    # Layout
    "FileRole",
    "ImageLayout",
    "RoleSlot",
    "compute_layout",
]
