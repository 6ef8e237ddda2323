"""Exception hierarchy for firmware image parsing and validation."""


class FirmwareError(Exception):
    """Base class for all firmware codec errors."""


# ---------------------------------------------------------------------------
# Structural errors: abort the current operation
# ---------------------------------------------------------------------------


class FormatError(FirmwareError):
    """The image layout itself is wrong or unknown."""


class SizeMismatchError(FormatError):
    """A header buffer does not have the layout's fixed size."""

    def __init__(self, layout: str, expected: int, actual: int):
        super().__init__(
            f"{layout} needs exactly {expected} bytes, got {actual}"
        )
        self.layout = layout
        self.expected = expected
        self.actual = actual


class UnrecognizedFormatError(FormatError):
    """No known header layout carries valid magic markers."""


class AmbiguousFormatError(FormatError):
    """More than one header layout carries valid magic markers."""

    def __init__(self, candidates: list[str]):
        super().__init__(
            "image matches several header layouts "
            f"({', '.join(candidates)}); inspect it manually"
        )
        self.candidates = candidates


class TruncatedImageError(FormatError):
    """A header slot points past the end of the image."""


# ---------------------------------------------------------------------------
# Content errors: reported as warnings, fatal only in strict mode
# ---------------------------------------------------------------------------


class ValidationError(FirmwareError):
    """An embedded file failed a content check."""

    def __init__(self, role, message: str):
        super().__init__(f"{role.value}: {message}")
        self.role = role


class ChecksumMismatch(ValidationError):
    """Stored checksum differs from the one computed over the contents."""

    def __init__(self, role, stored: int, computed: int):
        super().__init__(
            role,
            f"checksum mismatch (header 0x{stored:08x}, computed 0x{computed:08x})",
        )
        self.stored = stored
        self.computed = computed


class SignatureMismatch(ValidationError):
    """Contents do not start with the magic expected for the role."""
