#!/usr/bin/env python3
"""
DNS-323 Firmware Builder

Packs a kernel, an initrd and optional defaults/squashfs images into a
firmware file the device's web interface will accept.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import (
    DEFAULT_SIGNATURE,
    ToolConfig,
    get_device,
    load_device_table,
)
from .errors import FirmwareError
from .image import FirmwareImage

log = logging.getLogger(__name__)


def parse_int(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer '{value}'") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mkdns323fw",
        description="Build a firmware image for DNS-323 style NAS devices",
    )
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        help="Path of the firmware image to write",
    )
    parser.add_argument(
        "--kernel", "-k",
        type=Path,
        help="Kernel uImage (required)",
    )
    parser.add_argument(
        "--initrd", "-i",
        type=Path,
        help="Initrd uImage (required)",
    )
    parser.add_argument(
        "--defaults", "-d",
        type=Path,
        help="Gzipped defaults archive",
    )
    parser.add_argument(
        "--squashfs", "-q",
        type=Path,
        help="Squashfs image (long-header devices only)",
    )
    parser.add_argument(
        "--device", "-t",
        help="Take signature and IDs from the device table",
    )
    parser.add_argument(
        "--product-id", "-p",
        type=parse_int,
        help="Product ID (overrides the device table)",
    )
    parser.add_argument(
        "--custom-id", "-c",
        type=parse_int,
        help="Custom ID (overrides the device table)",
    )
    parser.add_argument(
        "--model-id", "-m",
        type=parse_int,
        help="Model ID (overrides the device table)",
    )
    parser.add_argument(
        "--compat-id",
        type=parse_int,
        help="Compatibility ID; sets the compat flag in the header",
    )
    parser.add_argument(
        "--signature", "-s",
        help=f"Header signature, at most 8 characters (default: {DEFAULT_SIGNATURE})",
    )
    parser.add_argument(
        "--devices",
        type=Path,
        help="YAML file with extra or overriding device table entries",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List known devices and exit",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort when an input fails checksum or magic checks",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    return parser


def list_devices(config: ToolConfig) -> None:
    log.info("Known devices:")
    for name, device in sorted(config.devices.items()):
        log.info(
            "  %-10s %-8s product=%d custom=%d model=%d  %s",
            name, device.signature,
            device.product_id, device.custom_id, device.model_id,
            device.description,
        )


def resolve_identity(
    args: argparse.Namespace, config: ToolConfig
) -> tuple[str, int | None, int | None, int | None]:
    """Signature and IDs from the device table, overridden by explicit flags."""
    signature = None
    product_id = custom_id = model_id = None

    if args.device:
        device = get_device(args.device, config.devices)
        signature = device.signature
        product_id = device.product_id
        custom_id = device.custom_id
        model_id = device.model_id

    if args.signature is not None:
        signature = args.signature
    if args.product_id is not None:
        product_id = args.product_id
    if args.custom_id is not None:
        custom_id = args.custom_id
    if args.model_id is not None:
        model_id = args.model_id

    return signature or DEFAULT_SIGNATURE, product_id, custom_id, model_id


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = ToolConfig(
            strict=args.strict,
            devices=load_device_table(args.devices),
        )
    except (OSError, ValueError) as e:
        log.error("Cannot load device table: %s", e)
        return 1

    if args.list_devices:
        list_devices(config)
        return 0

    if args.output is None:
        parser.error("the output path is required")

    try:
        signature, product_id, custom_id, model_id = resolve_identity(args, config)
        image = FirmwareImage.build(
            args.kernel,
            args.initrd,
            product_id=product_id,
            custom_id=custom_id,
            model_id=model_id,
            signature=signature,
            defaults=args.defaults,
            squashfs=args.squashfs,
            compat_id=args.compat_id,
        )

        if not image.validate(strict=config.strict):
            log.warning("Some inputs failed validation; building anyway")

        for slot in image.layout().slots:
            log.debug(
                "  %-9s offset=0x%08x size=%9d checksum=0x%08x",
                slot.role.value, slot.offset, slot.size, slot.checksum,
            )

        image.write(args.output)
    except (OSError, ValueError, FirmwareError) as e:
        log.error("Build failed: %s", e)
        return 1

    missing = [role.value for role in image.header.ROLES if role not in image.files]
    if missing:
        log.info("Empty slots: %s", ", ".join(missing))
    log.warning(
        "Only the image format was checked. A well-formed image with the "
        "wrong contents can still brick the device."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
