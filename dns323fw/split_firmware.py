#!/usr/bin/env python3
"""
DNS-323 Firmware Splitter

Identifies a firmware image's header layout, reports the device identifiers
it carries and optionally extracts the embedded kernel, initrd, defaults and
squashfs images.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import ToolConfig
from .errors import FirmwareError
from .image import FirmwareImage, save_report
from .layout import FileRole

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="splitdns323fw",
        description="Inspect and split a DNS-323 style firmware image",
    )
    parser.add_argument(
        "image",
        type=Path,
        help="Firmware image to read",
    )
    parser.add_argument(
        "--kernel", "-k",
        type=Path,
        help="Write the kernel to this path",
    )
    parser.add_argument(
        "--initrd", "-i",
        type=Path,
        help="Write the initrd to this path",
    )
    parser.add_argument(
        "--defaults", "-d",
        type=Path,
        help="Write the defaults archive to this path",
    )
    parser.add_argument(
        "--squashfs", "-q",
        type=Path,
        help="Write the squashfs image to this path",
    )
    parser.add_argument(
        "--json",
        type=Path,
        help="Save a JSON description of the image",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on checksum or magic mismatches instead of warning",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    return parser


def describe(image: FirmwareImage) -> None:
    log.info("Header:     %s", image.header_type)
    log.info("Signature:  %s", image.signature)
    log.info("Product ID: %d", image.product_id)
    log.info("Custom ID:  %d", image.custom_id)
    log.info("Model ID:   %d", image.model_id)
    if image.compat_id is None:
        log.info("Compat ID:  (none)")
    else:
        log.info("Compat ID:  %d", image.compat_id)

    for role in image.header.ROLES:
        embedded = image.get(role)
        if embedded is None:
            log.info("  %-9s absent", role.value)
        else:
            log.info(
                "  %-9s offset=0x%08x size=%9d checksum=0x%08x",
                role.value, image.header.offset(role),
                embedded.size, embedded.checksum,
            )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Setup logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
    )

    config = ToolConfig(strict=args.strict)
    outputs = {
        FileRole.KERNEL: args.kernel,
        FileRole.INITRD: args.initrd,
        FileRole.DEFAULTS: args.defaults,
        FileRole.SQUASHFS: args.squashfs,
    }

    try:
        image = FirmwareImage.read(args.image)
        describe(image)

        if not image.validate(strict=config.strict):
            log.warning("Image has validation problems; see warnings above")

        for role, path in outputs.items():
            if path is None:
                continue
            embedded = image.get(role)
            if embedded is None:
                log.warning("No %s in this image; not writing %s", role.value, path)
                continue
            embedded.write_to(path)

        if args.json:
            save_report(image, args.json)
            log.info("Report saved to %s", args.json)
    except (OSError, FirmwareError) as e:
        log.error("Split failed: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
