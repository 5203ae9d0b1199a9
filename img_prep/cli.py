"""Command-line entry point for the image batch."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .config import (
    DEFAULT_MAX_BYTES,
    DEFAULT_TIMEOUT,
    ERROR_POLICIES,
    RESIZE_BACKENDS,
    BatchConfig,
)
from .errors import ConfigError
from .pipeline import run_batch

logger = logging.getLogger("img_prep.cli")

EXIT_USAGE = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="img-prep",
        description="Download images from URLs, resize them and overwrite their meta tags.",
    )
    parser.add_argument(
        "--target-directory",
        "--target_directory",
        dest="target_directory",
        required=True,
        type=Path,
        help="Directory where images are written (created if absent)",
    )
    parser.add_argument(
        "--csv-file",
        "--csv_file",
        dest="csv_file",
        required=True,
        type=Path,
        help="CSV file listing the images to process",
    )
    parser.add_argument(
        "--derive-fields",
        action=argparse.BooleanOptionalAction,
        default=True,
        help=(
            "Read 'url,image_name' rows and derive file name and source "
            "(default); --no-derive-fields reads 'url,file_name,image_name,source,desc'"
        ),
    )
    parser.add_argument(
        "--skip-header",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip the first CSV row (default: only with --derive-fields)",
    )
    parser.add_argument(
        "--on-error",
        choices=ERROR_POLICIES,
        default="skip",
        help="Skip a failing record and continue, or abort the whole batch",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Per-download timeout in seconds",
    )
    parser.add_argument(
        "--max-bytes",
        type=int,
        default=DEFAULT_MAX_BYTES,
        help="Refuse downloads larger than this many bytes",
    )
    parser.add_argument(
        "--resize-backend",
        choices=RESIZE_BACKENDS,
        default="auto",
        help="Tool used to shrink images to a 600px longest edge",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every step and parameter value",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    config = BatchConfig(
        target_directory=Path(args.target_directory).resolve(),
        csv_file=Path(args.csv_file),
        derive_fields=args.derive_fields,
        skip_header=args.skip_header,
        on_error=args.on_error,
        timeout=args.timeout,
        max_bytes=args.max_bytes,
        resize_backend=args.resize_backend,
        debug=args.debug,
    )
    logger.debug("Configuration: %s", config)

    overall_start = time.perf_counter()
    try:
        summary = run_batch(config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_USAGE
    total_elapsed = time.perf_counter() - overall_start

    logger.info(
        "Done! %d/%d succeeded, %d failed in %.2fs%s",
        summary.succeeded,
        summary.total,
        summary.failed,
        total_elapsed,
        " (aborted)" if summary.aborted else "",
    )
    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
