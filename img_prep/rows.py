"""CSV parsing into image records."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .errors import ConfigError, ParseError
from .models import ImageRecord

logger = logging.getLogger("img_prep")

DERIVED_COLUMNS = ("url", "image_name")
EXPLICIT_COLUMNS = ("url", "file_name", "image_name", "source", "desc")


def _record_from_row(row: List[str], derive_fields: bool, line_number: int) -> ImageRecord:
    columns = DERIVED_COLUMNS if derive_fields else EXPLICIT_COLUMNS
    if len(row) < len(columns):
        raise ParseError(
            f"expected {len(columns)} columns ({', '.join(columns)}), got {len(row)}",
            line_number,
        )
    values = dict(zip(columns, (cell.strip() for cell in row)))
    if not values["url"]:
        raise ParseError("url is empty", line_number)
    if not values["image_name"]:
        raise ParseError("image_name is empty", line_number)

    if derive_fields:
        return ImageRecord(
            url=values["url"],
            image_name=values["image_name"],
            desc=values["image_name"],
            line_number=line_number,
        )
    if not values["file_name"]:
        raise ParseError("file_name is empty", line_number)
    return ImageRecord(
        url=values["url"],
        image_name=values["image_name"],
        desc=values["desc"],
        source=values["source"] or None,
        file_name=values["file_name"],
        line_number=line_number,
    )


def iter_records(
    csv_path: Path,
    *,
    derive_fields: bool = True,
    skip_header: Optional[bool] = None,
    on_malformed: Optional[Callable[[ParseError], None]] = None,
) -> Iterator[ImageRecord]:
    """Yield one :class:`ImageRecord` per CSV row.

    With ``derive_fields`` the file holds ``url, image_name`` under a header
    row; otherwise it holds ``url, file_name, image_name, source, desc`` with
    no header. Malformed rows are passed to ``on_malformed`` and skipped, or
    raised as :class:`ParseError` when no callback is given.
    """
    if skip_header is None:
        skip_header = derive_fields
    try:
        handle = open(csv_path, newline="", encoding="utf-8-sig")
    except OSError as exc:
        raise ConfigError(f"Cannot open CSV file {csv_path}: {exc}") from exc

    with handle:
        logger.debug("Reading records from %s", csv_path)
        reader = csv.reader(handle, strict=True)
        header_pending = skip_header
        rows_read = 0
        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error as exc:
                error = ParseError(f"malformed CSV: {exc}", reader.line_num)
                if on_malformed is None:
                    raise error from exc
                on_malformed(error)
                continue
            except UnicodeDecodeError as exc:
                if not rows_read:
                    raise ConfigError(f"CSV file {csv_path} is not valid UTF-8: {exc}") from exc
                # The decoder cannot resume, so the rest of the file is lost.
                error = ParseError(
                    f"not valid UTF-8, stopped reading the rest of the file: {exc}",
                    reader.line_num + 1,
                )
                if on_malformed is None:
                    raise error from exc
                on_malformed(error)
                break

            rows_read += 1
            if not row or not any(cell.strip() for cell in row):
                continue
            if header_pending:
                header_pending = False
                logger.debug("Skipping header row: %s", row)
                continue

            try:
                record = _record_from_row(row, derive_fields, reader.line_num)
            except ParseError as error:
                if on_malformed is None:
                    raise
                on_malformed(error)
                continue
            yield record
