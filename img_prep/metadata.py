"""Metadata rewriting backed by ExifTool."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional

from exiftool import ExifToolHelper
from exiftool.exceptions import ExifToolException

from .errors import MetadataError
from .models import ImageRecord
from .utils import derive_headline

logger = logging.getLogger("img_prep")

HEADLINE_TAG = "IPTC:Headline"
NOTES_TAG = "IPTC:DocumentNotes"
SOURCE_TAG = "IPTC:LocalCaption"
DESCRIPTION_TAG = "EXIF:ImageDescription"
WRITTEN_TAGS = (HEADLINE_TAG, NOTES_TAG, SOURCE_TAG, DESCRIPTION_TAG)

CHARSET_PARAMS = ["-charset", "iptc=UTF8"]
# Wipe every existing tag before the new values are assigned.
WRITE_PARAMS = ["-all=", "-overwrite_original", *CHARSET_PARAMS]


def _single_line(value: str) -> str:
    # ExifTool reads stay_open arguments one per line.
    return " ".join(value.splitlines())


def _resolve_executable() -> Optional[str]:
    override = os.getenv("EXIFTOOL_PATH")
    if not override:
        return None
    override_path = Path(override).expanduser()
    if override_path.exists():
        logger.debug("EXIFTOOL_PATH override detected at %s", override_path)
        return str(override_path)
    logger.warning(
        "EXIFTOOL_PATH is set to %s but the path does not exist; falling back to exiftool on PATH",
        override_path,
    )
    return None


def _open_exiftool() -> ExifToolHelper:
    executable = _resolve_executable()
    if executable:
        return ExifToolHelper(executable=executable)
    return ExifToolHelper()


def build_tags(record: ImageRecord) -> Dict[str, str]:
    """Map a record onto the four tags written to every image."""
    return {
        HEADLINE_TAG: _single_line(derive_headline(record.image_name)),
        NOTES_TAG: _single_line(record.image_name),
        SOURCE_TAG: _single_line(record.source or ""),
        DESCRIPTION_TAG: _single_line(record.desc),
    }


def update_metadata(path: Path, record: ImageRecord) -> Dict[str, str]:
    """Clear all metadata on ``path`` and write the record's four tags.

    Returns the tags that were written. Raises :class:`MetadataError` when
    ExifTool is missing or reports a failure.
    """
    tags = build_tags(record)
    logger.debug("Overwriting EXIF tags for %s: %s", path, tags)
    try:
        with _open_exiftool() as et:
            output = et.set_tags([str(path)], tags, params=WRITE_PARAMS)
    except (ExifToolException, OSError, ValueError, TypeError) as exc:
        raise MetadataError(f"Failed to write metadata to {path}: {exc}") from exc
    if output and output.strip():
        logger.debug("exiftool: %s", output.strip())
    return tags


def read_metadata(path: Path) -> Dict[str, str]:
    """Read back the tags written by :func:`update_metadata`."""
    try:
        with _open_exiftool() as et:
            blocks = et.get_tags([str(path)], list(WRITTEN_TAGS), params=CHARSET_PARAMS)
    except (ExifToolException, OSError, ValueError, TypeError) as exc:
        raise MetadataError(f"Failed to read metadata from {path}: {exc}") from exc
    if not blocks:
        return {}
    block = blocks[0]
    return {tag: str(block[tag]) for tag in WRITTEN_TAGS if tag in block}
