"""High-level orchestration for downloading, resizing and tagging images."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import requests

from .config import BatchConfig
from .errors import ConfigError, ImgPrepError, MetadataError, ParseError
from .images import build_session, fetch_image, save_image
from .metadata import read_metadata, update_metadata
from .models import BatchSummary, ImageRecord, RecordResult
from .resize import resize_image
from .rows import iter_records
from .utils import derive_file_name, derive_source

logger = logging.getLogger("img_prep")


class BatchAborted(Exception):
    """Raised internally to stop the batch under the ``abort`` policy."""


def enrich_record(record: ImageRecord) -> ImageRecord:
    """Fill in the derived source label and file name."""
    if not record.source:
        record.source = derive_source(record.url)
    if not record.file_name:
        logger.debug("Creating file name from %s", record.image_name)
        record.file_name = derive_file_name(record.image_name)
    logger.debug("Record %s -> file=%s source=%s", record.url, record.file_name, record.source)
    return record


def process_record(
    record: ImageRecord,
    config: BatchConfig,
    session: requests.Session,
) -> Path:
    """Run one record through fetch, write, resize and tag; return the file."""
    enrich_record(record)
    data = fetch_image(record.url, config, session)
    output_path = save_image(config.target_directory, record.file_name, data)
    resize_image(output_path, config)
    update_metadata(output_path, record)
    if config.debug:
        try:
            logger.debug("Tags now on %s: %s", output_path, read_metadata(output_path))
        except MetadataError as exc:
            logger.debug("Could not read back tags for %s: %s", output_path, exc)
    return output_path


def prepare_target_directory(config: BatchConfig) -> None:
    try:
        config.target_directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(
            f"Cannot create target directory {config.target_directory}: {exc}"
        ) from exc


def run_batch(
    config: BatchConfig,
    session: Optional[requests.Session] = None,
) -> BatchSummary:
    """Process every record in the CSV file sequentially.

    Per-record failures are logged and collected; under the ``abort`` policy
    the first one stops the batch. Configuration problems found before any
    record is processed raise :class:`ConfigError`.
    """
    prepare_target_directory(config)
    session = session or build_session(config)
    summary = BatchSummary()

    def handle_malformed(error: ParseError) -> None:
        logger.error("Skipping malformed CSV row (%s)", error)
        summary.malformed.append(error)
        if config.abort_on_error:
            raise BatchAborted(str(error))

    records = iter_records(
        config.csv_file,
        derive_fields=config.derive_fields,
        skip_header=config.header_skipped,
        on_malformed=handle_malformed,
    )
    try:
        for record in records:
            start = time.perf_counter()
            try:
                output_path = process_record(record, config, session)
            except ImgPrepError as exc:
                elapsed = time.perf_counter() - start
                logger.error(
                    "Failed to process %s (line %s): %s",
                    record.url,
                    record.line_number,
                    exc,
                )
                summary.results.append(RecordResult(record, None, elapsed, error=exc))
                if config.abort_on_error:
                    raise BatchAborted(str(exc)) from exc
                continue

            elapsed = time.perf_counter() - start
            logger.debug("Finished %s in %.2fs", output_path, elapsed)
            summary.results.append(RecordResult(record, output_path, elapsed))
    except BatchAborted as exc:
        logger.error("Aborting batch after failure: %s", exc)
        summary.aborted = True
    return summary
