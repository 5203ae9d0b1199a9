"""Image downloading and storage utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests
from filetype import guess

from .config import BatchConfig
from .errors import FetchError, WriteError
from .utils import validate_file_name

logger = logging.getLogger("img_prep")

CHUNK_SIZE = 64 * 1024


def build_session(config: BatchConfig) -> requests.Session:
    """Create the HTTP session shared by every download in a batch."""
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent
    return session


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _read_limited(resp: requests.Response, url: str, max_bytes: int) -> bytes:
    declared = resp.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise FetchError(f"{url}: Content-Length {declared} exceeds {max_bytes} bytes")

    chunks = []
    received = 0
    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
        received += len(chunk)
        if received > max_bytes:
            raise FetchError(f"{url}: body larger than {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


def fetch_image(
    url: str,
    config: BatchConfig,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Download the raw bytes behind ``url``."""
    session = session or build_session(config)
    logger.debug("Downloading image from %s", url)
    try:
        resp = session.get(url, timeout=config.timeout, stream=True)
        try:
            resp.raise_for_status()
            data = _read_limited(resp, url, config.max_bytes)
        finally:
            resp.close()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch image {url}: {exc}") from exc

    detected = detect_image_format(data)
    if detected:
        logger.debug("Fetched %d bytes (%s) from %s", len(data), detected, url)
    else:
        logger.warning(
            "Response from %s does not look like an image (Content-Type=%s)",
            url,
            resp.headers.get("Content-Type", ""),
        )
    return data


def save_image(directory: Path, file_name: str, data: bytes) -> Path:
    """Write ``data`` to ``directory / file_name``, replacing any existing file."""
    destination = Path(directory) / validate_file_name(file_name)
    logger.debug("Saving file: %s", destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    except OSError as exc:
        raise WriteError(f"Failed to write image {destination}: {exc}") from exc
    return destination
