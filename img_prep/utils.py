"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

from urllib.parse import urlsplit

import tldextract

from .errors import ConfigError, InvalidUrlError

FILE_SUFFIX = ".jpg"
UNSAFE_NAME_CHARS = ("/", "\\", "\x00")

# Bundled Public Suffix List snapshot only; never fetch it over the network.
_SUFFIX_EXTRACTOR = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())


def derive_source(url: str) -> str:
    """Reduce the host of ``url`` to its registrable domain.

    ``http://www.kittens.com/image.jpg`` becomes ``kittens.com`` and
    ``https://img.cdn.example.co.uk/a.jpg`` becomes ``example.co.uk``. Hosts
    without a public suffix (IP addresses, ``localhost``) are returned as-is.
    """
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError as exc:
        raise InvalidUrlError(f"Cannot parse URL {url!r}: {exc}") from exc
    if not host:
        raise InvalidUrlError(f"URL {url!r} has no host")

    extracted = _SUFFIX_EXTRACTOR(host)
    if not extracted.suffix:
        return host
    if not extracted.domain:
        raise InvalidUrlError(f"Host {host!r} is a public suffix, not a registrable domain")
    return f"{extracted.domain}.{extracted.suffix}"


def derive_file_name(image_name: str) -> str:
    """Lower-case ``image_name`` with underscores for spaces and a .jpg suffix."""
    return image_name.replace(" ", "_").lower() + FILE_SUFFIX


def derive_headline(image_name: str) -> str:
    return image_name.replace(" ", "_")


def validate_file_name(file_name: str) -> str:
    """Reject names that are empty or could escape the target directory."""
    if not file_name or not file_name.strip():
        raise ConfigError("Output file name is empty")
    if any(char in file_name for char in UNSAFE_NAME_CHARS):
        raise ConfigError(f"Output file name {file_name!r} contains a path separator or NUL")
    if file_name in (".", ".."):
        raise ConfigError(f"Output file name {file_name!r} is not a file")
    return file_name
