"""Exception types raised by the image batch."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .resize import CommandResult


class ImgPrepError(Exception):
    """Base class for every failure the batch knows how to report."""


class ConfigError(ImgPrepError):
    """Bad arguments, an unreadable CSV file or an unsafe output file name."""


class ParseError(ImgPrepError):
    """A CSV row that cannot be turned into an image record."""

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.line_number = line_number

    def __str__(self) -> str:
        message = super().__str__()
        if self.line_number is None:
            return message
        return f"line {self.line_number}: {message}"


class InvalidUrlError(ImgPrepError):
    """The URL has no host that a source label can be derived from."""


class FetchError(ImgPrepError):
    """Network failure, timeout, oversized body or non-2xx response."""


class WriteError(ImgPrepError):
    """The downloaded bytes could not be written to the target directory."""


class ResizeError(ImgPrepError):
    """The resize backend failed or could not be run."""

    def __init__(self, message: str, result: Optional["CommandResult"] = None) -> None:
        super().__init__(message)
        self.result = result


class MetadataError(ImgPrepError):
    """ExifTool could not rewrite the tags on the saved file."""
