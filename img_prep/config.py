"""Configuration objects and constants for the image batch."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (compatible, MSIE 11, Windows NT 6.3; Trident/7.0; rv:11.0) like Gecko"
)
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
MAX_EDGE = 600

RESIZE_BACKENDS = ("auto", "sips", "magick", "mogrify", "pillow")
ERROR_POLICIES = ("skip", "abort")


@dataclass
class BatchConfig:
    """Top-level settings that control downloading, resizing and tagging."""

    target_directory: Path
    csv_file: Path
    derive_fields: bool = True
    skip_header: Optional[bool] = None
    on_error: str = "skip"
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = DEFAULT_TIMEOUT
    max_bytes: int = DEFAULT_MAX_BYTES
    resize_backend: str = "auto"
    debug: bool = False

    @property
    def header_skipped(self) -> bool:
        """Header handling follows the schema unless set explicitly."""
        if self.skip_header is None:
            return self.derive_fields
        return self.skip_header

    @property
    def abort_on_error(self) -> bool:
        return self.on_error == "abort"
