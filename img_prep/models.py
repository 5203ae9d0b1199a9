"""Data models used throughout the image pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ImgPrepError, ParseError


@dataclass
class ImageRecord:
    """One row of work read from the CSV file."""

    url: str
    image_name: str
    desc: str
    source: Optional[str] = None
    file_name: Optional[str] = None
    line_number: Optional[int] = None


@dataclass
class RecordResult:
    """Outcome of pushing one record through the pipeline."""

    record: ImageRecord
    output_path: Optional[Path]
    seconds: float
    error: Optional[ImgPrepError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchSummary:
    """Aggregate results for a whole CSV file."""

    results: List[RecordResult] = field(default_factory=list)
    malformed: List[ParseError] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded + len(self.malformed)

    @property
    def total(self) -> int:
        return len(self.results) + len(self.malformed)

    @property
    def exit_code(self) -> int:
        if self.aborted or self.failed:
            return 1
        return 0
