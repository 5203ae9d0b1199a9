"""Longest-edge resizing through an external tool or Pillow."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .config import MAX_EDGE, BatchConfig
from .errors import ConfigError, ResizeError

logger = logging.getLogger("img_prep")

# Probed in this order when the backend is "auto".
EXTERNAL_BACKENDS = ("sips", "magick", "mogrify")


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of an external command."""

    args: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_command(args: Sequence[str]) -> CommandResult:
    """Run ``args`` and report how it went; never raises on failure."""
    args = tuple(str(arg) for arg in args)
    logger.debug("Running %s", " ".join(args))
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except FileNotFoundError as exc:
        return CommandResult(args, 127, stderr=str(exc))
    except PermissionError as exc:
        return CommandResult(args, 126, stderr=str(exc))
    return CommandResult(args, proc.returncode, proc.stdout, proc.stderr)


def resolve_backend(name: str) -> str:
    """Turn ``auto`` into the first resize tool available on PATH."""
    if name != "auto":
        return name
    for candidate in EXTERNAL_BACKENDS:
        if shutil.which(candidate):
            return candidate
    return "pillow"


def build_resize_command(backend: str, path: Path, max_edge: int = MAX_EDGE) -> List[str]:
    geometry = f"{max_edge}x{max_edge}>"
    if backend == "sips":
        return ["sips", "-Z", str(max_edge), str(path)]
    if backend == "magick":
        return ["magick", "mogrify", "-resize", geometry, str(path)]
    if backend == "mogrify":
        return ["mogrify", "-resize", geometry, str(path)]
    raise ConfigError(f"Unknown resize backend {backend!r}")


def _resize_with_pillow(path: Path, max_edge: int) -> None:
    try:
        with Image.open(path) as raw_image:
            image_format = raw_image.format
            width, height = raw_image.size
            longest_edge = max(width, height)
            if longest_edge <= max_edge:
                logger.debug("%s is already %dx%d; leaving it alone", path, width, height)
                return
            scale = max_edge / float(longest_edge)
            new_size = (
                max(1, int(width * scale)),
                max(1, int(height * scale)),
            )
            image = raw_image.resize(new_size, Image.Resampling.LANCZOS)
        save_options = {"quality": 90} if image_format == "JPEG" else {}
        image.save(path, format=image_format, **save_options)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ResizeError(f"Pillow could not resize {path}: {exc}") from exc


def resize_image(path: Path, config: BatchConfig) -> str:
    """Shrink the image at ``path`` in place so its longest edge is 600px.

    Returns the backend that did the work. Any failure, including a missing
    tool, raises :class:`ResizeError`.
    """
    backend = resolve_backend(config.resize_backend)
    logger.debug("Resizing file: %s (backend=%s)", path, backend)
    if backend == "pillow":
        _resize_with_pillow(path, MAX_EDGE)
        return backend

    result = run_command(build_resize_command(backend, path, MAX_EDGE))
    if result.stdout.strip():
        logger.debug("%s stdout: %s", backend, result.stdout.strip())
    if result.stderr.strip():
        logger.debug("%s stderr: %s", backend, result.stderr.strip())
    if not result.ok:
        detail = result.stderr.strip() or "no diagnostic output"
        raise ResizeError(
            f"{backend} exited with status {result.returncode} on {path}: {detail}",
            result,
        )
    return backend
