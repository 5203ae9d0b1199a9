from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
import requests
from exiftool.exceptions import ExifToolException
from PIL import Image

from img_prep.config import BatchConfig


def _jpeg_bytes(size: Tuple[int, int] = (1200, 800), color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


def _response(
    url: str,
    data: bytes = b"",
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    resp = requests.Response()
    resp.url = url
    resp.status_code = status_code
    resp.reason = "OK" if status_code < 400 else "Error"
    resp.raw = io.BytesIO(data)
    resp.headers.update(headers or {})
    return resp


class FakeSession:
    """Stands in for requests.Session, serving canned responses by URL."""

    def __init__(self, responses: Optional[Dict[str, requests.Response]] = None) -> None:
        self.responses = dict(responses or {})
        self.headers: Dict[str, str] = {}
        self.calls: List[dict] = []

    def get(self, url: str, **kwargs) -> requests.Response:
        self.calls.append({"url": url, **kwargs})
        if url not in self.responses:
            raise requests.ConnectionError(f"no route to {url}")
        return self.responses[url]


class FakeExifToolHelper:
    """Keeps tags in memory instead of spawning exiftool."""

    store: Dict[str, Dict[str, str]] = {}
    calls: List[dict] = []
    fail_with: Optional[Exception] = None

    def __init__(self, *args, **kwargs) -> None:
        self.kwargs = kwargs

    def __enter__(self) -> "FakeExifToolHelper":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def set_tags(self, files, tags, params=None):
        type(self).calls.append({"files": list(files), "tags": dict(tags), "params": list(params or [])})
        if type(self).fail_with is not None:
            raise type(self).fail_with
        for name in files:
            current = {} if "-all=" in (params or []) else dict(self.store.get(name, {}))
            current.update(tags)
            self.store[name] = current
        return "    1 image files updated\n"

    def get_tags(self, files, tags, params=None):
        return [
            {"SourceFile": name, **{tag: value for tag, value in self.store.get(name, {}).items() if tag in tags}}
            for name in files
        ]


@pytest.fixture
def fake_exiftool(monkeypatch):
    FakeExifToolHelper.store = {}
    FakeExifToolHelper.calls = []
    FakeExifToolHelper.fail_with = None
    monkeypatch.setattr("img_prep.metadata.ExifToolHelper", FakeExifToolHelper)
    return FakeExifToolHelper


@pytest.fixture
def failing_exiftool(fake_exiftool):
    fake_exiftool.fail_with = ExifToolException("execute returned a non-zero exit status: 1")
    return fake_exiftool


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _jpeg_bytes()


@pytest.fixture
def batch_config(tmp_path: Path) -> BatchConfig:
    return BatchConfig(
        target_directory=tmp_path / "out",
        csv_file=tmp_path / "images.csv",
        resize_backend="pillow",
    )


def _write_csv(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def make_jpeg_bytes():
    return _jpeg_bytes


@pytest.fixture
def make_response():
    return _response


@pytest.fixture
def session_factory():
    return FakeSession


@pytest.fixture
def write_csv():
    return _write_csv


@pytest.fixture
def image_session(jpeg_bytes) -> FakeSession:
    """A session that serves one JPEG at http://example.com/a.jpg."""
    url = "http://example.com/a.jpg"
    return FakeSession({url: _response(url, jpeg_bytes)})
