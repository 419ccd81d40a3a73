"""Pytest configuration and fixtures for Pagewise tests."""

import os
import sys

# Set required env vars BEFORE any imports that might trigger Settings
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("PROGRESS_BACKEND", "file")

import io
import zipfile

import pytest

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import fitz  # noqa: E402  PyMuPDF

from config import Settings  # noqa: E402
from db import FileProgressStore  # noqa: E402
from llm.base import BaseGenerator  # noqa: E402

# 1x1 transparent PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01"
    b"\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class FakeGenerator(BaseGenerator):
    """Generator that replays fixed snapshots and records every request.

    Args:
        snapshots: Cumulative texts to yield, in order.
        error: Exception raised after the snapshots are exhausted.
        gate: If set, awaited before each snapshot.
    """

    def __init__(self, snapshots=("Hello",), error=None, gate=None):
        self.snapshots = list(snapshots)
        self.error = error
        self.gate = gate
        self.calls: list[dict] = []

    async def stream(self, prompt, system, *, temperature=None, max_tokens=None):
        self.calls.append({"prompt": prompt, "system": system})
        for snapshot in self.snapshots:
            if self.gate is not None:
                await self.gate.wait()
            yield snapshot
        if self.error is not None:
            raise self.error


def xhtml(body: str, title: str | None = None) -> str:
    """Wrap body markup in a minimal XHTML chapter."""
    head = f"<title>{title}</title>" if title is not None else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        f"<head>{head}</head><body>{body}</body></html>"
    )


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the environment."""
    return Settings(
        anthropic_api_key="test-anthropic-key",
        progress_dir=str(tmp_path / "progress"),
        max_file_size_mb=5,
    )


@pytest.fixture
def progress_store(tmp_path):
    """File-backed progress store in a temp directory."""
    return FileProgressStore(tmp_path / "progress")


@pytest.fixture
def fake_generator():
    """Generator yielding "H", "He", "Hello"."""
    return FakeGenerator(snapshots=["H", "He", "Hello"])


@pytest.fixture
def make_epub():
    """Build an EPUB container from a {path: content} mapping.

    Writes the ``mimetype`` member first, as the OCF container format requires.
    """

    def _make(members: dict[str, str | bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr(
                "mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED
            )
            for path, content in members.items():
                zf.writestr(path, content)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_pdf():
    """Build a PDF with one text line per page and an optional outline."""

    def _make(pages: list[str], toc: list | None = None) -> bytes:
        doc = fitz.open()
        for text in pages:
            page = doc.new_page()
            page.insert_text((72, 72), text)
        if toc:
            doc.set_toc(toc)
        data = doc.tobytes()
        doc.close()
        return data

    return _make


@pytest.fixture
def sample_epub(make_epub):
    """EPUB with two text chapters and one empty chapter."""
    return make_epub(
        {
            "OEBPS/ch1.xhtml": xhtml("<h1>One</h1><p>It was a dark night.</p>", "Chapter One"),
            "OEBPS/ch2.xhtml": xhtml("<p>   </p>"),
            "OEBPS/ch3.xhtml": xhtml("<p>The butler did it.</p>", "Chapter Two"),
        }
    )
