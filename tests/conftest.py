"""Shared fixtures for the markdown_docgen test suite.

Browser-dependent code is exercised through ``FakeSession``, an in-memory
stand-in with the same ``page()`` / ``acquire()`` / ``release()`` surface
as :class:`markdown_docgen.browser.BrowserSession`. Its pages record the
HTML they were given, answer the Mermaid read-back script with a canned
SVG, and "print" a small PDF file.
"""

from __future__ import annotations

import asyncio
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import pytest

from markdown_docgen.config import Config, PdfConfig
from markdown_docgen.log import ConsoleLogger

FAKE_SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="800" height="400"><g><text>diagram</text></g></svg>'
FAKE_PDF = b"%PDF-1.7\n" + b"%" + b"0" * 4096 + b"\n%%EOF\n"

# Marker that makes the fake Mermaid render fail
FAIL_MARKER = "FAIL_DIAGRAM"


def default_evaluate(content: str) -> Optional[dict]:
    if FAIL_MARKER in content:
        return None
    return {"svg": FAKE_SVG, "width": 800, "height": 400}


class FakePage:
    def __init__(self, session: "FakeSession"):
        self.session = session
        self.content = ""
        self.closed = False

    async def set_content(self, html: str, timeout: Optional[int] = None) -> None:
        self.content = html
        self.session.rendered_sources.append(html)

    async def wait_for_timeout(self, timeout: int) -> None:
        return None

    async def evaluate(self, script: str):
        if self.session.render_delay:
            await asyncio.sleep(self.session.render_delay)
        return self.session.evaluate(self.content)

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[int] = None) -> None:
        path = Path(url2pathname(urlparse(url).path))
        self.session.printed_html.append(path.read_text(encoding="utf-8"))

    async def pdf(self, path: str, **options) -> None:
        self.session.pdf_options.append(options)
        if self.session.crashes_left > 0:
            self.session.crashes_left -= 1
            raise RuntimeError("Target closed")
        if self.session.pdf_error is not None:
            raise self.session.pdf_error
        Path(path).write_bytes(FAKE_PDF)

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    """In-memory BrowserSession replacement."""

    def __init__(self, evaluate: Callable[[str], Optional[dict]] = default_evaluate,
                 crashes: int = 0, pdf_error: Optional[Exception] = None, render_delay: float = 0):
        self.evaluate = evaluate
        self.crashes_left = crashes
        self.pdf_error = pdf_error
        self.render_delay = render_delay
        self.rendered_sources: List[str] = []
        self.printed_html: List[str] = []
        self.pdf_options: List[dict] = []
        self.pages: List[FakePage] = []
        self.released = 0

    @property
    def is_running(self) -> bool:
        return True

    async def acquire(self) -> "FakeSession":
        return self

    async def release(self) -> None:
        self.released += 1

    @asynccontextmanager
    async def page(self):
        page = FakePage(self)
        self.pages.append(page)
        try:
            yield page
        finally:
            await page.close()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def log() -> ConsoleLogger:
    return ConsoleLogger(debug=True)


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``tempfile.gettempdir()`` at a private directory for the test."""
    root = tmp_path / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def write_docs(root: Path, files: dict) -> Path:
    """Create a Markdown tree from ``{relative path: content}``."""
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    return write_docs(tmp_path / "docs", {
        "00-intro.md": "---\ntitle: Intro\n---\n# Intro\n\nWelcome to the guide.\n",
        "01-body.md": (
            "# Body\n\n"
            "::: warning\nMind the gap.\n:::\n\n"
            "```mermaid\ngraph TD\n  A-->B\n```\n\n"
            "## Details\n\nMore text here.\n\n"
            "### Deep heading\n\nDeep text.\n"
        ),
    })


@pytest.fixture
def pdf_config(docs_dir: Path, tmp_path: Path) -> Config:
    return Config(input_dir=docs_dir, output_dir=tmp_path / "out",
                  pdf=PdfConfig(enabled=True, toc_level=2))
