"""End-to-end pipeline tests with an in-memory browser."""

import asyncio
from pathlib import Path

import pytest

from conftest import FakeSession, write_docs
from markdown_docgen import generator
from markdown_docgen.config import Config, PdfConfig
from markdown_docgen.errors import ConversionError, InputError, PdfDisabledError, PdfRenderError
from markdown_docgen.generator import generate
from markdown_docgen.pdf_composer import PDF_FILENAME


def test_html_pages_index_and_pdf(pdf_config: Config, fake_session: FakeSession, log) -> None:
    result = asyncio.run(generate(pdf_config, session=fake_session, log=log))
    out = pdf_config.output_dir

    assert result.markdown_count == 2
    assert result.html_files == [out / "00-intro.html", out / "01-body.html"]
    assert (out / "index.html").exists()
    assert result.pdf_file == out / PDF_FILENAME
    assert result.pdf_file.read_bytes().startswith(b"%PDF")
    # A caller-provided session stays open for reuse
    assert fake_session.released == 0

    printed = fake_session.printed_html[0]
    assert printed.index("Welcome to the guide.") < printed.index("Mind the gap.")
    assert "custom-container warning" in printed


def test_pdf_only_run_uses_scratch_directory(pdf_config: Config, fake_session: FakeSession, log,
                                             scratch_root: Path) -> None:
    result = asyncio.run(generate(pdf_config, skip_html=True, session=fake_session, log=log))

    assert result.html_files == []
    assert sorted(p.name for p in pdf_config.output_dir.iterdir()) == [PDF_FILENAME]
    assert list(scratch_root.iterdir()) == []


def test_scratch_directory_removed_on_failure(pdf_config: Config, log, scratch_root: Path) -> None:
    session = FakeSession(pdf_error=RuntimeError("printer on fire"))

    with pytest.raises(PdfRenderError):
        asyncio.run(generate(pdf_config, skip_html=True, session=session, log=log))

    assert list(scratch_root.iterdir()) == []
    assert not (pdf_config.output_dir / PDF_FILENAME).exists()


def test_pdf_only_run_requires_pdf(docs_dir: Path, tmp_path: Path, fake_session: FakeSession, log) -> None:
    config = Config(input_dir=docs_dir, output_dir=tmp_path / "out")

    with pytest.raises(PdfDisabledError):
        asyncio.run(generate(config, skip_html=True, session=fake_session, log=log))
    assert not (tmp_path / "out").exists()


def test_skip_pdf(pdf_config: Config, fake_session: FakeSession, log) -> None:
    result = asyncio.run(generate(pdf_config, skip_pdf=True, session=fake_session, log=log))

    assert result.pdf_file is None
    assert len(result.html_files) == 2
    assert fake_session.pdf_options == []


def test_html_only_run_never_starts_browser(docs_dir: Path, tmp_path: Path, log) -> None:
    config = Config(input_dir=docs_dir, output_dir=tmp_path / "out")

    result = asyncio.run(generate(config, log=log))

    assert result.pdf_file is None
    assert (tmp_path / "out" / "01-body.html").exists()


def test_single_file_input(docs_dir: Path, tmp_path: Path, fake_session: FakeSession, log) -> None:
    config = Config(input_dir=docs_dir / "00-intro.md", output_dir=tmp_path / "out")

    result = asyncio.run(generate(config, session=fake_session, log=log))

    assert result.html_files == [tmp_path / "out" / "00-intro.html"]
    assert not (tmp_path / "out" / "index.html").exists()


def test_missing_input(tmp_path: Path, fake_session: FakeSession, log) -> None:
    config = Config(input_dir=tmp_path / "missing", output_dir=tmp_path / "out")

    with pytest.raises(InputError):
        asyncio.run(generate(config, session=fake_session, log=log))


def test_bad_frontmatter_stops_the_run(tmp_path: Path, fake_session: FakeSession, log) -> None:
    docs = write_docs(tmp_path / "docs", {"bad.md": "---\ntitle: [oops\n---\n# Bad\n"})
    config = Config(input_dir=docs, output_dir=tmp_path / "out")

    with pytest.raises(ConversionError) as excinfo:
        asyncio.run(generate(config, session=fake_session, log=log))
    assert excinfo.value.path == docs / "bad.md"


def test_subdirectory_pages_and_indexes(tmp_path: Path, fake_session: FakeSession, log) -> None:
    docs = write_docs(tmp_path / "docs", {
        "index.md": "# Welcome home\n",
        "guide/01-setup.md": "# Setup\n\nSee [usage](02-usage.md).\n",
        "guide/02-usage.md": "# Usage\n",
    })
    out = tmp_path / "out"

    asyncio.run(generate(Config(input_dir=docs, output_dir=out), session=fake_session, log=log))

    # The document's own index page is kept
    assert "Welcome home" in (out / "index.html").read_text(encoding="utf-8")
    setup = (out / "guide" / "01-setup.html").read_text(encoding="utf-8")
    assert 'href="02-usage.html"' in setup
    assert 'href="../index.html"' in setup
    guide_index = (out / "guide" / "index.html").read_text(encoding="utf-8")
    assert 'href="01-setup.html"' in guide_index
    assert 'href="02-usage.html"' in guide_index


def test_empty_input_skips_pdf(tmp_path: Path, fake_session: FakeSession, log) -> None:
    (tmp_path / "docs").mkdir()
    config = Config(input_dir=tmp_path / "docs", output_dir=tmp_path / "out", pdf=PdfConfig(enabled=True))

    result = asyncio.run(generate(config, session=fake_session, log=log))

    assert result.markdown_count == 0
    assert result.pdf_file is None
    assert fake_session.pdf_options == []


def test_leading_horizontal_rule_is_page_content(tmp_path: Path, fake_session: FakeSession, log) -> None:
    docs = write_docs(tmp_path / "docs", {
        "01-a.md": "# A\n\nFirst page.\n",
        "02-b.md": "---\n\nIntro paragraph\n\n---\n\n# B\n\nbody\n",
    })
    out = tmp_path / "out"

    result = asyncio.run(generate(Config(input_dir=docs, output_dir=out), session=fake_session, log=log))

    assert result.html_files == [out / "01-a.html", out / "02-b.html"]
    page = (out / "02-b.html").read_text(encoding="utf-8")
    assert "Intro paragraph" in page
    assert "<hr" in page


def _count_owned_sessions(monkeypatch: pytest.MonkeyPatch, **options) -> list:
    """Replace the browser ``generate`` creates for itself; returns the sessions it made."""
    created = []

    def factory(log):
        session = FakeSession(**options)
        created.append(session)
        return session

    monkeypatch.setattr(generator, "BrowserSession", factory)
    return created


def test_owned_session_released_after_success(pdf_config: Config, log, monkeypatch: pytest.MonkeyPatch) -> None:
    created = _count_owned_sessions(monkeypatch)

    result = asyncio.run(generate(pdf_config, log=log))

    assert result.pdf_file is not None
    assert len(created) == 1
    assert created[0].released == 1


def test_owned_session_released_after_failure(pdf_config: Config, log, monkeypatch: pytest.MonkeyPatch) -> None:
    created = _count_owned_sessions(monkeypatch, pdf_error=RuntimeError("printer on fire"))

    with pytest.raises(PdfRenderError):
        asyncio.run(generate(pdf_config, log=log))

    assert len(created) == 1
    assert created[0].released == 1


def test_debug_setting_drives_default_logger(docs_dir: Path, tmp_path: Path,
                                             capsys: pytest.CaptureFixture) -> None:
    asyncio.run(generate(Config(input_dir=docs_dir, output_dir=tmp_path / "out", debug=True)))
    assert "[DEBUG]" in capsys.readouterr().out

    asyncio.run(generate(Config(input_dir=docs_dir, output_dir=tmp_path / "quiet")))
    assert "[DEBUG]" not in capsys.readouterr().out
