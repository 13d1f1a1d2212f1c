"""Tests for diagram rendering and placeholder handling."""

import asyncio
import base64
import io
import re

import pytest
from PIL import Image

from conftest import FAIL_MARKER, FakeSession
from markdown_docgen import diagrams
from markdown_docgen.config import DiagramConfig
from markdown_docgen.diagrams import (DiagramRenderer, clamp_svg_width, create_placeholder,
                                      extract_diagram_source, mermaid_host_html, shrink_png)
from markdown_docgen.errors import DiagramRenderError

FAST = DiagramConfig(settle_delay_ms=0)


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def _mermaid_block(source: str) -> str:
    return f'<pre class="diagram-source"><code class="language-mermaid">{source}</code></pre>'


class TestClampSvgWidth:
    def test_wide_svg_is_scaled_down(self) -> None:
        svg = clamp_svg_width('<svg xmlns="http://www.w3.org/2000/svg" width="1000" height="400"></svg>', 500)

        assert 'width="500"' in svg
        assert 'height="200"' in svg
        assert 'viewBox="0 0 1000 400"' in svg
        assert 'style="max-width: 500px; height: auto;"' in svg

    def test_small_svg_keeps_size(self) -> None:
        svg = clamp_svg_width('<svg width="300px" height="100px"></svg>', 500)

        assert 'width="300"' in svg
        assert 'height="100"' in svg
        assert "viewBox" not in svg

    def test_existing_viewbox_is_kept(self) -> None:
        svg = clamp_svg_width('<svg viewBox="0 0 1200 600"></svg>', 600)

        assert svg.count("viewBox") == 1
        assert 'width="600"' in svg
        assert 'height="300"' in svg

    def test_explicit_dimensions_win(self) -> None:
        svg = clamp_svg_width('<svg width="100%"></svg>', 500, width=1000, height=500)

        assert 'width="500"' in svg
        assert 'height="250"' in svg

    def test_unknown_size_gets_fluid_style(self) -> None:
        svg = clamp_svg_width('<svg><g/></svg>', 500)

        assert svg == '<svg style="max-width: 100%; height: auto;"><g/></svg>'

    def test_not_an_svg(self) -> None:
        assert clamp_svg_width("<div></div>", 500) == "<div></div>"


class TestExtractDiagramSource:
    def test_entities_are_decoded(self) -> None:
        assert extract_diagram_source("graph TD\n  A--&gt;B\n") == "graph TD\n  A-->B"

    def test_highlight_markup_is_stripped(self) -> None:
        inner = '<span class="n">A</span><span class="o">--&gt;</span><span class="n">B</span>'

        assert extract_diagram_source(inner) == "A-->B"

    def test_double_escaped_label(self) -> None:
        assert extract_diagram_source("A[one&amp;lt;br&amp;gt;two]") == "A[one<br>two]"


def test_host_html_escapes_source() -> None:
    html = mermaid_host_html("A-->B</div><script>", theme="dark")

    assert "A--&gt;B&lt;/div&gt;&lt;script&gt;" in html
    assert "theme: 'dark'" in html


def test_placeholder_escapes_and_truncates() -> None:
    source = "<b>" + "x" * 100
    html = create_placeholder("mermaid", source, "bad <thing>")

    assert 'class="diagram-placeholder"' in html
    assert "Mermaid diagram failed to render" in html
    assert "bad &lt;thing&gt;" in html
    assert "&lt;b&gt;" in html
    assert "x" * 57 + "..." in html
    assert "x" * 58 not in html


def test_shrink_png() -> None:
    small = _png(200, 100)
    assert shrink_png(small, 500) is small

    with Image.open(io.BytesIO(shrink_png(_png(1000, 300), 500))) as img:
        assert img.size == (500, 150)


class TestReplaceDiagrams:
    def test_mermaid_block_becomes_svg(self, log) -> None:
        session = FakeSession()
        html = "<p>before</p>" + _mermaid_block("graph TD\n  A--&gt;B") + "<p>after</p>"

        result = asyncio.run(DiagramRenderer(session, FAST, log).replace_diagrams(html))

        assert '<div class="mermaid-svg"' in result
        assert 'width="500"' in result
        assert "<pre" not in result
        assert result.startswith("<p>before</p>") and result.endswith("<p>after</p>")
        assert "A--&gt;B" in session.rendered_sources[0]
        assert all(page.closed for page in session.pages)

    def test_failure_becomes_placeholder(self, log) -> None:
        session = FakeSession()
        html = _mermaid_block(FAIL_MARKER) + "<p>kept</p>" + _mermaid_block("graph LR\n  X--&gt;Y")

        result = asyncio.run(DiagramRenderer(session, FAST, log).replace_diagrams(html))

        assert result.count('class="diagram-placeholder"') == 1
        assert result.count('class="mermaid-svg"') == 1
        assert "<p>kept</p>" in result
        assert FAIL_MARKER in result

    def test_mermaid_error_report(self, log) -> None:
        session = FakeSession(evaluate=lambda content: {"error": "Parse error on line 1"})
        renderer = DiagramRenderer(session, FAST, log)

        with pytest.raises(DiagramRenderError, match="Parse error on line 1"):
            asyncio.run(renderer.render_mermaid("graph ???"))

    def test_timeout_becomes_placeholder(self, log) -> None:
        session = FakeSession(render_delay=5)
        config = DiagramConfig(timeout_ms=50, settle_delay_ms=0)
        html = "<p>para</p>" + _mermaid_block("graph TD\n  A--&gt;B")

        result = asyncio.run(DiagramRenderer(session, config, log).replace_diagrams(html))

        assert result.startswith("<p>para</p>")
        assert 'class="diagram-placeholder"' in result
        assert "timed out" in result
        assert all(page.closed for page in session.pages)

    def test_disabled_leaves_blocks(self, log) -> None:
        html = _mermaid_block("graph TD")
        config = DiagramConfig(enabled=False, settle_delay_ms=0)

        assert asyncio.run(DiagramRenderer(FakeSession(), config, log).replace_diagrams(html)) == html

    def test_plantuml_block(self, log, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(DiagramRenderer, "_fetch_plantuml", lambda self, source, max_retries=3: _png(1000, 400))
        config = DiagramConfig(plantuml_enabled=True, settle_delay_ms=0)
        html = '<pre><code class="language-plantuml">@startuml\nA -&gt; B\n@enduml</code></pre>'

        result = asyncio.run(DiagramRenderer(FakeSession(), config, log).replace_diagrams(html))

        assert '<div class="plantuml-diagram"' in result
        encoded = re.search(r'src="data:image/png;base64,([^"]+)"', result).group(1)
        with Image.open(io.BytesIO(base64.b64decode(encoded))) as img:
            assert img.size == (500, 200)


class TestFetchPlantuml:
    def test_transient_errors_are_retried(self, log, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []

        class FlakyClient:
            def __init__(self, url):
                self.url = url

            def processes(self, source):
                calls.append(source)
                if len(calls) == 1:
                    raise ConnectionError("connection reset by peer")
                return b"png"

        monkeypatch.setattr(diagrams.plantuml, "PlantUML", FlakyClient)
        monkeypatch.setattr(diagrams.time, "sleep", lambda seconds: None)

        assert DiagramRenderer(FakeSession(), FAST, log)._fetch_plantuml("@startuml\n@enduml") == b"png"
        assert len(calls) == 2

    def test_other_errors_fail_immediately(self, log, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []

        class BrokenClient:
            def __init__(self, url):
                pass

            def processes(self, source):
                calls.append(source)
                raise ValueError("bad diagram")

        monkeypatch.setattr(diagrams.plantuml, "PlantUML", BrokenClient)

        with pytest.raises(DiagramRenderError) as excinfo:
            DiagramRenderer(FakeSession(), FAST, log)._fetch_plantuml("x")
        assert len(calls) == 1
        assert isinstance(excinfo.value.cause, ValueError)
