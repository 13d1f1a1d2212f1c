#!/usr/bin/env python3
"""
Markdown to HTML fragment rendering.

Built on Python-Markdown with Pygments highlighting plus three local
extensions: ``:::`` admonition containers, diagram fences that are kept as
literal source for later rendering, and ``.md`` to ``.html`` link rewriting.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from html import escape
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit
from xml.etree.ElementTree import Element

from markdown import Markdown
from markdown.extensions import Extension
from markdown.extensions.toc import slugify_unicode
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor
from pygments.formatters.html import HtmlFormatter

from .errors import ConversionError

DIAGRAM_LANGUAGES = ("mermaid", "plantuml")

# Default admonition titles per locale
CONTAINER_TITLES: Dict[str, Dict[str, str]] = {
    "en": {
        "warning": "Warning",
        "info": "Info",
        "tip": "Tip",
        "danger": "Danger",
        "note": "Note",
        "success": "Success",
    },
    "ja": {
        "warning": "警告",
        "info": "情報",
        "tip": "ヒント",
        "danger": "危険",
        "note": "注意",
        "success": "成功",
    },
}
CONTAINER_KINDS = tuple(CONTAINER_TITLES["en"])

CONTAINER_STYLES = """
.custom-container {
  padding: 1rem 1.5rem;
  margin: 1rem 0;
  border-left: 4px solid;
  border-radius: 4px;
  background-color: #f8f9fa;
}
.custom-container-title {
  font-weight: 700;
  margin: 0 0 0.5rem 0;
  font-size: 1.1em;
}
.custom-container.warning { border-left-color: #ff9800; background-color: #fff3e0; }
.custom-container.warning .custom-container-title { color: #e65100; }
.custom-container.info { border-left-color: #2196f3; background-color: #e3f2fd; }
.custom-container.info .custom-container-title { color: #0d47a1; }
.custom-container.tip { border-left-color: #4caf50; background-color: #e8f5e9; }
.custom-container.tip .custom-container-title { color: #1b5e20; }
.custom-container.danger { border-left-color: #f44336; background-color: #ffebee; }
.custom-container.danger .custom-container-title { color: #b71c1c; }
.custom-container.note { border-left-color: #9e9e9e; background-color: #f5f5f5; }
.custom-container.note .custom-container-title { color: #424242; }
.custom-container.success { border-left-color: #4caf50; background-color: #e8f5e9; }
.custom-container.success .custom-container-title { color: #1b5e20; }
"""

_FENCE_OPEN = re.compile(r'^(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w+#.-]*)[^\n]*$')
_CONTAINER_OPEN = re.compile(r'^:::[ \t]*(?P<kind>[A-Za-z]+)(?:[ \t]+(?P<title>.*?))?[ \t]*$')
_CONTAINER_CLOSE = re.compile(r'^:::[ \t]*$')


def _closes_fence(line: str, fence: str) -> bool:
    stripped = line.strip()
    return (len(stripped) >= len(fence) and stripped == stripped[0] * len(stripped)
            and stripped[0] == fence[0])


class DiagramFencePreprocessor(Preprocessor):
    """Stash diagram fences as literal ``<pre><code class="language-X">`` blocks.

    Runs before ``fenced_code`` so diagram source is never highlighted.
    """

    def __init__(self, md: Markdown, languages: Tuple[str, ...]):
        super().__init__(md)
        self.languages = languages

    def run(self, lines: List[str]) -> List[str]:
        output: List[str] = []
        index = 0
        while index < len(lines):
            line = lines[index]
            match = _FENCE_OPEN.match(line)
            if not match:
                output.append(line)
                index += 1
                continue

            fence = match.group('fence')
            lang = match.group('lang').lower()
            end = index + 1
            while end < len(lines) and not _closes_fence(lines[end], fence):
                end += 1

            if end >= len(lines):
                # Unterminated fence is not a code block
                output.append(line)
                index += 1
                continue
            if lang not in self.languages:
                # Ordinary fence: keep it for fenced_code untouched
                output.extend(lines[index:end + 1])
                index = end + 1
                continue

            source = "\n".join(lines[index + 1:end])
            html = (f'<pre class="diagram-source"><code class="language-{lang}">'
                    f'{escape(source, quote=False)}</code></pre>')
            placeholder = self.md.htmlStash.store(html)
            output.extend(["", placeholder, ""])
            index = end + 1
        return output


class ContainerPreprocessor(Preprocessor):
    """Turn ``::: kind [title]`` ... ``:::`` blocks into titled ``<div>`` containers.

    The opening and closing markup is stashed as raw HTML blocks, so the body
    between them is parsed as ordinary Markdown. Runs after ``fenced_code``
    has stashed code blocks, so ``:::`` lines inside code are never touched.
    """

    def __init__(self, md: Markdown, titles: Dict[str, str]):
        super().__init__(md)
        self.titles = titles

    def _raw_block(self, html: str) -> List[str]:
        return ["", self.md.htmlStash.store(html), ""]

    def run(self, lines: List[str]) -> List[str]:
        output: List[str] = []
        depth = 0
        for line in lines:
            opening = _CONTAINER_OPEN.match(line)
            if opening and opening.group('kind').lower() in self.titles:
                kind = opening.group('kind').lower()
                title = opening.group('title') or self.titles[kind]
                output.extend(self._raw_block(
                    f'<div class="custom-container {kind}">\n'
                    f'<p class="custom-container-title">{escape(title)}</p>'
                ))
                depth += 1
            elif depth and _CONTAINER_CLOSE.match(line):
                output.extend(self._raw_block("</div>"))
                depth -= 1
            else:
                output.append(line)

        # Close containers left open at the end of the document
        for _ in range(depth):
            output.extend(self._raw_block("</div>"))
        return output


class MarkdownLinkTreeprocessor(Treeprocessor):
    """Point relative links at the generated ``.html`` page instead of the ``.md`` source."""

    def run(self, root: Element) -> Element:
        for element in root.iter("a"):
            rewritten = self._rewrite(element.get("href"))
            if rewritten:
                element.set("href", rewritten)
        return root

    @staticmethod
    def _rewrite(target: Optional[str]) -> Optional[str]:
        if not target:
            return None
        parts = urlsplit(target)
        if parts.scheme or parts.netloc or not parts.path.lower().endswith(".md"):
            return None
        rewritten = parts.path[:-3] + ".html"
        if parts.query:
            rewritten += f"?{parts.query}"
        if parts.fragment:
            rewritten += f"#{parts.fragment}"
        return rewritten


class DocgenExtension(Extension):
    """Register the diagram, container and link processors on a Markdown instance."""

    def __init__(self, locale: str = "en", containers: bool = True,
                 diagram_languages: Tuple[str, ...] = DIAGRAM_LANGUAGES):
        super().__init__()
        self.locale = locale
        self.containers = containers
        self.diagram_languages = diagram_languages

    def extendMarkdown(self, md: Markdown) -> None:  # noqa: N802
        # fenced_code runs at 25 and the raw HTML block parser at 20
        md.preprocessors.register(DiagramFencePreprocessor(md, self.diagram_languages), "docgen_diagrams", 30)
        if self.containers:
            titles = CONTAINER_TITLES.get(self.locale, CONTAINER_TITLES["en"])
            md.preprocessors.register(ContainerPreprocessor(md, titles), "docgen_containers", 22)
        md.treeprocessors.register(MarkdownLinkTreeprocessor(md), "docgen_md_links", 15)


class MarkdownParser:
    """Render Markdown bodies into HTML fragments."""

    def __init__(self, locale: str = "en", pygments_style: str = "default", highlight: bool = True,
                 containers: bool = True, breaks: bool = True):
        self.locale = locale
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

        extensions = [
            DocgenExtension(locale=locale, containers=containers),
            "fenced_code",
            "tables",
            "sane_lists",
            "md_in_html",
            "toc",
        ]
        if highlight:
            extensions.append("codehilite")
        if breaks:
            extensions.append("nl2br")

        self._md = Markdown(
            extensions=extensions,
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    # Missing or unknown languages are detected automatically
                    "guess_lang": True,
                    "css_class": "codehilite",
                    "pygments_style": pygments_style,
                },
                "toc": {
                    "slugify": slugify_unicode,
                },
            },
            output_format="html",
        )

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def parse(self, markdown: str) -> str:
        """Convert Markdown text into an HTML fragment.

        Raises:
            ConversionError: Python-Markdown failed on the input.
        """
        if not markdown.strip():
            return ""
        try:
            self._md.reset()
            return self._md.convert(markdown)
        except Exception as e:
            raise ConversionError("Markdown conversion failed", operation="markdown", cause=e) from e


def parse_markdown(markdown: str, locale: str = "en", pygments_style: str = "default") -> str:
    """Convert Markdown to HTML with a one-off parser."""
    return MarkdownParser(locale=locale, pygments_style=pygments_style).parse(markdown)
