#!/usr/bin/env python3
"""
Markdown document to standalone HTML page conversion.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

from .errors import ConversionError, DocgenError
from .files import SourceDocument, read_text
from .frontmatter import parse_frontmatter
from .markdown_parser import CONTAINER_STYLES, MarkdownParser
from .template import Breadcrumb, TemplateData, apply_template

DEFAULT_TITLE = "Document"

_ATX_H1 = re.compile(r'^#[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$')
_SETEXT_H1 = re.compile(r'^=+[ \t]*$')
_FENCE = re.compile(r'^(`{3,}|~{3,})')


@dataclass
class RenderedPage:
    """A converted page, alive for the duration of one run."""

    relative_path: Path
    output_path: Path
    html: str
    title: str
    frontmatter: Dict[str, Any] = field(default_factory=dict)


def extract_first_heading(markdown: str) -> Optional[str]:
    """Return the text of the first level-1 heading outside fenced code.

    Both ATX (``# Title``) and setext (``Title`` over ``===``) styles count.
    """
    lines = markdown.splitlines()
    fence = None
    for i, line in enumerate(lines):
        fence_match = _FENCE.match(line.strip())
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
            continue
        if fence is not None:
            continue

        atx = _ATX_H1.match(line.strip())
        if atx:
            return atx.group(1).strip()
        if line.strip() and i + 1 < len(lines) and _SETEXT_H1.match(lines[i + 1].strip()):
            return line.strip()
    return None


def resolve_title(body: str, frontmatter: Dict[str, Any], override: Optional[str] = None) -> str:
    """Pick the page title: override, frontmatter, first H1, then the fixed fallback."""
    if override:
        return override
    fm_title = frontmatter.get("title")
    if fm_title:
        return str(fm_title)
    return extract_first_heading(body) or DEFAULT_TITLE


def generate_breadcrumbs(relative_path: Path, home_title: str = "Home") -> List[Breadcrumb]:
    """Build the breadcrumb trail for a page from its path segments.

    Every intermediate directory links to its own ``index.html``; the last
    segment (the page itself) is not linked. Links are relative to the page.
    """
    parts = PurePosixPath(Path(relative_path).as_posix()).parts
    depth = len(parts) - 1

    breadcrumbs = [Breadcrumb(home_title, "../" * depth + "index.html")]
    for index, segment in enumerate(parts[:-1]):
        breadcrumbs.append(Breadcrumb(segment, "../" * (depth - index - 1) + "index.html"))
    breadcrumbs.append(Breadcrumb(PurePosixPath(parts[-1]).stem))
    return breadcrumbs


def read_source_document(path: Path, base_dir: Path) -> SourceDocument:
    """Read a Markdown file and split off its frontmatter."""
    try:
        raw = read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        raise ConversionError("Cannot read Markdown file", path=path, operation="read", cause=e) from e
    try:
        frontmatter, body = parse_frontmatter(raw)
    except ConversionError as e:
        e.path = path
        raise
    return SourceDocument(path=path, relative_path=path.relative_to(base_dir), frontmatter=frontmatter, body=body)


class HtmlConverter:
    """Convert source documents into complete HTML pages."""

    def __init__(self, parser: Optional[MarkdownParser] = None, template: Optional[str] = None,
                 breadcrumbs: bool = True, footer_text: Optional[str] = None, home_title: str = "Home"):
        self.parser = parser or MarkdownParser()
        self.template = template
        self.breadcrumbs = breadcrumbs
        self.footer_text = footer_text
        self.home_title = home_title

    @property
    def styles(self) -> str:
        return CONTAINER_STYLES + "\n" + self.parser.stylesheet

    def convert(self, document: SourceDocument, output_path: Path, title: Optional[str] = None) -> RenderedPage:
        """Render one document into a full page.

        Raises:
            ConversionError: the body could not be converted; the error carries the source path.
        """
        try:
            content = self.parser.parse(document.body)
        except DocgenError as e:
            raise ConversionError("Markdown conversion failed", path=document.path,
                                  operation="markdown", cause=e.cause or e) from e

        resolved_title = resolve_title(document.body, document.frontmatter, title)
        data = TemplateData(
            title=resolved_title,
            content=content,
            breadcrumbs=generate_breadcrumbs(document.relative_path, self.home_title) if self.breadcrumbs else [],
            frontmatter=document.frontmatter,
            footer_text=self.footer_text,
            styles=self.styles,
        )
        return RenderedPage(
            relative_path=document.relative_path,
            output_path=output_path,
            html=apply_template(data, self.template),
            title=resolved_title,
            frontmatter=document.frontmatter,
        )

    def convert_text(self, markdown: str, relative_path: Path = Path("document.md"),
                     title: Optional[str] = None) -> RenderedPage:
        """Convert raw Markdown (frontmatter included) without touching the filesystem."""
        frontmatter, body = parse_frontmatter(markdown)
        document = SourceDocument(path=Path(relative_path), relative_path=Path(relative_path),
                                  frontmatter=frontmatter, body=body)
        return self.convert(document, Path(relative_path).with_suffix(".html"), title)
