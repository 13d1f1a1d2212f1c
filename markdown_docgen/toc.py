#!/usr/bin/env python3
"""
Heading indexing and table of contents generation for the combined document.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from dataclasses import dataclass
from html import escape
from typing import Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup

DEFAULT_RESERVED_TITLES = ("Table of Contents", "Contents", "目次")

_HEADING_TAG = re.compile(r'^h([1-6])$')


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    id: str


def _normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


def index_headings(html: str, max_level: int = 3,
                   reserved_titles: Iterable[str] = DEFAULT_RESERVED_TITLES) -> Tuple[str, List[Heading]]:
    """Assign ``heading-N`` ids and collect the headings in one pass.

    A heading is indexed when its level is within ``max_level``, its text is
    not empty and it is not one of the reserved titles (compared without
    regard to case). Ids are always overwritten, so indexing the output
    again yields the same document.

    Returns:
        The rewritten HTML and the indexed headings in document order
    """
    reserved = {_normalize(title) for title in reserved_titles if title}
    soup = BeautifulSoup(html, "html.parser")
    headings: List[Heading] = []

    for element in soup.find_all(_HEADING_TAG):
        level = int(element.name[1])
        if level > max_level:
            continue
        text = " ".join(element.get_text().split())
        if not text or _normalize(text) in reserved:
            continue

        heading_id = f"heading-{len(headings)}"
        element["id"] = heading_id
        headings.append(Heading(level=level, text=text, id=heading_id))

    return str(soup), headings


def extract_headings(html: str, max_level: int = 3,
                     reserved_titles: Iterable[str] = DEFAULT_RESERVED_TITLES) -> List[Heading]:
    _, headings = index_headings(html, max_level, reserved_titles)
    return headings


def add_heading_ids(html: str, max_level: int = 3,
                    reserved_titles: Iterable[str] = DEFAULT_RESERVED_TITLES) -> str:
    indexed, _ = index_headings(html, max_level, reserved_titles)
    return indexed


def generate_toc(headings: List[Heading], title: Optional[str] = "Table of Contents",
                 include_page_break: bool = True) -> str:
    """Render the table of contents block linking to each heading id."""
    toc_html = '<div class="table-of-contents">\n'
    toc_html += f'<h1>{escape(title or "Table of Contents")}</h1>\n'
    toc_html += '<ul>\n'
    for heading in headings:
        indent = "  " * (heading.level - 1)
        toc_html += (f'{indent}<li class="toc-level-{heading.level}">'
                     f'<a href="#{heading.id}">{escape(heading.text)}</a></li>\n')
    toc_html += '</ul>\n</div>\n'

    if include_page_break:
        toc_html += '<div class="page-break"></div>\n'
    return toc_html
