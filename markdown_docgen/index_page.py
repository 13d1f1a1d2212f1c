#!/usr/bin/env python3
"""
Directory index page generation.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import os
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import ConversionError
from .files import is_markdown_file, natural_sort_key, read_text
from .frontmatter import parse_frontmatter
from .template import TemplateData, apply_template


@dataclass
class IndexEntry:
    """One file or directory in the index tree."""

    name: str
    path: str
    title: str
    is_directory: bool
    children: List["IndexEntry"] = field(default_factory=list)


def _entry_title(md_file: Path) -> str:
    try:
        frontmatter, _ = parse_frontmatter(read_text(md_file))
    except (OSError, UnicodeDecodeError, ConversionError):
        frontmatter = {}
    title = frontmatter.get("title")
    return str(title) if title else md_file.stem


def build_index_entries(directory: Path, base_dir: Optional[Path] = None) -> List[IndexEntry]:
    """Mirror the Markdown files under ``directory`` as a tree of entries.

    Directories without any Markdown file below them are left out.
    """
    base_dir = base_dir or directory
    entries: List[IndexEntry] = []

    names = sorted(os.listdir(directory), key=natural_sort_key)
    for name in names:
        if name.startswith('.'):
            continue
        full_path = directory / name
        relative = full_path.relative_to(base_dir).as_posix()

        if full_path.is_dir():
            children = build_index_entries(full_path, base_dir)
            if children:
                entries.append(IndexEntry(name=name, path=f"{relative}/index.html", title=name,
                                          is_directory=True, children=children))
        elif is_markdown_file(full_path):
            entries.append(IndexEntry(name=name, path=str(Path(relative).with_suffix(".html").as_posix()),
                                      title=_entry_title(full_path), is_directory=False))
    return entries


def render_tree(entries: List[IndexEntry]) -> str:
    if not entries:
        return ""

    html = "<ul>\n"
    for entry in entries:
        html += "  <li>"
        if entry.is_directory:
            html += f'<strong class="index-directory">{escape(entry.title)}</strong>'
            if entry.children:
                html += "\n" + render_tree(entry.children)
        else:
            html += f'<a href="{escape(entry.path)}">{escape(entry.title)}</a>'
        html += "</li>\n"
    html += "</ul>\n"
    return html


def render_flat_list(entries: List[IndexEntry]) -> str:
    """Render every page as one list item prefixed with its directory titles."""
    items: List[str] = []

    def _walk(nodes: List[IndexEntry], prefix: str) -> None:
        for entry in nodes:
            label = f"{prefix} / {entry.title}" if prefix else entry.title
            if entry.is_directory:
                _walk(entry.children, label)
            else:
                items.append(f'  <li><a href="{escape(entry.path)}">{escape(label)}</a></li>\n')

    _walk(entries, "")
    return "<ul>\n" + "".join(items) + "</ul>\n"


def generate_index_page(entries: List[IndexEntry], title: str = "Documents", description: str = "",
                        template: Optional[str] = None, footer_text: Optional[str] = None,
                        tree_view: bool = True, styles: str = "") -> str:
    """Render the index page HTML through the page template."""
    content = f"<h1>{escape(title)}</h1>\n"
    if description:
        content += f"<p>{escape(description)}</p>\n"
    content += render_tree(entries) if tree_view else render_flat_list(entries)

    data = TemplateData(title=title, content=content, footer_text=footer_text, styles=styles)
    return apply_template(data, template)


def iter_directories(entries: List[IndexEntry]) -> Iterator[IndexEntry]:
    """Yield every directory entry of the tree, parents before children."""
    for entry in entries:
        if entry.is_directory:
            yield entry
            yield from iter_directories(entry.children)
