#!/usr/bin/env python3
"""
HTML page template with placeholder substitution.

Placeholders:
    {{TITLE}}        escaped document title
    {{CONTENT}}      rendered HTML body (inserted as-is)
    {{BREADCRUMBS}}  breadcrumb navigation markup
    {{FOOTER}}       footer block markup
    {{FOOTER_TEXT}}  escaped footer text only
    {{STYLES}}       admonition and code highlighting CSS

Custom templates must keep the single ``<article>`` element around
``{{CONTENT}}``: the PDF composer extracts only that element.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import InputError

_PLACEHOLDER = re.compile(r'\{\{(TITLE|CONTENT|BREADCRUMBS|FOOTER|FOOTER_TEXT|STYLES)\}\}')


@dataclass(frozen=True)
class Breadcrumb:
    title: str
    href: Optional[str] = None


@dataclass
class TemplateData:
    title: str
    content: str
    breadcrumbs: List[Breadcrumb] = field(default_factory=list)
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    # None omits the footer block entirely, "" renders an empty one
    footer_text: Optional[str] = None
    styles: str = ""


DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{TITLE}}</title>
    <style>
        :root {
            --body-color: rgb(34, 40, 50);
            --link-color: #0d6efd;
            --link-hover-color: #0a58ca;
            --heading-color: rgb(18, 24, 34);
            --body-bg: #ffffff;
            --sidebar-bg: #f8f9fa;
            --code-bg: #f8f9fa;
            --border-color: #dee2e6;
            --font-family-base: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            --font-family-code: "SFMono-Regular", Consolas, "Liberation Mono", Menlo, monospace;
        }

        body {
            font-family: var(--font-family-base);
            color: var(--body-color);
            background-color: var(--body-bg);
            font-size: 16px;
            line-height: 1.65;
            margin: 0;
            padding: 0;
        }

        .container {
            max-width: 960px;
            margin: 0 auto;
            padding: 2rem;
        }

        .breadcrumb {
            font-size: 0.875rem;
            margin-bottom: 1.5rem;
        }

        .breadcrumb a {
            color: var(--link-color);
            text-decoration: none;
        }

        .breadcrumb-separator {
            margin: 0 0.5rem;
            color: var(--border-color);
        }

        h1, h2, h3, h4, h5, h6 {
            font-weight: 600;
            color: var(--heading-color);
            margin-top: 2rem;
            margin-bottom: 1rem;
        }

        h1 {
            font-size: 2.25rem;
            margin-top: 0;
            padding-bottom: 0.3rem;
            border-bottom: 1px solid var(--border-color);
        }

        h2 {
            font-size: 1.75rem;
            padding-bottom: 0.3rem;
            border-bottom: 1px solid var(--border-color);
        }

        h3 {
            font-size: 1.4rem;
        }

        a {
            color: var(--link-color);
            text-decoration: none;
        }

        a:hover {
            color: var(--link-hover-color);
            text-decoration: underline;
        }

        pre {
            background-color: var(--code-bg);
            border: 1px solid var(--border-color);
            border-radius: 0.25rem;
            padding: 1rem;
            overflow-x: auto;
        }

        code {
            font-family: var(--font-family-code);
            font-size: 0.875em;
        }

        :not(pre) > code {
            background-color: var(--code-bg);
            border: 1px solid var(--border-color);
            border-radius: 0.25rem;
            padding: 0.125rem 0.375rem;
        }

        table {
            width: 100%;
            border-collapse: collapse;
            margin-bottom: 1rem;
        }

        th, td {
            border: 1px solid var(--border-color);
            padding: 0.75rem;
            text-align: left;
        }

        th {
            background-color: var(--sidebar-bg);
            font-weight: 600;
        }

        blockquote {
            border-left: 4px solid var(--link-color);
            padding-left: 1rem;
            margin-left: 0;
            font-style: italic;
        }

        img {
            max-width: 100%;
            height: auto;
        }

        footer {
            margin-top: 3rem;
            padding-top: 2rem;
            border-top: 1px solid var(--border-color);
            font-size: 0.875rem;
            color: #6c757d;
        }
{{STYLES}}
    </style>
</head>
<body>
    <div class="container">
        {{BREADCRUMBS}}

        <article>
{{CONTENT}}
        </article>

        {{FOOTER}}
    </div>
</body>
</html>
"""


def load_template(template_path: Path) -> str:
    """Read a custom page template."""
    try:
        with open(template_path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        raise InputError("Cannot read HTML template", path=template_path, operation="template", cause=e) from e


def render_breadcrumbs(breadcrumbs: List[Breadcrumb]) -> str:
    if not breadcrumbs:
        return ""

    items = []
    for index, crumb in enumerate(breadcrumbs):
        separator = '<span class="breadcrumb-separator">/</span>' if index > 0 else ''
        if crumb.href:
            link = f'<a href="{escape(crumb.href)}">{escape(crumb.title)}</a>'
        else:
            link = f'<span class="breadcrumb-current">{escape(crumb.title)}</span>'
        items.append(f"{separator}{link}")

    joined = "\n            ".join(items)
    return f'<nav class="breadcrumb">\n            {joined}\n        </nav>'


def render_footer(footer_text: Optional[str]) -> str:
    if footer_text is None:
        return ""
    return f"<footer>\n            <p>{escape(footer_text)}</p>\n        </footer>"


def apply_template(data: TemplateData, template: Optional[str] = None) -> str:
    """Substitute the placeholders of ``template`` (default template if omitted).

    Substitution is a single pass, so placeholder-like text inside the
    content is never expanded a second time.
    """
    values = {
        'TITLE': escape(data.title),
        'CONTENT': data.content,
        'BREADCRUMBS': render_breadcrumbs(data.breadcrumbs),
        'FOOTER': render_footer(data.footer_text),
        'FOOTER_TEXT': escape(data.footer_text or ""),
        'STYLES': data.styles,
    }
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template or DEFAULT_TEMPLATE)
