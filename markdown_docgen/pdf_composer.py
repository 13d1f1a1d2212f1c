#!/usr/bin/env python3
"""
Combine rendered HTML pages into one printable document and print it to PDF.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from html import escape
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from pygments.formatters.html import HtmlFormatter

from .browser import BrowserSession, is_browser_crash
from .config import Config, margin_to_cm
from .diagrams import DiagramRenderer
from .errors import PdfDisabledError, PdfRenderError
from .files import read_text, write_text
from .images import embed_images
from .log import ConsoleLogger, get_logger
from .markdown_parser import CONTAINER_STYLES
from .toc import DEFAULT_RESERVED_TITLES, generate_toc, index_headings

PDF_FILENAME = "document.pdf"
COMBINED_HTML_FILENAME = "temp-combined.html"

_UNSAFE_FONT_CHARS = re.compile(r'["\\<>{};]')

PAGE_NUMBER_FOOTER = ('<div style="font-size: 10px; text-align: center; width: 100%; margin: 0 auto;">'
                      '<span class="pageNumber"></span> / <span class="totalPages"></span></div>')


def css_font_family(font: str) -> str:
    """Drop characters that could end the quoted CSS font name or the style block."""
    return _UNSAFE_FONT_CHARS.sub('', font).strip()


def extract_article(html: str) -> Optional[str]:
    """Return the inner HTML of the page's ``<article>``, or None when it has none."""
    article = BeautifulSoup(html, "html.parser").find("article")
    if article is None:
        return None
    return article.decode_contents().strip()


def combine_pages(contents: List[str]) -> str:
    """Wrap each page body in its own section, separated by page breaks."""
    sections = [f'<section class="document-section">\n{content}\n</section>' for content in contents]
    return '\n<div class="page-break"></div>\n'.join(sections)


class PdfComposer:
    """Build the consolidated PDF from the generated HTML pages."""

    def __init__(self, config: Config, session: BrowserSession, log: Optional[ConsoleLogger] = None):
        self.config = config
        self.session = session
        self.log = log or get_logger()

    def _collect_contents(self, html_files: List[Path]) -> List[str]:
        contents = []
        for html_file in html_files:
            content = extract_article(read_text(html_file))
            if content is None:
                self.log.warning(f"No <article> element in {html_file}, skipping it in the PDF")
                continue
            contents.append(content)
        return contents

    def _cover_html(self) -> str:
        pdf = self.config.pdf
        if not pdf.include_cover:
            return ""
        subtitle = f'<p class="cover-subtitle">{escape(pdf.cover_subtitle)}</p>\n' if pdf.cover_subtitle else ""
        return (f'<div class="cover">\n<h1 class="cover-title">{escape(pdf.cover_title)}</h1>\n{subtitle}</div>\n'
                f'<div class="page-break"></div>\n')

    def build_print_html(self, body: str) -> str:
        """Wrap the combined body with print CSS, page setup and fonts."""
        pdf = self.config.pdf
        margins = self.config.margins
        top_cm = margin_to_cm(margins['top'])
        right_cm = margin_to_cm(margins['right'])
        bottom_cm = margin_to_cm(margins['bottom'])
        left_cm = margin_to_cm(margins['left'])
        font = css_font_family(pdf.font)
        font_href = f"https://fonts.googleapis.com/css2?family={quote_plus(font)}:wght@400;700&display=swap"
        code_styles = HtmlFormatter(style=self.config.html.pygments_style).get_style_defs(".codehilite")

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(pdf.cover_title)}</title>
    <link rel="stylesheet" href="{escape(font_href)}">
    <style>
        @page {{
            size: {pdf.page_size};
            margin: {top_cm}cm {right_cm}cm {bottom_cm}cm {left_cm}cm;
        }}

        * {{
            box-sizing: border-box;
        }}

        body {{
            font-family: "{font}", -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.5;
            color: #333;
            margin: 0;
            padding: 0;
            font-size: 10.5pt;
        }}

        h1, h2, h3, h4, h5, h6 {{
            color: #2c3e50;
            margin-top: 0.8em;
            margin-bottom: 0.3em;
            font-weight: 600;
            page-break-after: avoid;
            break-after: avoid;
            page-break-inside: avoid;
            break-inside: avoid;
        }}

        h1 {{
            font-size: 1.6em;
            border-bottom: 2px solid #3498db;
            padding-bottom: 0.2em;
        }}

        h2 {{
            font-size: 1.3em;
            border-bottom: 1px solid #bdc3c7;
            padding-bottom: 0.1em;
        }}

        h3 {{
            font-size: 1.1em;
        }}

        p {{
            margin: 0.5em 0;
        }}

        p, li {{
            orphans: 3;
            widows: 3;
        }}

        code {{
            background-color: #f8f9fa;
            border: 1px solid #e9ecef;
            border-radius: 3px;
            padding: 0.1em 0.3em;
            font-family: 'Courier New', Consolas, monospace;
            font-size: 0.85em;
        }}

        pre {{
            background-color: #f8f9fa;
            border: 1px solid #e9ecef;
            border-radius: 5px;
            padding: 0.5em;
            white-space: pre-wrap;
            word-wrap: break-word;
            font-size: 0.85em;
        }}

        pre code {{
            background: none;
            border: none;
            padding: 0;
        }}

        blockquote {{
            border-left: 4px solid #3498db;
            margin: 0.5em 0;
            padding: 0.3em 0.8em;
            background-color: #f8f9fa;
            color: #555;
        }}

        table {{
            border-collapse: collapse;
            width: 100%;
            max-width: 100%;
            margin: 0.5em 0;
        }}

        th, td {{
            border: 1px solid #ddd;
            padding: 0.3em;
            text-align: left;
        }}

        th {{
            background-color: #f8f9fa;
            font-weight: 600;
        }}

        img {{
            max-width: 100%;
            height: auto;
        }}

        a {{
            color: #3498db;
            text-decoration: none;
        }}

        pre, blockquote, table, img, .mermaid-svg, .plantuml-diagram {{
            page-break-inside: avoid;
            break-inside: avoid;
        }}

        .page-break {{
            page-break-after: always;
            break-after: page;
        }}

        .mermaid-svg svg {{
            max-width: 100%;
            height: auto;
        }}

        .cover {{
            text-align: center;
            padding-top: 35%;
        }}

        .cover-title {{
            font-size: 2.4em;
            border-bottom: none;
        }}

        .cover-subtitle {{
            font-size: 1.2em;
            color: #555;
        }}

        .table-of-contents ul {{
            list-style: none;
            padding-left: 0;
        }}

        .table-of-contents a {{
            color: #333;
        }}

        .toc-level-1 {{ font-weight: 600; margin-top: 0.4em; }}
        .toc-level-2 {{ padding-left: 1.5em; }}
        .toc-level-3 {{ padding-left: 3em; }}
        .toc-level-4 {{ padding-left: 4.5em; }}
        .toc-level-5 {{ padding-left: 6em; }}
        .toc-level-6 {{ padding-left: 7.5em; }}
{CONTAINER_STYLES}
{code_styles}
    </style>
</head>
<body>
{body}
</body>
</html>
"""

    async def build_combined_html(self, html_files: List[Path]) -> str:
        """Concatenate the pages and run image embedding, diagram rendering and heading indexing."""
        contents = self._collect_contents(html_files)
        if not contents:
            raise PdfRenderError("No page content to combine into the PDF", operation="pdf")
        combined = combine_pages(contents)

        if self.config.images.embed and self.config.images_dir is not None:
            combined = embed_images(combined, self.config.images_dir, self.log)

        diagrams = self.config.diagrams
        if diagrams.enabled or diagrams.plantuml_enabled:
            renderer = DiagramRenderer(self.session, diagrams, self.log)
            combined = await renderer.replace_diagrams(combined)

        pdf = self.config.pdf
        reserved = list(DEFAULT_RESERVED_TITLES) + [pdf.toc_title, pdf.cover_title]
        combined, headings = index_headings(combined, pdf.toc_level, reserved)
        self.log.debug(f"Indexed {len(headings)} heading(s) up to level {pdf.toc_level}")

        toc = generate_toc(headings, pdf.toc_title) if pdf.include_toc else ""
        return self.build_print_html(self._cover_html() + toc + combined)

    async def compose(self, html_files: List[Path]) -> Path:
        """Print the combined document to ``<output_dir>/document.pdf``.

        Raises:
            PdfDisabledError: PDF output is disabled in the configuration.
            PdfRenderError: the browser could not print the document.
        """
        if not self.config.pdf.enabled:
            raise PdfDisabledError("PDF generation is disabled in the configuration", operation="pdf")

        output_dir = self.config.output_dir
        temp_html = output_dir / COMBINED_HTML_FILENAME
        output_pdf = output_dir / PDF_FILENAME

        self.log.info(f"Combining {len(html_files)} page(s) into {output_pdf.name}...")
        try:
            write_text(temp_html, await self.build_combined_html(html_files))
            await self._print(temp_html, output_pdf)
        finally:
            try:
                temp_html.unlink(missing_ok=True)
            except OSError as e:
                self.log.warning(f"Failed to remove temporary file {temp_html}: {e}")

        if not output_pdf.exists() or output_pdf.stat().st_size == 0:
            raise PdfRenderError("PDF file was not created or is empty", path=output_pdf, operation="pdf")
        self.log.success(f"Generated PDF: {output_pdf}")
        return output_pdf

    async def _print(self, html_file: Path, output_pdf: Path) -> None:
        """Print an HTML file, retrying once with a fresh browser if it crashed."""
        pdf = self.config.pdf
        margins = self.config.margins
        max_attempts = 2

        for attempt in range(1, max_attempts + 1):
            try:
                async with self.session.page() as page:
                    await page.goto(html_file.absolute().as_uri(), wait_until="load", timeout=pdf.timeout_ms)
                    await page.pdf(
                        path=str(output_pdf),
                        format=pdf.page_size,
                        margin={side: f"{margin_to_cm(value)}cm" for side, value in margins.items()},
                        print_background=True,
                        prefer_css_page_size=True,
                        display_header_footer=pdf.page_numbers,
                        header_template='<div></div>',
                        footer_template=PAGE_NUMBER_FOOTER if pdf.page_numbers else '<div></div>',
                    )
                return
            except Exception as e:
                if is_browser_crash(e) and attempt < max_attempts:
                    self.log.warning("Browser crashed during PDF generation, restarting and retrying...")
                    await self.session.release()
                    continue
                raise PdfRenderError("Failed to print PDF", path=output_pdf, operation="pdf", cause=e) from e
