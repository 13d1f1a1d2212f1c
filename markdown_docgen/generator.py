#!/usr/bin/env python3
"""
Pipeline entry point: Markdown tree to HTML pages, index page and PDF.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import asyncio
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .browser import BrowserSession
from .config import Config
from .errors import PdfDisabledError
from .files import (ScratchDirectory, collect_markdown_files, input_base_dir, output_path_for,
                    sort_markdown_files, write_text)
from .html_converter import HtmlConverter, read_source_document
from .index_page import build_index_entries, generate_index_page, iter_directories
from .log import ConsoleLogger
from .markdown_parser import MarkdownParser
from .pdf_composer import PDF_FILENAME, PdfComposer
from .template import load_template


@dataclass
class GenerateResult:
    html_files: List[Path] = field(default_factory=list)
    pdf_file: Optional[Path] = None
    markdown_count: int = 0


def _build_converter(config: Config, template: Optional[str]) -> HtmlConverter:
    parser = MarkdownParser(locale=config.html.locale, pygments_style=config.html.pygments_style)
    return HtmlConverter(
        parser=parser,
        template=template,
        breadcrumbs=config.html.breadcrumbs,
        footer_text=config.html.footer_text,
        home_title=config.html.home_title,
    )


def _generate_html(config: Config, converter: HtmlConverter, result: GenerateResult,
                   log: ConsoleLogger) -> None:
    md_files = sort_markdown_files(collect_markdown_files(config.input_dir))
    base_dir = input_base_dir(config.input_dir)
    result.markdown_count = len(md_files)

    if not md_files:
        log.warning(f"No Markdown files found in {config.input_dir}")
        return

    log.info(f"Converting {len(md_files)} Markdown file(s)...")
    for md_file in tqdm(md_files, desc="Converting", unit="file"):
        document = read_source_document(md_file, base_dir)
        output_path = output_path_for(document.relative_path, config.output_dir)
        page = converter.convert(document, output_path)
        write_text(output_path, page.html)
        result.html_files.append(output_path)
        log.debug(f"Generated: {output_path}")


def _write_index(config: Config, converter: HtmlConverter, template: Optional[str],
                 directory: Path, title: str) -> Path:
    index_html = generate_index_page(
        build_index_entries(directory),
        title=title,
        template=template,
        footer_text=config.html.footer_text,
        tree_view=config.html.index_tree_view,
        styles=converter.styles,
    )
    index_path = config.output_dir / directory.relative_to(config.input_dir) / "index.html"
    write_text(index_path, index_html)
    return index_path


def _generate_index(config: Config, converter: HtmlConverter, template: Optional[str],
                    result: GenerateResult, log: ConsoleLogger) -> None:
    """Write the root index page plus one per subdirectory that breadcrumbs link to.

    A directory whose own ``index.md`` already produced ``index.html`` keeps that page.
    """
    pages = set(result.html_files)
    if config.output_dir / "index.html" in pages:
        log.warning("index.md found at the input root, not generating the index page")
    else:
        index_path = _write_index(config, converter, template, config.input_dir, config.html.index_title)
        log.info(f"Generated index page: {index_path}")

    for entry in iter_directories(build_index_entries(config.input_dir)):
        directory = config.input_dir / Path(entry.path).parent
        if config.output_dir / entry.path in pages:
            log.debug(f"Keeping document page as directory index: {entry.path}")
            continue
        sub_index = _write_index(config, converter, template, directory, entry.title)
        log.debug(f"Generated directory index: {sub_index}")


async def generate(config: Config, skip_html: bool = False, skip_pdf: bool = False,
                   session: Optional[BrowserSession] = None,
                   log: Optional[ConsoleLogger] = None) -> GenerateResult:
    """Run the pipeline once.

    Args:
        config: Run configuration
        skip_html: Do not keep HTML pages; with PDF enabled they are built in a
            scratch directory and only the PDF is written to the output directory
        skip_pdf: Do not build the PDF even if it is enabled
        session: Browser to reuse; it is left running afterwards. When omitted,
            a session is created for this run and released at the end.
        log: Logger, defaults to a console logger honoring ``config.debug``

    Returns:
        The generated files and the number of Markdown sources

    Raises:
        PdfDisabledError: a PDF-only run was requested while PDF output is disabled.
    """
    log = log or ConsoleLogger(debug=config.debug)
    if skip_html and not skip_pdf and not config.pdf.enabled:
        raise PdfDisabledError("PDF-only run requested but PDF generation is disabled", operation="generate")

    log.info(f"Input: {config.input_dir}")
    log.info(f"Output: {config.output_dir}")

    result = GenerateResult()
    use_scratch = skip_html and not skip_pdf and config.pdf.enabled
    want_pdf = not skip_pdf and config.pdf.enabled
    scratch = ScratchDirectory(log)
    owns_session = session is None
    session = session or BrowserSession(log)
    final_output_dir = config.output_dir

    try:
        if use_scratch:
            config = config.with_output_dir(scratch.create())
            log.debug(f"Building intermediate HTML in {config.output_dir}")

        if not skip_html or use_scratch:
            template = load_template(config.html.template) if config.html.template else None
            converter = _build_converter(config, template)
            _generate_html(config, converter, result, log)

            if config.input_dir.is_dir() and not use_scratch:
                _generate_index(config, converter, template, result, log)
            log.success(f"HTML generation complete ({result.markdown_count} file(s))")

        if want_pdf and result.html_files:
            composer = PdfComposer(config, session, log)
            pdf_path = await composer.compose(result.html_files)
            if use_scratch:
                final_output_dir.mkdir(parents=True, exist_ok=True)
                final_pdf = final_output_dir / PDF_FILENAME
                shutil.copyfile(pdf_path, final_pdf)
                pdf_path = final_pdf
            result.pdf_file = pdf_path
        elif want_pdf:
            log.warning("No pages were generated, skipping PDF")

        if use_scratch:
            # Intermediate pages are gone once the scratch directory is removed
            result.html_files = []
        return result
    finally:
        scratch.remove()
        if owns_session:
            await session.release()


def generate_sync(config: Config, skip_html: bool = False, skip_pdf: bool = False,
                  log: Optional[ConsoleLogger] = None) -> GenerateResult:
    """Blocking wrapper around :func:`generate`."""
    return asyncio.run(generate(config, skip_html=skip_html, skip_pdf=skip_pdf, log=log))
