#!/usr/bin/env python3
"""
Command line entry point.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from .config import LOCALES, MERMAID_THEMES, PAGE_SIZES, Config
from .dependencies import check_dependencies, install_browsers
from .errors import DocgenError
from .generator import generate_sync
from .log import ConsoleLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markdown-docgen",
        description="Convert a tree of Markdown files into HTML pages and an optional combined PDF "
                    "with Mermaid/PlantUML diagrams, embedded images and a table of contents")
    parser.add_argument("--input", help="Markdown file or directory to convert")
    parser.add_argument("--output", help="Output directory for HTML pages and document.pdf")
    parser.add_argument("--images", default=None, help="Directory holding images to embed into the PDF")
    parser.add_argument("--pdf", action="store_true", help="Enable combined PDF generation")
    parser.add_argument("--skip-html", action="store_true", help="Do not write HTML pages (PDF only, requires --pdf)")
    parser.add_argument("--skip-pdf", action="store_true", help="Do not generate the PDF even if enabled")
    parser.add_argument("--page-size", default="A4", choices=PAGE_SIZES, help="PDF page size (default: A4)")
    parser.add_argument("--margins", default="25mm 20mm",
                        help="Page margins in CSS format (default: '25mm 20mm'). Range: 0-3 inches. "
                             "Use 1, 2, or 4 values. Units: in, cm, mm, pt, px")
    parser.add_argument("--toc-level", type=int, default=3, help="Deepest heading level in the table of contents (1-6)")
    parser.add_argument("--no-toc", action="store_true", help="Do not add a table of contents to the PDF")
    parser.add_argument("--toc-title", default="Table of Contents", help="Title of the table of contents")
    parser.add_argument("--no-cover", action="store_true", help="Do not add a cover block to the PDF")
    parser.add_argument("--cover-title", default="Document", help="Title shown on the PDF cover")
    parser.add_argument("--cover-subtitle", default=None, help="Subtitle shown on the PDF cover")
    parser.add_argument("--font", default="Noto Sans", help="Font family used in the PDF (default: 'Noto Sans')")
    parser.add_argument("--no-page-numbers", action="store_true", help="Do not print page numbers in the PDF footer")
    parser.add_argument("--theme", default="default", choices=MERMAID_THEMES, help="Mermaid theme (default: default)")
    parser.add_argument("--no-mermaid", action="store_true", help="Leave Mermaid diagrams as code blocks")
    parser.add_argument("--plantuml", action="store_true", help="Render PlantUML diagrams through the PlantUML server")
    parser.add_argument("--plantuml-server", default=None, help="PlantUML server URL")
    parser.add_argument("--no-embed-images", action="store_true", help="Do not inline images into the PDF")
    parser.add_argument("--footer", default=None, help="Footer text for every HTML page")
    parser.add_argument("--no-breadcrumbs", action="store_true", help="Do not render breadcrumb navigation")
    parser.add_argument("--template", default=None, help="Custom HTML page template")
    parser.add_argument("--locale", default="en", choices=LOCALES, help="Language of default admonition titles")
    parser.add_argument("--install-browsers", action="store_true", help="Install Playwright Chromium and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for detailed output")
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    """Translate parsed arguments into a run configuration."""
    diagrams: Dict[str, Any] = {
        "enabled": not args.no_mermaid,
        "theme": args.theme,
        "plantuml_enabled": args.plantuml,
    }
    if args.plantuml_server:
        diagrams["plantuml_server"] = args.plantuml_server

    return Config.from_mapping({
        "input_dir": args.input,
        "output_dir": args.output,
        "images_dir": args.images,
        "debug": args.debug,
        "html": {
            "breadcrumbs": not args.no_breadcrumbs,
            "footer_text": args.footer,
            "template": args.template,
            "locale": args.locale,
        },
        "pdf": {
            "enabled": args.pdf,
            "page_size": args.page_size,
            "margins": args.margins,
            "include_toc": not args.no_toc,
            "toc_level": args.toc_level,
            "toc_title": args.toc_title,
            "include_cover": not args.no_cover,
            "cover_title": args.cover_title,
            "cover_subtitle": args.cover_subtitle,
            "font": args.font,
            "page_numbers": not args.no_page_numbers,
        },
        "diagrams": diagrams,
        "images": {"embed": not args.no_embed_images},
    })


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    log = ConsoleLogger(debug=args.debug)

    if args.install_browsers:
        sys.exit(0 if install_browsers(log) else 1)

    if not args.input or not args.output:
        parser.error("--input and --output are required")

    try:
        config = config_from_args(args)
        # The browser is only needed when a PDF is printed
        if config.pdf.enabled and not args.skip_pdf and not check_dependencies(log):
            sys.exit(1)

        result = generate_sync(config, skip_html=args.skip_html, skip_pdf=args.skip_pdf, log=log)
    except DocgenError as e:
        log.error(str(e))
        sys.exit(1)

    log.success(f"Processed {result.markdown_count} Markdown file(s), wrote {len(result.html_files)} HTML page(s)")
    if result.pdf_file:
        log.success(f"PDF: {result.pdf_file}")


if __name__ == "__main__":
    main()
