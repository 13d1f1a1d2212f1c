"""
Markdown documentation generator: HTML pages and a combined PDF.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from .browser import BrowserSession
from .config import Config, DiagramConfig, HtmlConfig, ImageConfig, PdfConfig
from .diagrams import DiagramRenderer
from .errors import (
    ConfigError,
    ConversionError,
    DiagramRenderError,
    DocgenError,
    ImageEmbedError,
    InputError,
    PathSecurityError,
    PdfDisabledError,
    PdfRenderError,
    UnsupportedInputError,
)
from .generator import GenerateResult, generate, generate_sync
from .html_converter import HtmlConverter, RenderedPage
from .markdown_parser import MarkdownParser, parse_markdown
from .pdf_composer import PdfComposer

__version__ = "1.0.0"

__all__ = [
    "BrowserSession",
    "Config",
    "ConfigError",
    "ConversionError",
    "DiagramConfig",
    "DiagramRenderError",
    "DiagramRenderer",
    "DocgenError",
    "GenerateResult",
    "HtmlConfig",
    "HtmlConverter",
    "ImageConfig",
    "ImageEmbedError",
    "InputError",
    "MarkdownParser",
    "PathSecurityError",
    "PdfComposer",
    "PdfConfig",
    "PdfDisabledError",
    "PdfRenderError",
    "RenderedPage",
    "UnsupportedInputError",
    "generate",
    "generate_sync",
    "parse_markdown",
]
