#!/usr/bin/env python3
"""
Exception types raised by the documentation generator.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from pathlib import Path
from typing import Optional, Union


class DocgenError(Exception):
    """Base error carrying the path and operation that failed."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None,
                 operation: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(f"[{self.operation}]")
        parts.append(self.message)
        if self.path is not None:
            parts.append(f"(path: {self.path})")
        if self.cause is not None:
            parts.append(f"- {type(self.cause).__name__}: {self.cause}")
        return " ".join(parts)


class ConfigError(DocgenError, ValueError):
    """Invalid configuration value."""


class InputError(DocgenError):
    """Input root is missing or cannot be read."""


class UnsupportedInputError(InputError):
    """A single-file input that is not a Markdown document."""


class PdfDisabledError(DocgenError):
    """PDF output was requested while PDF generation is disabled."""


class ConversionError(DocgenError):
    """A Markdown document failed to convert to HTML."""


class PathSecurityError(DocgenError):
    """An image path resolved outside of its trusted root."""


class ImageEmbedError(DocgenError):
    """An image could not be read and inlined."""


class DiagramRenderError(DocgenError):
    """A diagram could not be rendered."""


class PdfRenderError(DocgenError):
    """The combined document could not be printed to PDF."""
