#!/usr/bin/env python3
"""
Immutable configuration for a documentation generation run.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import dataclasses
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError

PAGE_SIZES = ("A3", "A4", "A5", "Letter", "Legal", "Tabloid")
MERMAID_THEMES = ("default", "dark", "forest", "neutral", "base")
LOCALES = ("en", "ja")

_MARGIN_PATTERN = re.compile(r'^(-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)\s*(cm|in|mm|pt|px)?$')

# Conversion factors from each CSS unit to centimeters
_CM_PER_UNIT = {
    'cm': 1.0,
    'in': 2.54,
    'mm': 0.1,
    'pt': 0.0352778,
    'px': 0.0264583,
}


def validate_margin(margin_str: str) -> str:
    """Validate and normalize a single margin value."""
    match = _MARGIN_PATTERN.match(margin_str.strip())
    if not match:
        raise ConfigError(f"Invalid margin format: '{margin_str}'. Use format like '1in', '2.5cm', '10mm', etc.",
                          operation="config")

    value_str, unit = match.groups()
    value = float(value_str)
    # Set default unit to 'in' if not specified
    unit = unit or 'in'

    value_inches = value * _CM_PER_UNIT[unit] / 2.54
    if value_inches < 0:
        raise ConfigError(f"Margin cannot be negative: '{margin_str}'. Minimum value is 0.", operation="config")
    if value_inches > 3:
        raise ConfigError(f"Margin too large: '{margin_str}'. Maximum value is 3 inches (7.62cm).",
                          operation="config")

    return f"{value:g}{unit}"


def parse_margins(margins: str) -> Dict[str, str]:
    """Parse a CSS-style margin shorthand into top/right/bottom/left values."""
    parts = margins.split()

    if len(parts) == 1:
        margin = validate_margin(parts[0])
        return {'top': margin, 'right': margin, 'bottom': margin, 'left': margin}
    if len(parts) == 2:
        vertical = validate_margin(parts[0])
        horizontal = validate_margin(parts[1])
        return {'top': vertical, 'right': horizontal, 'bottom': vertical, 'left': horizontal}
    if len(parts) == 4:
        top, right, bottom, left = (validate_margin(p) for p in parts)
        return {'top': top, 'right': right, 'bottom': bottom, 'left': left}

    raise ConfigError(f"Invalid margin format: '{margins}'. Use 1, 2, or 4 values.", operation="config")


def margin_to_cm(margin_str: str) -> float:
    """Convert a validated margin string to centimeters."""
    match = _MARGIN_PATTERN.match(margin_str.strip())
    if not match:
        return 2.54  # default 1 inch in cm
    value_str, unit = match.groups()
    return round(float(value_str) * _CM_PER_UNIT[unit or 'in'], 4)


@dataclass(frozen=True)
class HtmlConfig:
    breadcrumbs: bool = True
    # None omits the footer block, "" renders an empty one
    footer_text: Optional[str] = None
    template: Optional[Path] = None
    locale: str = "en"
    home_title: str = "Home"
    index_title: str = "Documents"
    index_tree_view: bool = True
    pygments_style: str = "default"


@dataclass(frozen=True)
class PdfConfig:
    enabled: bool = False
    page_size: str = "A4"
    margins: str = "25mm 20mm"
    include_toc: bool = True
    toc_level: int = 3
    toc_title: str = "Table of Contents"
    include_cover: bool = True
    cover_title: str = "Document"
    cover_subtitle: Optional[str] = None
    font: str = "Noto Sans"
    page_numbers: bool = True
    timeout_ms: int = 30000


@dataclass(frozen=True)
class DiagramConfig:
    enabled: bool = True
    theme: str = "default"
    # A4 width (210mm) minus margins (40mm) is roughly 500px of drawable width
    max_width: int = 500
    settle_delay_ms: int = 2000
    timeout_ms: int = 30000
    plantuml_enabled: bool = False
    plantuml_server: str = "http://www.plantuml.com/plantuml/img/"


@dataclass(frozen=True)
class ImageConfig:
    embed: bool = True


@dataclass(frozen=True)
class Config:
    """Settings for one generation run. Paths are made absolute on creation."""

    input_dir: Path
    output_dir: Path
    images_dir: Optional[Path] = None
    html: HtmlConfig = field(default_factory=HtmlConfig)
    pdf: PdfConfig = field(default_factory=PdfConfig)
    diagrams: DiagramConfig = field(default_factory=DiagramConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    debug: bool = False

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize paths through object.__setattr__
        object.__setattr__(self, 'input_dir', Path(self.input_dir).expanduser().resolve())
        object.__setattr__(self, 'output_dir', Path(self.output_dir).expanduser().resolve())
        if self.images_dir is not None:
            object.__setattr__(self, 'images_dir', Path(self.images_dir).expanduser().resolve())
        if self.html.template is not None:
            object.__setattr__(self, 'html', dataclasses.replace(
                self.html, template=Path(self.html.template).expanduser().resolve()))
        self._validate()

    def _validate(self) -> None:
        if not 1 <= self.pdf.toc_level <= 6:
            raise ConfigError(f"toc_level must be between 1 and 6, got {self.pdf.toc_level}", operation="config")
        if self.pdf.page_size not in PAGE_SIZES:
            raise ConfigError(f"Invalid page size '{self.pdf.page_size}'. Available: {', '.join(PAGE_SIZES)}",
                              operation="config")
        if self.diagrams.theme not in MERMAID_THEMES:
            raise ConfigError(f"Invalid diagram theme '{self.diagrams.theme}'. "
                              f"Available: {', '.join(MERMAID_THEMES)}", operation="config")
        if self.html.locale not in LOCALES:
            raise ConfigError(f"Invalid locale '{self.html.locale}'. Available: {', '.join(LOCALES)}",
                              operation="config")
        if self.diagrams.max_width <= 0:
            raise ConfigError("Diagram max_width must be greater than 0", operation="config")
        parse_margins(self.pdf.margins)

    @property
    def margins(self) -> Dict[str, str]:
        return parse_margins(self.pdf.margins)

    def with_output_dir(self, output_dir: Path) -> "Config":
        """Return a copy that writes into another output directory."""
        return dataclasses.replace(self, output_dir=output_dir)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Config":
        """Build a config from nested plain dictionaries.

        Args:
            data: Top-level keys ``input_dir``, ``output_dir``, ``images_dir``,
                ``debug`` plus optional ``html``, ``pdf``, ``diagrams`` and
                ``images`` sections whose keys match the section dataclasses.
        """
        sections = {
            'html': HtmlConfig,
            'pdf': PdfConfig,
            'diagrams': DiagramConfig,
            'images': ImageConfig,
        }
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in sections:
                section_cls = sections[key]
                known = {f.name for f in dataclasses.fields(section_cls)}
                unknown = set(value) - known
                if unknown:
                    raise ConfigError(f"Unknown {key} option(s): {', '.join(sorted(unknown))}", operation="config")
                kwargs[key] = section_cls(**value)
            elif key in ('input_dir', 'output_dir', 'images_dir', 'debug'):
                kwargs[key] = value
            else:
                raise ConfigError(f"Unknown configuration key: {key}", operation="config")

        if 'input_dir' not in kwargs or 'output_dir' not in kwargs:
            raise ConfigError("input_dir and output_dir are required", operation="config")
        return cls(**kwargs)
