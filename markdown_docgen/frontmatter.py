#!/usr/bin/env python3
"""
YAML frontmatter parsing.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from typing import Any, Dict, Tuple

import yaml

from .errors import ConversionError

# Opening delimiter, YAML block, closing delimiter ('---' or '...')
_FRONTMATTER_PATTERN = re.compile(
    r'\A\ufeff?---[ \t]*\r?\n(.*?)(?:\r?\n)?^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)',
    re.DOTALL | re.MULTILINE,
)


def parse_frontmatter(markdown: str) -> Tuple[Dict[str, Any], str]:
    """Split a document into its frontmatter mapping and body text.

    Documents without frontmatter return an empty mapping and the text
    unchanged. So does a block that parses to anything but a mapping: a
    document opening with a ``---`` rule is ordinary Markdown.

    Raises:
        ConversionError: the YAML block is malformed.
    """
    match = _FRONTMATTER_PATTERN.match(markdown)
    if not match:
        return {}, markdown

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ConversionError("Invalid YAML frontmatter", operation="frontmatter", cause=e) from e

    if data is None:
        return {}, markdown[match.end():]
    if not isinstance(data, dict):
        return {}, markdown

    return data, markdown[match.end():]
