#!/usr/bin/env python3
"""
Inline local images into HTML as base64 data URIs.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import base64
import re
from html import escape, unescape
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import DocgenError, ImageEmbedError
from .log import ConsoleLogger, get_logger
from .security import is_allowed_image_extension, sanitize_image_path, validate_image_path

MIME_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.webp': 'image/webp',
}
DEFAULT_MIME_TYPE = 'image/png'

# Pattern for markdown images: ![alt](path)
_MARKDOWN_IMAGE = re.compile(r'!\[([^\]]*)\]\(([^)\s]+)(?:\s+"[^"]*")?\)')
# Pattern for HTML img tags: <img ... src="path" ...>
_IMG_TAG = re.compile(r'<img\b([^>]*?)(?<![\w-])src=(["\'])(.*?)\2([^>]*)>', re.IGNORECASE | re.DOTALL)
_PRE_BLOCK = re.compile(r'<pre\b.*?</pre>', re.IGNORECASE | re.DOTALL)
# Markdown images inside code blocks or inline code are left as written
_CODE_SPAN = re.compile(r'<(pre|code)\b.*?</\1>', re.IGNORECASE | re.DOTALL)

Edit = Tuple[int, int, str]


def image_to_data_uri(image_path: Path) -> str:
    """Read an image file and return it as a data URI.

    Raises:
        ImageEmbedError: the file cannot be read.
    """
    try:
        data = Path(image_path).read_bytes()
    except OSError as e:
        raise ImageEmbedError("Failed to read image", path=image_path, operation="embed-image", cause=e) from e

    mime_type = MIME_TYPES.get(Path(image_path).suffix.lower(), DEFAULT_MIME_TYPE)
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _is_external(src: str) -> bool:
    lowered = src.strip().lower()
    return lowered.startswith(('data:', 'http://', 'https://'))


def _inside(position: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start <= position < end for start, end in spans)


def apply_edits(text: str, edits: List[Edit]) -> str:
    """Apply non-overlapping (start, end, replacement) edits from right to left."""
    for start, end, replacement in sorted(edits, key=lambda e: e[0], reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def embed_images(html: str, images_dir: Path, log: Optional[ConsoleLogger] = None) -> str:
    """Replace local image references in ``html`` with inline data URIs.

    Markdown-syntax images and ``<img>`` tags are both handled. Markdown
    images in ``<pre>`` or inline ``<code>``, ``<img>`` tags in ``<pre>``,
    data URIs and http(s) URLs are left alone. An image with an unsupported
    extension or one that cannot be resolved or read is logged and kept as
    written.
    """
    log = log or get_logger()
    pre_spans = [m.span() for m in _PRE_BLOCK.finditer(html)]
    code_spans = [m.span() for m in _CODE_SPAN.finditer(html)]
    tag_spans = [m.span() for m in _IMG_TAG.finditer(html)]
    edits: List[Edit] = []

    for match in _MARKDOWN_IMAGE.finditer(html):
        if _inside(match.start(), code_spans) or _inside(match.start(), tag_spans):
            continue
        alt, src = match.group(1), unescape(match.group(2))
        if _is_external(src):
            continue
        data_uri = _embed_one(src, images_dir, log)
        if data_uri is not None:
            replacement = (f'<img src="{data_uri}" alt="{escape(unescape(alt))}" '
                           f'style="max-width: 100%; height: auto;" />')
            edits.append((match.start(), match.end(), replacement))

    for match in _IMG_TAG.finditer(html):
        if _inside(match.start(), pre_spans):
            continue
        before, quote, src, after = match.group(1), match.group(2), unescape(match.group(3)), match.group(4)
        if _is_external(src):
            continue
        data_uri = _embed_one(src, images_dir, log)
        if data_uri is not None:
            edits.append((match.start(), match.end(), f'<img{before}src={quote}{data_uri}{quote}{after}>'))

    if edits:
        log.debug(f"Embedded {len(edits)} image(s) from {images_dir}")
    return apply_edits(html, edits)


def _embed_one(src: str, images_dir: Path, log: ConsoleLogger) -> Optional[str]:
    if not is_allowed_image_extension(sanitize_image_path(src)):
        log.warning(f"Skipping image with unsupported extension: {src}")
        return None
    try:
        resolved = validate_image_path(src, images_dir)
        return image_to_data_uri(resolved)
    except DocgenError as e:
        log.warning(f"Failed to embed image {src}: {e}")
        return None
