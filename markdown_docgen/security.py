#!/usr/bin/env python3
"""
Image path validation against a trusted images directory.

Only the base filename of a reference is ever used, so ``../`` segments and
absolute prefixes cannot reach outside the images directory.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import re
from pathlib import Path
from typing import Iterable, Union
from urllib.parse import unquote

from .errors import PathSecurityError

ALLOWED_IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif', '.svg', '.webp')

# Legacy prefix used by older documents for the shared images folder
LEGACY_IMAGE_PREFIX = "specs-images/"

_DRIVE_LETTER = re.compile(r'^[A-Za-z]:')


def sanitize_image_path(image_path: str) -> str:
    """Reduce an image reference to its bare filename."""
    sanitized = unquote(image_path.strip())
    if sanitized.lower().startswith("file://"):
        sanitized = sanitized[len("file://"):]
    sanitized = sanitized.replace('\\', '/')
    sanitized = _DRIVE_LETTER.sub('', sanitized)
    sanitized = sanitized.lstrip('/')
    if sanitized.startswith(LEGACY_IMAGE_PREFIX):
        sanitized = sanitized[len(LEGACY_IMAGE_PREFIX):]
    # Query strings and fragments are not part of the file name
    sanitized = re.split(r'[?#]', sanitized, maxsplit=1)[0]
    return sanitized.rstrip('/').rsplit('/', 1)[-1]


def validate_image_path(image_path: str, allowed_dir: Union[str, Path]) -> Path:
    """Resolve an image reference to a file directly inside ``allowed_dir``.

    Args:
        image_path: Reference as written in the document (relative, absolute or URL-encoded)
        allowed_dir: Trusted images directory

    Returns:
        Absolute path of the image inside the trusted directory

    Raises:
        PathSecurityError: the name is empty or the resolved path leaves the directory
    """
    filename = sanitize_image_path(image_path)
    if filename in ('', '.', '..'):
        raise PathSecurityError(f"Invalid image path: '{image_path}'", operation="image-path")

    root = Path(allowed_dir).resolve()
    resolved = (root / filename).resolve()

    # A symlink pointing elsewhere resolves outside the root and is rejected too
    if resolved.parent != root:
        raise PathSecurityError(f"Image path escapes the images directory: '{image_path}'",
                                path=resolved, operation="image-path")
    return resolved


def is_allowed_image_extension(filename: str, allowed_extensions: Iterable[str] = ALLOWED_IMAGE_EXTENSIONS) -> bool:
    return Path(filename).suffix.lower() in tuple(allowed_extensions)
