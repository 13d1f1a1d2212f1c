#!/usr/bin/env python3
"""
Source discovery, ordering and scratch directory handling.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import functools
import os
import re
import shutil
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import InputError, UnsupportedInputError
from .log import ConsoleLogger, get_logger

MARKDOWN_SUFFIX = ".md"
_NUMERIC_PREFIX = re.compile(r'^(\d+)-')


@dataclass(frozen=True)
class SourceDocument:
    """A parsed Markdown source file."""

    path: Path
    relative_path: Path
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    body: str = ""


def is_markdown_file(path: Path) -> bool:
    return path.suffix.lower() == MARKDOWN_SUFFIX


def compare_natural(name_a: str, name_b: str) -> int:
    """Compare two file names, honoring a leading ``<digits>-`` prefix.

    Numeric prefixes are compared as numbers first; when they are equal or
    either name has none, the names are compared lexically (case-sensitive).
    """
    num_a = _NUMERIC_PREFIX.match(name_a)
    num_b = _NUMERIC_PREFIX.match(name_b)
    if num_a and num_b:
        diff = int(num_a.group(1)) - int(num_b.group(1))
        if diff != 0:
            return -1 if diff < 0 else 1
    if name_a == name_b:
        return 0
    return -1 if name_a < name_b else 1


def _compare_paths(a: Path, b: Path) -> int:
    result = compare_natural(a.name, b.name)
    if result != 0:
        return result
    # Same file name in different directories: fall back to the full path
    if str(a) == str(b):
        return 0
    return -1 if str(a) < str(b) else 1


natural_sort_key = functools.cmp_to_key(compare_natural)


def sort_markdown_files(files: List[Path]) -> List[Path]:
    """Return files in natural order of their base names."""
    # Pre-sort lexically so the result never depends on filesystem order
    return sorted(sorted(files, key=str), key=functools.cmp_to_key(_compare_paths))


def collect_markdown_files(input_path: Path) -> List[Path]:
    """Collect Markdown files from a single file or a directory tree.

    Raises:
        InputError: the path does not exist or cannot be listed.
        UnsupportedInputError: a single file that is not Markdown.
    """
    if not input_path.exists():
        raise InputError("Input path does not exist", path=input_path, operation="discover")

    if input_path.is_file():
        if not is_markdown_file(input_path):
            raise UnsupportedInputError("Only Markdown (.md) files can be converted",
                                        path=input_path, operation="discover")
        return [input_path]

    if not input_path.is_dir():
        raise UnsupportedInputError("Input is neither a file nor a directory", path=input_path, operation="discover")

    def _raise(error: OSError) -> None:
        raise InputError("Cannot read input directory", path=error.filename or input_path,
                         operation="discover", cause=error)

    md_files = []
    try:
        for root, dirs, files in os.walk(input_path, onerror=_raise):
            # Skip hidden directories in place so os.walk does not descend
            dirs[:] = [d for d in dirs if not d.startswith('.')]
            for name in files:
                if name.startswith('.'):
                    continue
                candidate = Path(root) / name
                if is_markdown_file(candidate):
                    md_files.append(candidate)
    except PermissionError as e:
        raise InputError("Cannot read input directory", path=input_path, operation="discover", cause=e) from e

    return md_files


def input_base_dir(input_path: Path) -> Path:
    """Directory that relative paths are computed against."""
    return input_path.parent if input_path.is_file() else input_path


def output_path_for(relative_path: Path, output_dir: Path) -> Path:
    """Mirror a source path into the output tree with an ``.html`` extension."""
    return output_dir / relative_path.with_suffix(".html")


def write_text(path: Path, content: str) -> None:
    """Write a UTF-8 file, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)


def read_text(path: Path) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


class ScratchDirectory:
    """A private temporary directory owned by one generation run."""

    PREFIX = "markdown-docgen-"

    def __init__(self, log: Optional[ConsoleLogger] = None):
        self.log = log or get_logger()
        self.path: Optional[Path] = None

    def create(self) -> Path:
        temp_root = Path(tempfile.gettempdir()).resolve()
        path = temp_root / f"{self.PREFIX}{uuid.uuid4().hex}"
        path.mkdir(mode=0o700)
        self.path = path
        self.log.debug(f"Created scratch directory: {path}")
        return path

    def remove(self) -> bool:
        """Delete the directory; failures are logged, never raised.

        The resolved path must still sit strictly under the temp root,
        otherwise nothing is deleted.
        """
        if self.path is None:
            return False
        path = self.path
        self.path = None

        try:
            temp_root = Path(tempfile.gettempdir()).resolve()
            resolved = path.resolve()
            if resolved == temp_root or temp_root not in resolved.parents:
                self.log.warning(f"Refusing to remove scratch directory outside temp root: {resolved}")
                return False
            shutil.rmtree(resolved)
            self.log.debug(f"Removed scratch directory: {resolved}")
            return True
        except OSError as e:
            self.log.warning(f"Failed to remove scratch directory {path}: {e}")
            return False

    def __enter__(self) -> Path:
        return self.create()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.remove()
