#!/usr/bin/env python3
"""
Runtime dependency checks for the headless browser.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import subprocess
import sys
from pathlib import Path
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .log import ConsoleLogger, get_logger


def chromium_executable() -> Optional[Path]:
    """Return the Playwright Chromium executable if it is installed."""
    try:
        with sync_playwright() as p:
            path = Path(p.chromium.executable_path)
    except PlaywrightError:
        return None
    return path if path.exists() else None


def check_dependencies(log: Optional[ConsoleLogger] = None) -> bool:
    """Check that Playwright Chromium is available; call outside a running event loop."""
    log = log or get_logger()
    executable = chromium_executable()
    if executable is None:
        log.error("Playwright Chromium is not installed. Run: markdown-docgen --install-browsers")
        return False
    log.debug(f"Playwright Chromium found: {executable}")
    return True


def install_browsers(log: Optional[ConsoleLogger] = None) -> bool:
    """Install Playwright Chromium with ``python -m playwright install chromium``."""
    log = log or get_logger()
    log.info("Installing Playwright Chromium...")
    try:
        subprocess.run([sys.executable, "-m", "playwright", "install", "chromium"],
                       check=True, capture_output=True, text=True)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        details = getattr(e, "stderr", None) or str(e)
        log.error(f"Failed to install Playwright Chromium: {details}")
        return False
    log.success("Playwright Chromium installed successfully")
    return True
