#!/usr/bin/env python3
"""
Diagram rendering: Mermaid through the shared headless browser, PlantUML
through the PlantUML server client.

Diagram fences reach this module as ``<pre><code class="language-KIND">``
blocks in the HTML. Each block is rendered independently; a failing diagram
becomes a visible placeholder and never aborts the document.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import asyncio
import base64
import io
import re
import time
from html import escape, unescape
from typing import Any, Dict, List, Optional, Tuple

import plantuml
from PIL import Image
from tqdm import tqdm

from .browser import BrowserSession
from .config import DiagramConfig
from .errors import DiagramRenderError, DocgenError
from .log import ConsoleLogger, get_logger

MERMAID_SCRIPT_URL = "https://unpkg.com/mermaid@10.6.1/dist/mermaid.min.js"

DIAGRAM_BLOCK_PATTERN = re.compile(
    r'<pre[^>]*>\s*<code[^>]*class="[^"]*language-(mermaid|plantuml)[^"]*"[^>]*>(.*?)</code>\s*</pre>',
    re.DOTALL | re.IGNORECASE,
)

_SVG_OPEN_TAG = re.compile(r'<svg\b[^>]*>', re.IGNORECASE)
_NUMBER = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$')

# Transient network errors worth retrying for PlantUML requests
_TRANSIENT_KEYWORDS = ("SSL", "ConnectionError", "ConnectionReset", "Timeout", "BrokenPipe", "RemoteDisconnected")

_READ_SVG_SCRIPT = """() => {
    const error = document.querySelector('.mermaid svg[aria-roledescription="error"]');
    if (error) {
        return { error: (error.textContent || 'Syntax error in diagram').trim() };
    }
    const svg = document.querySelector('.mermaid svg');
    if (!svg) return null;
    const box = svg.getBoundingClientRect();
    const width = parseFloat(svg.getAttribute('width')) || box.width;
    const height = parseFloat(svg.getAttribute('height')) || box.height;
    return { svg: svg.outerHTML, width: width, height: height };
}"""


def mermaid_host_html(source: str, theme: str = "default") -> str:
    """Minimal page that renders one Mermaid diagram on load."""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <script src="{MERMAID_SCRIPT_URL}"></script>
    <style>
        body {{
            margin: 0;
            padding: 0;
            background: white;
        }}
    </style>
</head>
<body>
    <div class="mermaid">
{escape(source, quote=False)}
    </div>
    <script>
        mermaid.initialize({{
            startOnLoad: true,
            theme: '{theme}',
            maxTextSize: 50000,
            flowchart: {{
                useMaxWidth: false,
                htmlLabels: true,
                curve: 'basis',
                nodeSpacing: 15,
                rankSpacing: 25
            }},
            sequence: {{
                useMaxWidth: false,
                diagramMarginX: 5,
                diagramMarginY: 5,
                actorMargin: 20,
                mirrorActors: false
            }},
            gantt: {{
                useMaxWidth: false
            }}
        }});
    </script>
</body>
</html>
"""


def extract_diagram_source(inner_html: str) -> str:
    """Recover literal diagram source from the inside of a ``<code>`` element.

    Highlighting markup is stripped before entities are decoded, so an
    escaped ``&lt;br&gt;`` in a label comes back as ``<br>``. ``&amp;`` is
    decoded first to undo double escaping.
    """
    text = re.sub(r'<[^>]+>', '', inner_html)
    text = text.replace('&amp;', '&')
    return unescape(text).strip()


def _format_number(value: float) -> str:
    return f"{round(value, 2):g}"


def _get_attribute(tag: str, name: str) -> Optional[str]:
    match = re.search(rf'\s{name}\s*=\s*(["\'])(.*?)\1', tag, re.IGNORECASE | re.DOTALL)
    return match.group(2) if match else None


def _set_attribute(tag: str, name: str, value: str) -> str:
    pattern = re.compile(rf'(\s){name}\s*=\s*(["\']).*?\2', re.IGNORECASE | re.DOTALL)
    if pattern.search(tag):
        return pattern.sub(lambda m: f'{m.group(1)}{name}="{value}"', tag, count=1)
    closing = '/>' if tag.endswith('/>') else '>'
    return f'{tag[:-len(closing)].rstrip()} {name}="{value}"{closing}'


def _parse_length(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    match = _NUMBER.match(value)
    return float(match.group(1)) if match else None


def clamp_svg_width(svg: str, max_width: int, width: Optional[float] = None,
                    height: Optional[float] = None) -> str:
    """Shrink an SVG to ``max_width`` keeping its proportions; never enlarge it.

    Args:
        svg: SVG markup
        max_width: Largest allowed width in pixels
        width: Intrinsic width if known, else read from the markup
        height: Intrinsic height if known, else read from the markup

    Returns:
        SVG markup with width, height, viewBox and a max-width style set
    """
    match = _SVG_OPEN_TAG.search(svg)
    if not match:
        return svg
    tag = match.group(0)
    view_box = _get_attribute(tag, 'viewBox')

    if width is None:
        width = _parse_length(_get_attribute(tag, 'width'))
    if height is None:
        height = _parse_length(_get_attribute(tag, 'height'))
    if (width is None or height is None) and view_box:
        parts = re.split(r'[\s,]+', view_box.strip())
        if len(parts) == 4:
            width = width if width is not None else float(parts[2])
            height = height if height is not None else float(parts[3])

    if not width or not height:
        tag = _set_attribute(tag, 'style', 'max-width: 100%; height: auto;')
        return svg[:match.start()] + tag + svg[match.end():]

    if width > max_width:
        scale = max_width / width
        new_width, new_height = float(max_width), height * scale
        if not view_box:
            tag = _set_attribute(tag, 'viewBox', f"0 0 {_format_number(width)} {_format_number(height)}")
    else:
        new_width, new_height = width, height

    tag = _set_attribute(tag, 'width', _format_number(new_width))
    tag = _set_attribute(tag, 'height', _format_number(new_height))
    tag = _set_attribute(tag, 'style', f'max-width: {_format_number(new_width)}px; height: auto;')
    return svg[:match.start()] + tag + svg[match.end():]


def shrink_png(data: bytes, max_width: int) -> bytes:
    """Downscale PNG bytes to ``max_width`` with Lanczos resampling; smaller images pass through."""
    with Image.open(io.BytesIO(data)) as img:
        orig_width, orig_height = img.size
        if orig_width <= max_width:
            return data
        scale = max_width / orig_width
        resized = img.resize((max_width, max(1, int(orig_height * scale))), Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        resized.save(buffer, format='PNG', compress_level=6, optimize=False)
        return buffer.getvalue()


def create_placeholder(kind: str, source: str, error_message: str = "") -> str:
    """Visible stand-in for a diagram that failed to render."""
    # Truncate diagram code for display (first 60 characters)
    truncated = source[:60] + "..." if len(source) > 60 else source
    label = "Mermaid" if kind == "mermaid" else "PlantUML"
    message = escape(error_message) if error_message else "Unknown error occurred during diagram rendering"
    return (
        f'<div class="diagram-placeholder" style="border: 1px solid #ff6b6b; border-radius: 4px; '
        f'padding: 8px; margin: 1rem 0; background-color: #fff5f5; font-size: 0.85em;">'
        f'<p style="color: #d63031; font-weight: bold; margin: 0 0 4px 0;">{label} diagram failed to render</p>'
        f'<p style="margin: 0 0 4px 0;"><strong>Error:</strong> {message}</p>'
        f'<p style="margin: 0;"><strong>Code:</strong> <code>{escape(truncated)}</code></p>'
        f'</div>'
    )


class DiagramRenderer:
    """Render the diagram blocks of an HTML document."""

    def __init__(self, session: BrowserSession, config: Optional[DiagramConfig] = None,
                 log: Optional[ConsoleLogger] = None):
        self.session = session
        self.config = config or DiagramConfig()
        self.log = log or get_logger()

    async def render_mermaid(self, source: str) -> str:
        """Render Mermaid source to SVG markup no wider than ``max_width``.

        Raises:
            DiagramRenderError: timeout, Mermaid syntax error, or no SVG produced.
        """
        budget = (self.config.timeout_ms + self.config.settle_delay_ms) / 1000
        try:
            result = await asyncio.wait_for(self._render_in_page(source), timeout=budget)
        except DocgenError:
            raise
        except asyncio.TimeoutError as e:
            raise DiagramRenderError(f"Mermaid rendering timed out after {budget:g}s",
                                     operation="mermaid", cause=e) from e
        except Exception as e:
            raise DiagramRenderError("Failed to render Mermaid diagram", operation="mermaid", cause=e) from e

        if not result or not result.get('svg'):
            if result and result.get('error'):
                raise DiagramRenderError(f"Mermaid reported an error: {result['error']}", operation="mermaid")
            raise DiagramRenderError("Mermaid produced no SVG output", operation="mermaid")

        return clamp_svg_width(result['svg'], self.config.max_width, result.get('width'), result.get('height'))

    async def _render_in_page(self, source: str) -> Optional[Dict[str, Any]]:
        async with self.session.page() as page:
            await page.set_content(mermaid_host_html(source, self.config.theme), timeout=self.config.timeout_ms)
            # Give Mermaid time to lay out the diagram
            await page.wait_for_timeout(self.config.settle_delay_ms)
            return await page.evaluate(_READ_SVG_SCRIPT)

    def _fetch_plantuml(self, source: str, max_retries: int = 3) -> bytes:
        """Fetch a PNG from the PlantUML server, retrying transient network errors with backoff."""
        client = plantuml.PlantUML(url=self.config.plantuml_server)
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            try:
                data = client.processes(source)
                if not data:
                    raise DiagramRenderError("PlantUML server returned an empty image", operation="plantuml")
                return data
            except DocgenError:
                raise
            except Exception as e:
                last_error = e
                message = f"{type(e).__name__}: {e}"
                is_transient = any(kw.lower() in message.lower() for kw in _TRANSIENT_KEYWORDS)
                if not is_transient or attempt == max_retries:
                    break
                wait_time = 2 ** attempt  # 2s, 4s
                self.log.warning(f"PlantUML request failed (attempt {attempt}/{max_retries}): "
                                 f"{type(e).__name__}. Retrying in {wait_time}s...")
                time.sleep(wait_time)
                # Create a fresh client to discard any broken connection state
                client = plantuml.PlantUML(url=self.config.plantuml_server)

        raise DiagramRenderError("Failed to render PlantUML diagram", operation="plantuml", cause=last_error)

    async def render_plantuml(self, source: str) -> str:
        """Render PlantUML source to an inline ``<img>`` no wider than ``max_width``."""
        data = await asyncio.to_thread(self._fetch_plantuml, source)
        try:
            data = shrink_png(data, self.config.max_width)
        except (OSError, ValueError) as e:
            raise DiagramRenderError("PlantUML server returned an unreadable image",
                                     operation="plantuml", cause=e) from e
        encoded = base64.b64encode(data).decode('ascii')
        return (f'<img src="data:image/png;base64,{encoded}" alt="PlantUML diagram" '
                f'style="max-width: 100%; height: auto;" />')

    def _is_enabled(self, kind: str) -> bool:
        if kind == "plantuml":
            return self.config.plantuml_enabled
        return self.config.enabled

    async def replace_diagrams(self, html: str) -> str:
        """Replace every diagram block with its rendering, or with a placeholder on failure."""
        matches = [m for m in DIAGRAM_BLOCK_PATTERN.finditer(html) if self._is_enabled(m.group(1).lower())]
        if not matches:
            return html

        self.log.info(f"Rendering {len(matches)} diagram(s)...")
        edits: List[Tuple[int, int, str]] = []
        for index, match in enumerate(tqdm(matches, desc="  Diagrams", unit="diagram", leave=False)):
            kind = match.group(1).lower()
            source = extract_diagram_source(match.group(2))
            try:
                if kind == "mermaid":
                    svg = await self.render_mermaid(source)
                    replacement = f'<div class="mermaid-svg" style="text-align: center; margin: 1rem 0;">{svg}</div>'
                else:
                    img = await self.render_plantuml(source)
                    replacement = f'<div class="plantuml-diagram" style="text-align: center; margin: 1rem 0;">{img}</div>'
                self.log.debug(f"Rendered {kind} diagram {index}")
            except DocgenError as e:
                self.log.warning(f"{kind} diagram {index} failed to render: {e}")
                replacement = create_placeholder(kind, source, str(e))
            edits.append((match.start(), match.end(), replacement))

        for start, end, replacement in reversed(edits):
            html = html[:start] + replacement + html[end:]
        return html
