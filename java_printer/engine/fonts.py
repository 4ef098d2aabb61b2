"""Monospace font catalog and embedded @font-face CSS."""

from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_FONT_ID = "jetbrains-mono"
FONT_WEIGHTS = (400, 600)
_FALLBACK_STACK = '"SFMono-Regular", Menlo, Consolas, "Liberation Mono", monospace'


@dataclass(frozen=True)
class FontInfo:
    id: str
    label: str
    css: str


FONTS = (
    FontInfo("jetbrains-mono", "JetBrains Mono", f'"JetBrains Mono", "Fira Code", {_FALLBACK_STACK}'),
    FontInfo("fira-code", "Fira Code", f'"Fira Code", "JetBrains Mono", {_FALLBACK_STACK}'),
    FontInfo("source-code-pro", "Source Code Pro", f'"Source Code Pro", "JetBrains Mono", "Fira Code", {_FALLBACK_STACK}'),
    FontInfo("ibm-plex-mono", "IBM Plex Mono", f'"IBM Plex Mono", "JetBrains Mono", "Fira Code", {_FALLBACK_STACK}'),
    FontInfo("inconsolata", "Inconsolata", f'"Inconsolata", "JetBrains Mono", "Fira Code", {_FALLBACK_STACK}'),
)

_css_cache: Dict[Tuple[str, str], str] = {}
_css_lock = threading.Lock()


def get_font_by_id(font_id: Optional[str]) -> FontInfo:
    for font in FONTS:
        if font.id == font_id:
            return font
    return FONTS[0]


def font_file_path(fonts_dir: Path, font_id: str, weight: int) -> Path:
    return fonts_dir / f"{font_id}-{weight}.woff2"


def _build_embedded_css(font: FontInfo, fonts_dir: Path) -> str:
    rules = []
    for weight in FONT_WEIGHTS:
        path = font_file_path(fonts_dir, font.id, weight)
        try:
            data = path.read_bytes()
        except OSError:
            # Not bundled; the CSS stack falls back to system monospace fonts.
            logger.debug("Font file missing: %s", path)
            continue
        encoded = base64.b64encode(data).decode("ascii")
        rules.append(
            f'@font-face {{ font-family: "{font.label}"; font-style: normal; font-weight: {weight}; '
            f'src: url(data:font/woff2;base64,{encoded}) format("woff2"); font-display: swap; }}'
        )
    return "\n".join(rules)


def get_embedded_font_css(font_id: Optional[str], fonts_dir: Path) -> str:
    """@font-face rules with base64 font data for ``font_id``; empty if no files exist."""
    font = get_font_by_id(font_id)
    key = (font.id, str(fonts_dir))
    with _css_lock:
        cached = _css_cache.get(key)
    if cached is not None:
        return cached
    css = _build_embedded_css(font, fonts_dir)
    with _css_lock:
        return _css_cache.setdefault(key, css)
