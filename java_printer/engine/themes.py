"""Theme catalog and CSS loading backed by Pygments styles."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from pygments.formatters import HtmlFormatter
from pygments.styles import get_style_by_name
from pygments.token import Token

logger = logging.getLogger(__name__)

DEFAULT_THEME_ID = "atom-one-light"
CODE_CSS_CLASS = "highlight"
DEFAULT_TEXT_COLOR = "#111111"
PAGE_BACKGROUND = "#ffffff"


@dataclass(frozen=True)
class ThemeInfo:
    id: str
    label: str
    pygments_style: str


@dataclass(frozen=True)
class Theme:
    """Loaded theme ready to embed in a page."""

    id: str
    label: str
    css: str
    background: str
    color: str


THEMES = (
    ThemeInfo("atom-one-light", "Atom One Light", "friendly"),
    ThemeInfo("arduino-light", "Arduino Light", "arduino"),
    ThemeInfo("stackoverflow-light", "Stack Overflow Light", "default"),
    ThemeInfo("vs", "VS", "vs"),
    ThemeInfo("monochrome", "Monochrome", "bw"),
)

_cache: Dict[str, Theme] = {}
_cache_lock = threading.Lock()


def get_theme_by_id(theme_id: Optional[str]) -> ThemeInfo:
    for theme in THEMES:
        if theme.id == theme_id:
            return theme
    return THEMES[0]


def _text_color(style_name: str) -> str:
    style = get_style_by_name(style_name)
    color = style.style_for_token(Token.Text).get("color")
    return f"#{color}" if color else DEFAULT_TEXT_COLOR


def load_theme(theme_id: Optional[str]) -> Theme:
    """Return the theme's CSS and base colors, cached per theme id."""
    info = get_theme_by_id(theme_id)
    with _cache_lock:
        cached = _cache.get(info.id)
    if cached is not None:
        return cached

    formatter = HtmlFormatter(style=info.pygments_style, nobackground=True)
    theme = Theme(
        id=info.id,
        label=info.label,
        css=formatter.get_style_defs(f".{CODE_CSS_CLASS}"),
        background=PAGE_BACKGROUND,
        color=_text_color(info.pygments_style),
    )
    logger.debug("Loaded theme %s (pygments style %s)", info.id, info.pygments_style)

    with _cache_lock:
        return _cache.setdefault(info.id, theme)
