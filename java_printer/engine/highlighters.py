"""Syntax highlighter registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name

DEFAULT_HIGHLIGHTER_ID = "pygments"


@dataclass(frozen=True)
class Highlighter:
    id: str
    label: str
    highlight: Callable[[str, str], str]


def _pygments_highlight(code: str, language: str = "java") -> str:
    # Leading/trailing newlines must survive so output lines match input lines.
    lexer = get_lexer_by_name(language, stripnl=False, ensurenl=False)
    return pygments_highlight(code, lexer, HtmlFormatter(nowrap=True))


_REGISTRY: Dict[str, Highlighter] = {
    DEFAULT_HIGHLIGHTER_ID: Highlighter(DEFAULT_HIGHLIGHTER_ID, "Pygments", _pygments_highlight),
}


def get_highlighter(highlighter_id: Optional[str]) -> Highlighter:
    if isinstance(highlighter_id, str) and highlighter_id in _REGISTRY:
        return _REGISTRY[highlighter_id]
    return _REGISTRY[DEFAULT_HIGHLIGHTER_ID]
