"""Per-request render settings with validation and silent fallback to defaults."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from java_printer.core.utils import clamp_number
from java_printer.engine.fonts import DEFAULT_FONT_ID, get_font_by_id
from java_printer.engine.highlighters import DEFAULT_HIGHLIGHTER_ID, get_highlighter
from java_printer.engine.themes import DEFAULT_THEME_ID, get_theme_by_id

logger = logging.getLogger(__name__)

OUTPUT_SINGLE = "single"
OUTPUT_PER_PROJECT = "per-project"
OUTPUT_MODES = (OUTPUT_SINGLE, OUTPUT_PER_PROJECT)
PAGE_BREAK_MULTIPLES = (1, 2, 4, 8)


@dataclass(frozen=True)
class RenderSettings:
    font_size: float = 12
    line_height: float = 1.5
    project_level: int = 1
    tabs_to_spaces: bool = True
    theme: str = DEFAULT_THEME_ID
    font_family: str = DEFAULT_FONT_ID
    page_break_multiple: int = 1
    output_mode: str = OUTPUT_PER_PROJECT
    highlighter: str = DEFAULT_HIGHLIGHTER_ID
    show_project_header: bool = True
    show_file_header: bool = True
    show_file_path: bool = False
    show_page_numbers: bool = True
    remove_javadoc: bool = False
    remove_comments: bool = False
    collapse_blank_lines: bool = True
    hide_init_components: bool = True
    hide_main: bool = True
    show_line_numbers: bool = False
    included_files: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_SETTINGS = RenderSettings()


def _decode_payload(payload: Any) -> Dict[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, Mapping):
        return dict(payload)
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str) or not payload.strip():
        return {}
    try:
        parsed = json.loads(payload)
    except ValueError:
        logger.info("[settings] Unparseable settings payload; using defaults")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _to_int(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None or not math.isfinite(number):
        return None
    return int(number)


def _to_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return fallback


def _to_string_tuple(value: Any) -> Optional[Tuple[str, ...]]:
    if not isinstance(value, list):
        return None
    return tuple(item for item in value if isinstance(item, str))


def _to_break_multiple(value: Any, fallback: int) -> int:
    parsed = _to_int(value)
    return parsed if parsed in PAGE_BREAK_MULTIPLES else fallback


def parse_settings(payload: Any) -> RenderSettings:
    """Build a fully populated ``RenderSettings`` from a client payload.

    ``payload`` may be a JSON string, bytes, an already-decoded mapping or
    ``None``. Every invalid or out-of-range field falls back to its default;
    this function never raises for bad input.
    """
    raw = _decode_payload(payload)
    d = DEFAULT_SETTINGS

    font_size = clamp_number(_to_number(raw.get("fontSize")), 9, 18, d.font_size)
    line_height = clamp_number(_to_number(raw.get("lineHeight")), 1.2, 2, d.line_height)
    project_level = int(clamp_number(_to_int(raw.get("projectLevel")), 1, 3, d.project_level))

    show_file_header = _to_bool(raw.get("showFileHeader"), d.show_file_header)
    show_file_path = _to_bool(raw.get("showFilePath"), d.show_file_path) if show_file_header else False

    output_mode = raw.get("outputMode")
    if output_mode not in OUTPUT_MODES:
        output_mode = d.output_mode

    return RenderSettings(
        font_size=font_size,
        line_height=line_height,
        project_level=project_level,
        tabs_to_spaces=_to_bool(raw.get("tabsToSpaces"), d.tabs_to_spaces),
        theme=get_theme_by_id(raw.get("theme")).id,
        font_family=get_font_by_id(raw.get("fontFamily")).id,
        page_break_multiple=_to_break_multiple(raw.get("pageBreakMultiple"), d.page_break_multiple),
        output_mode=output_mode,
        highlighter=get_highlighter(raw.get("highlighter")).id,
        show_project_header=_to_bool(raw.get("showProjectHeader"), d.show_project_header),
        show_file_header=show_file_header,
        show_file_path=show_file_path,
        show_page_numbers=_to_bool(raw.get("showPageNumbers"), d.show_page_numbers),
        remove_javadoc=_to_bool(raw.get("removeJavadoc"), d.remove_javadoc),
        remove_comments=_to_bool(raw.get("removeComments"), d.remove_comments),
        collapse_blank_lines=_to_bool(raw.get("collapseBlankLines"), d.collapse_blank_lines),
        hide_init_components=_to_bool(raw.get("hideInitComponents"), d.hide_init_components),
        hide_main=_to_bool(raw.get("hideMain"), d.hide_main),
        show_line_numbers=_to_bool(raw.get("showLineNumbers"), d.show_line_numbers),
        included_files=_to_string_tuple(raw.get("includedFiles")),
    )
