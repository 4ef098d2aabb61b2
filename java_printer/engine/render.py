"""HTML composition and per-file PDF rendering."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from java_printer.config import RuntimeConfig
from java_printer.core.models import SourceFile
from java_printer.engine.filters import FilteredSource, apply_filters
from java_printer.engine.fonts import get_embedded_font_css, get_font_by_id
from java_printer.engine.highlighters import Highlighter, get_highlighter
from java_printer.engine.themes import CODE_CSS_CLASS, Theme, load_theme

logger = logging.getLogger(__name__)

SOURCE_LANGUAGE = "java"
MARGIN_SIDE = "14mm"
MARGIN_PLAIN = "18mm"
MARGIN_WITH_BAND = "25mm"

_TAG_NAME_RE = re.compile(r"^<\s*/?\s*([a-zA-Z0-9-]+)")


class PdfEngine(Protocol):
    def render_pdf(self, html: str, options: Optional[Dict[str, Any]] = None) -> bytes:
        ...


@dataclass(frozen=True)
class RenderContext:
    """Per-job assets resolved once and shared by every file render."""

    theme: Theme
    highlighter: Highlighter
    font_css: str
    font_stack: str


def create_render_context(settings, config: RuntimeConfig) -> RenderContext:
    return RenderContext(
        theme=load_theme(settings.theme),
        highlighter=get_highlighter(settings.highlighter),
        font_css=get_embedded_font_css(settings.font_family, config.fonts_dir),
        font_stack=get_font_by_id(settings.font_family).css,
    )


def _num(value: float) -> str:
    return f"{value:g}"


def split_highlighted_lines(highlighted: str) -> List[str]:
    """Split highlighter markup into per-line fragments.

    Tags still open at a line break are closed at the end of that line and
    reopened at the start of the next, so every fragment is balanced.
    """
    lines: List[str] = []
    current: List[str] = []
    open_tags: List[tuple] = []
    index = 0
    length = len(highlighted)

    while index < length:
        if highlighted[index] == "<":
            close_index = highlighted.find(">", index)
            if close_index == -1:
                current.append(highlighted[index:])
                break
            tag = highlighted[index:close_index + 1]
            name_match = _TAG_NAME_RE.match(tag)
            name = name_match.group(1) if name_match else None
            is_closing = bool(re.match(r"^<\s*/", tag))
            is_self_closing = tag.rstrip(">").rstrip().endswith("/")
            if name and not is_closing and not is_self_closing:
                open_tags.append((name, tag))
            elif name and is_closing:
                for position in range(len(open_tags) - 1, -1, -1):
                    if open_tags[position][0] == name:
                        del open_tags[position]
                        break
            current.append(tag)
            index = close_index + 1
            continue

        next_tag = highlighted.find("<", index)
        end = length if next_tag == -1 else next_tag
        parts = highlighted[index:end].split("\n")
        for part_index, part in enumerate(parts):
            current.append(part)
            if part_index < len(parts) - 1:
                current.extend(f"</{name}>" for name, _ in reversed(open_tags))
                lines.append("".join(current))
                current = [tag for _, tag in open_tags]
        index = end

    lines.append("".join(current))
    return lines


def _style_block(font_css: str) -> str:
    return f"<style>{font_css}</style>" if font_css else ""


def build_header_template(
    settings,
    project_name: str,
    file_name: str,
    file_path: Optional[str] = None,
    font_stack: str = "",
    font_css: str = "",
) -> Optional[str]:
    """Page header with the project name on the left and file name or path on the right."""
    if not settings.show_project_header and not settings.show_file_header:
        return None
    header_font_size = max(8, settings.font_size - 1)
    left = html.escape(project_name) if settings.show_project_header else ""
    show_path = settings.show_file_header and settings.show_file_path
    right = html.escape((file_path or file_name) if show_path else file_name) if settings.show_file_header else ""
    if show_path:
        right_style = ("flex:2 1 66.6667%; min-width:0; white-space:normal; overflow-wrap:anywhere; "
                       "word-break:break-word; text-align:right;")
    else:
        right_style = ("flex:2 1 66.6667%; min-width:0; overflow:hidden; text-overflow:ellipsis; "
                       "white-space:nowrap; text-align:right;")
    return f"""
    {_style_block(font_css)}
    <div style='width:100%; font-family:{font_stack}; font-size:{_num(header_font_size)}px; line-height:{_num(settings.line_height)}; letter-spacing:-0.05em; padding:7mm 14mm; box-sizing:border-box;'>
      <div style="display:flex; justify-content:space-between; gap:12px; width:100%;">
        <span style="flex:1 1 33.3333%; min-width:0; overflow:hidden; text-overflow:ellipsis; white-space:nowrap;">{left}</span>
        <span style="{right_style}">{right}</span>
      </div>
    </div>
    """


def build_footer_template(settings, font_stack: str = "", font_css: str = "") -> Optional[str]:
    if not settings.show_page_numbers:
        return None
    return f"""
    {_style_block(font_css)}
    <div style='width:100%; font-family:{font_stack}; font-size:{_num(settings.font_size)}px; line-height:{_num(settings.line_height)}; padding:7mm 14mm; box-sizing:border-box;'>
      <div style="width:100%; text-align:center;">
        Page <span class="pageNumber"></span> of <span class="totalPages"></span>
      </div>
    </div>
    """


def build_pdf_options(header_template: Optional[str], footer_template: Optional[str]) -> Dict[str, Any]:
    """Page margins sized for whichever of header/footer is present."""
    has_header = bool(header_template)
    has_footer = bool(footer_template)
    if not has_header and not has_footer:
        return {
            "margin": {"top": MARGIN_PLAIN, "right": MARGIN_SIDE, "bottom": MARGIN_PLAIN, "left": MARGIN_SIDE},
            "display_header_footer": False,
        }
    return {
        "margin": {
            "top": MARGIN_WITH_BAND if has_header else MARGIN_PLAIN,
            "right": MARGIN_SIDE,
            "bottom": MARGIN_WITH_BAND if has_footer else MARGIN_PLAIN,
            "left": MARGIN_SIDE,
        },
        "display_header_footer": True,
        "header_template": header_template or "<div></div>",
        "footer_template": footer_template or "<div></div>",
    }


def _numbered_markup(highlighted: str, line_numbers: List[Optional[int]]) -> str:
    rows = []
    for index, line in enumerate(split_highlighted_lines(highlighted)):
        number = line_numbers[index] if index < len(line_numbers) else None
        label = "" if number is None else str(number)
        content = line if line else "&nbsp;"
        rows.append(
            f'<span class="code-line"><span class="line-number">{label}</span>'
            f'<span class="line-content">{content}</span></span>'
        )
    return "".join(rows)


def build_file_html(filtered: FilteredSource, settings, context: RenderContext) -> str:
    """Self-contained HTML page for one filtered source file."""
    highlighted = context.highlighter.highlight(filtered.text, SOURCE_LANGUAGE)
    show_numbers = settings.show_line_numbers and filtered.line_numbers is not None
    number_width = len(str(filtered.max_line_number)) if filtered.max_line_number else 1
    body = _numbered_markup(highlighted, filtered.line_numbers) if show_numbers else highlighted
    code_classes = f"{CODE_CSS_CLASS} language-java" + (" line-numbers" if show_numbers else "")
    font_size = _num(settings.font_size)
    stack = context.font_stack
    theme = context.theme

    return f"""<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <style>
      {context.font_css}
      {theme.css}
      * {{ box-sizing: border-box; }}
      body {{
        margin: 0;
        padding: 0;
        background: {theme.background};
        color: {theme.color};
        font-family: {stack};
        font-size: {font_size}px;
        line-height: {_num(settings.line_height)};
        -webkit-print-color-adjust: exact;
        print-color-adjust: exact;
      }}
      pre, code, .{CODE_CSS_CLASS} {{
        font-family: {stack};
        font-size: {font_size}px;
      }}
      .{CODE_CSS_CLASS} * {{ font-size: inherit; }}
      pre {{
        margin: 0;
        white-space: pre-wrap;
        word-break: break-word;
        overflow-wrap: anywhere;
        background: transparent;
      }}
      .line-numbers {{ --line-number-width: {number_width}ch; }}
      .line-numbers .code-line {{ display: flex; align-items: flex-start; line-height: inherit; }}
      .line-numbers .line-number {{
        width: var(--line-number-width);
        text-align: right;
        padding-right: 0.75rem;
        color: rgba(0, 0, 0, 0.3);
        flex: 0 0 auto;
        user-select: none;
        white-space: nowrap;
        font-variant-numeric: tabular-nums;
        line-height: inherit;
      }}
      .line-numbers .line-content {{
        flex: 1;
        min-width: 0;
        white-space: pre-wrap;
        word-break: break-word;
        overflow-wrap: anywhere;
        line-height: inherit;
      }}
    </style>
  </head>
  <body>
    <pre><code class="{code_classes}">{body}</code></pre>
  </body>
</html>
"""


def render_file_pdf(
    file: SourceFile,
    project_name: str,
    settings,
    context: RenderContext,
    engine: PdfEngine,
) -> bytes:
    """Filter, highlight and print one source file. Any failure propagates."""
    filtered = apply_filters(file.content, settings, with_line_numbers=settings.show_line_numbers)
    page_html = build_file_html(filtered, settings, context)
    header = build_header_template(
        settings,
        project_name=project_name,
        file_name=file.name,
        file_path=file.path,
        font_stack=context.font_stack,
        font_css=context.font_css,
    )
    footer = build_footer_template(settings, font_stack=context.font_stack, font_css=context.font_css)
    pdf = engine.render_pdf(page_html, build_pdf_options(header, footer))
    logger.debug("Rendered %s (%d bytes)", file.path, len(pdf))
    return pdf
