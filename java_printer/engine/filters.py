"""Source filters applied to Java text before highlighting.

Filters run in a fixed order: comment removal, hidden method bodies, blank
line collapsing, tab expansion. Every filter works on numbered lines, so when
line numbers are requested each rendered line still carries the number it had
in the original file. Lines that a filter removes simply disappear; the
placeholder inside a hidden method body has no number.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

TAB_WIDTH = 4

CODE = "code"
STRING = "string"
LINE_COMMENT = "line_comment"
BLOCK_COMMENT = "block_comment"
JAVADOC = "javadoc"

_NEWLINE_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class HiddenMethod:
    label: str
    signature: "re.Pattern[str]"


INIT_COMPONENTS = HiddenMethod(
    "initComponents()",
    re.compile(r"\bprivate\s+void\s+initComponents\s*\(\s*\)"),
)
MAIN_METHOD = HiddenMethod(
    "main()",
    re.compile(r"\b(?:public\s+static|static\s+public)\s+void\s+main\s*\([^)]*\)"),
)


@dataclass
class Line:
    number: Optional[int]
    text: str


@dataclass(frozen=True)
class FilteredSource:
    text: str
    line_numbers: Optional[List[Optional[int]]]
    max_line_number: int


def iter_regions(text: str) -> Iterator[Tuple[str, int, int]]:
    """Split Java source into (kind, start, end) regions.

    String, char and text-block literals are reported as ``STRING`` so that
    comment markers and braces inside them are never treated as syntax.
    """
    n = len(text)
    i = 0
    code_start = 0
    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        kind = None
        end = i

        if c == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            kind = LINE_COMMENT
        elif c == "/" and nxt == "*":
            close = text.find("*/", i + 2)
            end = n if close == -1 else close + 2
            is_javadoc = text.startswith("/**", i) and not text.startswith("/**/", i)
            kind = JAVADOC if is_javadoc else BLOCK_COMMENT
        elif text.startswith('"""', i):
            close = text.find('"""', i + 3)
            end = n if close == -1 else close + 3
            kind = STRING
        elif c in "\"'":
            j = i + 1
            while j < n:
                ch = text[j]
                if ch == "\\":
                    j += 2
                    continue
                if ch == c:
                    j += 1
                    break
                if ch == "\n":
                    break
                j += 1
            end = min(j, n)
            kind = STRING

        if kind is None:
            i += 1
            continue
        if code_start < i:
            yield CODE, code_start, i
        yield kind, i, end
        i = end
        code_start = end

    if code_start < n:
        yield CODE, code_start, n


def split_lines(content: str) -> List[Line]:
    return [Line(index + 1, text) for index, text in enumerate(_NEWLINE_RE.split(content))]


def _join(lines: Sequence[Line]) -> str:
    return "\n".join(line.text for line in lines)


def strip_comments(lines: List[Line], remove_javadoc: bool, remove_comments: bool) -> List[Line]:
    """Remove comments while keeping every surviving line on its original number.

    A removed comment is replaced by the newlines it spanned, so line indices
    stay aligned. Lines left blank only because a comment was removed are
    dropped; lines that were blank to begin with are kept.
    """
    if not (remove_javadoc or remove_comments):
        return lines

    text = _join(lines)
    parts: List[str] = []
    touched = set()
    line_index = 0
    for kind, start, end in iter_regions(text):
        chunk = text[start:end]
        removable = (kind == JAVADOC and remove_javadoc) or (
            kind in (LINE_COMMENT, BLOCK_COMMENT) and remove_comments
        )
        newlines = chunk.count("\n")
        if removable:
            touched.update(range(line_index, line_index + newlines + 1))
            parts.append("\n" * newlines)
        else:
            parts.append(chunk)
        line_index += newlines

    result: List[Line] = []
    for index, new_text in enumerate("".join(parts).split("\n")):
        original = lines[index]
        if index in touched:
            new_text = new_text.rstrip()
            if not new_text.strip() and original.text.strip():
                continue
        result.append(Line(original.number, new_text))
    return result


def _code_mask(text: str) -> bytearray:
    mask = bytearray(len(text))
    for kind, start, end in iter_regions(text):
        if kind == CODE:
            mask[start:end] = b"\x01" * (end - start)
    return mask


def _line_index_at(line_starts: Sequence[int], pos: int) -> int:
    lo, hi = 0, len(line_starts) - 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if line_starts[mid] <= pos:
            lo = mid
        else:
            hi = mid - 1
    return lo


def _find_body(text: str, mask: bytearray, start: int) -> Optional[Tuple[int, int]]:
    """Positions of the opening brace and its matching closing brace, or None."""
    open_pos = None
    for pos in range(start, len(text)):
        if not mask[pos]:
            continue
        if text[pos] == ";":
            return None
        if text[pos] == "{":
            open_pos = pos
            break
    if open_pos is None:
        return None

    depth = 0
    for pos in range(open_pos, len(text)):
        if not mask[pos]:
            continue
        if text[pos] == "{":
            depth += 1
        elif text[pos] == "}":
            depth -= 1
            if depth == 0:
                return open_pos, pos
    return None


def hide_method_bodies(lines: List[Line], method: HiddenMethod) -> List[Line]:
    """Collapse each body of ``method`` to a one-line placeholder comment.

    The signature line keeps its number, the placeholder gets none and the
    closing brace keeps the number of the original closing line.
    """
    search_from = 0
    while True:
        text = _join(lines)
        mask = _code_mask(text)
        match = None
        for candidate in method.signature.finditer(text, search_from):
            if mask[candidate.start()]:
                match = candidate
                break
        if match is None:
            return lines

        body = _find_body(text, mask, match.end())
        if body is None:
            search_from = match.end()
            continue
        open_pos, close_pos = body

        line_starts = [0]
        for line in lines[:-1]:
            line_starts.append(line_starts[-1] + len(line.text) + 1)
        first = _line_index_at(line_starts, match.start())
        last = _line_index_at(line_starts, close_pos)

        head_text = text[line_starts[first]:open_pos]
        indent = re.match(r"[ \t]*", head_text).group(0)
        head = " ".join(part.strip() for part in head_text.splitlines() if part.strip())
        tail = text[close_pos + 1:line_starts[last] + len(lines[last].text)]

        replacement = [
            Line(lines[first].number, f"{indent}{head} {{"),
            Line(None, f"{indent}    // {method.label} hidden"),
            Line(lines[last].number, f"{indent}}}{tail}"),
        ]
        lines = lines[:first] + replacement + lines[last + 1:]
        search_from = sum(len(line.text) + 1 for line in lines[:first + len(replacement)])


def collapse_blank_lines(lines: List[Line]) -> List[Line]:
    result: List[Line] = []
    previous_blank = False
    for line in lines:
        if not line.text.strip():
            if not previous_blank:
                result.append(Line(line.number, ""))
                previous_blank = True
        else:
            result.append(line)
            previous_blank = False
    return result


def replace_tabs(lines: List[Line], tab_width: int = TAB_WIDTH) -> List[Line]:
    spaces = " " * tab_width
    return [Line(line.number, line.text.replace("\t", spaces)) for line in lines]


def apply_filters(content: str, settings, with_line_numbers: bool = False) -> FilteredSource:
    """Run all enabled filters over ``content`` according to ``settings``."""
    lines = split_lines(content)
    max_line_number = len(lines)

    lines = strip_comments(lines, settings.remove_javadoc, settings.remove_comments)
    if settings.hide_init_components:
        lines = hide_method_bodies(lines, INIT_COMPONENTS)
    if settings.hide_main:
        lines = hide_method_bodies(lines, MAIN_METHOD)
    if settings.collapse_blank_lines:
        lines = collapse_blank_lines(lines)
    if settings.tabs_to_spaces:
        lines = replace_tabs(lines)

    return FilteredSource(
        text=_join(lines),
        line_numbers=[line.number for line in lines] if with_line_numbers else None,
        max_line_number=max_line_number,
    )
