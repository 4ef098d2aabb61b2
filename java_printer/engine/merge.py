"""PDF page merging with page-break alignment padding."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PyPDF2 import PdfReader, PdfWriter

logger = logging.getLogger(__name__)

# A4 in PDF points, used when no page size is known yet.
A4_SIZE: Tuple[float, float] = (595.28, 841.89)

PageSize = Tuple[float, float]


@dataclass(frozen=True)
class AppendResult:
    page_count: int
    page_size: Optional[PageSize]


def new_document() -> PdfWriter:
    return PdfWriter()


def append_pages(target: PdfWriter, source: bytes) -> AppendResult:
    """Copy every page of ``source`` into ``target`` in order.

    Returns:
        Number of pages added and the first page's (width, height), or None
        when the source has no pages.
    """
    reader = PdfReader(io.BytesIO(source))
    page_size: Optional[PageSize] = None
    for index, page in enumerate(reader.pages):
        if index == 0:
            box = page.mediabox
            page_size = (float(box.width), float(box.height))
        target.add_page(page)
    return AppendResult(page_count=len(reader.pages), page_size=page_size)


def padding_needed(page_count: int, multiple: int) -> int:
    if multiple <= 1 or page_count <= 0:
        return 0
    remainder = page_count % multiple
    return 0 if remainder == 0 else multiple - remainder


def insert_padding(
    target: PdfWriter,
    page_count: int,
    page_size: Optional[PageSize],
    multiple: int,
) -> int:
    """Append blank pages so ``page_count`` reaches a multiple of ``multiple``.

    Returns:
        Number of blank pages added (0 to multiple - 1).
    """
    padding = padding_needed(page_count, multiple)
    if padding == 0:
        return 0
    width, height = page_size or A4_SIZE
    for _ in range(padding):
        target.add_blank_page(width=width, height=height)
    logger.debug("Inserted %d blank page(s) after %d page(s) (multiple=%d)", padding, page_count, multiple)
    return padding


def write_document(target: PdfWriter) -> bytes:
    buffer = io.BytesIO()
    target.write(buffer)
    return buffer.getvalue()


def count_pages(data: bytes) -> int:
    return len(PdfReader(io.BytesIO(data)).pages)
