"""Render orchestration: projects in, one PDF or a zip of per-project PDFs out."""

from __future__ import annotations

import io
import logging
import time
import zipfile
from typing import Callable, List, Optional, Sequence, Tuple

from java_printer.config import RuntimeConfig
from java_printer.core.models import OutputArtifact, Project, SourceFile, UploadInfo
from java_printer.core.settings import OUTPUT_SINGLE, RenderSettings
from java_printer.core.utils import base_name_without_extension, sanitize_filename
from java_printer.engine import merge
from java_printer.engine.archive import read_java_projects
from java_printer.engine.concurrency import bounded_map
from java_printer.engine.render import PdfEngine, RenderContext, create_render_context, render_file_pdf

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
ZIP_CONTENT_TYPE = "application/zip"

ProgressCallback = Callable[[int, int], None]


def _flatten(projects: Sequence[Project]) -> List[Tuple[Project, SourceFile]]:
    return [(project, file) for project in projects for file in project.files]


def _merge_single(projects: Sequence[Project], pdfs: List[bytes], multiple: int) -> Tuple[bytes, int]:
    target = merge.new_document()
    cursor = 0
    padding_total = 0
    for index, project in enumerate(projects):
        project_pages = 0
        page_size = None
        for _ in project.files:
            appended = merge.append_pages(target, pdfs[cursor])
            cursor += 1
            project_pages += appended.page_count
            page_size = page_size or appended.page_size
        # Padding separates projects; nothing is added after the last one.
        if index < len(projects) - 1:
            padding_total += merge.insert_padding(target, project_pages, page_size, multiple)
    return merge.write_document(target), padding_total


def _unique_entry_name(project_name: str, used: set) -> str:
    base = sanitize_filename(project_name, "project")
    name = f"{base}.pdf"
    suffix = 2
    while name in used:
        name = f"{base}-{suffix}.pdf"
        suffix += 1
    used.add(name)
    return name


def _merge_per_project(projects: Sequence[Project], pdfs: List[bytes]) -> bytes:
    buffer = io.BytesIO()
    used: set = set()
    cursor = 0
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for project in projects:
            target = merge.new_document()
            for _ in project.files:
                merge.append_pages(target, pdfs[cursor])
                cursor += 1
            archive.writestr(_unique_entry_name(project.name, used), merge.write_document(target))
    return buffer.getvalue()


def render_projects(
    projects: Sequence[Project],
    settings: RenderSettings,
    context: RenderContext,
    engine: PdfEngine,
    concurrency: int,
    output_name: str,
    on_progress: Optional[ProgressCallback] = None,
) -> OutputArtifact:
    """Render every file with bounded parallelism and assemble the output.

    Files render in any order but are merged strictly in project/file order.
    """
    work = _flatten(projects)
    total = len(work)
    completed = 0

    def _render(item: Tuple[Project, SourceFile]) -> bytes:
        project, file = item
        return render_file_pdf(file, project.name, settings, context, engine)

    def _completed(_index: int, _pdf: bytes) -> None:
        nonlocal completed
        completed += 1
        if on_progress is not None:
            on_progress(completed, total)

    pdfs = bounded_map(work, concurrency, _render, on_complete=_completed)

    base_name = base_name_without_extension(output_name)
    if settings.output_mode == OUTPUT_SINGLE:
        data, padding = _merge_single(projects, pdfs, settings.page_break_multiple)
        if padding:
            logger.info("Inserted %d padding page(s) across %d project(s)", padding, len(projects))
        return OutputArtifact(data=data, filename=f"{base_name}.pdf", content_type=PDF_CONTENT_TYPE)

    data = _merge_per_project(projects, pdfs)
    return OutputArtifact(data=data, filename=f"{base_name}.zip", content_type=ZIP_CONTENT_TYPE)


def run_render(
    upload: UploadInfo,
    settings: RenderSettings,
    config: RuntimeConfig,
    engine: PdfEngine,
    on_start: Optional[Callable[[int], None]] = None,
    on_progress: Optional[ProgressCallback] = None,
    label: str = "direct",
) -> OutputArtifact:
    """Read, validate and render an uploaded archive.

    Validation errors from the archive are raised before any render starts.
    The caller owns ``upload.temp_dir`` and must remove it.
    """
    start = time.time()
    projects = read_java_projects(
        upload.zip_path,
        config,
        project_level=settings.project_level,
        included_files=settings.included_files,
    )
    total = sum(len(project.files) for project in projects)
    if on_start is not None:
        on_start(total)

    context = create_render_context(settings, config)
    artifact = render_projects(
        projects,
        settings,
        context,
        engine,
        concurrency=config.render_concurrency,
        output_name=upload.original_name,
        on_progress=on_progress,
    )
    logger.info(
        f"[{label}] Rendered {total} file(s) in {len(projects)} project(s) to {artifact.filename} "
        f"({artifact.size_mb:.2f}MB, {settings.output_mode}) in {time.time() - start:.1f}s"
    )
    return artifact
