"""Upload persistence and Java project extraction from zip archives."""

from __future__ import annotations

import io
import logging
import tempfile
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import IO, Callable, Dict, Iterable, List, Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from java_printer.config import RuntimeConfig
from java_printer.core.exceptions import UserError
from java_printer.core.models import Project, SourceFile, UploadInfo
from java_printer.core.utils import remove_tree

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024
DEFAULT_UPLOAD_NAME = "upload.zip"


def save_upload_to_temp(upload: FileStorage, config: RuntimeConfig) -> UploadInfo:
    """Write an uploaded zip into a fresh temp directory owned by the caller."""
    temp_dir = Path(tempfile.mkdtemp(prefix=config.temp_prefix))
    original_name = upload.filename or DEFAULT_UPLOAD_NAME
    zip_path = temp_dir / (secure_filename(original_name) or DEFAULT_UPLOAD_NAME)
    try:
        upload.save(str(zip_path))
    except Exception:
        remove_tree(temp_dir)
        raise
    logger.info("Saved upload %s (%.1fMB) to %s", original_name, zip_path.stat().st_size / (1024 * 1024), temp_dir)
    return UploadInfo(temp_dir=temp_dir, zip_path=zip_path, original_name=original_name)


def _is_ignored(normalized_path: str) -> bool:
    segments = [segment for segment in normalized_path.split("/") if segment]
    if not segments:
        return True
    if any(segment.lower() == "__macosx" for segment in segments):
        return True
    return segments[-1].startswith(".")


def _is_unsafe(normalized_path: str) -> bool:
    return normalized_path.startswith("/") or ".." in normalized_path


def _read_limited(
    stream: IO[bytes],
    max_bytes: int,
    too_large: Callable[[], UserError],
    on_chunk: Optional[Callable[[int], None]] = None,
) -> bytes:
    chunks: List[bytes] = []
    size = 0
    while True:
        chunk = stream.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise too_large()
        if on_chunk is not None:
            on_chunk(len(chunk))
        chunks.append(chunk)
    return b"".join(chunks)


def _sort_key(value: str) -> str:
    return value.casefold()


class _ProjectCollector:
    """Accumulates Java files per project while enforcing count and size limits."""

    def __init__(self, config: RuntimeConfig, included: Optional[Iterable[str]]) -> None:
        self.config = config
        self.included = set(included) if included is not None else None
        self.projects: Dict[str, List[SourceFile]] = {}
        self.file_count = 0
        self.total_bytes = 0
        self.skipped_by_selection = 0

    def count_bytes(self, size: int) -> None:
        self.total_bytes += size
        if self.total_bytes > self.config.max_total_bytes:
            raise UserError.total_too_large()

    def wants(self, path: str) -> bool:
        if self.included is None or path in self.included:
            return True
        self.skipped_by_selection += 1
        return False

    def add(self, project_name: str, path: str, data: bytes) -> None:
        self.file_count += 1
        if self.file_count > self.config.max_file_count:
            raise UserError.too_many_files()
        content = data.decode("utf-8", errors="replace")
        self.projects.setdefault(project_name, []).append(
            SourceFile(name=PurePosixPath(path).name, path=path, content=content)
        )

    def read_java(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, project_name: str, path: str) -> None:
        if not self.wants(path):
            return
        if info.file_size > self.config.max_file_bytes:
            raise UserError.file_too_large()
        with archive.open(info) as stream:
            data = _read_limited(stream, self.config.max_file_bytes, UserError.file_too_large, self.count_bytes)
        self.add(project_name, path, data)

    def read_umz(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, project_name: str, path: str) -> None:
        if info.file_size > self.config.max_umz_bytes:
            raise UserError.nested_archive_too_large()
        with archive.open(info) as stream:
            data = _read_limited(stream, self.config.max_umz_bytes, UserError.nested_archive_too_large)
        try:
            nested = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile:
            logger.info("Skipping unreadable nested archive %s", path)
            return

        with nested:
            for nested_info in nested.infolist():
                if nested_info.is_dir():
                    continue
                nested_path = nested_info.filename.replace("\\", "/")
                if not nested_path.lower().endswith(".java"):
                    continue
                if _is_unsafe(nested_path) or _is_ignored(nested_path):
                    continue
                self.read_java(nested, nested_info, project_name, f"{path}/{nested_path}")

    def build(self) -> List[Project]:
        projects = []
        for name, files in self.projects.items():
            ordered = sorted(files, key=lambda f: (_sort_key(f.name), _sort_key(f.path)))
            projects.append(Project(name=name, files=tuple(ordered)))
        return sorted(projects, key=lambda p: _sort_key(p.name))


def read_java_projects(
    zip_path: Path,
    config: RuntimeConfig,
    project_level: int = 1,
    included_files: Optional[Iterable[str]] = None,
) -> List[Project]:
    """Group the archive's Java files into projects at ``project_level``.

    Raises:
        UserError: Invalid archive, limits exceeded, or no matching files.
    """
    level = min(3, max(1, int(project_level or 1)))
    collector = _ProjectCollector(config, included_files)

    try:
        archive = zipfile.ZipFile(zip_path)
    except (zipfile.BadZipFile, OSError) as e:
        raise UserError.invalid_zip() from e

    try:
        with archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                normalized = info.filename.replace("\\", "/")
                if _is_unsafe(normalized) or _is_ignored(normalized):
                    continue
                segments = [segment for segment in normalized.split("/") if segment]
                if len(segments) < level + 1:
                    continue
                project_name = segments[level - 1]

                lower = normalized.lower()
                if lower.endswith(".java"):
                    collector.read_java(archive, info, project_name, normalized)
                elif lower.endswith(".umz"):
                    collector.read_umz(archive, info, project_name, normalized)
    except (zipfile.BadZipFile, RuntimeError, EOFError, zlib.error) as e:
        # Encrypted entries, unsupported compression and corrupt streams.
        raise UserError.invalid_zip() from e

    if collector.file_count == 0:
        if collector.skipped_by_selection:
            raise UserError.no_included_files()
        raise UserError.no_files_found(level)

    projects = collector.build()
    logger.info(
        "Read %d Java file(s) in %d project(s) at level %d (%.1fKB)",
        collector.file_count,
        len(projects),
        level,
        collector.total_bytes / 1024,
    )
    return projects
