"""Value types shared between the archive reader, renderer and job manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple


@dataclass(frozen=True)
class SourceFile:
    """One Java source unit read from the archive."""

    name: str
    path: str
    content: str


@dataclass(frozen=True)
class Project:
    """Source files sharing a path prefix at the configured nesting depth."""

    name: str
    files: Tuple[SourceFile, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UploadInfo:
    """An uploaded zip saved under its own temp directory."""

    temp_dir: Path
    zip_path: Path
    original_name: str


@dataclass(frozen=True)
class OutputArtifact:
    """A finished render: bytes plus download metadata."""

    data: bytes
    filename: str
    content_type: str

    @property
    def size_mb(self) -> float:
        return len(self.data) / (1024 * 1024)
